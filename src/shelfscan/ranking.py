"""Relevance ranking of search results by longest common substring.

Each result is scored against the query on three fields (title, creator
names, and ``"#<order> <series>"``) and the best field wins. Fields are
padded with a space on both sides so a query that ends on a word boundary
("zevin ") can match a field that ends with that word. Equal scores fall back
to the number of libraries owning the title.
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from collections.abc import Sequence

    from shelfscan.models.search import SearchResult


def longest_common_substring(a: str, b: str) -> int:
    """Length of the longest contiguous run shared by *a* and *b*."""
    if not a or not b:
        return 0
    # Rolling single-row DP table: prev[j] is the run ending at a[i-1], b[j-1].
    prev = [0] * (len(b) + 1)
    best = 0
    for i in range(1, len(a) + 1):
        curr = [0] * (len(b) + 1)
        ch = a[i - 1]
        for j in range(1, len(b) + 1):
            if ch == b[j - 1]:
                curr[j] = prev[j - 1] + 1
                if curr[j] > best:
                    best = curr[j]
        prev = curr
    return best


def _pad(value: str) -> str:
    return f" {value.lower()} "


def scored_fields(result: SearchResult) -> tuple[str, str, str]:
    """The padded, lowercased fields a query is matched against."""
    creators = " ".join(creator.name for creator in result.creators)
    series = f"#{result.series_read_order} {result.series_name}"
    return _pad(result.title), _pad(creators), _pad(series)


def relevance(result: SearchResult, query: str) -> int:
    """Best LCS length between *query* and any of the result's fields."""
    normalized = query.lower()
    return max(longest_common_substring(normalized, field) for field in scored_fields(result))


def rank(results: Sequence[SearchResult], query: str) -> list[SearchResult]:
    """Order *results* by relevance to *query*, most relevant first.

    Pure and stable: the output is a permutation of the input, and results
    with equal relevance and equal ``library_count`` keep their input order.
    """
    scores = [relevance(result, query) for result in results]
    order = sorted(
        range(len(results)),
        key=lambda i: (-scores[i], -results[i].library_count),
    )
    return [results[i] for i in order]
