"""Collection comparisons between libraries.

Diff lists titles the left library owns and the right one does not,
intersect lists titles both own, and unique lists titles only one library
owns. The library ids come from the navigation surface. Only one comparison
request may be outstanding at a time; a second request issued meanwhile is
refused rather than queued.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, TypeVar

import structlog

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from shelfscan.fetcher import ApiClient
    from shelfscan.models.comparison import DiffEntry, IntersectEntry, UniqueResult

log = structlog.get_logger()

_T = TypeVar("_T")


def flip(left_library_id: str, right_library_id: str) -> tuple[str, str]:
    """Swap the sides of a pairwise comparison."""
    return right_library_id, left_library_id


class LibraryComparison:
    def __init__(self, api: ApiClient) -> None:
        self._api = api
        self._fetching = False

    @property
    def fetching(self) -> bool:
        return self._fetching

    async def _guarded(self, name: str, request: Callable[[], Awaitable[_T]]) -> _T | None:
        if self._fetching:
            log.info("comparison_refused", comparison=name, reason="request in flight")
            return None
        self._fetching = True
        try:
            return await request()
        finally:
            self._fetching = False

    async def diff(self, left_library_id: str, right_library_id: str) -> list[DiffEntry] | None:
        response = await self._guarded(
            "diff", lambda: self._api.diff(left_library_id, right_library_id)
        )
        if response is None:
            return None
        log.info(
            "comparison_loaded",
            comparison="diff",
            left=left_library_id,
            right=right_library_id,
            count=len(response.diff),
        )
        return response.diff

    async def intersect(
        self, left_library_id: str, right_library_id: str
    ) -> list[IntersectEntry] | None:
        response = await self._guarded(
            "intersect", lambda: self._api.intersect(left_library_id, right_library_id)
        )
        if response is None:
            return None
        log.info(
            "comparison_loaded",
            comparison="intersect",
            left=left_library_id,
            right=right_library_id,
            count=len(response.intersect),
        )
        return response.intersect

    async def unique(self, library_id: str) -> UniqueResult | None:
        response = await self._guarded("unique", lambda: self._api.unique(library_id))
        if response is None:
            return None
        log.info(
            "comparison_loaded",
            comparison="unique",
            library=library_id,
            count=len(response.unique),
        )
        return response
