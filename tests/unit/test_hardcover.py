"""Unit tests for shelfscan.hardcover."""

from __future__ import annotations

import json
from typing import TYPE_CHECKING, Any

import httpx
import pytest
import respx

from shelfscan.errors import ErrorCode, ShelfscanError
from shelfscan.favorites import FavoritesRepository
from shelfscan.fetcher import ApiClient, UpstreamClient
from shelfscan.hardcover import WantToReadChecker, merge_availability, sort_entries
from shelfscan.models.hardcover import FavoriteAvailability, WantToReadEntry
from shelfscan.models.search import SearchResult

if TYPE_CHECKING:
    from shelfscan.config import ApiSettings, UpstreamSettings
    from shelfscan.store import Store

API = "http://backend.test"
UPSTREAM = "https://upstream.test"


def _upstream_route(library_id: str) -> respx.Route:
    return respx.post(f"{UPSTREAM}/v2/libraries/{library_id}/media/availability")


def _items(**available: int) -> httpx.Response:
    items = [{"id": media_id[1:], "availableCopies": n} for media_id, n in available.items()]
    return httpx.Response(200, json={"items": items})


def _entry(media_id: str, total: int | None) -> WantToReadEntry:
    best = None
    if total is not None:
        best = FavoriteAvailability(
            library_id="nypl", media_id=media_id, most_available_copies=1, total_libraries=total
        )
    return WantToReadEntry(result=SearchResult(id=media_id), available_now=best)


@pytest.fixture()
async def checker(
    store: Store, api_settings: ApiSettings, upstream_settings: UpstreamSettings
):
    favorites = FavoritesRepository(store)
    async with httpx.AsyncClient() as client:
        yield (
            WantToReadChecker(
                ApiClient(client, api_settings),
                UpstreamClient(client, upstream_settings),
                favorites,
            ),
            favorites,
        )


# ---------------------------------------------------------------------------
# Reducing per-favorite counts
# ---------------------------------------------------------------------------


class TestMergeAvailability:
    def test_nothing_available_keeps_current(self) -> None:
        assert merge_availability(None, "nypl", "1", 0) is None

    def test_first_available_favorite(self) -> None:
        best = merge_availability(None, "nypl", "1", 2)
        assert best is not None
        assert best.library_id == "nypl"
        assert best.most_available_copies == 2
        assert best.total_libraries == 1
        assert best.libby_link == "https://libbyapp.com/library/nypl/generated-36532/page-1/1"

    def test_more_copies_replaces_best(self) -> None:
        best = merge_availability(None, "lapl", "1", 1)
        best = merge_availability(best, "nypl", "1", 4)
        assert best is not None
        assert best.library_id == "nypl"
        assert best.most_available_copies == 4
        assert best.total_libraries == 2

    def test_tie_keeps_first_but_counts(self) -> None:
        best = merge_availability(None, "lapl", "1", 3)
        best = merge_availability(best, "nypl", "1", 3)
        assert best is not None
        assert best.library_id == "lapl"
        assert best.total_libraries == 2

    def test_sort_available_first_by_total(self) -> None:
        entries = [_entry("1", None), _entry("2", 1), _entry("3", None), _entry("4", 3)]
        assert [entry.result.id for entry in sort_entries(entries)] == ["4", "2", "1", "3"]


# ---------------------------------------------------------------------------
# WantToReadChecker
# ---------------------------------------------------------------------------


class TestWantToReadChecker:
    async def test_best_favorite_per_title(self, checker, hardcover_payload: list[Any]) -> None:
        want_to_read, favorites = checker
        for library_id in ("nypl", "lapl", "ohdbc"):
            await favorites.add(library_id)

        with respx.mock:
            search = respx.get(f"{API}/api/search-hardcover").mock(
                return_value=httpx.Response(200, json=hardcover_payload)
            )
            lapl = _upstream_route("lapl").mock(return_value=_items(m1=3, m2=0))
            nypl = _upstream_route("nypl").mock(return_value=_items(m1=1, m3=2))
            ohdbc = _upstream_route("ohdbc").mock(return_value=_items(m1=3))
            entries = await want_to_read.check(" freeeve ", "kindle")

        assert search.calls.last.request.url.params["username"] == "freeeve"
        for route in (lapl, nypl, ohdbc):
            assert route.call_count == 1
            assert json.loads(route.calls.last.request.content) == {"ids": ["1", "2", "3"]}

        by_id = {entry.result.id: entry.available_now for entry in entries}
        piranesi = by_id["1"]
        assert piranesi is not None
        assert piranesi.library_id == "lapl"
        assert piranesi.most_available_copies == 3
        assert piranesi.total_libraries == 3
        assert by_id["2"] is None
        darkness = by_id["3"]
        assert darkness is not None
        assert darkness.library_id == "nypl"
        assert [entry.result.id for entry in entries] == ["1", "3", "2"]

    async def test_failed_favorite_is_skipped(
        self, checker, hardcover_payload: list[Any]
    ) -> None:
        want_to_read, favorites = checker
        await favorites.add("lapl")
        await favorites.add("nypl")

        with respx.mock:
            respx.get(f"{API}/api/search-hardcover").mock(
                return_value=httpx.Response(200, json=hardcover_payload)
            )
            _upstream_route("lapl").mock(return_value=httpx.Response(429))
            _upstream_route("nypl").mock(return_value=_items(m2=1))
            entries = await want_to_read.check("freeeve")

        available = {e.result.id: e.available_now for e in entries if e.available_now}
        assert list(available) == ["2"]
        assert available["2"].library_id == "nypl"

    async def test_without_favorites_nothing_is_found(
        self, checker, hardcover_payload: list[Any]
    ) -> None:
        want_to_read, _ = checker
        with respx.mock:
            respx.get(f"{API}/api/search-hardcover").mock(
                return_value=httpx.Response(200, json=hardcover_payload)
            )
            entries = await want_to_read.check("freeeve")

        assert [entry.result.id for entry in entries] == ["1", "2", "3"]
        assert all(entry.available_now is None for entry in entries)

    async def test_empty_shelf_skips_upstream(self, checker) -> None:
        want_to_read, favorites = checker
        await favorites.add("nypl")
        with respx.mock:
            respx.get(f"{API}/api/search-hardcover").mock(
                return_value=httpx.Response(200, json=[])
            )
            assert await want_to_read.check("freeeve") == []

    async def test_search_failure_propagates(self, checker) -> None:
        want_to_read, _ = checker
        with respx.mock:
            respx.get(f"{API}/api/search-hardcover").mock(return_value=httpx.Response(500))
            with pytest.raises(ShelfscanError) as exc_info:
                await want_to_read.check("freeeve")
        assert exc_info.value.code == ErrorCode.SEARCH_FAILED
