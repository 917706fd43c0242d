"""Application wiring: one AppState per running client."""

from __future__ import annotations

from contextlib import asynccontextmanager
from dataclasses import dataclass
from typing import TYPE_CHECKING

import httpx

from shelfscan.comparison import LibraryComparison
from shelfscan.favorites import FavoritesRepository
from shelfscan.fetcher import ApiClient, UpstreamClient, build_http_client
from shelfscan.hardcover import WantToReadChecker
from shelfscan.refresh import LiveRefreshScheduler
from shelfscan.search import SearchQueryController
from shelfscan.snapshot import AvailabilitySnapshotLoader
from shelfscan.store import Store, open_store

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable

    from shelfscan.config import Settings
    from shelfscan.errors import ShelfscanError
    from shelfscan.models.availability import AvailabilityRow
    from shelfscan.models.search import SearchResult


@dataclass
class AppState:
    settings: Settings
    http_client: httpx.AsyncClient
    store: Store
    api: ApiClient
    upstream: UpstreamClient
    favorites: FavoritesRepository
    scheduler: LiveRefreshScheduler
    loader: AvailabilitySnapshotLoader
    comparison: LibraryComparison
    hardcover: WantToReadChecker

    def search_controller(
        self,
        *,
        narrow: bool = False,
        width: int | None = None,
        on_results: Callable[[list[SearchResult]], None] | None = None,
        on_error: Callable[[ShelfscanError], None] | None = None,
    ) -> SearchQueryController:
        controller = SearchQueryController(
            self.api,
            self.settings.search,
            narrow=narrow,
            on_results=on_results,
            on_error=on_error,
        )
        if width is not None:
            controller.set_width(width)
        return controller


def build_state(
    settings: Settings,
    http_client: httpx.AsyncClient,
    store: Store,
    *,
    on_row_updated: Callable[[AvailabilityRow], None] | None = None,
) -> AppState:
    api = ApiClient(http_client, settings.api)
    upstream = UpstreamClient(http_client, settings.upstream)
    favorites = FavoritesRepository(store, catalog=api.libraries)
    scheduler = LiveRefreshScheduler(upstream, settings.refresh, on_row_updated=on_row_updated)
    return AppState(
        settings=settings,
        http_client=http_client,
        store=store,
        api=api,
        upstream=upstream,
        favorites=favorites,
        scheduler=scheduler,
        loader=AvailabilitySnapshotLoader(api, favorites, scheduler),
        comparison=LibraryComparison(api),
        hardcover=WantToReadChecker(api, upstream, favorites),
    )


@asynccontextmanager
async def open_state(
    settings: Settings,
    *,
    on_row_updated: Callable[[AvailabilityRow], None] | None = None,
) -> AsyncIterator[AppState]:
    """Open the store and HTTP client, yield a wired AppState, then clean up."""
    db, store = await open_store(settings.store.db_path)
    try:
        async with build_http_client(settings.api.timeout_seconds) as client:
            state = build_state(settings, client, store, on_row_updated=on_row_updated)
            try:
                yield state
            finally:
                await state.scheduler.close()
    finally:
        await db.close()
