"""Loading the per-library availability snapshot for a selected title."""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import structlog

if TYPE_CHECKING:
    from shelfscan.favorites import FavoritesRepository
    from shelfscan.models.availability import AvailabilitySnapshot
    from shelfscan.refresh import LiveRefreshScheduler

log = structlog.get_logger()


class AvailabilityBackend(Protocol):
    async def availability(self, media_id: str) -> AvailabilitySnapshot: ...


class AvailabilitySnapshotLoader:
    """Fetches snapshots and tracks the one currently on screen.

    A failed load raises ``ShelfscanError`` and leaves ``current`` untouched.
    A successful load replaces ``current``; the replaced snapshot is handed to
    the refresh scheduler for teardown.
    """

    def __init__(
        self,
        backend: AvailabilityBackend,
        favorites: FavoritesRepository,
        scheduler: LiveRefreshScheduler | None = None,
    ) -> None:
        self._backend = backend
        self._favorites = favorites
        self._scheduler = scheduler
        self.current: AvailabilitySnapshot | None = None

    async def load(self, media_id: str) -> AvailabilitySnapshot:
        payload = await self._backend.availability(media_id)
        favorites = await self._favorites.load()

        snapshot = payload.model_copy(
            update={
                "rows": [
                    row.model_copy(update={"favorite": row.library.id in favorites, "fresh": False})
                    for row in payload.rows
                ]
            }
        )
        log.info(
            "snapshot_loaded",
            media_id=snapshot.id,
            rows=len(snapshot.rows),
            favorites=len(snapshot.favorites()),
        )

        previous, self.current = self.current, snapshot
        if previous is not None and self._scheduler is not None:
            await self._scheduler.teardown(previous)
        return snapshot
