"""Staggered live refresh of availability rows against the upstream API.

The upstream per-library endpoint is rate sensitive, so a refresh is issued in
two waves: favorites first with short offsets, then everything else with
longer ones. Within a wave the k-th newly queued library fires after
``k * base_delay``; libraries already queued or in flight for the same
snapshot are skipped. An ``asyncio.Semaphore`` additionally caps how many
requests may be outstanding at once.

Each response is reconciled into a copy of the library's row, which then
replaces the original in the snapshot. Rows complete in whatever order the
network delivers them. A failed refresh leaves its row stale and never
blocks or retries the others.
"""

from __future__ import annotations

import asyncio
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

import structlog

from shelfscan.config import RefreshSettings
from shelfscan.errors import ShelfscanError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from shelfscan.models.availability import (
        AvailabilityRow,
        AvailabilitySnapshot,
        UpstreamAvailability,
        UpstreamItem,
    )

log = structlog.get_logger()


class RefreshBackend(Protocol):
    async def availability(
        self, library_id: str, media_ids: list[str]
    ) -> UpstreamAvailability: ...


class Wave(StrEnum):
    FAVORITES = "favorites"
    NON_FAVORITES = "non_favorites"


def normalize_wait(available: int, wait: int | None) -> int:
    """Available now means no wait; a missing wait counts as none."""
    if not wait:
        return 0
    if available > 0 and wait > 0:
        return 0
    return wait


def reconcile(row: AvailabilityRow, item: UpstreamItem) -> AvailabilityRow:
    """Return a fresh copy of *row* carrying the upstream counts in *item*."""
    return row.model_copy(
        update={
            "owned_count": item.owned_copies,
            "available_count": item.available_copies,
            "holds_count": item.holds_count,
            "estimated_wait_days": normalize_wait(item.available_copies, item.estimated_wait_days),
            "fresh": True,
        }
    )


class LiveRefreshScheduler:
    def __init__(
        self,
        upstream: RefreshBackend,
        settings: RefreshSettings | None = None,
        *,
        on_row_updated: Callable[[AvailabilityRow], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._upstream = upstream
        self._settings = settings or RefreshSettings()
        self._on_row_updated = on_row_updated
        self._sleep = sleep
        self._semaphore = asyncio.Semaphore(max(1, self._settings.max_in_flight))
        # id(snapshot) -> outstanding tasks for that snapshot
        self._tasks: dict[int, set[asyncio.Task[AvailabilityRow | None]]] = {}

    # ------------------------------------------------------------------
    # Waves
    # ------------------------------------------------------------------

    async def refresh_favorites(
        self, snapshot: AvailabilitySnapshot
    ) -> list[asyncio.Task[AvailabilityRow | None]]:
        return self._schedule(snapshot, Wave.FAVORITES)

    async def refresh_non_favorites(
        self, snapshot: AvailabilitySnapshot
    ) -> list[asyncio.Task[AvailabilityRow | None]]:
        return self._schedule(snapshot, Wave.NON_FAVORITES)

    def base_delay(self, wave: Wave) -> float:
        if wave is Wave.FAVORITES:
            return self._settings.favorites_delay_ms / 1000
        return self._settings.non_favorites_delay_ms / 1000

    def _schedule(
        self, snapshot: AvailabilitySnapshot, wave: Wave
    ) -> list[asyncio.Task[AvailabilityRow | None]]:
        rows = snapshot.favorites() if wave is Wave.FAVORITES else snapshot.non_favorites()
        base = self.base_delay(wave)
        loop = asyncio.get_running_loop()

        scheduled: list[asyncio.Task[AvailabilityRow | None]] = []
        skipped = 0
        for row in rows:
            library_id = row.library.id
            ticket = object()
            if not snapshot.work.queue(library_id, ticket):
                skipped += 1
                continue
            delay = (len(scheduled) + 1) * base
            task = loop.create_task(self._refresh_one(snapshot, library_id, delay, ticket))
            # A task cancelled before its first step never reaches its finally.
            task.add_done_callback(
                lambda _, lid=library_id, owner=ticket: snapshot.work.finish(lid, owner)
            )
            self._track(snapshot, task)
            scheduled.append(task)

        log.info(
            "refresh_wave_scheduled",
            wave=str(wave),
            media_id=snapshot.id,
            scheduled=len(scheduled),
            skipped=skipped,
        )
        return scheduled

    def _track(
        self, snapshot: AvailabilitySnapshot, task: asyncio.Task[AvailabilityRow | None]
    ) -> None:
        key = id(snapshot)
        tasks = self._tasks.setdefault(key, set())
        tasks.add(task)

        def _untrack(done: asyncio.Task[AvailabilityRow | None]) -> None:
            tasks.discard(done)
            if not tasks and self._tasks.get(key) is tasks:
                del self._tasks[key]

        task.add_done_callback(_untrack)

    # ------------------------------------------------------------------
    # Single library
    # ------------------------------------------------------------------

    async def _refresh_one(
        self, snapshot: AvailabilitySnapshot, library_id: str, delay: float, ticket: object
    ) -> AvailabilityRow | None:
        try:
            await self._sleep(delay)
            async with self._semaphore:
                snapshot.work.start(library_id)
                response = await self._upstream.availability(library_id, [snapshot.id])
        except ShelfscanError as exc:
            log.warning(
                "refresh_failed",
                library_id=library_id,
                media_id=snapshot.id,
                code=exc.code,
                message=exc.message,
            )
            return None
        else:
            return self._apply(snapshot, library_id, response)
        finally:
            snapshot.work.finish(library_id, ticket)

    def _apply(
        self, snapshot: AvailabilitySnapshot, library_id: str, response: UpstreamAvailability
    ) -> AvailabilityRow | None:
        item = response.find(snapshot.id)
        if item is None:
            log.warning("refresh_item_missing", library_id=library_id, media_id=snapshot.id)
            return None
        row = snapshot.row_for(library_id)
        if row is None:
            log.warning("refresh_row_missing", library_id=library_id, media_id=snapshot.id)
            return None

        updated = reconcile(row, item)
        snapshot.replace_row(updated)
        log.debug(
            "refresh_row_reconciled",
            library_id=library_id,
            media_id=snapshot.id,
            available=updated.available_count,
            wait_days=updated.estimated_wait_days,
        )
        if self._on_row_updated is not None:
            self._on_row_updated(updated)
        return updated

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def pending(self, snapshot: AvailabilitySnapshot) -> int:
        return len(self._tasks.get(id(snapshot), ()))

    async def drain(self, snapshot: AvailabilitySnapshot | None = None) -> None:
        """Wait for outstanding refreshes (of *snapshot*, or of all snapshots)."""
        if snapshot is not None:
            tasks = set(self._tasks.get(id(snapshot), ()))
        else:
            tasks = {task for group in self._tasks.values() for task in group}
        if tasks:
            await asyncio.wait(tasks)

    async def teardown(self, snapshot: AvailabilitySnapshot) -> None:
        """Called when *snapshot* leaves the screen."""
        if not self._settings.cancel_on_teardown:
            log.debug(
                "refresh_teardown_skipped",
                media_id=snapshot.id,
                pending=self.pending(snapshot),
            )
            return
        await self.cancel(snapshot)

    async def cancel(self, snapshot: AvailabilitySnapshot) -> int:
        """Cancel every outstanding refresh of *snapshot*. Returns how many were cancelled."""
        tasks = [task for task in self._tasks.get(id(snapshot), ()) if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)
            log.info("refresh_cancelled", media_id=snapshot.id, cancelled=len(tasks))
        return len(tasks)

    async def close(self) -> None:
        """Cancel everything still scheduled."""
        tasks = [task for group in self._tasks.values() for task in group if not task.done()]
        for task in tasks:
            task.cancel()
        if tasks:
            await asyncio.wait(tasks)
