"""Persisted favorite libraries and the legacy-id migration.

Favorites used to be stored as numeric website ids under ``favorites``; they
are now stored as opaque library ids under ``favoriteIds``. The first load of
an empty current set converts the legacy set through the library catalog,
at most once per store. The legacy key is left in place.

A legacy id may resolve to several libraries (consortium members share a
website id). Every match is kept as its own favorite; only exact duplicate
library ids are collapsed.
"""

from __future__ import annotations

import json
from typing import TYPE_CHECKING

import httpx
import structlog

from shelfscan.errors import ShelfscanError

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from shelfscan.models.library import Library
    from shelfscan.store import Store

log = structlog.get_logger()

LEGACY_FAVORITES_KEY = "favorites"
FAVORITES_KEY = "favoriteIds"
# Set once a migration has written the current key, so that removing every
# favorite later does not resurrect the legacy set.
MIGRATED_KEY = "favoriteIdsMigrated"


def _decode_list(raw: str | None, key: str) -> list:
    if not raw:
        return []
    try:
        value = json.loads(raw)
    except ValueError:
        log.warning("favorites_decode_error", key=key)
        return []
    if not isinstance(value, list):
        log.warning("favorites_decode_error", key=key)
        return []
    return value


def _unique(ids: list[str]) -> list[str]:
    return list(dict.fromkeys(ids))


class FavoritesRepository:
    """Owns every read and write of the favorites keys."""

    def __init__(
        self,
        store: Store,
        catalog: Callable[[], Awaitable[list[Library]]] | None = None,
    ) -> None:
        self._store = store
        self._catalog = catalog
        # A failed catalog lookup is not retried for the rest of this session.
        self._lookup_failed = False

    async def _read_current(self) -> list[str]:
        raw = await self._store.get(FAVORITES_KEY)
        return _unique([str(item) for item in _decode_list(raw, FAVORITES_KEY)])

    async def _write_current(self, favorites: list[str]) -> None:
        await self._store.set(FAVORITES_KEY, json.dumps(favorites))

    async def _current(self) -> list[str]:
        favorites = await self._read_current()
        if favorites:
            return favorites
        return await self.migrate()

    async def load(self) -> set[str]:
        """Return the current favorite library ids, migrating legacy ones if needed."""
        return set(await self._current())

    async def contains(self, library_id: str) -> bool:
        return library_id in await self.load()

    async def add(self, library_id: str) -> None:
        favorites = await self._current()
        if library_id in favorites:
            return
        favorites.append(library_id)
        await self._write_current(favorites)
        log.info("favorite_added", library_id=library_id)

    async def remove(self, library_id: str) -> None:
        favorites = await self._current()
        if library_id not in favorites:
            return
        await self._write_current([f for f in favorites if f != library_id])
        log.info("favorite_removed", library_id=library_id)

    async def migrate(self) -> list[str]:
        """Convert legacy numeric favorites into library ids.

        No-op (returns the current set) when the current set is non-empty, when
        a previous migration already completed, or when there is nothing to
        migrate. A catalog failure skips the migration and returns an empty
        list, and later calls on this repository skip it without another
        lookup. A fresh repository (the next session) tries again.
        """
        current = await self._read_current()
        if current:
            return current
        if await self._store.get(MIGRATED_KEY):
            return []

        legacy = _decode_list(await self._store.get(LEGACY_FAVORITES_KEY), LEGACY_FAVORITES_KEY)
        if not legacy:
            return []
        if self._lookup_failed:
            return []
        if self._catalog is None:
            log.warning("favorites_migration_skipped", reason="no catalog lookup configured")
            return []

        try:
            libraries = await self._catalog()
        except (ShelfscanError, httpx.HTTPError) as exc:
            self._lookup_failed = True
            log.warning("favorites_migration_skipped", reason=str(exc), legacy_count=len(legacy))
            return []

        by_legacy_id: dict[int, list[str]] = {}
        for library in libraries:
            by_legacy_id.setdefault(library.legacy_numeric_id, []).append(library.id)

        migrated: list[str] = []
        for legacy_id in legacy:
            try:
                key = int(legacy_id)
            except (TypeError, ValueError):
                log.warning("favorites_migration_bad_legacy_id", legacy_id=legacy_id)
                continue
            for library_id in by_legacy_id.get(key, []):
                log.debug("favorite_migrated", library_id=library_id, legacy_id=key)
                migrated.append(library_id)

        migrated = _unique(migrated)
        await self._write_current(migrated)
        await self._store.set(MIGRATED_KEY, "true")
        log.info(
            "favorites_migrated",
            legacy_count=len(legacy),
            migrated_count=len(migrated),
        )
        return migrated
