"""Want-to-read check against the user's favorite libraries.

The backend resolves a Hardcover username to the titles on that user's
want-to-read shelf. Each favorite library is then asked, one at a time, about
every title at once. A title is reported at the favorite holding the most
available copies, together with how many favorites have any copy available.
Titles with no available copy at any favorite are reported as not found.

A favorite whose upstream request fails is logged and skipped; the check
carries on with the rest.
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Protocol

import structlog

from shelfscan.errors import ShelfscanError
from shelfscan.models.hardcover import FavoriteAvailability, WantToReadEntry

if TYPE_CHECKING:
    from shelfscan.favorites import FavoritesRepository
    from shelfscan.models.availability import UpstreamAvailability
    from shelfscan.models.search import SearchResult
    from shelfscan.refresh import RefreshBackend

log = structlog.get_logger()


class WantToReadSource(Protocol):
    async def search_hardcover(
        self, username: str, additional_filters: str = ""
    ) -> list[SearchResult]: ...


def merge_availability(
    current: FavoriteAvailability | None,
    library_id: str,
    media_id: str,
    available: int,
) -> FavoriteAvailability | None:
    """Fold one favorite's available count for a title into *current*.

    The favorite with strictly more copies replaces the current best, so the
    first favorite checked wins a tie.
    """
    if available <= 0:
        return current
    if current is None:
        return FavoriteAvailability(
            library_id=library_id, media_id=media_id, most_available_copies=available
        )
    total = current.total_libraries + 1
    if available > current.most_available_copies:
        return FavoriteAvailability(
            library_id=library_id,
            media_id=media_id,
            most_available_copies=available,
            total_libraries=total,
        )
    return current.model_copy(update={"total_libraries": total})


def sort_entries(entries: list[WantToReadEntry]) -> list[WantToReadEntry]:
    """Available titles first, most favorites first; the rest keep their order."""

    def key(entry: WantToReadEntry) -> tuple[bool, int]:
        if entry.available_now is None:
            return True, 0
        return False, -entry.available_now.total_libraries

    return sorted(entries, key=key)


class WantToReadChecker:
    def __init__(
        self,
        api: WantToReadSource,
        upstream: RefreshBackend,
        favorites: FavoritesRepository,
    ) -> None:
        self._api = api
        self._upstream = upstream
        self._favorites = favorites

    async def check(self, username: str, additional_filters: str = "") -> list[WantToReadEntry]:
        """Resolve *username*'s want-to-read titles and check them at every favorite."""
        results = await self._api.search_hardcover(username, additional_filters)
        if not results:
            log.info("hardcover_check_empty", username=username.strip())
            return []

        media_ids = [result.id for result in results]
        best: dict[str, FavoriteAvailability | None] = dict.fromkeys(media_ids)
        favorite_ids = sorted(await self._favorites.load())
        log.info("hardcover_check_started", titles=len(media_ids), favorites=len(favorite_ids))

        for library_id in favorite_ids:
            response = await self._availability(library_id, media_ids)
            if response is None:
                continue
            for media_id in media_ids:
                item = response.find(media_id)
                if item is None:
                    continue
                best[media_id] = merge_availability(
                    best[media_id], library_id, media_id, item.available_copies
                )

        entries = [
            WantToReadEntry(result=result, available_now=best[result.id]) for result in results
        ]
        log.info(
            "hardcover_check_finished",
            titles=len(entries),
            available=sum(1 for entry in entries if entry.available_now is not None),
        )
        return sort_entries(entries)

    async def _availability(
        self, library_id: str, media_ids: list[str]
    ) -> UpstreamAvailability | None:
        try:
            return await self._upstream.availability(library_id, media_ids)
        except ShelfscanError as exc:
            log.warning(
                "hardcover_favorite_failed",
                library_id=library_id,
                code=exc.code,
                message=exc.message,
            )
            return None
