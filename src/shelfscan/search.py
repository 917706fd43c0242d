"""Keystroke-driven search with debouncing and last-request-wins semantics.

Every input change issues a fresh ``SearchToken`` and cancels the task that
served the previous one. A response is only applied while its token is still
the controller's current token, so results from a superseded query can never
become visible, whatever order the network completes in.

State machine::

    IDLE -> DEBOUNCING -> IN_FLIGHT -> (COMPLETED | CANCELLED | FAILED) -> IDLE

The terminal outcome of the most recent request is kept in ``last_outcome``;
``state`` itself drops back to ``IDLE``.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from enum import StrEnum
from typing import TYPE_CHECKING, Protocol

import structlog

from shelfscan.config import SearchSettings
from shelfscan.errors import ShelfscanError
from shelfscan.ranking import rank

if TYPE_CHECKING:
    from collections.abc import Awaitable, Callable

    from shelfscan.models.search import SearchResponse, SearchResult

log = structlog.get_logger()


class SearchBackend(Protocol):
    async def search(self, term: str) -> SearchResponse: ...


class SearchState(StrEnum):
    IDLE = "idle"
    DEBOUNCING = "debouncing"
    IN_FLIGHT = "in_flight"
    COMPLETED = "completed"
    CANCELLED = "cancelled"
    FAILED = "failed"


@dataclass(frozen=True)
class SearchToken:
    """Identifies one issued query. Superseded as soon as a newer one exists."""

    generation: int
    query: str


def is_narrow(width: int, settings: SearchSettings | None = None) -> bool:
    """True when a presentation *width* counts as a constrained context."""
    settings = settings or SearchSettings()
    return width <= settings.narrow_width_threshold


class SearchQueryController:
    def __init__(
        self,
        backend: SearchBackend,
        settings: SearchSettings | None = None,
        *,
        narrow: bool = False,
        on_results: Callable[[list[SearchResult]], None] | None = None,
        on_error: Callable[[ShelfscanError], None] | None = None,
        sleep: Callable[[float], Awaitable[None]] = asyncio.sleep,
    ) -> None:
        self._backend = backend
        self._settings = settings or SearchSettings()
        self.narrow = narrow
        self._on_results = on_results
        self._on_error = on_error or self._log_error
        self._sleep = sleep

        self._generation = 0
        self._token: SearchToken | None = None
        self._task: asyncio.Task[None] | None = None
        self._results: list[SearchResult] = []
        self._state = SearchState.IDLE
        self._last_outcome: SearchState | None = None

    # ------------------------------------------------------------------
    # Read-only view
    # ------------------------------------------------------------------

    @property
    def state(self) -> SearchState:
        return self._state

    @property
    def last_outcome(self) -> SearchState | None:
        return self._last_outcome

    @property
    def results(self) -> list[SearchResult]:
        return list(self._results)

    @property
    def current_token(self) -> SearchToken | None:
        return self._token

    @property
    def debounce_seconds(self) -> float:
        if self.narrow:
            return self._settings.narrow_debounce_ms / 1000
        return self._settings.wide_debounce_ms / 1000

    def set_width(self, width: int) -> None:
        self.narrow = is_narrow(width, self._settings)

    def is_current(self, token: SearchToken) -> bool:
        return self._token is token

    # ------------------------------------------------------------------
    # Input
    # ------------------------------------------------------------------

    def on_input(self, term: str) -> SearchToken | None:
        """Handle a change of the search box. Must be called on the event loop.

        Returns the token of the request that will be issued, or ``None`` when
        the input is empty and the results were simply cleared.
        """
        self._generation += 1
        token = SearchToken(self._generation, term)
        self._token = token

        if self._state in (SearchState.DEBOUNCING, SearchState.IN_FLIGHT):
            self._last_outcome = SearchState.CANCELLED
            log.debug("search_superseded", generation=token.generation - 1)
        if self._task is not None and not self._task.done():
            self._task.cancel()
        self._task = None

        if not term:
            self._results = []
            self._state = SearchState.IDLE
            if self._on_results is not None:
                self._on_results([])
            return None

        self._state = SearchState.DEBOUNCING
        self._task = asyncio.get_running_loop().create_task(self._run(token))
        return token

    async def wait(self) -> None:
        """Wait until the current request (if any) has finished."""
        task = self._task
        if task is not None:
            await asyncio.wait({task})

    async def close(self) -> None:
        """Cancel any pending request and supersede its token."""
        task = self._task
        self._token = None
        self._task = None
        if task is not None and not task.done():
            task.cancel()
            await asyncio.wait({task})
        self._state = SearchState.IDLE

    # ------------------------------------------------------------------
    # Request lifecycle
    # ------------------------------------------------------------------

    async def _run(self, token: SearchToken) -> None:
        try:
            await self._sleep(self.debounce_seconds)
            if not self.is_current(token):
                return
            self._state = SearchState.IN_FLIGHT
            response = await self._backend.search(token.query)
        except asyncio.CancelledError:
            log.debug("search_cancelled", generation=token.generation)
            raise
        except ShelfscanError as exc:
            if not self.is_current(token):
                return
            self._state = SearchState.IDLE
            self._last_outcome = SearchState.FAILED
            self._on_error(exc)
            return

        if not self.is_current(token):
            log.debug("search_response_discarded", generation=token.generation)
            return

        ranked = rank(response.results, token.query)
        self._results = ranked
        self._state = SearchState.IDLE
        self._last_outcome = SearchState.COMPLETED
        log.debug(
            "search_completed",
            generation=token.generation,
            query=token.query,
            result_count=len(ranked),
        )
        if self._on_results is not None:
            self._on_results(list(ranked))

    @staticmethod
    def _log_error(exc: ShelfscanError) -> None:
        log.warning("search_failed", code=exc.code, message=exc.message)
