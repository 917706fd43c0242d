"""Integration test fixtures.

Provides a fully wired AppState with in-memory SQLite and a real httpx client
(requests are intercepted with respx), plus an isolated environment for
running the CLI. Payload fixtures come from tests/conftest.py.
"""

from __future__ import annotations

import os
from contextlib import AbstractAsyncContextManager, asynccontextmanager
from typing import TYPE_CHECKING, Any

import aiosqlite
import httpx
import pytest
import structlog

from shelfscan.config import Settings
from shelfscan.state import build_state
from shelfscan.store import Store

if TYPE_CHECKING:
    from collections.abc import AsyncIterator, Callable
    from pathlib import Path

    from shelfscan.models.availability import AvailabilityRow
    from shelfscan.state import AppState

API = "http://backend.test"
UPSTREAM = "https://upstream.test"


def make_settings(**overrides: Any) -> Settings:
    sections: dict[str, Any] = {
        "api": {"base_url": API},
        "upstream": {"base_url": UPSTREAM},
        "search": {"narrow_debounce_ms": 0, "wide_debounce_ms": 0},
        "refresh": {"favorites_delay_ms": 0, "non_favorites_delay_ms": 0},
        "store": {"db_path": ":memory:"},
    }
    for section, values in overrides.items():
        sections[section] = {**sections.get(section, {}), **values}
    return Settings(**sections)


@pytest.fixture(autouse=True)
def _reset_structlog():
    """The CLI reconfigures structlog; undo that between tests."""
    yield
    structlog.reset_defaults()


@pytest.fixture()
def updated_rows() -> list[AvailabilityRow]:
    return []


@pytest.fixture()
def state_factory(
    updated_rows: list[AvailabilityRow],
) -> Callable[..., AbstractAsyncContextManager[AppState]]:
    """Build an AppState with section overrides, e.g. ``refresh={"max_in_flight": 1}``."""

    @asynccontextmanager
    async def factory(**overrides: Any) -> AsyncIterator[AppState]:
        async with aiosqlite.connect(":memory:") as db:
            store = Store(db)
            await store.init_db()
            async with httpx.AsyncClient() as client:
                state = build_state(
                    make_settings(**overrides),
                    client,
                    store,
                    on_row_updated=updated_rows.append,
                )
                try:
                    yield state
                finally:
                    await state.scheduler.close()

    return factory


@pytest.fixture()
async def app_state(
    state_factory: Callable[..., AbstractAsyncContextManager[AppState]],
) -> AsyncIterator[AppState]:
    """Full AppState with zero refresh and debounce delays."""
    async with state_factory() as state:
        yield state


@pytest.fixture()
def subprocess_env(tmp_path: Path) -> dict[str, str]:
    """Environment for running the CLI in a child process.

    Strips inherited SHELFSCAN__ variables and points HOME at a temp dir so no
    user config file is picked up.
    """
    env = {k: v for k, v in os.environ.items() if not k.startswith("SHELFSCAN__")}
    env["HOME"] = str(tmp_path)
    env["SHELFSCAN__STORE__DB_PATH"] = str(tmp_path / "store.db")
    env["SHELFSCAN__API__BASE_URL"] = API
    return env


@pytest.fixture()
def cli_env(tmp_path: Path, monkeypatch: pytest.MonkeyPatch) -> dict[str, str]:
    """Environment for in-process CLI runs against the mocked backend."""
    for key in list(os.environ):
        if key.startswith("SHELFSCAN__"):
            monkeypatch.delenv(key)
    monkeypatch.setenv("HOME", str(tmp_path))
    return {
        "SHELFSCAN__STORE__DB_PATH": str(tmp_path / "store.db"),
        "SHELFSCAN__API__BASE_URL": API,
        "SHELFSCAN__UPSTREAM__BASE_URL": UPSTREAM,
        "SHELFSCAN__REFRESH__FAVORITES_DELAY_MS": "0",
        "SHELFSCAN__REFRESH__NON_FAVORITES_DELAY_MS": "0",
        "SHELFSCAN__SEARCH__WIDE_DEBOUNCE_MS": "0",
        "SHELFSCAN__SEARCH__NARROW_DEBOUNCE_MS": "0",
        "SHELFSCAN__LOGGING__LEVEL": "WARNING",
    }
