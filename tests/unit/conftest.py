"""Unit-specific fixtures (no I/O beyond in-memory SQLite)."""

from __future__ import annotations

import aiosqlite
import pytest

from shelfscan.store import Store


@pytest.fixture()
async def store():
    """In-memory SQLite store for unit tests."""
    async with aiosqlite.connect(":memory:") as db:
        s = Store(db)
        await s.init_db()
        yield s
