"""SQLite-backed key-value store for client-side state.

Holds small string values (JSON-encoded favorites lists) under fixed keys.
All operations catch ``aiosqlite.Error`` internally and degrade gracefully:
read failures return ``None`` (treated as a missing key by callers), write
failures are logged and ignored. Storage errors never cross the Store class
boundary; they are logged with ``exc_info=True`` so they remain observable.
"""

from __future__ import annotations

from datetime import UTC, datetime
from pathlib import Path

import aiosqlite
import structlog

log = structlog.get_logger()

_CREATE_KV_TABLE = """
CREATE TABLE IF NOT EXISTS kv_store (
    key         TEXT PRIMARY KEY,
    value       TEXT NOT NULL,
    updated_at  TEXT NOT NULL
)
"""


class Store:
    """String key-value store over a single SQLite table."""

    def __init__(self, db: aiosqlite.Connection) -> None:
        self._db = db

    async def init_db(self) -> None:
        """Create the table and set WAL mode. Called once at startup."""
        await self._db.execute("PRAGMA journal_mode = WAL")
        await self._db.execute(_CREATE_KV_TABLE)
        await self._db.commit()

    async def get(self, key: str) -> str | None:
        """Read a value. Returns ``None`` when missing or on read failure."""
        try:
            cursor = await self._db.execute("SELECT value FROM kv_store WHERE key = ?", (key,))
            row = await cursor.fetchone()
            if row is None:
                return None
            return row[0]
        except aiosqlite.Error:
            log.warning("store_read_error", key=key, exc_info=True)
            return None

    async def set(self, key: str, value: str) -> None:
        """Write a value. Non-fatal on failure."""
        try:
            await self._db.execute(
                "INSERT OR REPLACE INTO kv_store (key, value, updated_at) VALUES (?, ?, ?)",
                (key, value, datetime.now(UTC).isoformat()),
            )
            await self._db.commit()
        except aiosqlite.Error:
            log.warning("store_write_error", key=key, exc_info=True)


async def open_store(db_path: str) -> tuple[aiosqlite.Connection, Store]:
    """Open (creating parent directories if needed) and initialise the store."""
    if db_path != ":memory:":
        Path(db_path).expanduser().parent.mkdir(parents=True, exist_ok=True)
        db_path = str(Path(db_path).expanduser())
    db = await aiosqlite.connect(db_path)
    store = Store(db)
    await store.init_db()
    return db, store
