# src/checkpoint/sqlite_store.py — v1
"""SQLite-based key-value store (CHECKPOINT_BACKEND=sqlite).

Uses stdlib sqlite3 — no external dependency. Each set() is its own
transaction.
"""

from __future__ import annotations

import logging
import sqlite3
from pathlib import Path

from treescan.checkpoint.base_store import BaseKeyValueStore

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS kv_entries (
    key TEXT PRIMARY KEY,
    value TEXT NOT NULL,
    updated_at TEXT DEFAULT CURRENT_TIMESTAMP
);
"""


class SqliteKeyValueStore(BaseKeyValueStore):
    """SQLite-backed store, one row per key."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> str | None:
        cursor = self._conn.execute(
            "SELECT value FROM kv_entries WHERE key = ?", (key,)
        )
        row = cursor.fetchone()
        return None if row is None else row[0]

    async def set(self, key: str, value: str) -> None:
        """Store a value (upsert)."""
        with self._conn:
            self._conn.execute(
                """INSERT OR REPLACE INTO kv_entries (key, value, updated_at)
                   VALUES (?, ?, CURRENT_TIMESTAMP)""",
                (key, value),
            )

    async def delete(self, key: str) -> None:
        with self._conn:
            self._conn.execute("DELETE FROM kv_entries WHERE key = ?", (key,))

    async def list_keys(self, prefix: str = "") -> list[str]:
        # LIKE would need escaping for '%' and '_' in job names
        cursor = self._conn.execute(
            "SELECT key FROM kv_entries WHERE substr(key, 1, ?) = ? ORDER BY key",
            (len(prefix), prefix),
        )
        return [row[0] for row in cursor.fetchall()]

    def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
