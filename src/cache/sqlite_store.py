# src/cache/sqlite_store.py — v2
"""SQLite-based durable store (CACHE_DURABLE_BACKEND=sqlite).

Uses stdlib sqlite3 — no external dependency.
"""

from __future__ import annotations

import logging
import re
import sqlite3
from pathlib import Path

from revycore.cache.base_durable_store import BaseDurableStore
from revycore.cache.models import CacheEntry

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS cache_entries (
    key TEXT PRIMARY KEY,
    strategy TEXT NOT NULL,
    data TEXT NOT NULL,
    created_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_strategy ON cache_entries(strategy);
"""


class SqliteDurableStore(BaseDurableStore):
    """SQLite-backed durable store for single-host deployments."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path))
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> CacheEntry | None:
        """Retrieve entry by key."""
        row = self._conn.execute(
            "SELECT data FROM cache_entries WHERE key = ?", (key,)
        ).fetchone()
        if row is None:
            return None
        try:
            return CacheEntry.model_validate_json(row[0])
        except Exception as e:
            logger.warning("Failed to deserialize durable entry %s: %s", key, e)
            return None

    async def put(self, entry: CacheEntry) -> None:
        """Store an entry (upsert)."""
        self._conn.execute(
            """INSERT OR REPLACE INTO cache_entries
               (key, strategy, data, created_at)
               VALUES (?, ?, ?, ?)""",
            (entry.key, entry.strategy, entry.model_dump_json(), entry.created_at),
        )
        self._conn.commit()

    async def delete(self, key: str) -> bool:
        """Remove an entry."""
        cursor = self._conn.execute("DELETE FROM cache_entries WHERE key = ?", (key,))
        self._conn.commit()
        return cursor.rowcount > 0

    async def keys(self) -> list[str]:
        """List all stored keys."""
        rows = self._conn.execute(
            "SELECT key FROM cache_entries ORDER BY created_at"
        ).fetchall()
        return [r[0] for r in rows]

    async def delete_matching(self, pattern: re.Pattern[str]) -> int:
        """Remove matching keys in a single transaction."""
        doomed = [(k,) for k in await self.keys() if pattern.search(k)]
        if not doomed:
            return 0
        self._conn.executemany("DELETE FROM cache_entries WHERE key = ?", doomed)
        self._conn.commit()
        return len(doomed)

    async def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
