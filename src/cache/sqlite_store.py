# src/cache/sqlite_store.py — v2
"""SQLite-based cache store (CACHE_BACKEND=sqlite).

Uses stdlib sqlite3 — no external dependency.
One database file can be shared by several worker processes on the same
host; fetch locks rely on INSERT OR IGNORE on the lock table's primary key.
"""

from __future__ import annotations

import logging
import sqlite3
import time
from pathlib import Path

from semantic_pager.cache.base_cache_store import BaseCacheStore
from semantic_pager.core.errors import CacheStorageUnavailable
from semantic_pager.core.models import CandidateSet

logger = logging.getLogger(__name__)

_SCHEMA = """
CREATE TABLE IF NOT EXISTS candidate_sets (
    key TEXT PRIMARY KEY,
    data TEXT NOT NULL,
    expires_at REAL NOT NULL
);
CREATE TABLE IF NOT EXISTS fetch_locks (
    key TEXT PRIMARY KEY,
    owner TEXT NOT NULL,
    expires_at REAL NOT NULL
);
CREATE INDEX IF NOT EXISTS idx_candidate_sets_expiry ON candidate_sets(expires_at);
"""


class SqliteCacheStore(BaseCacheStore):
    """SQLite-backed store for multi-process deployments on one host."""

    def __init__(self, db_path: Path | str) -> None:
        self._db_path = Path(db_path).expanduser()
        self._db_path.parent.mkdir(parents=True, exist_ok=True)
        self._conn = sqlite3.connect(str(self._db_path), isolation_level=None)
        self._conn.execute("PRAGMA journal_mode=WAL")
        self._conn.executescript(_SCHEMA)

    async def get(self, key: str) -> CandidateSet | None:
        """Retrieve a non-expired candidate set by key."""
        try:
            row = self._conn.execute(
                "SELECT data FROM candidate_sets WHERE key = ? AND expires_at > ?",
                (key, time.time()),
            ).fetchone()
        except sqlite3.Error as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e
        if row is None:
            return None
        try:
            return CandidateSet.model_validate_json(row[0])
        except ValueError as e:
            logger.warning("Failed to deserialize candidate set %s: %s", key, e)
            return None

    async def put(self, key: str, candidate_set: CandidateSet, ttl_s: float) -> None:
        """Store a candidate set (upsert)."""
        try:
            self._conn.execute(
                """INSERT OR REPLACE INTO candidate_sets (key, data, expires_at)
                   VALUES (?, ?, ?)""",
                (key, candidate_set.model_dump_json(), time.time() + ttl_s),
            )
        except sqlite3.Error as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e

    async def delete(self, key: str) -> None:
        """Remove a candidate set."""
        try:
            self._conn.execute("DELETE FROM candidate_sets WHERE key = ?", (key,))
        except sqlite3.Error as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e

    async def acquire_fetch_lock(self, key: str, owner: str, ttl_s: float) -> bool:
        """Claim the fetch lock; stale locks are reclaimed first."""
        now = time.time()
        try:
            self._conn.execute(
                "DELETE FROM fetch_locks WHERE key = ? AND expires_at <= ?",
                (key, now),
            )
            self._conn.execute(
                "INSERT OR IGNORE INTO fetch_locks (key, owner, expires_at) VALUES (?, ?, ?)",
                (key, owner, now + ttl_s),
            )
            row = self._conn.execute(
                "SELECT owner FROM fetch_locks WHERE key = ?", (key,)
            ).fetchone()
        except sqlite3.Error as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e
        return row is not None and row[0] == owner

    async def release_fetch_lock(self, key: str, owner: str) -> None:
        """Release the lock if still owned."""
        try:
            self._conn.execute(
                "DELETE FROM fetch_locks WHERE key = ? AND owner = ?", (key, owner)
            )
        except sqlite3.Error as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e

    async def list_keys(self) -> list[str]:
        """List keys of non-expired candidate sets."""
        try:
            cursor = self._conn.execute(
                "SELECT key FROM candidate_sets WHERE expires_at > ?", (time.time(),)
            )
            return [row[0] for row in cursor.fetchall()]
        except sqlite3.Error as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e

    @property
    def backend_name(self) -> str:
        return "sqlite"

    async def close(self) -> None:
        """Close the database connection."""
        self._conn.close()
