# src/cache/memory_store.py — v1
"""In-memory cache store (CACHE_BACKEND=memory, default).

Process-local; candidate sets are kept as live objects (no serialization).
"""

from __future__ import annotations

import time

from semantic_pager.cache.base_cache_store import BaseCacheStore
from semantic_pager.core.models import CandidateSet


class InMemoryCacheStore(BaseCacheStore):
    """Dict-backed store with per-key expiry."""

    def __init__(self) -> None:
        self._entries: dict[str, tuple[CandidateSet, float]] = {}
        self._locks: dict[str, tuple[str, float]] = {}

    async def get(self, key: str) -> CandidateSet | None:
        """Retrieve candidate set by key, dropping it if expired."""
        item = self._entries.get(key)
        if item is None:
            return None
        candidate_set, deadline = item
        if time.monotonic() >= deadline:
            del self._entries[key]
            return None
        return candidate_set

    async def put(self, key: str, candidate_set: CandidateSet, ttl_s: float) -> None:
        """Store a candidate set."""
        self._entries[key] = (candidate_set, time.monotonic() + ttl_s)

    async def delete(self, key: str) -> None:
        """Remove a candidate set."""
        self._entries.pop(key, None)

    async def acquire_fetch_lock(self, key: str, owner: str, ttl_s: float) -> bool:
        """Claim the fetch lock unless a live lock exists."""
        now = time.monotonic()
        held = self._locks.get(key)
        if held is not None and held[1] > now:
            return held[0] == owner
        self._locks[key] = (owner, now + ttl_s)
        return True

    async def release_fetch_lock(self, key: str, owner: str) -> None:
        """Release the lock if owned."""
        held = self._locks.get(key)
        if held is not None and held[0] == owner:
            del self._locks[key]

    async def list_keys(self) -> list[str]:
        """List keys of non-expired entries."""
        now = time.monotonic()
        return [k for k, (_, deadline) in self._entries.items() if deadline > now]

    @property
    def backend_name(self) -> str:
        return "memory"
