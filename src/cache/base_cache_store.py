# src/cache/base_cache_store.py — v2
"""Abstract cache store interface.

Key-value contract behind CandidateSetCache: an in-memory map for
single-process deployments, an external store for multi-process ones.
Implementations raise CacheStorageUnavailable when the backend cannot be
reached.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

from semantic_pager.core.models import CandidateSet


class BaseCacheStore(ABC):
    """Unified interface for cache storage backends."""

    @abstractmethod
    async def get(self, key: str) -> CandidateSet | None:
        """Retrieve a non-expired candidate set by fingerprint key."""

    @abstractmethod
    async def put(self, key: str, candidate_set: CandidateSet, ttl_s: float) -> None:
        """Store a candidate set for ttl_s seconds (overwrites)."""

    @abstractmethod
    async def delete(self, key: str) -> None:
        """Remove a candidate set."""

    @abstractmethod
    async def acquire_fetch_lock(self, key: str, owner: str, ttl_s: float) -> bool:
        """Atomically claim the fetch for key. False if another owner holds it."""

    @abstractmethod
    async def release_fetch_lock(self, key: str, owner: str) -> None:
        """Release the fetch lock, only if still held by owner."""

    @abstractmethod
    async def list_keys(self) -> list[str]:
        """List keys of all stored candidate sets."""

    @property
    @abstractmethod
    def backend_name(self) -> str:
        """Backend identifier (memory, sqlite, redis)."""

    async def close(self) -> None:
        """Release backend resources. Default: nothing to do."""
