# src/cache/candidate_cache.py — v1
"""CandidateSetCache — one backend fetch per search session.

Keeps a process-local map of fingerprint -> CandidateSet (the resident map)
in front of an optional shared BaseCacheStore. Guarantees:

  * single-flight: per fingerprint at most one fetch_fn call is in flight in
    this process; with a shared store, a fetch lock extends this across
    processes. Concurrent callers await the same task and receive the same
    CandidateSet object (or the same failure).
  * cancelling a waiter never cancels the shared fetch (asyncio.shield).
  * failures are never cached; the next call starts a fresh fetch.
  * an unreachable shared store degrades to resident-only behaviour.

All resident-map mutations run on the event loop without an intervening
await, so no lock is required for them.
"""

from __future__ import annotations

import asyncio
import logging
import os
import socket
import uuid
from collections.abc import Awaitable, Callable, Sequence
from datetime import datetime, timedelta, timezone
from functools import partial

from semantic_pager.cache.base_cache_store import BaseCacheStore
from semantic_pager.cache.models import CacheStats
from semantic_pager.core.errors import (
    BackendFetchFailed,
    CacheStorageUnavailable,
    InvalidArgument,
)
from semantic_pager.core.models import CandidateEntry, CandidateSet

logger = logging.getLogger(__name__)

FetchFn = Callable[[int], Awaitable[Sequence[CandidateEntry]]]
Clock = Callable[[], datetime]


def _utcnow() -> datetime:
    return datetime.now(timezone.utc)


class CandidateSetCache:
    """Keyed store of materialized candidate sets with TTL and LRF eviction.

    Args:
        ttl_s: Default lifetime of a candidate set in seconds.
        max_entries: Resident entries kept before evicting the
            least-recently-fetched one.
        store: Optional shared store (redis, sqlite) for multi-process use.
        clock: Returns the current aware datetime. Injected in tests.
        lock_ttl_s: Lifetime of the cross-process fetch lock.
        lock_wait_s: How long to wait for another process's fetch before
            fetching locally.
        lock_poll_interval_s: Poll interval while waiting for that fetch.
        storage_retry_s: Once the store is unreachable, skip it for this long.
    """

    def __init__(
        self,
        ttl_s: float = 300.0,
        max_entries: int = 1024,
        store: BaseCacheStore | None = None,
        clock: Clock | None = None,
        lock_ttl_s: float = 30.0,
        lock_wait_s: float = 10.0,
        lock_poll_interval_s: float = 0.05,
        storage_retry_s: float = 5.0,
    ) -> None:
        if ttl_s <= 0:
            raise InvalidArgument(f"ttl_s must be > 0, got {ttl_s}")
        if max_entries < 1:
            raise InvalidArgument(f"max_entries must be >= 1, got {max_entries}")

        self._ttl_s = ttl_s
        self._max_entries = max_entries
        self._store = store
        self._clock = clock or _utcnow
        self._lock_ttl_s = lock_ttl_s
        self._lock_wait_s = lock_wait_s
        self._lock_poll_interval_s = lock_poll_interval_s
        self._storage_retry_s = storage_retry_s

        self._resident: dict[str, CandidateSet] = {}
        self._inflight: dict[str, asyncio.Task[CandidateSet]] = {}
        self._stats = CacheStats()
        self._degraded_until: datetime | None = None
        self._owner = f"{socket.gethostname()}:{os.getpid()}:{uuid.uuid4().hex[:8]}"

    # --- Public API ---

    async def get_or_fetch(
        self,
        fingerprint: str,
        fetch_size: int,
        fetch_fn: FetchFn,
        ttl_s: float | None = None,
    ) -> CandidateSet:
        """Return a live candidate set for fingerprint, fetching on miss.

        Raises:
            InvalidArgument: If fetch_size < 1 or ttl_s <= 0.
            BackendFetchFailed: If fetch_fn failed (delivered to every
                caller that awaited this fetch).
        """
        if fetch_size < 1:
            raise InvalidArgument(f"fetch_size must be >= 1, got {fetch_size}")
        ttl = self._ttl_s if ttl_s is None else ttl_s
        if ttl <= 0:
            raise InvalidArgument(f"ttl_s must be > 0, got {ttl}")

        cached = self._lookup_resident(fingerprint)
        if cached is not None:
            self._stats.hits += 1
            return cached

        task = self._inflight.get(fingerprint)
        if task is not None and task.done():
            # Finished but its done-callback has not run yet; never reuse a failure.
            task = None
        if task is None:
            self._stats.misses += 1
            task = asyncio.create_task(
                self._load(fingerprint, fetch_size, fetch_fn, ttl),
                name=f"candidate-fetch:{fingerprint}",
            )
            self._inflight[fingerprint] = task
            task.add_done_callback(partial(self._on_load_done, fingerprint))
        else:
            self._stats.shared_waits += 1
            logger.debug("Joining in-flight fetch: key=%s", fingerprint)

        return await asyncio.shield(task)

    async def invalidate(self, fingerprint: str) -> None:
        """Drop the candidate set for fingerprint regardless of TTL.

        An in-flight fetch for the key is detached: its current waiters still
        receive its result, but the result is not published.
        """
        self._resident.pop(fingerprint, None)
        self._inflight.pop(fingerprint, None)
        self._stats.invalidations += 1
        logger.debug("Invalidated candidate set: key=%s", fingerprint)

        if self._store_usable():
            try:
                await self._store.delete(fingerprint)  # type: ignore[union-attr]
            except CacheStorageUnavailable as e:
                self._mark_degraded(e)

    def peek(self, fingerprint: str) -> CandidateSet | None:
        """Return the resident candidate set if live, without side effects."""
        entry = self._resident.get(fingerprint)
        if entry is None or entry.is_expired(self._clock()):
            return None
        return entry

    @property
    def stats(self) -> CacheStats:
        """Snapshot of cache counters."""
        return self._stats.model_copy(
            update={
                "resident": len(self._resident),
                "in_flight": len(self._inflight),
                "degraded": self._degraded_until is not None,
            }
        )

    @property
    def default_ttl_s(self) -> float:
        return self._ttl_s

    def clear(self) -> None:
        """Drop all resident entries (in-flight fetches are unaffected)."""
        self._resident.clear()

    async def close(self) -> None:
        """Tear down: cancel in-flight fetches, drop entries, close the store."""
        for task in list(self._inflight.values()):
            task.cancel()
        self._inflight.clear()
        self._resident.clear()
        if self._store is not None:
            await self._store.close()

    def __len__(self) -> int:
        return len(self._resident)

    def __contains__(self, fingerprint: object) -> bool:
        return isinstance(fingerprint, str) and self.peek(fingerprint) is not None

    # --- Load path (runs inside the shared task) ---

    async def _load(
        self,
        key: str,
        fetch_size: int,
        fetch_fn: FetchFn,
        ttl_s: float,
    ) -> CandidateSet:
        shared = await self._store_get(key)
        if shared is not None:
            return self._adopt(key, shared)

        # One token per load: a detached fetch must never release the lock
        # taken by its replacement.
        owner = f"{self._owner}:{uuid.uuid4().hex[:8]}"
        locked = await self._acquire_lock(key, owner)
        try:
            if not locked and self._store_usable():
                shared, locked = await self._wait_for_peer(key, owner)
                if shared is not None:
                    return self._adopt(key, shared)

            if locked:
                # A peer may have published and released between our miss and the lock.
                shared = await self._store_get(key)
                if shared is not None:
                    return self._adopt(key, shared)

            candidate_set = await self._fetch(key, fetch_size, fetch_fn, ttl_s)
            if self._is_current(key):
                await self._store_put(key, candidate_set, ttl_s)
                self._publish(key, candidate_set)
            else:
                logger.debug("Fetch for %s was invalidated; not publishing", key)
            return candidate_set
        finally:
            if locked:
                await self._release_lock(key, owner)

    def _adopt(self, key: str, shared: CandidateSet) -> CandidateSet:
        """Take a candidate set published by another process."""
        self._stats.store_hits += 1
        if self._is_current(key):
            self._publish(key, shared)
        return shared

    async def _fetch(
        self,
        key: str,
        fetch_size: int,
        fetch_fn: FetchFn,
        ttl_s: float,
    ) -> CandidateSet:
        self._stats.fetches += 1
        logger.info("Fetching candidate set: key=%s, fetch_size=%d", key, fetch_size)
        try:
            entries = await fetch_fn(fetch_size)
            now = self._clock()
            candidate_set = CandidateSet(
                fingerprint=key,
                entries=tuple(entries),
                fetched_at=now,
                expires_at=now + timedelta(seconds=ttl_s),
                fetch_size=fetch_size,
            )
        except BackendFetchFailed:
            self._stats.fetch_failures += 1
            raise
        except Exception as e:
            self._stats.fetch_failures += 1
            logger.warning("Candidate fetch failed for %s: %s", key, e)
            raise BackendFetchFailed(key, f"{type(e).__name__}: {e}") from e

        logger.info(
            "Fetched candidate set: key=%s, candidates=%d", key, candidate_set.size
        )
        return candidate_set

    async def _wait_for_peer(
        self, key: str, owner: str
    ) -> tuple[CandidateSet | None, bool]:
        """Wait for another process to publish key, or take over its lock.

        Returns (candidate_set, False) when the peer published, (None, True)
        when the lock was freed and acquired here, (None, False) on timeout
        or when the store became unavailable.
        """
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self._lock_wait_s
        while loop.time() < deadline:
            await asyncio.sleep(self._lock_poll_interval_s)
            shared = await self._store_get(key)
            if shared is not None:
                return shared, False
            if not self._store_usable():
                return None, False
            if await self._acquire_lock(key, owner):
                return None, True
        logger.warning(
            "Timed out after %.1fs waiting for peer fetch of %s; fetching locally",
            self._lock_wait_s, key,
        )
        return None, False

    def _on_load_done(self, key: str, task: asyncio.Task[CandidateSet]) -> None:
        if self._inflight.get(key) is task:
            del self._inflight[key]
        # Mark the exception retrieved even when every waiter was cancelled.
        if not task.cancelled():
            task.exception()

    def _is_current(self, key: str) -> bool:
        return self._inflight.get(key) is asyncio.current_task()

    # --- Resident map ---

    def _lookup_resident(self, key: str) -> CandidateSet | None:
        entry = self._resident.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            del self._resident[key]
            self._stats.expirations += 1
            return None
        return entry

    def _publish(self, key: str, candidate_set: CandidateSet) -> None:
        self._resident.pop(key, None)
        self._resident[key] = candidate_set
        self._evict()

    def _evict(self) -> None:
        """Purge expired entries, then evict least-recently-fetched over capacity.

        Keys with an in-flight fetch are never evicted.
        """
        now = self._clock()
        for key in [
            k for k, v in self._resident.items()
            if k not in self._inflight and v.is_expired(now)
        ]:
            del self._resident[key]
            self._stats.expirations += 1

        while len(self._resident) > self._max_entries:
            candidates = [k for k in self._resident if k not in self._inflight]
            if not candidates:
                break
            victim = min(candidates, key=lambda k: self._resident[k].fetched_at)
            del self._resident[victim]
            self._stats.evictions += 1
            logger.debug("Evicted candidate set: key=%s", victim)

    # --- Shared store (degrades on CacheStorageUnavailable) ---

    def _store_usable(self) -> bool:
        if self._store is None:
            return False
        if self._degraded_until is not None and self._clock() < self._degraded_until:
            return False
        return True

    def _mark_degraded(self, error: CacheStorageUnavailable) -> None:
        self._stats.storage_errors += 1
        if self._degraded_until is None:
            logger.warning(
                "Cache storage '%s' unavailable; serving from process-local cache: %s",
                error.backend, error,
            )
        self._degraded_until = self._clock() + timedelta(seconds=self._storage_retry_s)

    def _mark_healthy(self) -> None:
        if self._degraded_until is not None:
            logger.info(
                "Cache storage '%s' reachable again; leaving degraded mode",
                self._store.backend_name if self._store else "none",
            )
            self._degraded_until = None

    async def _store_get(self, key: str) -> CandidateSet | None:
        if not self._store_usable():
            return None
        try:
            shared = await self._store.get(key)  # type: ignore[union-attr]
        except CacheStorageUnavailable as e:
            self._mark_degraded(e)
            return None
        self._mark_healthy()
        if shared is None or shared.is_expired(self._clock()):
            return None
        return shared

    async def _store_put(self, key: str, candidate_set: CandidateSet, ttl_s: float) -> None:
        if not self._store_usable():
            return
        try:
            await self._store.put(key, candidate_set, ttl_s)  # type: ignore[union-attr]
        except CacheStorageUnavailable as e:
            self._mark_degraded(e)
            return
        self._mark_healthy()

    async def _acquire_lock(self, key: str, owner: str) -> bool:
        """True when owner holds the shared fetch lock for key.

        Without a usable store the resident single-flight is the only
        coordination; callers check _store_usable() before waiting on a peer.
        """
        if not self._store_usable():
            return False
        try:
            acquired = await self._store.acquire_fetch_lock(  # type: ignore[union-attr]
                key, owner, self._lock_ttl_s
            )
        except CacheStorageUnavailable as e:
            self._mark_degraded(e)
            return False
        self._mark_healthy()
        return acquired

    async def _release_lock(self, key: str, owner: str) -> None:
        if not self._store_usable():
            return
        try:
            await self._store.release_fetch_lock(key, owner)  # type: ignore[union-attr]
        except CacheStorageUnavailable as e:
            self._mark_degraded(e)
