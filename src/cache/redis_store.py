# src/cache/redis_store.py — v2
"""Redis-based cache store (CACHE_BACKEND=redis).

Requires 'redis' package: pip install redis.
Suitable for distributed/multi-instance deployments. Entries expire through
Redis PX TTLs; fetch locks use SET NX PX and a compare-and-delete script.
"""

from __future__ import annotations

import logging
from typing import Any

from semantic_pager.cache.base_cache_store import BaseCacheStore
from semantic_pager.core.errors import CacheStorageUnavailable
from semantic_pager.core.models import CandidateSet

logger = logging.getLogger(__name__)

_KEY_PREFIX = "semantic_pager:set:"
_LOCK_PREFIX = "semantic_pager:lock:"
_INDEX_KEY = "semantic_pager:set:__index__"

_RELEASE_SCRIPT = """
if redis.call('get', KEYS[1]) == ARGV[1] then
    return redis.call('del', KEYS[1])
end
return 0
"""


class RedisCacheStore(BaseCacheStore):
    """Redis-backed cache store for distributed deployments."""

    def __init__(self, redis_url: str) -> None:
        try:
            import redis.asyncio as aioredis
            from redis.exceptions import ConnectionError as RedisConnectionError
            from redis.exceptions import TimeoutError as RedisTimeoutError
        except ImportError as e:
            raise ImportError(
                "redis package required: pip install redis"
            ) from e

        self._client: Any = aioredis.Redis.from_url(redis_url, decode_responses=True)
        self._errors: tuple[type[Exception], ...] = (
            RedisConnectionError,
            RedisTimeoutError,
            OSError,
        )

    async def get(self, key: str) -> CandidateSet | None:
        """Retrieve candidate set by key."""
        try:
            data = await self._client.get(f"{_KEY_PREFIX}{key}")
        except self._errors as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e
        if data is None:
            return None
        try:
            return CandidateSet.model_validate_json(data)
        except ValueError as e:
            logger.warning("Failed to deserialize candidate set %s: %s", key, e)
            return None

    async def put(self, key: str, candidate_set: CandidateSet, ttl_s: float) -> None:
        """Store a candidate set with a Redis-side TTL."""
        try:
            await self._client.set(
                f"{_KEY_PREFIX}{key}",
                candidate_set.model_dump_json(),
                px=_to_ms(ttl_s),
            )
            # Maintain a set of all cache keys for list_keys
            await self._client.sadd(_INDEX_KEY, key)
        except self._errors as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e

    async def delete(self, key: str) -> None:
        """Remove a candidate set."""
        try:
            await self._client.delete(f"{_KEY_PREFIX}{key}")
            await self._client.srem(_INDEX_KEY, key)
        except self._errors as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e

    async def acquire_fetch_lock(self, key: str, owner: str, ttl_s: float) -> bool:
        """SET NX PX on the lock key."""
        lock_key = f"{_LOCK_PREFIX}{key}"
        try:
            acquired = await self._client.set(lock_key, owner, nx=True, px=_to_ms(ttl_s))
            if acquired:
                return True
            return await self._client.get(lock_key) == owner
        except self._errors as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e

    async def release_fetch_lock(self, key: str, owner: str) -> None:
        """Delete the lock key only if it still holds owner."""
        try:
            await self._client.eval(_RELEASE_SCRIPT, 1, f"{_LOCK_PREFIX}{key}", owner)
        except self._errors as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e

    async def list_keys(self) -> list[str]:
        """List keys of live candidate sets, pruning expired index members."""
        try:
            keys = await self._client.smembers(_INDEX_KEY)
            live: list[str] = []
            for key in sorted(keys):
                if await self._client.exists(f"{_KEY_PREFIX}{key}"):
                    live.append(key)
                else:
                    await self._client.srem(_INDEX_KEY, key)
            return live
        except self._errors as e:
            raise CacheStorageUnavailable(self.backend_name, str(e)) from e

    @property
    def backend_name(self) -> str:
        return "redis"

    async def close(self) -> None:
        """Close the Redis connection."""
        await self._client.aclose()


def _to_ms(ttl_s: float) -> int:
    return max(1, int(ttl_s * 1000))
