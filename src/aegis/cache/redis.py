"""Redis cache implementation for Aegis.

Provides async Redis operations for caching JSON payloads.
Uses redis-py async client for connection pooling; expiry is delegated to
Redis (SET ... EX), so an expired key is simply absent.
"""

from __future__ import annotations

from collections.abc import Awaitable
from typing import TYPE_CHECKING, Any, cast

import orjson
import redis.asyncio as redis

from aegis.cache.store import CacheStore
from aegis.config import settings

if TYPE_CHECKING:
    from redis.asyncio import Redis

# Module-level connection pool
_redis_client: Redis | None = None

# Storage prefix so cache keys don't collide with rate-limit keys
KEY_PREFIX = "aegis:cache:"


async def get_redis(url: str | None = None) -> Redis:
    """Get or create the Redis client.

    Uses connection pooling for efficient connection management.
    """
    global _redis_client
    if _redis_client is None:
        _redis_client = redis.from_url(  # type: ignore[no-untyped-call]
            url or settings.redis_url,
            encoding="utf-8",
            decode_responses=False,  # We're storing bytes
        )
    return _redis_client


async def close_redis() -> None:
    """Close Redis connections."""
    global _redis_client
    if _redis_client is not None:
        await _redis_client.close()
        _redis_client = None


class RedisCacheStore(CacheStore):
    """TTL cache backed by Redis string keys."""

    backend_name = "redis"

    def __init__(self, client: Redis, prefix: str = KEY_PREFIX):
        self.client = client
        self.prefix = prefix

    def _key(self, key: str) -> str:
        return f"{self.prefix}{key}"

    async def _get(self, key: str) -> Any | None:
        raw = cast(bytes | None, await self.client.get(self._key(key)))
        if raw is None:
            return None
        return orjson.loads(raw)

    async def _set(self, key: str, value: Any, ttl: int) -> None:
        await self.client.set(self._key(key), orjson.dumps(value), ex=ttl)

    async def _delete(self, key: str) -> None:
        await self.client.delete(self._key(key))

    async def health_check(self) -> bool:
        """Check Redis connectivity."""
        try:
            await cast(Awaitable[bool], self.client.ping())
            return True
        except Exception:
            return False
