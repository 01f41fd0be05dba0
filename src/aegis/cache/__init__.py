"""Cache layer for Aegis.

Provides a TTL cache with the cache-aside pattern:
- Upstream results (geocodes, scraped updates, mentions, image verdicts)
  are cached under namespaced keys with a TTL
- Expired entries read as misses on every backend
- Writes erase dependent keys through the InvalidationCoordinator
- Cache failures are absorbed so an outage only costs upstream calls
"""

from aegis.cache.invalidation import (
    INVALIDATION_RULES,
    InvalidationCoordinator,
    Mutation,
    MutationKind,
)
from aegis.cache.keys import CacheKeys
from aegis.cache.memory import InMemoryCacheStore
from aegis.cache.redis import RedisCacheStore, close_redis, get_redis
from aegis.cache.sql import SqlCacheStore
from aegis.cache.store import CacheEntry, CacheStore

__all__ = [
    # Core cache
    "CacheEntry",
    "CacheKeys",
    "CacheStore",
    "InMemoryCacheStore",
    "RedisCacheStore",
    "SqlCacheStore",
    "get_redis",
    "close_redis",
    # Invalidation
    "INVALIDATION_RULES",
    "InvalidationCoordinator",
    "Mutation",
    "MutationKind",
]
