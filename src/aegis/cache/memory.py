"""Process-local cache store.

Keeps CacheEntry objects in a dict. Expired entries stay physically present
until the next read of that key or an explicit ``purge_expired`` call, but are
never returned. The clock is injectable so expiry can be exercised without
sleeping.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime
from typing import Any

from aegis.cache.store import CacheEntry, CacheStore, utcnow


class InMemoryCacheStore(CacheStore):
    """Dict-backed TTL cache for single-process deployments and tests."""

    backend_name = "memory"

    def __init__(self, clock: Callable[[], datetime] = utcnow):
        self._entries: dict[str, CacheEntry] = {}
        self._clock = clock

    async def _get(self, key: str) -> Any | None:
        entry = self._entries.get(key)
        if entry is None:
            return None
        if entry.is_expired(self._clock()):
            self._entries.pop(key, None)
            return None
        return entry.value

    async def _set(self, key: str, value: Any, ttl: int) -> None:
        self._entries[key] = CacheEntry.create(key, value, ttl, self._clock())

    async def _delete(self, key: str) -> None:
        self._entries.pop(key, None)

    def entry(self, key: str) -> CacheEntry | None:
        """Raw entry lookup, including expired entries."""
        return self._entries.get(key)

    def purge_expired(self) -> int:
        """Physically drop expired entries. Returns the number removed."""
        now = self._clock()
        expired = [key for key, entry in self._entries.items() if entry.is_expired(now)]
        for key in expired:
            del self._entries[key]
        return len(expired)

    def __len__(self) -> int:
        return len(self._entries)
