"""TTL cache store contract.

Every backend implements three raw operations (``_get``, ``_set``,
``_delete``). The public ``get``/``set``/``delete`` wrappers add the
semantics shared by all backends:

- an expired entry is a miss, indistinguishable from an absent one
- backend failures are logged and absorbed, never raised to the caller
- hits and misses are counted per key namespace

A cache outage therefore degrades the service to "always fetch upstream".
``None`` is reserved as the miss marker and cannot be stored as a value.
"""

from __future__ import annotations

import logging
from abc import ABC, abstractmethod
from dataclasses import dataclass
from datetime import UTC, datetime, timedelta
from typing import Any

from aegis.cache.keys import CacheKeys
from aegis.observability.metrics import get_metrics

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CacheEntry:
    """A cached value and its absolute expiry."""

    key: str
    value: Any
    expires_at: datetime

    @classmethod
    def create(cls, key: str, value: Any, ttl: int, now: datetime) -> "CacheEntry":
        """Build an entry, converting the relative TTL to an absolute expiry."""
        return cls(key=key, value=value, expires_at=now + timedelta(seconds=ttl))

    def is_expired(self, now: datetime) -> bool:
        """True once the expiry instant has been reached."""
        return self.expires_at <= now


class CacheStore(ABC):
    """Abstract TTL cache store."""

    backend_name = "abstract"

    @abstractmethod
    async def _get(self, key: str) -> Any | None:
        """Return the live value for key, or None."""

    @abstractmethod
    async def _set(self, key: str, value: Any, ttl: int) -> None:
        """Store value under key for ttl seconds, overwriting."""

    @abstractmethod
    async def _delete(self, key: str) -> None:
        """Remove key if present."""

    async def get(self, key: str) -> Any | None:
        """Get a cached value; None on miss, expiry, or backend failure."""
        metrics = get_metrics()
        namespace = CacheKeys.namespace_of(key)
        try:
            value = await self._get(key)
        except Exception as e:
            logger.warning(f"Cache get failed for {key!r} ({self.backend_name}): {e}")
            metrics.cache_errors_total.labels(operation="get").inc()
            value = None

        if value is None:
            metrics.cache_misses_total.labels(namespace=namespace).inc()
        else:
            metrics.cache_hits_total.labels(namespace=namespace).inc()
        return value

    async def set(self, key: str, value: Any, ttl: int) -> None:
        """Cache a value for ttl seconds. Failures are logged, not raised."""
        if value is None:
            raise ValueError("None cannot be cached; it marks a miss")
        if ttl <= 0:
            raise ValueError("ttl must be positive")
        try:
            await self._set(key, value, ttl)
        except Exception as e:
            logger.warning(f"Cache set failed for {key!r} ({self.backend_name}): {e}")
            get_metrics().cache_errors_total.labels(operation="set").inc()

    async def delete(self, key: str) -> None:
        """Delete a cached value. Idempotent; failures are logged, not raised."""
        try:
            await self._delete(key)
        except Exception as e:
            logger.warning(f"Failed to delete cache for key {key!r} ({self.backend_name}): {e}")
            get_metrics().cache_errors_total.labels(operation="delete").inc()

    async def health_check(self) -> bool:
        """Check backend connectivity."""
        return True

    async def close(self) -> None:
        """Release backend resources."""


def utcnow() -> datetime:
    """Current time as an aware UTC datetime."""
    return datetime.now(UTC)
