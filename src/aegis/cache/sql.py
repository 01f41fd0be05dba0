"""Durable cache store on the relational database.

Entries live in the ``cache`` table with an absolute ``expires_at``. Reads
filter on expiry, so a stale row that was never physically deleted is still a
miss until the next write of that key replaces it.
"""

from __future__ import annotations

from collections.abc import Callable
from datetime import datetime, timedelta
from typing import Any

from sqlalchemy import delete, select
from sqlalchemy.dialects.postgresql import insert
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aegis.cache.store import CacheStore, utcnow
from aegis.persistence.tables import CacheEntryTable


class SqlCacheStore(CacheStore):
    """TTL cache backed by the ``cache`` table."""

    backend_name = "sql"

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession],
        clock: Callable[[], datetime] = utcnow,
    ):
        self._session_factory = session_factory
        self._clock = clock

    async def _get(self, key: str) -> Any | None:
        stmt = select(CacheEntryTable.value).where(
            CacheEntryTable.key == key,
            CacheEntryTable.expires_at > self._clock(),
        )
        async with self._session_factory() as session:
            result = await session.execute(stmt)
            return result.scalar_one_or_none()

    async def _set(self, key: str, value: Any, ttl: int) -> None:
        expires_at = self._clock() + timedelta(seconds=ttl)
        stmt = insert(CacheEntryTable).values(key=key, value=value, expires_at=expires_at)
        stmt = stmt.on_conflict_do_update(
            index_elements=[CacheEntryTable.key],
            set_={"value": stmt.excluded.value, "expires_at": stmt.excluded.expires_at},
        )
        async with self._session_factory() as session:
            await session.execute(stmt)
            await session.commit()

    async def _delete(self, key: str) -> None:
        async with self._session_factory() as session:
            await session.execute(delete(CacheEntryTable).where(CacheEntryTable.key == key))
            await session.commit()

