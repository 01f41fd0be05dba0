"""SQLAlchemy-backed record store.

Each operation runs in its own transactional session so a failed spatial
statement can't poison a later fallback select. Ids are uuid columns; a
malformed id matches nothing and never reaches the database.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from datetime import datetime
from typing import Any
from uuid import UUID

from sqlalchemy import Uuid, select, text
from sqlalchemy.exc import SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from aegis.geo.point import GeoPoint
from aegis.persistence.store import (
    RecordStore,
    RecordStoreError,
    Row,
    SpatialQueryError,
    UnknownTableError,
)
from aegis.persistence.tables import TABLES, Base

logger = logging.getLogger(__name__)

SPATIAL_QUERY = text(
    "SELECT * FROM get_resources_within_radius(:incident_id, :user_location, :radius_km)"
)


def _jsonable(row: dict[str, Any]) -> Row:
    return {
        key: value.isoformat() if isinstance(value, datetime) else value
        for key, value in row.items()
    }


def _is_uuid(value: Any) -> bool:
    try:
        UUID(str(value))
    except ValueError:
        return False
    return True


class SqlRecordStore(RecordStore):
    """Record store over the incidents/reports/resources tables."""

    def __init__(
        self,
        session_factory: async_sessionmaker[AsyncSession] | Callable[[], AsyncSession],
    ):
        self._session_factory = session_factory

    def _model(self, table: str) -> type[Base]:
        try:
            return TABLES[table]
        except KeyError:
            raise UnknownTableError(table)

    def _column(self, model: type[Base], column: str) -> Any:
        if column not in model.__table__.columns:
            raise RecordStoreError(f"Unknown column {model.__tablename__}.{column}")
        return getattr(model, column)

    def _writable(self, model: type[Base], row: Row) -> Row:
        return {key: value for key, value in row.items() if key in model.__table__.columns}

    def _malformed_ids(self, model: type[Base], filters: dict[str, Any]) -> bool:
        """True if any filter on a uuid column can never match."""
        return any(
            isinstance(model.__table__.columns[column].type, Uuid) and not _is_uuid(value)
            for column, value in filters.items()
            if column in model.__table__.columns
        )

    async def select(
        self,
        table: str,
        filters: dict[str, Any] | None = None,
        *,
        contains: dict[str, Any] | None = None,
        order_by: str | None = None,
        descending: bool = False,
        limit: int | None = None,
        offset: int = 0,
    ) -> list[Row]:
        model = self._model(table)
        stmt = select(model)
        for column, value in (filters or {}).items():
            stmt = stmt.where(self._column(model, column) == value)
        for column, value in (contains or {}).items():
            stmt = stmt.where(self._column(model, column).contains([value]))
        if order_by:
            ordering = self._column(model, order_by)
            stmt = stmt.order_by(ordering.desc() if descending else ordering.asc())
        if offset:
            stmt = stmt.offset(offset)
        if limit is not None:
            stmt = stmt.limit(limit)
        if self._malformed_ids(model, filters or {}):
            return []

        try:
            async with self._session_factory() as session:
                result = await session.execute(stmt)
                return [obj.to_dict() for obj in result.scalars().all()]
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Select on {table} failed: {e}") from e

    async def get(self, table: str, row_id: str) -> Row | None:
        model = self._model(table)
        if not _is_uuid(row_id):
            return None
        try:
            async with self._session_factory() as session:
                obj = await session.get(model, row_id)
                return obj.to_dict() if obj is not None else None
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Get on {table} failed: {e}") from e

    async def insert(self, table: str, row: Row) -> Row:
        model = self._model(table)
        try:
            async with self._session_factory() as session:
                obj = model(**self._writable(model, row))
                session.add(obj)
                await session.flush()
                await session.refresh(obj)
                data = obj.to_dict()
                await session.commit()
                return data
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Insert into {table} failed: {e}") from e

    async def update(self, table: str, row_id: str, patch: Row) -> Row | None:
        model = self._model(table)
        if not _is_uuid(row_id):
            return None
        try:
            async with self._session_factory() as session:
                obj = await session.get(model, row_id)
                if obj is None:
                    return None
                for key, value in self._writable(model, patch).items():
                    setattr(obj, key, value)
                await session.flush()
                data = obj.to_dict()
                await session.commit()
                return data
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Update on {table} failed: {e}") from e

    async def delete(self, table: str, row_id: str) -> Row | None:
        model = self._model(table)
        if not _is_uuid(row_id):
            return None
        try:
            async with self._session_factory() as session:
                obj = await session.get(model, row_id)
                if obj is None:
                    return None
                data = obj.to_dict()
                await session.delete(obj)
                await session.commit()
                return data
        except SQLAlchemyError as e:
            raise RecordStoreError(f"Delete on {table} failed: {e}") from e

    async def resources_within_radius(
        self, incident_id: str, point: GeoPoint, radius_km: float
    ) -> list[Row]:
        if not _is_uuid(incident_id):
            return []
        params = {
            "incident_id": incident_id,
            "user_location": point.to_wkt(),
            "radius_km": radius_km,
        }
        try:
            async with self._session_factory() as session:
                result = await session.execute(SPATIAL_QUERY, params)
                return [_jsonable(dict(row._mapping)) for row in result]
        except SQLAlchemyError as e:
            raise SpatialQueryError(f"Spatial query failed: {e}") from e

    async def health_check(self) -> bool:
        try:
            async with self._session_factory() as session:
                await session.execute(text("SELECT 1"))
            return True
        except Exception:
            return False
