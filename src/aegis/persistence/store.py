"""Record store contract.

The relational store is an external collaborator. The service only relies on
this interface: filtered select with ordering and pagination, single-row
get/insert/update/delete, and one spatial call. Rows travel as plain dicts.

Error taxonomy:
- RecordStoreError: any persistence failure; terminal for the request
- SpatialQueryError: the spatial capability failed (missing function,
  extension not installed, ...). Callers may degrade instead of failing.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any

from aegis.geo.point import GeoPoint

Row = dict[str, Any]


class RecordStoreError(Exception):
    """Persistence operation failed."""


class SpatialQueryError(RecordStoreError):
    """Spatial capability unavailable or failed."""


class UnknownTableError(RecordStoreError):
    """Table name not part of the schema."""

    def __init__(self, table: str):
        super().__init__(f"Unknown table: {table}")
        self.table = table


class RecordStore(ABC):
    """Abstract record store."""

    @abstractmethod
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
        """Rows matching all equality filters and list-containment filters."""

    @abstractmethod
    async def get(self, table: str, row_id: str) -> Row | None:
        """Single row by primary key, or None."""

    @abstractmethod
    async def insert(self, table: str, row: Row) -> Row:
        """Insert a row and return it as stored (with generated fields)."""

    @abstractmethod
    async def update(self, table: str, row_id: str, patch: Row) -> Row | None:
        """Apply a partial update. Returns the updated row, or None if absent."""

    @abstractmethod
    async def delete(self, table: str, row_id: str) -> Row | None:
        """Delete a row. Returns the deleted row, or None if absent."""

    @abstractmethod
    async def resources_within_radius(
        self, incident_id: str, point: GeoPoint, radius_km: float
    ) -> list[Row]:
        """Resources of an incident within radius_km of point.

        Raises SpatialQueryError when the spatial capability fails.
        """

    async def health_check(self) -> bool:
        """Check store connectivity."""
        return True

    async def close(self) -> None:
        """Release store resources."""
