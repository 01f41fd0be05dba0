"""In-memory record store.

Suitable for development and tests. The spatial call is a haversine scan over
the incident's resources; it can be switched off to reproduce a deployment
whose database lacks the spatial extension.
"""

from __future__ import annotations

import copy
from datetime import UTC, datetime
from typing import Any
from uuid import uuid4

from aegis.geo.point import GeoPoint, InvalidPointError
from aegis.persistence.store import (
    RecordStore,
    Row,
    SpatialQueryError,
    UnknownTableError,
)

TABLE_NAMES = ("incidents", "reports", "resources")


class InMemoryRecordStore(RecordStore):
    """Dict-of-dicts record store."""

    def __init__(self, spatial_enabled: bool = True):
        self.spatial_enabled = spatial_enabled
        self._tables: dict[str, dict[str, Row]] = {name: {} for name in TABLE_NAMES}

    def _table(self, table: str) -> dict[str, Row]:
        try:
            return self._tables[table]
        except KeyError:
            raise UnknownTableError(table)

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
        rows = list(self._table(table).values())
        for column, value in (filters or {}).items():
            rows = [row for row in rows if row.get(column) == value]
        for column, value in (contains or {}).items():
            rows = [row for row in rows if value in (row.get(column) or [])]
        if order_by:
            rows.sort(
                key=lambda row: (row.get(order_by) is None, row.get(order_by)),
                reverse=descending,
            )
        rows = rows[offset:]
        if limit is not None:
            rows = rows[:limit]
        return copy.deepcopy(rows)

    async def get(self, table: str, row_id: str) -> Row | None:
        row = self._table(table).get(row_id)
        return copy.deepcopy(row) if row is not None else None

    async def insert(self, table: str, row: Row) -> Row:
        stored = copy.deepcopy(row)
        stored.setdefault("id", str(uuid4()))
        stored.setdefault("created_at", datetime.now(UTC).isoformat())
        self._table(table)[stored["id"]] = stored
        return copy.deepcopy(stored)

    async def update(self, table: str, row_id: str, patch: Row) -> Row | None:
        rows = self._table(table)
        if row_id not in rows:
            return None
        rows[row_id].update(copy.deepcopy(patch))
        return copy.deepcopy(rows[row_id])

    async def delete(self, table: str, row_id: str) -> Row | None:
        return self._table(table).pop(row_id, None)

    async def resources_within_radius(
        self, incident_id: str, point: GeoPoint, radius_km: float
    ) -> list[Row]:
        if not self.spatial_enabled:
            raise SpatialQueryError("function get_resources_within_radius does not exist")

        matches: list[Row] = []
        for row in self._tables["resources"].values():
            if row.get("incident_id") != incident_id:
                continue
            try:
                location = GeoPoint.from_wkt(row["location"])
            except (KeyError, InvalidPointError):
                continue
            if location.distance_km(point) <= radius_km:
                matches.append(copy.deepcopy(row))
        return matches
