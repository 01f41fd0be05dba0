"""Degradable geospatial resolver.

Answers "which resources of incident I lie within R km of point P":

1. ask the record store for the precise spatial answer
2. if the spatial capability fails, fall back to every resource of the
   incident and flag the result so clients can tell the difference

Zero rows from the precise call is a valid, active answer. A failure of the
fallback select is a persistence error and propagates.

Every resolution is published on resources_updated.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

from aegis.events.broadcaster import EventBroadcaster
from aegis.events.publisher import publish_resources_updated
from aegis.geo.point import GeoPoint
from aegis.persistence.store import RecordStore, Row, SpatialQueryError

logger = logging.getLogger(__name__)

DEFAULT_RADIUS_KM = 10.0
FALLBACK_NOTE = "Geospatial filtering not available - showing all resources for this incident"


class GeospatialStatus(str, Enum):
    """Whether spatial filtering was applied."""

    ACTIVE = "active"
    FALLBACK = "fallback"


@dataclass(frozen=True, slots=True)
class ResourceQuery:
    """Resources near a point for one incident."""

    incident_id: str
    origin: GeoPoint
    radius_km: float = DEFAULT_RADIUS_KM

    def __post_init__(self) -> None:
        if self.radius_km <= 0:
            raise ValueError("radius must be positive")


@dataclass(slots=True)
class ResourceQueryResult:
    """Resolver answer plus how it was obtained."""

    query: ResourceQuery
    items: list[Row]
    status: GeospatialStatus
    note: str | None = None
    resource_type: str | None = field(default=None)

    @property
    def is_fallback(self) -> bool:
        return self.status is GeospatialStatus.FALLBACK

    def to_response(self) -> dict[str, Any]:
        """Response body shared by the HTTP handlers and the broadcast."""
        body: dict[str, Any] = {
            "resources": self.items,
            "geospatial_status": self.status.value,
        }
        if self.note:
            body["note"] = self.note
        body["query_params"] = {
            "lat": self.query.origin.lat,
            "lon": self.query.origin.lng,
            "radius": self.query.radius_km,
        }
        body["total_found"] = len(self.items)
        if self.resource_type is not None:
            body["type"] = self.resource_type
        return body


class GeospatialResolver:
    """Resolves proximity queries with graceful degradation."""

    def __init__(
        self,
        store: RecordStore,
        broadcaster: EventBroadcaster,
        default_radius_km: float = DEFAULT_RADIUS_KM,
    ):
        self.store = store
        self.broadcaster = broadcaster
        self.default_radius_km = default_radius_km

    def query(
        self, incident_id: str, origin: GeoPoint, radius_km: float | None = None
    ) -> ResourceQuery:
        """Build a query, applying the configured radius when none is given."""
        radius = self.default_radius_km if radius_km is None else radius_km
        return ResourceQuery(incident_id, origin, radius)

    async def resolve(self, query: ResourceQuery) -> ResourceQueryResult:
        """Resources within the query radius, or all of them on fallback."""
        result = await self._lookup(query)
        self._publish(result)
        return result

    async def resolve_by_type(
        self, query: ResourceQuery, resource_type: str
    ) -> ResourceQueryResult:
        """Like resolve(), then filtered by resource type."""
        result = await self._lookup(query)
        result.items = [item for item in result.items if item.get("type") == resource_type]
        result.resource_type = resource_type
        self._publish(result)
        return result

    async def _lookup(self, query: ResourceQuery) -> ResourceQueryResult:
        try:
            items = await self.store.resources_within_radius(
                query.incident_id, query.origin, query.radius_km
            )
        except SpatialQueryError as e:
            logger.warning(
                f"Spatial query failed for incident {query.incident_id}, "
                f"returning unfiltered resources: {e}"
            )
            items = await self.store.select("resources", {"incident_id": query.incident_id})
            return ResourceQueryResult(
                query=query,
                items=items,
                status=GeospatialStatus.FALLBACK,
                note=FALLBACK_NOTE,
            )

        return ResourceQueryResult(query=query, items=items, status=GeospatialStatus.ACTIVE)

    def _publish(self, result: ResourceQueryResult) -> None:
        publish_resources_updated(
            self.broadcaster, result.query.incident_id, data=result.to_response()
        )
