"""Geographic point helpers."""

from __future__ import annotations

import math
import re
from dataclasses import dataclass

EARTH_RADIUS_KM = 6371.0088

_WKT_POINT = re.compile(
    r"^\s*POINT\s*\(\s*(?P<lng>[-+]?\d+(?:\.\d+)?)\s+(?P<lat>[-+]?\d+(?:\.\d+)?)\s*\)\s*$",
    re.IGNORECASE,
)


class InvalidPointError(ValueError):
    """Coordinates missing, unparsable, or out of range."""


@dataclass(frozen=True, slots=True)
class GeoPoint:
    """A WGS84 coordinate."""

    lat: float
    lng: float

    def __post_init__(self) -> None:
        if not -90.0 <= self.lat <= 90.0:
            raise InvalidPointError(f"Latitude out of range: {self.lat}")
        if not -180.0 <= self.lng <= 180.0:
            raise InvalidPointError(f"Longitude out of range: {self.lng}")

    @classmethod
    def parse(cls, lat: object, lng: object) -> "GeoPoint":
        """Build a point from loosely-typed input (query strings, JSON)."""
        if lat is None or lng is None or lat == "" or lng == "":
            raise InvalidPointError("lat and lng are required")
        try:
            return cls(lat=float(lat), lng=float(lng))  # type: ignore[arg-type]
        except (TypeError, ValueError) as e:
            if isinstance(e, InvalidPointError):
                raise
            raise InvalidPointError(f"Invalid coordinates: lat={lat!r}, lng={lng!r}") from e

    @classmethod
    def from_wkt(cls, wkt: str) -> "GeoPoint":
        """Parse "POINT(lng lat)"."""
        match = _WKT_POINT.match(wkt or "")
        if match is None:
            raise InvalidPointError(f"Not a WKT point: {wkt!r}")
        return cls(lat=float(match["lat"]), lng=float(match["lng"]))

    def to_wkt(self) -> str:
        """WKT representation, longitude first."""
        return f"POINT({self.lng} {self.lat})"

    def distance_km(self, other: "GeoPoint") -> float:
        """Great-circle (haversine) distance in kilometres."""
        lat1, lat2 = math.radians(self.lat), math.radians(other.lat)
        dlat = lat2 - lat1
        dlng = math.radians(other.lng - self.lng)
        a = math.sin(dlat / 2) ** 2 + math.cos(lat1) * math.cos(lat2) * math.sin(dlng / 2) ** 2
        return 2 * EARTH_RADIUS_KM * math.asin(math.sqrt(a))
