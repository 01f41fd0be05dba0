"""Geospatial types for Aegis.

The resolver lives in aegis.geo.resolver; it depends on the record store,
which itself depends on GeoPoint, so it is not re-exported here.
"""

from aegis.geo.point import EARTH_RADIUS_KM, GeoPoint, InvalidPointError

__all__ = [
    "EARTH_RADIUS_KM",
    "GeoPoint",
    "InvalidPointError",
]
