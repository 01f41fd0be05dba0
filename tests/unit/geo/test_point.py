"""Tests for GeoPoint parsing and distance."""

from __future__ import annotations

import pytest

from aegis.geo.point import GeoPoint, InvalidPointError


class TestParse:
    """Loosely-typed coordinate input."""

    def test_parses_strings(self) -> None:
        assert GeoPoint.parse("40.5", "-74.25") == GeoPoint(40.5, -74.25)

    @pytest.mark.parametrize("lat,lng", [(None, 1), (1, None), ("", "1")])
    def test_missing_coordinate(self, lat: object, lng: object) -> None:
        with pytest.raises(InvalidPointError, match="required"):
            GeoPoint.parse(lat, lng)

    def test_non_numeric(self) -> None:
        with pytest.raises(InvalidPointError, match="Invalid coordinates"):
            GeoPoint.parse("north", "1")

    def test_out_of_range(self) -> None:
        with pytest.raises(InvalidPointError, match="Latitude"):
            GeoPoint.parse(91, 0)


class TestWkt:
    """WKT is longitude first."""

    def test_from_wkt(self) -> None:
        point = GeoPoint.from_wkt("POINT(-74.006 40.7128)")
        assert point.lat == 40.7128
        assert point.lng == -74.006

    def test_to_wkt(self) -> None:
        assert GeoPoint(1.5, 2.5).to_wkt() == "POINT(2.5 1.5)"

    def test_rejects_other_geometries(self) -> None:
        with pytest.raises(InvalidPointError):
            GeoPoint.from_wkt("LINESTRING(0 0, 1 1)")


class TestDistance:
    def test_zero_distance(self) -> None:
        p = GeoPoint(10, 10)
        assert p.distance_km(p) == 0

    def test_one_degree_of_latitude(self) -> None:
        assert GeoPoint(0, 0).distance_km(GeoPoint(1, 0)) == pytest.approx(111.2, abs=0.1)
