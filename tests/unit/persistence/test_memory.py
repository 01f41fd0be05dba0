"""Tests for the in-memory record store."""

from __future__ import annotations

import pytest

from aegis.geo.point import GeoPoint
from aegis.persistence.memory import InMemoryRecordStore
from aegis.persistence.store import SpatialQueryError, UnknownTableError


class TestCrud:
    """Row lifecycle."""

    async def test_insert_generates_id_and_timestamp(self, records: InMemoryRecordStore) -> None:
        row = await records.insert("incidents", {"title": "Flood"})
        assert row["id"]
        assert row["created_at"]
        assert await records.get("incidents", row["id"]) == row

    async def test_returned_rows_are_copies(self, records: InMemoryRecordStore) -> None:
        row = await records.insert("incidents", {"title": "Flood", "tags": ["flood"]})
        row["tags"].append("mutated")
        stored = await records.get("incidents", row["id"])
        assert stored is not None
        assert stored["tags"] == ["flood"]

    async def test_update_patches_fields(self, records: InMemoryRecordStore) -> None:
        row = await records.insert("reports", {"content": "a", "verification_status": "pending"})
        updated = await records.update("reports", row["id"], {"verification_status": "verified"})
        assert updated is not None
        assert updated["content"] == "a"
        assert updated["verification_status"] == "verified"

    async def test_update_missing_returns_none(self, records: InMemoryRecordStore) -> None:
        assert await records.update("reports", "nope", {"content": "x"}) is None

    async def test_delete_returns_row_once(self, records: InMemoryRecordStore) -> None:
        row = await records.insert("resources", {"name": "Shelter"})
        assert (await records.delete("resources", row["id"]))["name"] == "Shelter"
        assert await records.delete("resources", row["id"]) is None

    async def test_unknown_table(self, records: InMemoryRecordStore) -> None:
        with pytest.raises(UnknownTableError):
            await records.get("volunteers", "1")


class TestSelect:
    """Filtering, ordering and pagination."""

    async def test_equality_and_containment_filters(self, records: InMemoryRecordStore) -> None:
        await records.insert("incidents", {"id": "a", "tags": ["flood"], "owner_id": "u1"})
        await records.insert("incidents", {"id": "b", "tags": ["fire"], "owner_id": "u1"})
        await records.insert("incidents", {"id": "c", "tags": ["flood"], "owner_id": "u2"})

        rows = await records.select("incidents", {"owner_id": "u1"}, contains={"tags": "flood"})
        assert [r["id"] for r in rows] == ["a"]

    async def test_order_and_paginate(self, records: InMemoryRecordStore) -> None:
        for i, created in enumerate(["2024-01-01", "2024-01-03", "2024-01-02"]):
            await records.insert("reports", {"id": str(i), "created_at": created})

        rows = await records.select("reports", order_by="created_at", descending=True, limit=2)
        assert [r["id"] for r in rows] == ["1", "2"]

        rows = await records.select("reports", order_by="created_at", offset=2)
        assert [r["id"] for r in rows] == ["1"]


class TestSpatial:
    """Haversine radius query."""

    async def test_within_radius(self, records: InMemoryRecordStore) -> None:
        origin = GeoPoint(40.7128, -74.0060)
        await records.insert(
            "resources", {"id": "near", "incident_id": "i", "location": "POINT(-74.0 40.72)"}
        )
        await records.insert(
            "resources", {"id": "far", "incident_id": "i", "location": "POINT(-73.0 41.5)"}
        )
        await records.insert(
            "resources", {"id": "other", "incident_id": "j", "location": "POINT(-74.0 40.72)"}
        )

        rows = await records.resources_within_radius("i", origin, 10)
        assert [r["id"] for r in rows] == ["near"]

    async def test_rows_without_location_are_skipped(self, records: InMemoryRecordStore) -> None:
        await records.insert("resources", {"id": "x", "incident_id": "i"})
        assert await records.resources_within_radius("i", GeoPoint(0, 0), 10) == []

    async def test_disabled_spatial_raises(self) -> None:
        store = InMemoryRecordStore(spatial_enabled=False)
        with pytest.raises(SpatialQueryError):
            await store.resources_within_radius("i", GeoPoint(0, 0), 10)
