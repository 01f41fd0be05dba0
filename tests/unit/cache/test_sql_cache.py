"""Tests for the relational cache store against a mocked session."""

from __future__ import annotations

from datetime import timedelta
from unittest.mock import MagicMock

import pytest
from sqlalchemy.dialects import postgresql
from sqlalchemy.exc import OperationalError

from aegis.cache.sql import SqlCacheStore
from tests.fakes import FakeClock, FakeSessionFactory


def compiled(statement: object) -> object:
    return statement.compile(dialect=postgresql.dialect())  # type: ignore[attr-defined]


@pytest.fixture
def sessions() -> FakeSessionFactory:
    return FakeSessionFactory()


@pytest.fixture
def store(sessions: FakeSessionFactory, clock: FakeClock) -> SqlCacheStore:
    return SqlCacheStore(sessions, clock=clock)  # type: ignore[arg-type]


class TestSqlCacheStore:
    async def test_read_filters_expired_rows(
        self, store: SqlCacheStore, sessions: FakeSessionFactory, clock: FakeClock
    ) -> None:
        result = MagicMock()
        result.scalar_one_or_none.return_value = [{"title": "Flood warning"}]
        sessions.returns(result)

        assert await store.get("official_updates_1") == [{"title": "Flood warning"}]

        query = compiled(sessions.session.execute.await_args.args[0])
        assert "cache.expires_at >" in str(query)
        assert clock.now in query.params.values()
        assert "official_updates_1" in query.params.values()

    async def test_expired_row_is_a_miss(
        self, store: SqlCacheStore, sessions: FakeSessionFactory
    ) -> None:
        result = MagicMock()
        result.scalar_one_or_none.return_value = None
        sessions.returns(result)

        assert await store.get("geocode_flood") is None

    async def test_write_upserts_with_expiry(
        self, store: SqlCacheStore, sessions: FakeSessionFactory, clock: FakeClock
    ) -> None:
        await store.set("geocode_flood", {"lat": 40.1, "lng": -74.2}, 3600)

        statement = compiled(sessions.session.execute.await_args.args[0])
        assert "ON CONFLICT (key) DO UPDATE" in str(statement)
        assert statement.params["key"] == "geocode_flood"
        assert statement.params["value"] == {"lat": 40.1, "lng": -74.2}
        assert statement.params["expires_at"] == clock.now + timedelta(seconds=3600)
        sessions.session.commit.assert_awaited_once()

    async def test_empty_list_is_written(
        self, store: SqlCacheStore, sessions: FakeSessionFactory
    ) -> None:
        await store.set("social_media_1", [], 60)
        sessions.session.execute.assert_awaited_once()

    async def test_delete_commits(self, store: SqlCacheStore, sessions: FakeSessionFactory) -> None:
        await store.delete("social_media_1")

        statement = compiled(sessions.session.execute.await_args.args[0])
        assert str(statement).startswith("DELETE FROM cache")
        sessions.session.commit.assert_awaited_once()

    async def test_database_failures_are_absorbed(
        self, store: SqlCacheStore, sessions: FakeSessionFactory
    ) -> None:
        outage = OperationalError("SELECT", {}, Exception("connection refused"))
        sessions.returns(outage, outage, outage)

        assert await store.get("geocode_flood") is None
        await store.set("geocode_flood", {"lat": 1.0, "lng": 2.0}, 60)
        await store.delete("geocode_flood")
