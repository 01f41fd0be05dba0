"""Global pytest configuration and fixtures."""

from __future__ import annotations

import pytest

from aegis.cache.memory import InMemoryCacheStore
from aegis.config import Settings
from aegis.events.broadcaster import EventBroadcaster
from aegis.persistence.memory import InMemoryRecordStore
from tests.fakes import FakeClock


@pytest.fixture
def clock() -> FakeClock:
    return FakeClock()


@pytest.fixture
def cache(clock: FakeClock) -> InMemoryCacheStore:
    return InMemoryCacheStore(clock=clock)


@pytest.fixture
def records() -> InMemoryRecordStore:
    return InMemoryRecordStore()


@pytest.fixture
def broadcaster() -> EventBroadcaster:
    return EventBroadcaster(queue_size=16)


@pytest.fixture
def test_settings() -> Settings:
    """Settings with process-local backends and no API keys."""
    return Settings(
        env="test",
        cache_backend="memory",
        record_store_backend="memory",
        rate_limit_backend="memory",
        enable_rate_limiting=True,
        enable_metrics=True,
        geoapify_api_key="geo-key",
        gemini_api_key="gemini-key",
        users="reliefAdmin:admin,volunteerJoe:contributor",
        cors_origins="",
        log_level="WARNING",
    )
