"""Fixtures for HTTP and WebSocket tests against a fully wired app."""

from __future__ import annotations

from collections.abc import Iterator

import pytest
from fastapi import FastAPI
from fastapi.testclient import TestClient

from aegis.api.app import AppComponents, create_app
from aegis.api.middleware.rate_limit import InMemoryRateLimiter
from aegis.cache.memory import InMemoryCacheStore
from aegis.config import Settings
from aegis.persistence.memory import InMemoryRecordStore
from tests.fakes import RoutedTransport


@pytest.fixture
def transport() -> RoutedTransport:
    """Upstream HTTP; unrouted URLs answer 404."""
    return RoutedTransport()


@pytest.fixture
def components(
    test_settings: Settings,
    cache: InMemoryCacheStore,
    records: InMemoryRecordStore,
    transport: RoutedTransport,
) -> AppComponents:
    return AppComponents.assemble(
        test_settings,
        cache,
        records,
        http_client=transport.client(),
        limiter=InMemoryRateLimiter(),
    )


@pytest.fixture
def app(components: AppComponents) -> FastAPI:
    return create_app(components=components)


@pytest.fixture
def client(app: FastAPI) -> Iterator[TestClient]:
    with TestClient(app) as test_client:
        yield test_client
