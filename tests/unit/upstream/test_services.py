"""Tests for the cache-aside geocoding and image verification services."""

from __future__ import annotations

import httpx
import pytest

from aegis.cache.memory import InMemoryCacheStore
from aegis.upstream.base import UpstreamError
from aegis.upstream.gemini import GEMINI_URL, GeminiClient
from aegis.upstream.geoapify import GEOAPIFY_URL, GeocodingClient
from aegis.upstream.services import GeocodeService, ImageVerificationService
from tests.fakes import FakeClock, RoutedTransport


def gemini_reply(text: str) -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


def geoapify_reply(lat: float, lon: float) -> httpx.Response:
    return httpx.Response(200, json={"features": [{"properties": {"lat": lat, "lon": lon}}]})


def _geocode_service(
    cache: InMemoryCacheStore, transport: RoutedTransport
) -> GeocodeService:
    client = transport.client()
    return GeocodeService(
        cache,
        GeminiClient("gemini-key", client=client),
        GeocodingClient("geo-key", client=client),
        ttl=3600,
    )


class TestGeocodeService:
    """Extract, geocode, cache for an hour."""

    async def test_cache_hit_then_expiry_refetches(
        self, cache: InMemoryCacheStore, clock: FakeClock
    ) -> None:
        """A cached geocode is served within the hour and refetched after it."""
        transport = RoutedTransport(
            {GEMINI_URL: gemini_reply("Riverside, NJ"), GEOAPIFY_URL: geoapify_reply(40.1, -74.2)}
        )
        service = _geocode_service(cache, transport)
        await cache.set("geocode_flood in riverside", {"lat": 40.1, "lng": -74.2}, 3600)

        clock.advance(1800)
        assert await service.geocode("flood in riverside") == {"lat": 40.1, "lng": -74.2}
        assert transport.requests == []

        clock.advance(1801)
        result = await service.geocode("flood in riverside")

        assert result == {"location_name": "Riverside, NJ", "lat": 40.1, "lng": -74.2}
        assert transport.calls_to(GEOAPIFY_URL) == 1
        assert await cache.get("geocode_flood in riverside") == result

    async def test_miss_populates_cache(self, cache: InMemoryCacheStore) -> None:
        transport = RoutedTransport(
            {GEMINI_URL: gemini_reply("Houston"), GEOAPIFY_URL: geoapify_reply(29.76, -95.37)}
        )
        service = _geocode_service(cache, transport)

        await service.geocode("hurricane near houston")
        await service.geocode("hurricane near houston")

        assert transport.calls_to(GEMINI_URL) == 1
        assert transport.calls_to(GEOAPIFY_URL) == 1

    async def test_no_location_extracted(self, cache: InMemoryCacheStore) -> None:
        transport = RoutedTransport({GEMINI_URL: gemini_reply("")})
        service = _geocode_service(cache, transport)

        assert await service.geocode("something happened") is None
        assert transport.calls_to(GEOAPIFY_URL) == 0
        assert len(cache) == 0

    async def test_no_geocoding_match_not_cached(self, cache: InMemoryCacheStore) -> None:
        transport = RoutedTransport(
            {
                GEMINI_URL: gemini_reply("Atlantis"),
                GEOAPIFY_URL: httpx.Response(200, json={"features": []}),
            }
        )
        assert await _geocode_service(cache, transport).geocode("sunken city") is None
        assert len(cache) == 0

    async def test_upstream_outage_propagates(self, cache: InMemoryCacheStore) -> None:
        transport = RoutedTransport({GEMINI_URL: httpx.Response(500)})
        with pytest.raises(UpstreamError):
            await _geocode_service(cache, transport).geocode("flood")


class TestImageVerificationService:
    """Per incident and image URL."""

    async def test_verdict_cached_per_incident_and_image(self, cache: InMemoryCacheStore) -> None:
        transport = RoutedTransport({GEMINI_URL: gemini_reply("Likely authentic.")})
        service = ImageVerificationService(cache, GeminiClient("k", client=transport.client()))

        assert await service.verify("inc-1", "https://img.example/a.jpg") == "Likely authentic."
        assert await service.verify("inc-1", "https://img.example/a.jpg") == "Likely authentic."
        await service.verify("inc-2", "https://img.example/a.jpg")

        assert transport.calls_to(GEMINI_URL) == 2
        assert await cache.get("verify_image_inc-1_https://img.example/a.jpg") == "Likely authentic."

    async def test_empty_verdict_not_cached(self, cache: InMemoryCacheStore) -> None:
        transport = RoutedTransport({GEMINI_URL: httpx.Response(200, json={})})
        service = ImageVerificationService(cache, GeminiClient("k", client=transport.client()))

        assert await service.verify("inc-1", "https://img.example/a.jpg") == ""
        assert len(cache) == 0
