"""Cache-aside compositions over the upstream clients.

Both services follow the same shape: look the key up, return a hit as-is,
otherwise call upstream, cache the answer with its TTL and return it.
Upstream failures propagate as UpstreamError; cache failures never do.
"""

from __future__ import annotations

import logging
from typing import Any

from aegis.cache.keys import CacheKeys
from aegis.cache.store import CacheStore
from aegis.upstream.geoapify import GeocodingClient
from aegis.upstream.gemini import GeminiClient

logger = logging.getLogger(__name__)


class GeocodeService:
    """Free-text description -> {location_name, lat, lng}."""

    def __init__(
        self,
        cache: CacheStore,
        gemini: GeminiClient,
        geocoder: GeocodingClient,
        ttl: int = 3600,
    ):
        self.cache = cache
        self.gemini = gemini
        self.geocoder = geocoder
        self.ttl = ttl

    async def geocode(self, description: str) -> dict[str, Any] | None:
        """Resolve a description, or None if no location could be found."""
        key = CacheKeys.geocode(description)
        cached = await self.cache.get(key)
        if cached is not None:
            return cached

        location_name = await self.gemini.extract_location(description)
        if not location_name:
            logger.info("No location found in description")
            return None

        point = await self.geocoder.geocode(location_name)
        if point is None:
            return None

        result = {"location_name": location_name, "lat": point.lat, "lng": point.lng}
        await self.cache.set(key, result, self.ttl)
        return result


class ImageVerificationService:
    """Per-incident, per-image authenticity verdicts."""

    def __init__(self, cache: CacheStore, gemini: GeminiClient, ttl: int = 3600):
        self.cache = cache
        self.gemini = gemini
        self.ttl = ttl

    async def verify(self, incident_id: str, image_url: str) -> str:
        key = CacheKeys.verify_image(incident_id, image_url)
        cached = await self.cache.get(key)
        if cached is not None:
            return str(cached)

        verdict = await self.gemini.verify_image(image_url)
        if verdict:
            await self.cache.set(key, verdict, self.ttl)
        logger.info(f"Image verification: {image_url} - Result: {verdict[:80]!r}")
        return verdict
