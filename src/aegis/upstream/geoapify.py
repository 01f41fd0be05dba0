"""Geoapify forward geocoding."""

from __future__ import annotations

import logging

import httpx

from aegis.geo.point import GeoPoint, InvalidPointError
from aegis.upstream.base import UpstreamClient, UpstreamError

logger = logging.getLogger(__name__)

GEOAPIFY_URL = "https://api.geoapify.com/v1/geocode/search"


class GeocodingClient(UpstreamClient):
    """Resolves a place name to coordinates."""

    service = "geoapify"

    def __init__(
        self,
        api_key: str | None,
        url: str = GEOAPIFY_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        super().__init__(client=client, timeout=timeout)
        self.api_key = api_key
        self.url = url

    async def geocode(self, location_name: str) -> GeoPoint | None:
        """Best match for location_name, or None if nothing matched."""
        if not self.api_key:
            raise UpstreamError(self.service, "API key not configured")

        data = await self._request_json(
            "GET", self.url, params={"text": location_name, "apiKey": self.api_key}
        )
        features = data.get("features") if isinstance(data, dict) else None
        if not features:
            logger.info(f"No geocoding match for {location_name!r}")
            return None

        properties = features[0].get("properties") or {}
        try:
            return GeoPoint.parse(properties.get("lat"), properties.get("lon"))
        except InvalidPointError as e:
            raise UpstreamError(self.service, f"malformed coordinates: {e}") from e
