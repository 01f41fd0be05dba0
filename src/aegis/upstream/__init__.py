"""Upstream API clients (geocoding, LLM) and their cache-aside services."""

from aegis.upstream.base import UpstreamClient, UpstreamError
from aegis.upstream.geoapify import GeocodingClient
from aegis.upstream.gemini import GeminiClient
from aegis.upstream.services import GeocodeService, ImageVerificationService

__all__ = [
    "GeminiClient",
    "GeocodeService",
    "GeocodingClient",
    "ImageVerificationService",
    "UpstreamClient",
    "UpstreamError",
]
