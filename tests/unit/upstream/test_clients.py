"""Tests for the Gemini and Geoapify clients."""

from __future__ import annotations

import json

import httpx
import pytest

from aegis.geo.point import GeoPoint
from aegis.upstream.base import UpstreamError
from aegis.upstream.gemini import GEMINI_URL, GeminiClient
from aegis.upstream.geoapify import GEOAPIFY_URL, GeocodingClient
from tests.fakes import RoutedTransport, timeout


def gemini_reply(text: str) -> httpx.Response:
    return httpx.Response(200, json={"candidates": [{"content": {"parts": [{"text": text}]}}]})


class TestGeminiClient:
    """generateContent calls."""

    async def test_extract_location_prompt(self) -> None:
        transport = RoutedTransport({GEMINI_URL: gemini_reply("  Riverside, NJ \n")})
        client = GeminiClient("secret", client=transport.client())

        assert await client.extract_location("flood in riverside") == "Riverside, NJ"

        (request,) = transport.requests
        assert request.url.params["key"] == "secret"
        body = json.loads(request.content)
        prompt = "Extract location from: flood in riverside"
        assert body == {"contents": [{"parts": [{"text": prompt}]}]}

    async def test_verify_image_prompt(self) -> None:
        transport = RoutedTransport({GEMINI_URL: gemini_reply("No signs of manipulation.")})
        client = GeminiClient("secret", client=transport.client())

        assert await client.verify_image("https://img.example/a.jpg") == "No signs of manipulation."
        text = json.loads(transport.requests[0].content)["contents"][0]["parts"][0]["text"]
        assert text == (
            "Analyze image at https://img.example/a.jpg for signs of manipulation or disaster context."
        )

    async def test_empty_candidates(self) -> None:
        transport = RoutedTransport({GEMINI_URL: httpx.Response(200, json={"candidates": []})})
        assert await GeminiClient("k", client=transport.client()).generate("x") == ""

    async def test_missing_key(self) -> None:
        with pytest.raises(UpstreamError, match="API key"):
            await GeminiClient(None).generate("x")

    @pytest.mark.parametrize(
        "route,reason",
        [
            (timeout, "timed out"),
            (httpx.Response(503), "status 503"),
            (httpx.Response(200, text="not json"), "invalid JSON"),
        ],
    )
    async def test_failures_become_upstream_errors(self, route, reason: str) -> None:
        transport = RoutedTransport({GEMINI_URL: route})
        client = GeminiClient("k", client=transport.client())

        with pytest.raises(UpstreamError, match=reason) as exc_info:
            await client.generate("x")
        assert exc_info.value.service == "gemini"


class TestGeocodingClient:
    """Geoapify forward geocoding."""

    async def test_first_feature(self) -> None:
        transport = RoutedTransport(
            {
                GEOAPIFY_URL: httpx.Response(
                    200,
                    json={
                        "features": [
                            {"properties": {"lat": 40.1, "lon": -74.2}},
                            {"properties": {"lat": 1, "lon": 1}},
                        ]
                    },
                )
            }
        )
        client = GeocodingClient("geo", client=transport.client())

        assert await client.geocode("Riverside, NJ") == GeoPoint(40.1, -74.2)
        params = transport.requests[0].url.params
        assert params["text"] == "Riverside, NJ"
        assert params["apiKey"] == "geo"

    async def test_no_features(self) -> None:
        transport = RoutedTransport({GEOAPIFY_URL: httpx.Response(200, json={"features": []})})
        assert await GeocodingClient("geo", client=transport.client()).geocode("Atlantis") is None

    async def test_malformed_coordinates(self) -> None:
        transport = RoutedTransport(
            {GEOAPIFY_URL: httpx.Response(200, json={"features": [{"properties": {"lat": 400}}]})}
        )
        with pytest.raises(UpstreamError, match="malformed"):
            await GeocodingClient("geo", client=transport.client()).geocode("x")

    async def test_missing_key(self) -> None:
        with pytest.raises(UpstreamError):
            await GeocodingClient("").geocode("x")
