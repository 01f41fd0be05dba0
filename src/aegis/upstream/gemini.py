"""Gemini generateContent client.

Two prompts are used: extracting a place name from free text, and assessing
an image for manipulation or disaster context. Both return the model's first
text part, stripped.
"""

from __future__ import annotations

from typing import Any

import httpx

from aegis.upstream.base import UpstreamClient, UpstreamError

GEMINI_URL = (
    "https://generativelanguage.googleapis.com/v1beta/models/gemini-2.0-flash:generateContent"
)


class GeminiClient(UpstreamClient):
    service = "gemini"

    def __init__(
        self,
        api_key: str | None,
        url: str = GEMINI_URL,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ):
        super().__init__(client=client, timeout=timeout)
        self.api_key = api_key
        self.url = url

    async def extract_location(self, description: str) -> str:
        """Place name mentioned in description ("" if none)."""
        return await self.generate(f"Extract location from: {description}")

    async def verify_image(self, image_url: str) -> str:
        """Free-text authenticity assessment of the image at image_url."""
        return await self.generate(
            f"Analyze image at {image_url} for signs of manipulation or disaster context."
        )

    async def generate(self, prompt: str) -> str:
        if not self.api_key:
            raise UpstreamError(self.service, "API key not configured")
        body = {"contents": [{"parts": [{"text": prompt}]}]}
        data = await self._request_json(
            "POST", self.url, params={"key": self.api_key}, json=body
        )
        return _first_text(data).strip()


def _first_text(data: Any) -> str:
    try:
        return str(data["candidates"][0]["content"]["parts"][0]["text"])
    except (KeyError, IndexError, TypeError):
        return ""
