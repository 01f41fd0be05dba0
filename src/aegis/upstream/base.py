"""Shared plumbing for upstream API clients."""

from __future__ import annotations

import logging
from typing import Any

import httpx

logger = logging.getLogger(__name__)


class UpstreamError(Exception):
    """An upstream service failed and there is no alternative source."""

    def __init__(self, service: str, reason: str):
        super().__init__(f"{service} unavailable: {reason}")
        self.service = service
        self.reason = reason


class UpstreamClient:
    """Base for JSON-over-HTTP upstream clients.

    Every call carries a bounded timeout; timeouts, transport errors and
    non-2xx statuses all surface as UpstreamError.
    """

    service = "upstream"

    def __init__(self, client: httpx.AsyncClient | None = None, timeout: float = 10.0):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient()
        self.timeout = timeout

    async def _request_json(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._client.request(method, url, timeout=self.timeout, **kwargs)
            response.raise_for_status()
            return response.json()
        except httpx.TimeoutException as e:
            raise UpstreamError(self.service, f"timed out after {self.timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise UpstreamError(self.service, f"status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise UpstreamError(self.service, str(e) or type(e).__name__) from e
        except ValueError as e:
            raise UpstreamError(self.service, "invalid JSON response") from e

    async def close(self) -> None:
        """Close the underlying client if this instance created it."""
        if self._owns_client:
            await self._client.aclose()
