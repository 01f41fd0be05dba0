"""HTTP fetching for aggregation sources."""

from __future__ import annotations

import logging

import httpx

logger = logging.getLogger(__name__)

DEFAULT_USER_AGENT = (
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 "
    "(KHTML, like Gecko) Chrome/91.0.4472.124 Safari/537.36"
)

BROWSER_HEADERS = {
    "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
    "Accept-Language": "en-US,en;q=0.5",
}


class FetchError(Exception):
    """A source could not be fetched (timeout, network error, bad status)."""

    def __init__(self, url: str, reason: str):
        super().__init__(f"Failed to fetch {url}: {reason}")
        self.url = url
        self.reason = reason


class PageFetcher:
    """Fetches source documents with a per-call timeout.

    Wraps an ``httpx.AsyncClient``; pass one in to share a connection pool or
    to inject a transport in tests.
    """

    def __init__(
        self,
        client: httpx.AsyncClient | None = None,
        user_agent: str = DEFAULT_USER_AGENT,
    ):
        self._owns_client = client is None
        self._client = client or httpx.AsyncClient(follow_redirects=True)
        self.headers = {"User-Agent": user_agent, **BROWSER_HEADERS}

    async def fetch(self, url: str, timeout: float) -> str:
        """GET url and return the body text.

        Raises:
            FetchError: on timeout, transport error or non-2xx status
        """
        try:
            response = await self._client.get(url, headers=self.headers, timeout=timeout)
            response.raise_for_status()
        except httpx.TimeoutException as e:
            raise FetchError(url, f"timed out after {timeout}s") from e
        except httpx.HTTPStatusError as e:
            raise FetchError(url, f"status {e.response.status_code}") from e
        except httpx.HTTPError as e:
            raise FetchError(url, str(e) or type(e).__name__) from e
        return response.text

    async def close(self) -> None:
        """Close the underlying client if this fetcher created it."""
        if self._owns_client:
            await self._client.aclose()
