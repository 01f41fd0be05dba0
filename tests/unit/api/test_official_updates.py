"""Tests for the official updates endpoint."""

from __future__ import annotations

import httpx
from fastapi.testclient import TestClient

from tests.fakes import RoutedTransport
from tests.unit.api.helpers import CONTRIBUTOR, create_incident

FEMA_FEED = "https://www.fema.gov/rss/disasters.xml"
FEMA_RSS = """<?xml version="1.0"?>
<rss version="2.0"><channel>
  <item><title>Major Disaster Declaration for New Jersey</title>
        <link>https://www.fema.gov/press-release/1</link></item>
</channel></rss>
"""


class TestOfficialUpdates:
    def test_feed_items_then_cache(self, client: TestClient, transport: RoutedTransport) -> None:
        incident = create_incident(client)
        transport.routes[FEMA_FEED] = httpx.Response(200, text=FEMA_RSS)
        url = f"/incidents/{incident['id']}/official-updates"

        first = client.get(url, headers=CONTRIBUTOR)
        fetched = len(transport.requests)
        second = client.get(url, headers=CONTRIBUTOR)

        assert first.status_code == 200
        (item,) = first.json()
        assert item["title"] == "Major Disaster Declaration for New Jersey"
        assert item["link"] == "https://www.fema.gov/press-release/1"
        assert second.json() == first.json()
        assert len(transport.requests) == fetched

    def test_every_source_down_is_empty_not_error(self, client: TestClient) -> None:
        incident = create_incident(client)

        response = client.get(f"/incidents/{incident['id']}/official-updates", headers=CONTRIBUTOR)

        assert response.status_code == 200
        assert response.json() == []

    def test_requires_user(self, client: TestClient) -> None:
        assert client.get("/incidents/x/official-updates").status_code == 401

    def test_eleventh_request_in_a_minute_is_rejected(self, client: TestClient) -> None:
        incident = create_incident(client)
        url = f"/incidents/{incident['id']}/official-updates"

        statuses = [client.get(url, headers=CONTRIBUTOR).status_code for _ in range(11)]

        assert statuses == [200] * 10 + [429]
        response = client.get(url, headers=CONTRIBUTOR)
        assert response.headers["Retry-After"] == "60"
        assert response.json()["messages"][0]["text"] == (
            "Too many external api requests, please try again later."
        )
