"""Request helpers shared by the API tests."""

from __future__ import annotations

from fastapi.testclient import TestClient

ADMIN = {"x-user": "reliefAdmin"}
CONTRIBUTOR = {"x-user": "volunteerJoe"}


def create_incident(client: TestClient, **overrides) -> dict:
    body = {
        "title": "River flood",
        "location_name": "Riverside, NJ",
        "lat": 40.03,
        "lng": -74.95,
        "description": "Levee breach near the bridge",
        "tags": ["flood"],
        **overrides,
    }
    response = client.post("/incidents", json=body, headers=CONTRIBUTOR)
    assert response.status_code == 201, response.text
    return response.json()


def create_resource(client: TestClient, incident_id: str, **overrides) -> dict:
    body = {
        "incident_id": incident_id,
        "name": "Riverside High School Shelter",
        "type": "shelter",
        "lat": 40.04,
        "lng": -74.96,
        "capacity": 200,
        **overrides,
    }
    response = client.post("/resources", json=body, headers=CONTRIBUTOR)
    assert response.status_code == 201, response.text
    return response.json()
