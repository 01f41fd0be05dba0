"""API routers for Aegis."""

from aegis.api.routers import (
    geocode,
    health,
    incidents,
    metrics,
    reports,
    resources,
    websocket,
)

__all__ = [
    "geocode",
    "health",
    "incidents",
    "metrics",
    "reports",
    "resources",
    "websocket",
]
