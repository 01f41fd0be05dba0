"""Prometheus metrics for Aegis.

Provides metrics collection and exposure:
- HTTP request metrics (latency, count)
- Cache metrics (hits, misses, backend errors)
- Broadcaster metrics (events published, deliveries dropped)
- Aggregator metrics (tier outcomes, fetch failures)

Usage:
    from aegis.observability.metrics import get_metrics

    metrics = get_metrics()
    metrics.cache_hits_total.labels(namespace="geocode").inc()

When metrics are disabled every metric is a NoOpMetric, so call sites never
need to check.
"""

from __future__ import annotations

import logging
import time
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Any, Callable

from prometheus_client import CollectorRegistry, Counter, Histogram, generate_latest
from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import Response

from aegis.config import settings

if TYPE_CHECKING:
    from starlette.types import ASGIApp

logger = logging.getLogger(__name__)


class NoOpMetric:
    """No-op metric for when metrics are disabled."""

    def labels(self, **kwargs: Any) -> "NoOpMetric":
        """Return self for chaining."""
        return self

    def inc(self, amount: float = 1) -> None:
        """No-op."""
        pass

    def observe(self, value: float) -> None:
        """No-op."""
        pass


_NOOP = NoOpMetric()


@dataclass
class MetricsRegistry:
    """Registry for Prometheus metrics."""

    # HTTP metrics
    http_requests_total: Any = _NOOP
    http_request_duration_seconds: Any = _NOOP

    # Cache metrics
    cache_hits_total: Any = _NOOP
    cache_misses_total: Any = _NOOP
    cache_errors_total: Any = _NOOP

    # Broadcaster metrics
    events_published_total: Any = _NOOP
    events_dropped_total: Any = _NOOP

    # Aggregator metrics
    aggregator_tier_results_total: Any = _NOOP
    aggregator_fetch_failures_total: Any = _NOOP

    # Internal state
    _initialized: bool = field(default=False, repr=False)
    _registry: CollectorRegistry | None = field(default=None, repr=False)

    def initialize(self, enabled: bool | None = None) -> None:
        """Initialize Prometheus metrics on a private collector registry."""
        if self._initialized:
            return

        if not (settings.enable_metrics if enabled is None else enabled):
            logger.info("Metrics are disabled")
            self._initialized = True
            return

        registry = CollectorRegistry()
        self._registry = registry

        self.http_requests_total = Counter(
            "aegis_http_requests_total",
            "Total HTTP requests",
            ["method", "path", "status"],
            registry=registry,
        )
        self.http_request_duration_seconds = Histogram(
            "aegis_http_request_duration_seconds",
            "HTTP request latency in seconds",
            ["method", "path"],
            buckets=(0.005, 0.01, 0.025, 0.05, 0.1, 0.25, 0.5, 1.0, 2.5, 5.0, 15.0),
            registry=registry,
        )

        self.cache_hits_total = Counter(
            "aegis_cache_hits_total",
            "Cache hits",
            ["namespace"],
            registry=registry,
        )
        self.cache_misses_total = Counter(
            "aegis_cache_misses_total",
            "Cache misses (absent or expired)",
            ["namespace"],
            registry=registry,
        )
        self.cache_errors_total = Counter(
            "aegis_cache_errors_total",
            "Absorbed cache backend failures",
            ["operation"],
            registry=registry,
        )

        self.events_published_total = Counter(
            "aegis_events_published_total",
            "Events published to the broadcaster",
            ["topic"],
            registry=registry,
        )
        self.events_dropped_total = Counter(
            "aegis_events_dropped_total",
            "Event deliveries dropped because an observer queue was full",
            ["topic"],
            registry=registry,
        )

        self.aggregator_tier_results_total = Counter(
            "aegis_aggregator_tier_results_total",
            "Aggregation tier attempts by outcome",
            ["tier", "outcome"],
            registry=registry,
        )
        self.aggregator_fetch_failures_total = Counter(
            "aegis_aggregator_fetch_failures_total",
            "Upstream fetch failures during aggregation",
            ["source"],
            registry=registry,
        )

        self._initialized = True
        logger.info("Prometheus metrics initialized")

    def generate_latest(self) -> bytes:
        """Generate Prometheus metrics in exposition format."""
        if self._registry is None:
            return b"# Metrics disabled\n"
        return generate_latest(self._registry)


# Global metrics registry
metrics_registry = MetricsRegistry()


def get_metrics() -> MetricsRegistry:
    """Get the global metrics registry.

    Initializes metrics on first access.
    """
    if not metrics_registry._initialized:
        metrics_registry.initialize()
    return metrics_registry


class MetricsMiddleware(BaseHTTPMiddleware):
    """Middleware for HTTP request metrics."""

    def __init__(self, app: "ASGIApp") -> None:
        super().__init__(app)
        self.metrics = get_metrics()

    async def dispatch(self, request: Request, call_next: Callable[[Request], Any]) -> Response:
        """Record metrics for HTTP requests."""
        if request.url.path.startswith(("/health", "/metrics")):
            return await call_next(request)

        method = request.method
        path = self._route_path(request)
        start_time = time.perf_counter()
        status_code = 500  # Default in case of exception

        try:
            response = await call_next(request)
            status_code = response.status_code
            return response
        finally:
            duration = time.perf_counter() - start_time
            self.metrics.http_requests_total.labels(
                method=method, path=path, status=status_code
            ).inc()
            self.metrics.http_request_duration_seconds.labels(
                method=method, path=path
            ).observe(duration)

    def _route_path(self, request: Request) -> str:
        """Route template ("/incidents/{incident_id}") to keep label cardinality low."""
        route = request.scope.get("route")
        return getattr(route, "path", None) or "unmatched"
