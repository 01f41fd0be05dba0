"""Observability for Aegis: structured logging and Prometheus metrics."""

from aegis.observability.logging import (
    ConsoleFormatter,
    JsonFormatter,
    LogContext,
    configure_logging,
    correlation_id_var,
    request_id_var,
    user_id_var,
)
from aegis.observability.metrics import (
    MetricsMiddleware,
    MetricsRegistry,
    NoOpMetric,
    get_metrics,
)

__all__ = [
    # Logging
    "ConsoleFormatter",
    "JsonFormatter",
    "LogContext",
    "configure_logging",
    "correlation_id_var",
    "request_id_var",
    "user_id_var",
    # Metrics
    "MetricsMiddleware",
    "MetricsRegistry",
    "NoOpMetric",
    "get_metrics",
]
