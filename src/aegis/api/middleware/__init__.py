"""Middleware for the Aegis API.

- Correlation context for request tracing
- Request rate limiting (general admission budget)

Note: For CORS, use FastAPI's built-in CORSMiddleware from starlette.middleware.cors
"""

from aegis.api.middleware.correlation import CorrelationMiddleware
from aegis.api.middleware.rate_limit import (
    REQUEST_CLASSES,
    AdmissionController,
    AdmissionDecision,
    InMemoryRateLimiter,
    RateLimitConfig,
    RateLimitMiddleware,
    SlidingWindowRateLimiter,
    client_identity,
)

__all__ = [
    "AdmissionController",
    "AdmissionDecision",
    "CorrelationMiddleware",
    "InMemoryRateLimiter",
    "REQUEST_CLASSES",
    "RateLimitConfig",
    "RateLimitMiddleware",
    "SlidingWindowRateLimiter",
    "client_identity",
]
