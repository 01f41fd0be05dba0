"""Admission control (rate limiting) for Aegis.

Sliding-window budgets per request class:

    general              100 / 15 min   every request (middleware)
    external_api          10 / 1 min    GET /incidents/{id}/official-updates
    geocoding              5 / 1 min    POST /geocode
    image_verification     3 / 1 min    POST /incidents/{id}/verify-image
    reports               10 / 5 min    report writes
    admin                 20 / 5 min    admin deletes

Budgets are tracked per client identity (token hash, x-user, or client IP).
The Redis limiter shares budgets across instances; the in-memory limiter is
for single-process deployments and tests. If the limiter backend fails the
request is admitted.
"""

from __future__ import annotations

import hashlib
import logging
import time
from abc import ABC, abstractmethod
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass, field
from typing import TYPE_CHECKING
from uuid import uuid4

from starlette.middleware.base import BaseHTTPMiddleware
from starlette.requests import Request
from starlette.responses import JSONResponse, Response

if TYPE_CHECKING:
    from redis.asyncio import Redis

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class RateLimitConfig:
    """Budget for one request class."""

    # Maximum requests per window
    requests_per_window: int = 100
    # Window duration in seconds
    window_seconds: int = 900


GENERAL = "general"
EXTERNAL_API = "external_api"
GEOCODING = "geocoding"
IMAGE_VERIFICATION = "image_verification"
REPORTS = "reports"
ADMIN = "admin"

REQUEST_CLASSES: dict[str, RateLimitConfig] = {
    GENERAL: RateLimitConfig(requests_per_window=100, window_seconds=15 * 60),
    EXTERNAL_API: RateLimitConfig(requests_per_window=10, window_seconds=60),
    GEOCODING: RateLimitConfig(requests_per_window=5, window_seconds=60),
    IMAGE_VERIFICATION: RateLimitConfig(requests_per_window=3, window_seconds=60),
    REPORTS: RateLimitConfig(requests_per_window=10, window_seconds=5 * 60),
    ADMIN: RateLimitConfig(requests_per_window=20, window_seconds=5 * 60),
}


@dataclass
class AdmissionDecision:
    """Outcome of an admission check plus rate limit headers."""

    allowed: bool
    headers: dict[str, str] = field(default_factory=dict)
    retry_after: int = 0


class RateLimiter(ABC):
    """Sliding window counter."""

    @abstractmethod
    async def hit(self, key: str, config: RateLimitConfig) -> int:
        """Record a request under key; return the count that preceded it in the window."""


class SlidingWindowRateLimiter(RateLimiter):
    """Redis-backed sliding window rate limiter.

    Uses sorted sets to implement accurate sliding window counting.
    """

    def __init__(self, redis: Redis):
        self.redis = redis

    async def hit(self, key: str, config: RateLimitConfig) -> int:
        now = time.time()
        window_start = now - config.window_seconds

        # Use Redis pipeline for atomic operations
        pipe = self.redis.pipeline()

        # Remove old entries outside the window
        pipe.zremrangebyscore(key, 0, window_start)

        # Count current requests in window
        pipe.zcard(key)

        # Add this request
        pipe.zadd(key, {f"{now}:{uuid4().hex}": now})

        # Set TTL to clean up old keys
        pipe.expire(key, config.window_seconds + 1)

        results = await pipe.execute()
        return int(results[1])


class InMemoryRateLimiter(RateLimiter):
    """Process-local sliding window rate limiter.

    Keys whose newest hit has left its window are swept at most once per
    sweep_interval seconds, so one-off clients don't accumulate.
    """

    def __init__(self, clock: Callable[[], float] = time.monotonic, sweep_interval: float = 60.0):
        self._clock = clock
        self.sweep_interval = sweep_interval
        self._hits: dict[str, deque[float]] = {}
        self._windows: dict[str, int] = {}
        self._next_sweep = clock() + sweep_interval

    @property
    def tracked_keys(self) -> int:
        return len(self._hits)

    async def hit(self, key: str, config: RateLimitConfig) -> int:
        now = self._clock()
        if now >= self._next_sweep:
            self._sweep(now)

        window = self._hits.setdefault(key, deque())
        self._windows[key] = config.window_seconds
        while window and window[0] <= now - config.window_seconds:
            window.popleft()
        count = len(window)
        window.append(now)
        return count

    def _sweep(self, now: float) -> None:
        expired = [
            key
            for key, window in self._hits.items()
            if not window or window[-1] <= now - self._windows[key]
        ]
        for key in expired:
            del self._hits[key]
            del self._windows[key]
        self._next_sweep = now + self.sweep_interval
        if expired:
            logger.debug(f"Dropped {len(expired)} idle rate limit keys")


class AdmissionController:
    """Decides whether a client may make a request of a given class."""

    def __init__(
        self,
        limiter: RateLimiter,
        classes: dict[str, RateLimitConfig] | None = None,
        enabled: bool = True,
    ):
        self.limiter = limiter
        self.classes = classes or REQUEST_CLASSES
        self.enabled = enabled

    async def check(self, request_class: str, client_identity: str) -> AdmissionDecision:
        """Count this request against the class budget."""
        if not self.enabled:
            return AdmissionDecision(allowed=True)

        config = self.classes[request_class]
        key = f"ratelimit:{request_class}:{client_identity}"
        try:
            current_count = await self.limiter.hit(key, config)
        except Exception as e:
            # If the limiter backend is unavailable, admit the request
            logger.warning(f"Rate limiter unavailable, admitting request: {e}")
            return AdmissionDecision(allowed=True)

        limit = config.requests_per_window
        remaining = max(0, limit - current_count - 1)
        headers = {
            "X-RateLimit-Limit": str(limit),
            "X-RateLimit-Remaining": str(remaining),
            "X-RateLimit-Reset": str(int(time.time()) + config.window_seconds),
        }

        allowed = current_count < limit
        if not allowed:
            headers["Retry-After"] = str(config.window_seconds)
            logger.info(f"Rate limit exceeded for {request_class} by {client_identity}")
        return AdmissionDecision(
            allowed=allowed,
            headers=headers,
            retry_after=0 if allowed else config.window_seconds,
        )

    async def allow(self, request_class: str, client_identity: str) -> bool:
        """True if the request fits the class budget."""
        return (await self.check(request_class, client_identity)).allowed


def client_identity(request: Request) -> str:
    """Rate limit identity for a request.

    Uses a token hash for Bearer requests, the x-user header when present,
    and the client IP otherwise.
    """
    auth_header = request.headers.get("authorization", "")
    if auth_header.startswith("Bearer "):
        # Hash token for privacy
        token_hash = hashlib.sha256(auth_header[7:].encode()).hexdigest()[:16]
        return f"token:{token_hash}"

    user = request.headers.get("x-user")
    if user:
        return f"user:{user}"

    return f"ip:{_get_client_ip(request)}"


def _get_client_ip(request: Request) -> str:
    """Extract client IP, handling proxies."""
    # Check X-Forwarded-For (common for load balancers)
    forwarded = request.headers.get("x-forwarded-for")
    if forwarded:
        # Take the first IP (original client)
        return forwarded.split(",")[0].strip()

    # Check X-Real-IP (nginx)
    real_ip = request.headers.get("x-real-ip")
    if real_ip:
        return real_ip

    # Fall back to direct client IP
    if request.client:
        return request.client.host

    return "unknown"


class RateLimitMiddleware(BaseHTTPMiddleware):
    """Applies the general budget to every request.

    The AdmissionController is read from ``app.state.admission`` at request
    time so it can be created in the lifespan.
    """

    def __init__(self, app, bypass_prefixes: tuple[str, ...] = ("/health", "/metrics")):
        super().__init__(app)
        self.bypass_prefixes = bypass_prefixes

    async def dispatch(self, request: Request, call_next: Callable) -> Response:
        """Apply rate limiting to request."""
        path = request.url.path
        admission: AdmissionController | None = getattr(request.app.state, "admission", None)
        if admission is None or any(path.startswith(p) for p in self.bypass_prefixes):
            return await call_next(request)

        decision = await admission.check(GENERAL, client_identity(request))
        if not decision.allowed:
            return JSONResponse(
                status_code=429,
                content={
                    "messages": [
                        {
                            "code": "TooManyRequests",
                            "messageType": "Error",
                            "text": "Too many requests from this client, please try again later.",
                        }
                    ]
                },
                headers=decision.headers,
            )

        # Process request and add rate limit headers to response
        response = await call_next(request)

        for name, value in decision.headers.items():
            response.headers[name] = value

        return response
