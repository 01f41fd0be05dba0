"""FastAPI application factory for Aegis.

Creates the application with:
- Incident, report, resource and geocoding routers
- WebSocket observer endpoint fed by the event broadcaster
- Lifecycle management for the cache, record store and upstream clients
- x-user identity, RBAC and per-class admission control
- Prometheus metrics and correlation-aware logging
- ORJSON for fast JSON serialization

Every long-lived component lives on ``app.state`` for the lifetime of the
application. Tests pass a pre-built ``AppComponents`` instead of letting the
lifespan connect to Redis and PostgreSQL.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable
from contextlib import asynccontextmanager
from dataclasses import dataclass, field
from typing import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware
from fastapi.responses import ORJSONResponse

from aegis.aggregator.aggregator import SourceAggregator
from aegis.aggregator.fetch import PageFetcher
from aegis.api.errors import register_exception_handlers
from aegis.api.middleware import (
    AdmissionController,
    CorrelationMiddleware,
    InMemoryRateLimiter,
    RateLimitMiddleware,
    SlidingWindowRateLimiter,
)
from aegis.api.middleware.rate_limit import RateLimiter
from aegis.api.routers import geocode, health, incidents, reports, resources
from aegis.api.routers import metrics as metrics_router
from aegis.api.routers import websocket as ws_router
from aegis.api.routers.websocket import WebSocketManager
from aegis.cache.invalidation import InvalidationCoordinator
from aegis.cache.memory import InMemoryCacheStore
from aegis.cache.redis import RedisCacheStore, close_redis, get_redis
from aegis.cache.sql import SqlCacheStore
from aegis.cache.store import CacheStore
from aegis.config import Settings
from aegis.config import settings as default_settings
from aegis.events.broadcaster import EventBroadcaster
from aegis.geo.resolver import GeospatialResolver
from aegis.observability import configure_logging
from aegis.observability.metrics import MetricsMiddleware, metrics_registry
from aegis.persistence.db import close_db, get_session_factory, init_db
from aegis.persistence.memory import InMemoryRecordStore
from aegis.persistence.sql import SqlRecordStore
from aegis.persistence.store import RecordStore
from aegis.security.identity import IdentityResolver
from aegis.upstream.gemini import GeminiClient
from aegis.upstream.geoapify import GeocodingClient
from aegis.upstream.services import GeocodeService, ImageVerificationService

logger = logging.getLogger(__name__)


@dataclass
class AppComponents:
    """Everything the routers reach through ``app.state``."""

    settings: Settings
    cache: CacheStore
    records: RecordStore
    broadcaster: EventBroadcaster
    coordinator: InvalidationCoordinator
    resolver: GeospatialResolver
    aggregator: SourceAggregator
    geocode_service: GeocodeService
    image_verifier: ImageVerificationService
    identity: IdentityResolver
    admission: AdmissionController
    closers: list[Callable[[], Awaitable[None]]] = field(default_factory=list)

    @classmethod
    def assemble(
        cls,
        settings: Settings,
        cache: CacheStore,
        records: RecordStore,
        *,
        http_client: httpx.AsyncClient | None = None,
        limiter: RateLimiter | None = None,
    ) -> "AppComponents":
        """Wire the domain components around a cache and a record store.

        One httpx client is shared by the aggregator and the upstream
        clients; pass one with a mock transport in tests.
        """
        owns_client = http_client is None
        client = http_client or httpx.AsyncClient(follow_redirects=True)

        broadcaster = EventBroadcaster(queue_size=settings.broadcaster_queue_size)
        fetcher = PageFetcher(client=client, user_agent=settings.aggregator_user_agent)
        gemini = GeminiClient(
            settings.gemini_api_key,
            url=settings.gemini_url,
            client=client,
            timeout=settings.upstream_timeout,
        )
        geocoder = GeocodingClient(
            settings.geoapify_api_key,
            url=settings.geoapify_url,
            client=client,
            timeout=settings.upstream_timeout,
        )

        components = cls(
            settings=settings,
            cache=cache,
            records=records,
            broadcaster=broadcaster,
            coordinator=InvalidationCoordinator(cache),
            resolver=GeospatialResolver(
                records, broadcaster, default_radius_km=settings.default_radius_km
            ),
            aggregator=SourceAggregator.from_settings(cache, fetcher, settings),
            geocode_service=GeocodeService(cache, gemini, geocoder, ttl=settings.geocode_cache_ttl),
            image_verifier=ImageVerificationService(
                cache, gemini, ttl=settings.image_verification_cache_ttl
            ),
            identity=IdentityResolver.from_spec(settings.users),
            admission=AdmissionController(
                limiter or InMemoryRateLimiter(),
                enabled=settings.enable_rate_limiting,
            ),
        )
        if owns_client:
            components.closers.append(client.aclose)
        return components

    def bind(self, app: FastAPI) -> None:
        """Expose the components on ``app.state``."""
        state = app.state
        state.settings = self.settings
        state.cache = self.cache
        state.records = self.records
        state.broadcaster = self.broadcaster
        state.coordinator = self.coordinator
        state.resolver = self.resolver
        state.aggregator = self.aggregator
        state.geocode_service = self.geocode_service
        state.image_verifier = self.image_verifier
        state.identity = self.identity
        state.admission = self.admission
        state.ws_manager = WebSocketManager(self.broadcaster)

    async def close(self) -> None:
        """Drop observers, then release backends in reverse order of creation."""
        self.broadcaster.close()
        await self.cache.close()
        await self.records.close()
        for closer in reversed(self.closers):
            await closer()


async def build_components(settings: Settings) -> AppComponents:
    """Connect the configured backends and assemble the components."""
    closers: list[Callable[[], Awaitable[None]]] = []
    uses_redis = settings.cache_backend == "redis" or (
        settings.enable_rate_limiting and settings.rate_limit_backend == "redis"
    )
    uses_sql = "sql" in (settings.cache_backend, settings.record_store_backend)

    redis_client = None
    if uses_redis:
        redis_client = await get_redis(settings.redis_url)
        closers.append(close_redis)
    if uses_sql:
        await init_db()
        closers.append(close_db)

    cache: CacheStore
    if settings.cache_backend == "redis":
        cache = RedisCacheStore(redis_client)
    elif settings.cache_backend == "sql":
        cache = SqlCacheStore(get_session_factory())
    else:
        cache = InMemoryCacheStore()

    records: RecordStore
    if settings.record_store_backend == "sql":
        records = SqlRecordStore(get_session_factory())
    else:
        records = InMemoryRecordStore()

    limiter: RateLimiter
    if settings.rate_limit_backend == "redis" and redis_client is not None:
        limiter = SlidingWindowRateLimiter(redis_client)
    else:
        limiter = InMemoryRateLimiter()

    logger.info(
        f"Backends: cache={cache.backend_name}, records={settings.record_store_backend}, "
        f"rate limiter={type(limiter).__name__}"
    )
    components = AppComponents.assemble(settings, cache, records, limiter=limiter)
    components.closers[:0] = closers
    return components


def create_app(
    settings: Settings | None = None,
    components: AppComponents | None = None,
) -> FastAPI:
    """Create and configure the FastAPI application.

    When components are passed in, the caller owns them and the lifespan
    neither builds nor closes backends.
    """
    settings = settings or (components.settings if components else default_settings)

    @asynccontextmanager
    async def lifespan(app: FastAPI) -> AsyncIterator[None]:
        # Configure structured logging (JSON in production, console in dev)
        configure_logging(json_format=settings.env != "dev", level=settings.log_level)
        metrics_registry.initialize(enabled=settings.enable_metrics)

        logger.info(f"Starting Aegis ({settings.env})")
        owned = components is None
        active = components or await build_components(settings)
        active.bind(app)
        logger.info("Aegis startup complete")

        yield

        logger.info("Shutting down Aegis")
        if owned:
            await active.close()
        else:
            active.broadcaster.close()
        logger.info("Aegis shutdown complete")

    app = FastAPI(
        title="Aegis",
        description="Disaster response coordination: incidents, reports and resources",
        version="0.1.0",
        default_response_class=ORJSONResponse,
        lifespan=lifespan,
        docs_url="/docs",
        redoc_url="/redoc",
        openapi_url="/openapi.json",
    )

    # Order: CORS (outer) -> Rate Limiting -> Metrics -> Correlation (inner)
    app.add_middleware(CorrelationMiddleware)
    if settings.enable_metrics:
        app.add_middleware(MetricsMiddleware)
    if settings.enable_rate_limiting:
        app.add_middleware(RateLimitMiddleware)

    origins = [o.strip() for o in settings.cors_origins.split(",") if o.strip()]
    if origins:
        app.add_middleware(
            CORSMiddleware,
            allow_origins=origins,
            allow_credentials=True,
            allow_methods=["GET", "POST", "PUT", "PATCH", "DELETE"],
            allow_headers=["Content-Type", "Authorization", "x-user"],
        )

    register_exception_handlers(app)

    app.include_router(health.router)
    if settings.enable_metrics:
        app.include_router(metrics_router.router)

    app.include_router(incidents.router)
    app.include_router(reports.router)
    app.include_router(resources.router)
    app.include_router(geocode.router)

    # Real-time events
    app.include_router(ws_router.router)

    return app
