"""Shared FastAPI dependencies for Aegis routers.

Every long-lived component is created in the application lifespan and held
on ``app.state``; routers reach them only through these dependencies, which
keeps them swappable in tests (``app.dependency_overrides`` or a pre-built
``AppComponents``).
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import Annotated

from fastapi import Depends, Request

from aegis.aggregator.aggregator import SourceAggregator
from aegis.api.errors import NotFoundError, TooManyRequestsError
from aegis.api.middleware.rate_limit import AdmissionController, client_identity
from aegis.cache.invalidation import InvalidationCoordinator
from aegis.cache.store import CacheStore
from aegis.events.broadcaster import EventBroadcaster
from aegis.geo.resolver import GeospatialResolver
from aegis.persistence.store import RecordStore, Row
from aegis.upstream.services import GeocodeService, ImageVerificationService


def get_cache(request: Request) -> CacheStore:
    return request.app.state.cache


def get_record_store(request: Request) -> RecordStore:
    return request.app.state.records


def get_broadcaster(request: Request) -> EventBroadcaster:
    return request.app.state.broadcaster


def get_coordinator(request: Request) -> InvalidationCoordinator:
    return request.app.state.coordinator


def get_resolver(request: Request) -> GeospatialResolver:
    return request.app.state.resolver


def get_aggregator(request: Request) -> SourceAggregator:
    return request.app.state.aggregator


def get_geocode_service(request: Request) -> GeocodeService:
    return request.app.state.geocode_service


def get_image_verifier(request: Request) -> ImageVerificationService:
    return request.app.state.image_verifier


def get_admission(request: Request) -> AdmissionController:
    return request.app.state.admission


Cache = Annotated[CacheStore, Depends(get_cache)]
Records = Annotated[RecordStore, Depends(get_record_store)]
Broadcaster = Annotated[EventBroadcaster, Depends(get_broadcaster)]
Coordinator = Annotated[InvalidationCoordinator, Depends(get_coordinator)]
Resolver = Annotated[GeospatialResolver, Depends(get_resolver)]
Aggregator = Annotated[SourceAggregator, Depends(get_aggregator)]


def admit(request_class: str) -> Callable[..., Awaitable[None]]:
    """Create a dependency charging the request to a rate limit class.

    A denial is a 429 raised before the handler runs.

    Usage:
        @router.post("/", dependencies=[Depends(admit(GEOCODING))])
    """

    async def check_admission(
        request: Request,
        admission: Annotated[AdmissionController, Depends(get_admission)],
    ) -> None:
        decision = await admission.check(request_class, client_identity(request))
        if not decision.allowed:
            raise TooManyRequestsError(
                f"Too many {request_class.replace('_', ' ')} requests, please try again later.",
                retry_after=decision.retry_after,
            )

    return check_admission


async def fetch_or_404(records: RecordStore, table: str, row_id: str, label: str) -> Row:
    """Load a row or raise NotFoundError."""
    row = await records.get(table, row_id)
    if row is None:
        raise NotFoundError(label, row_id)
    return row
