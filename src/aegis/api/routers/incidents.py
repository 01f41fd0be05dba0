"""Incident endpoints.

- POST   /incidents                        create (audit trail, record_updated)
- GET    /incidents?tag=                   list
- GET    /incidents/{id}                   read
- PUT    /incidents/{id}                   update (audit, invalidate, record_updated)
- DELETE /incidents/{id}                   admin delete (invalidate, record_updated {id})
- GET    /incidents/{id}/social-media      cached mentions, mentions_updated
- GET    /incidents/{id}/resources         geospatial resolver
- GET    /incidents/{id}/official-updates  cascading aggregator, external_api budget
- POST   /incidents/{id}/verify-image      admin, cached LLM verification

Writes follow one order: record store, then cache invalidation, then
broadcast, then response. A record store failure aborts before the other
two steps.
"""

from __future__ import annotations

import logging
from datetime import UTC, datetime
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Request, Response, status

from aegis.api.deps import (
    Aggregator,
    Broadcaster,
    Cache,
    Coordinator,
    Records,
    Resolver,
    admit,
    fetch_or_404,
    get_image_verifier,
)
from aegis.api.errors import BadRequestError, NotFoundError
from aegis.api.middleware.rate_limit import ADMIN, EXTERNAL_API, IMAGE_VERIFICATION
from aegis.api.schemas import IncidentCreate, IncidentUpdate, VerifyImageRequest
from aegis.cache.invalidation import Mutation
from aegis.cache.keys import CacheKeys
from aegis.events.publisher import (
    publish_mentions_updated,
    publish_record_deleted,
    publish_record_updated,
)
from aegis.events.schemas import MentionAction
from aegis.geo.point import GeoPoint
from aegis.security.deps import require_admin, require_permission, require_user
from aegis.security.identity import User
from aegis.security.rbac import Permission
from aegis.upstream.services import ImageVerificationService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/incidents", tags=["Incidents"])

TABLE = "incidents"


def _audit_entry(action: str, user: User) -> dict[str, str]:
    return {"action": action, "user_id": user.id, "timestamp": datetime.now(UTC).isoformat()}


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_incident(
    body: IncidentCreate,
    records: Records,
    broadcaster: Broadcaster,
    user: Annotated[User, Depends(require_permission(Permission.CREATE_INCIDENT))],
) -> dict[str, Any]:
    """Create an incident. The location is WKT or lat/lng."""
    location = body.location_wkt()
    if location is None:
        raise BadRequestError("location (WKT) or lat/lng required")

    incident = await records.insert(
        TABLE,
        {
            "title": body.title,
            "location_name": body.location_name,
            "location": location,
            "description": body.description,
            "tags": body.tags,
            "owner_id": user.id,
            "audit_trail": [_audit_entry("create", user)],
        },
    )
    logger.info(f"Incident created: {body.title} by {user.id}")
    publish_record_updated(broadcaster, incident)
    return incident


@router.get("")
async def list_incidents(
    records: Records,
    _user: Annotated[User, Depends(require_user)],
    tag: str | None = Query(default=None, description="Only incidents carrying this tag"),
    limit: int = Query(default=100, ge=1, le=1000),
    offset: int = Query(default=0, ge=0),
) -> list[dict[str, Any]]:
    return await records.select(
        TABLE,
        contains={"tags": tag} if tag else None,
        order_by="created_at",
        descending=True,
        limit=limit,
        offset=offset,
    )


@router.get("/{incident_id}")
async def get_incident(
    incident_id: str,
    records: Records,
    _user: Annotated[User, Depends(require_user)],
) -> dict[str, Any]:
    return await fetch_or_404(records, TABLE, incident_id, "Incident")


@router.put("/{incident_id}")
async def update_incident(
    incident_id: str,
    body: IncidentUpdate,
    records: Records,
    coordinator: Coordinator,
    broadcaster: Broadcaster,
    user: Annotated[User, Depends(require_permission(Permission.UPDATE_INCIDENT))],
) -> dict[str, Any]:
    """Update an incident and append to its audit trail."""
    current = await fetch_or_404(records, TABLE, incident_id, "Incident")

    patch = body.patch()
    patch["audit_trail"] = [*(current.get("audit_trail") or []), _audit_entry("update", user)]
    incident = await records.update(TABLE, incident_id, patch)
    if incident is None:
        raise NotFoundError("Incident", incident_id)

    await coordinator.invalidate(Mutation.incident(incident_id))
    logger.info(f"Incident updated: {incident_id} by {user.id}")
    publish_record_updated(broadcaster, incident)
    return incident


@router.delete(
    "/{incident_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(admit(ADMIN))],
)
async def delete_incident(
    incident_id: str,
    records: Records,
    coordinator: Coordinator,
    broadcaster: Broadcaster,
    user: Annotated[User, Depends(require_admin)],
) -> Response:
    deleted = await records.delete(TABLE, incident_id)
    if deleted is None:
        raise NotFoundError("Incident", incident_id)

    await coordinator.invalidate(Mutation.incident(incident_id))
    logger.info(f"Incident deleted: {incident_id} by {user.id}")
    publish_record_deleted(broadcaster, incident_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)


@router.get("/{incident_id}/social-media")
async def get_social_media(
    incident_id: str,
    request: Request,
    records: Records,
    cache: Cache,
    broadcaster: Broadcaster,
    _user: Annotated[User, Depends(require_user)],
) -> list[dict[str, Any]]:
    """Mentions (reports) of an incident, newest first, served cache-aside."""
    key = CacheKeys.social_media(incident_id)
    mentions = await cache.get(key)
    if mentions is None:
        mentions = await records.select(
            "reports", {"incident_id": incident_id}, order_by="created_at", descending=True
        )
        await cache.set(key, mentions, request.app.state.settings.mentions_cache_ttl)

    publish_mentions_updated(broadcaster, incident_id, MentionAction.REFRESHED, data=mentions)
    return mentions


@router.get("/{incident_id}/resources")
async def get_resources(
    incident_id: str,
    resolver: Resolver,
    _user: Annotated[User, Depends(require_user)],
    lat: float | None = Query(default=None),
    lon: float | None = Query(default=None),
    radius: float | None = Query(default=None, gt=0, description="Radius in km"),
) -> dict[str, Any]:
    """Resources near (lat, lon), degrading to all resources of the incident."""
    query = resolver.query(incident_id, GeoPoint.parse(lat, lon), radius)
    result = await resolver.resolve(query)
    return result.to_response()


@router.get("/{incident_id}/official-updates", dependencies=[Depends(admit(EXTERNAL_API))])
async def get_official_updates(
    incident_id: str,
    aggregator: Aggregator,
    _user: Annotated[User, Depends(require_user)],
) -> list[dict[str, Any]]:
    """Official updates from government and relief sources."""
    items = await aggregator.aggregate(incident_id)
    return [item.to_dict() for item in items]


@router.post("/{incident_id}/verify-image", dependencies=[Depends(admit(IMAGE_VERIFICATION))])
async def verify_image(
    incident_id: str,
    body: VerifyImageRequest,
    verifier: Annotated[ImageVerificationService, Depends(get_image_verifier)],
    _user: Annotated[User, Depends(require_permission(Permission.VERIFY_IMAGE))],
) -> dict[str, str]:
    """Assess an image for manipulation or disaster context."""
    result = await verifier.verify(incident_id, body.image_url)
    return {"result": result}
