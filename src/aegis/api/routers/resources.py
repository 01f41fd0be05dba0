"""Resource endpoints.

Resource writes have no cached dependents; they only broadcast
resources_updated. Reads go through the geospatial resolver.
"""

from __future__ import annotations

import logging
from typing import Annotated, Any

from fastapi import APIRouter, Depends, Query, Response, status

from aegis.api.deps import Broadcaster, Records, Resolver, admit, fetch_or_404
from aegis.api.errors import BadRequestError, NotFoundError
from aegis.api.middleware.rate_limit import ADMIN
from aegis.api.schemas import ResourceCreate, ResourceUpdate
from aegis.events.publisher import publish_resources_updated
from aegis.geo.point import GeoPoint
from aegis.security.deps import require_admin, require_permission, require_user
from aegis.security.identity import User
from aegis.security.rbac import Permission

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/resources", tags=["Resources"])

TABLE = "resources"


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_resource(
    body: ResourceCreate,
    records: Records,
    broadcaster: Broadcaster,
    _user: Annotated[User, Depends(require_permission(Permission.CREATE_RESOURCE))],
) -> dict[str, Any]:
    await fetch_or_404(records, "incidents", body.incident_id, "Incident")

    resource = await records.insert(TABLE, body.row())
    logger.info(f"Resource created: {body.name} for incident {body.incident_id}")
    publish_resources_updated(broadcaster, body.incident_id, data=resource)
    return resource


@router.get("/incident/{incident_id}")
async def get_resources(
    incident_id: str,
    resolver: Resolver,
    _user: Annotated[User, Depends(require_user)],
    lat: float | None = Query(default=None),
    lon: float | None = Query(default=None),
    radius: float | None = Query(default=None, gt=0, description="Radius in km"),
) -> dict[str, Any]:
    query = resolver.query(incident_id, GeoPoint.parse(lat, lon), radius)
    return (await resolver.resolve(query)).to_response()


@router.get("/incident/{incident_id}/type")
async def get_resources_by_type(
    incident_id: str,
    resolver: Resolver,
    _user: Annotated[User, Depends(require_user)],
    type: str | None = Query(default=None, description="Resource type, e.g. shelter"),
    lat: float | None = Query(default=None),
    lon: float | None = Query(default=None),
    radius: float | None = Query(default=None, gt=0, description="Radius in km"),
) -> dict[str, Any]:
    if not type:
        raise BadRequestError("type, lat, and lon required")
    query = resolver.query(incident_id, GeoPoint.parse(lat, lon), radius)
    return (await resolver.resolve_by_type(query, type)).to_response()


@router.put("/{resource_id}")
async def update_resource(
    resource_id: str,
    body: ResourceUpdate,
    records: Records,
    broadcaster: Broadcaster,
    _user: Annotated[User, Depends(require_permission(Permission.UPDATE_RESOURCE))],
) -> dict[str, Any]:
    patch = body.patch()
    if not patch:
        raise BadRequestError("No updatable fields provided")

    resource = await records.update(TABLE, resource_id, patch)
    if resource is None:
        raise NotFoundError("Resource", resource_id)

    logger.info(f"Resource updated: {resource_id}")
    publish_resources_updated(broadcaster, resource["incident_id"], data=resource)
    return resource


@router.delete(
    "/{resource_id}",
    status_code=status.HTTP_204_NO_CONTENT,
    dependencies=[Depends(admit(ADMIN))],
)
async def delete_resource(
    resource_id: str,
    records: Records,
    broadcaster: Broadcaster,
    user: Annotated[User, Depends(require_admin)],
) -> Response:
    resource = await records.delete(TABLE, resource_id)
    if resource is None:
        raise NotFoundError("Resource", resource_id)

    logger.info(f"Resource deleted: {resource_id} by {user.id}")
    publish_resources_updated(broadcaster, resource["incident_id"], deleted_id=resource_id)
    return Response(status_code=status.HTTP_204_NO_CONTENT)
