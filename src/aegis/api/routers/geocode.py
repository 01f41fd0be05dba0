"""Geocoding endpoint.

POST /geocode {"description": "..."} extracts a place name with the LLM,
geocodes it, and caches the answer for an hour under geocode_{description}.
"""

from __future__ import annotations

from typing import Annotated, Any

from fastapi import APIRouter, Depends

from aegis.api.deps import admit, get_geocode_service
from aegis.api.errors import NotFoundError
from aegis.api.middleware.rate_limit import GEOCODING
from aegis.api.schemas import GeocodeRequest
from aegis.upstream.services import GeocodeService

router = APIRouter(prefix="/geocode", tags=["Geocoding"])


@router.post("", dependencies=[Depends(admit(GEOCODING))])
async def geocode(
    body: GeocodeRequest,
    service: Annotated[GeocodeService, Depends(get_geocode_service)],
) -> dict[str, Any]:
    result = await service.geocode(body.description)
    if result is None:
        raise NotFoundError("Location", body.description)
    return result
