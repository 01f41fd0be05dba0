"""Request bodies for the Aegis API.

Responses are plain row dicts from the record store; only inputs are
modelled. Validation failures surface as 400 through the error handlers.
"""

from __future__ import annotations

from enum import Enum
from typing import Any, ClassVar

from pydantic import BaseModel, Field, model_validator

from aegis.geo.point import GeoPoint


class VerificationStatus(str, Enum):
    """Moderation state of a report."""

    PENDING = "pending"
    VERIFIED = "verified"
    REJECTED = "rejected"


class _Located(BaseModel):
    """Accepts a location as WKT or as lat/lng."""

    location: str | None = None
    lat: float | None = None
    lng: float | None = None

    def location_wkt(self) -> str | None:
        """WKT point from ``location`` or ``lat``/``lng``; None if neither given."""
        if self.location:
            return GeoPoint.from_wkt(self.location).to_wkt()
        if self.lat is not None and self.lng is not None:
            return GeoPoint(lat=self.lat, lng=self.lng).to_wkt()
        return None


class _Patch(BaseModel):
    """Partial update body. Fields in NOT_NULL may be omitted but not set to null."""

    NOT_NULL: ClassVar[frozenset[str]] = frozenset()

    @model_validator(mode="after")
    def _reject_nulls(self) -> "_Patch":
        nulled = sorted(
            name for name in self.NOT_NULL & self.model_fields_set if getattr(self, name) is None
        )
        if nulled:
            raise ValueError(f"{', '.join(nulled)} cannot be null")
        return self


class IncidentCreate(_Located):
    model_config = {"extra": "forbid"}

    title: str = Field(min_length=1)
    location_name: str | None = None
    description: str | None = None
    tags: list[str] = Field(default_factory=list)


class IncidentUpdate(_Patch, _Located):
    model_config = {"extra": "forbid"}
    NOT_NULL: ClassVar[frozenset[str]] = frozenset({"title", "tags"})

    title: str | None = Field(default=None, min_length=1)
    location_name: str | None = None
    description: str | None = None
    tags: list[str] | None = None

    def patch(self) -> dict[str, Any]:
        """Fields to write, with lat/lng folded into location."""
        patch = self.model_dump(exclude_unset=True, exclude={"location", "lat", "lng"})
        wkt = self.location_wkt()
        if wkt is not None:
            patch["location"] = wkt
        return patch


class ReportCreate(BaseModel):
    model_config = {"extra": "forbid"}

    incident_id: str = Field(min_length=1)
    content: str = Field(min_length=1)
    image_url: str | None = None
    user_id: str | None = None
    verification_status: VerificationStatus = VerificationStatus.PENDING


class ReportUpdate(_Patch):
    model_config = {"extra": "ignore"}
    NOT_NULL: ClassVar[frozenset[str]] = frozenset({"content", "verification_status"})

    content: str | None = Field(default=None, min_length=1)
    image_url: str | None = None
    verification_status: VerificationStatus | None = None

    def patch(self) -> dict[str, Any]:
        return self.model_dump(exclude_unset=True, mode="json")


class ReportVerify(BaseModel):
    verification_status: VerificationStatus


class ResourceCreate(BaseModel):
    model_config = {"extra": "forbid"}

    incident_id: str = Field(min_length=1)
    name: str = Field(min_length=1)
    type: str = Field(min_length=1)
    lat: float
    lng: float
    capacity: int | None = None
    contact_info: str | None = None
    description: str | None = None
    available: bool = True

    def row(self) -> dict[str, Any]:
        """Record store row; the point is validated and stored as WKT too."""
        point = GeoPoint(lat=self.lat, lng=self.lng)
        row = self.model_dump()
        row["location"] = point.to_wkt()
        return row


class ResourceUpdate(_Patch):
    model_config = {"extra": "forbid"}
    NOT_NULL: ClassVar[frozenset[str]] = frozenset({"name", "type", "lat", "lng", "available"})

    name: str | None = Field(default=None, min_length=1)
    type: str | None = Field(default=None, min_length=1)
    lat: float | None = None
    lng: float | None = None
    capacity: int | None = None
    contact_info: str | None = None
    description: str | None = None
    available: bool | None = None

    @model_validator(mode="after")
    def _both_coordinates(self) -> "ResourceUpdate":
        if (self.lat is None) != (self.lng is None):
            raise ValueError("lat and lng must be updated together")
        return self

    def patch(self) -> dict[str, Any]:
        patch = self.model_dump(exclude_unset=True)
        if self.lat is not None and self.lng is not None:
            patch["location"] = GeoPoint(lat=self.lat, lng=self.lng).to_wkt()
        return patch


class GeocodeRequest(BaseModel):
    description: str = Field(min_length=1)


class VerifyImageRequest(BaseModel):
    image_url: str = Field(min_length=1)
