"""
Domain models (Pydantic).

These types are the JSON contract of the API and CLI:
- request bodies (`DistanceRequest`, `TargetRequest`, `ProximityRequest`, ...)
- response payloads (`TargetResponse`, `ProximityResponse`, `IdentityResponse`, ...)

The core (`treasurehunt.core.geo`, `treasurehunt.launch.verifier`) works on plain
dataclasses; conversion happens at this boundary so range validation rejects bad
input before any math runs.
"""

from __future__ import annotations

from datetime import date, datetime

from pydantic import BaseModel, Field

from treasurehunt.core.geo import GeoPoint
from treasurehunt.launch.verifier import VerifiedIdentity


class Coordinate(BaseModel):
    """A geographic point in decimal degrees."""

    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    def to_point(self) -> GeoPoint:
        return GeoPoint(lat=self.lat, lon=self.lng)

    @classmethod
    def from_point(cls, point: GeoPoint) -> "Coordinate":
        return cls(lat=point.lat, lng=point.lon)


class DistanceRequest(BaseModel):
    a: Coordinate
    b: Coordinate


class DistanceResponse(BaseModel):
    distance_m: float = Field(..., ge=0)


class TargetRequest(BaseModel):
    """Ask for a target around `center`; radius comes from the schedule when omitted."""

    center: Coordinate
    radius_m: float | None = Field(default=None, gt=0)
    day: date | None = None


class TargetResponse(BaseModel):
    target: Coordinate
    radius_m: float = Field(..., gt=0)


class ProximityRequest(BaseModel):
    position: Coordinate
    target: Coordinate
    max_distance_m: float | None = Field(default=None, gt=0)


class ProximityResponse(BaseModel):
    distance_m: float = Field(..., ge=0)
    progress: float = Field(..., ge=0, le=1)
    heat_hue: float = Field(..., ge=0, le=120)
    found: bool


class LaunchVerifyRequest(BaseModel):
    init_data: str = Field(..., min_length=1)
    asserted_username: str | None = None


class IdentityResponse(BaseModel):
    user_id: int
    username: str | None = None
    first_name: str | None = None
    last_name: str | None = None
    validated_at: datetime
    auth_date: datetime | None = None

    @classmethod
    def from_identity(cls, identity: VerifiedIdentity) -> "IdentityResponse":
        return cls(
            user_id=identity.user_id,
            username=identity.username,
            first_name=identity.first_name,
            last_name=identity.last_name,
            validated_at=identity.validated_at,
            auth_date=identity.auth_date,
        )


class FindRequest(LaunchVerifyRequest):
    target_id: str = Field(..., min_length=1, max_length=128)


class FindResponse(BaseModel):
    recorded: bool
    username: str
    score: int = Field(..., ge=0)
    target_id: str
    recorded_at: datetime


class ScoreResponse(BaseModel):
    username: str
    score: int = Field(..., ge=0)
