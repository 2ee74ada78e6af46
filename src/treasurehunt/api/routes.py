"""
API routes.

Endpoints:
- POST `/api/distance`: great-circle distance between two coordinates.
- POST `/api/targets`: sample a hidden target around the player.
- POST `/api/proximity`: distance + heat indicator + found flag for one fix.
- POST `/api/launch/verify`: validate signed launch data, return the identity.
- POST `/api/finds`: verify launch data and record a find (idempotent per target).
- GET  `/api/scores/{username}`: current score (0 when unknown).
- GET  `/api/settings`: public game settings (launch secret never included).
"""

from __future__ import annotations

import logging
from functools import lru_cache

from fastapi import APIRouter, HTTPException

from treasurehunt.config.settings import Settings, get_settings
from treasurehunt.core.env import resolve_project_path
from treasurehunt.core.errors import (
    ExpiredPayload,
    GeoError,
    IdentityMismatch,
    MissingSecret,
    SignatureMismatch,
    TreasureHuntError,
)
from treasurehunt.core.geo import haversine_m, sample_point_in_disc
from treasurehunt.domain.models import (
    Coordinate,
    DistanceRequest,
    DistanceResponse,
    FindRequest,
    FindResponse,
    IdentityResponse,
    LaunchVerifyRequest,
    ProximityRequest,
    ProximityResponse,
    ScoreResponse,
    TargetRequest,
    TargetResponse,
)
from treasurehunt.game.finds import ScoreKeeper
from treasurehunt.game.hunt import scheduled_radius_m
from treasurehunt.game.proximity import read_proximity
from treasurehunt.launch.verifier import verify
from treasurehunt.store.scores import InMemoryScoreStore, JsonFileScoreStore, ScoreStore

logger = logging.getLogger(__name__)

router = APIRouter()


def build_store(settings: Settings) -> ScoreStore:
    if settings.store.backend == "json":
        return JsonFileScoreStore(resolve_project_path(settings.store.path))
    return InMemoryScoreStore()


@lru_cache
def _score_keeper() -> ScoreKeeper:
    return ScoreKeeper(build_store(get_settings()))


def _launch_secret(settings: Settings) -> str | None:
    secret = settings.launch.secret
    return secret.get_secret_value() if secret is not None else None


def _status_for(exc: TreasureHuntError) -> int:
    if isinstance(exc, MissingSecret):
        return 503
    if isinstance(exc, (SignatureMismatch, ExpiredPayload)):
        return 401
    if isinstance(exc, IdentityMismatch):
        return 403
    return 400


def _http_error(exc: TreasureHuntError) -> HTTPException:
    return HTTPException(status_code=_status_for(exc), detail=exc.as_detail())


@router.post("/api/distance", response_model=DistanceResponse)
def post_distance(req: DistanceRequest) -> DistanceResponse:
    """Return the haversine distance between `a` and `b` in meters."""
    try:
        return DistanceResponse(distance_m=haversine_m(req.a.to_point(), req.b.to_point()))
    except GeoError as e:
        raise _http_error(e) from e


@router.post("/api/targets", response_model=TargetResponse)
def post_targets(req: TargetRequest) -> TargetResponse:
    """Sample a target uniformly inside the requested (or scheduled) radius."""
    settings = get_settings()
    if req.radius_m is not None:
        radius = req.radius_m
    elif req.day is not None:
        radius = scheduled_radius_m(settings.hunt, req.day)
    else:
        radius = settings.hunt.default_radius_m

    try:
        target = sample_point_in_disc(req.center.to_point(), radius)
    except GeoError as e:
        raise _http_error(e) from e
    return TargetResponse(target=Coordinate.from_point(target), radius_m=radius)


@router.post("/api/proximity", response_model=ProximityResponse)
def post_proximity(req: ProximityRequest) -> ProximityResponse:
    settings = get_settings()
    try:
        reading = read_proximity(
            req.position.to_point(),
            req.target.to_point(),
            threshold_m=settings.hunt.find_threshold_m,
            max_distance_m=req.max_distance_m or settings.hunt.heat_max_distance_m,
        )
    except GeoError as e:
        raise _http_error(e) from e
    return ProximityResponse(**reading.as_dict())


@router.post("/api/launch/verify", response_model=IdentityResponse)
def post_launch_verify(req: LaunchVerifyRequest) -> IdentityResponse:
    """Validate signed launch data and return the identity it carries."""
    settings = get_settings()
    try:
        identity = verify(
            req.init_data,
            _launch_secret(settings),
            asserted_username=req.asserted_username,
            max_age_seconds=settings.launch.max_age_seconds,
        )
    except TreasureHuntError as e:
        logger.warning("Launch verification failed: %s", e.code)
        raise _http_error(e) from e
    return IdentityResponse.from_identity(identity)


@router.post("/api/finds", response_model=FindResponse)
def post_finds(req: FindRequest) -> FindResponse:
    """Record a find for the verified player; repeats for the same target are no-ops."""
    settings = get_settings()
    try:
        outcome = _score_keeper().verify_and_record(
            req.init_data,
            _launch_secret(settings),
            req.target_id,
            asserted_username=req.asserted_username,
            max_age_seconds=settings.launch.max_age_seconds,
        )
    except TreasureHuntError as e:
        raise _http_error(e) from e
    return FindResponse(
        recorded=outcome.recorded,
        username=outcome.username,
        score=outcome.score,
        target_id=outcome.event.target_id,
        recorded_at=outcome.event.recorded_at,
    )


@router.get("/api/scores/{username}", response_model=ScoreResponse)
def get_score(username: str) -> ScoreResponse:
    return ScoreResponse(username=username, score=_score_keeper().store.fetch_score(username))


@router.get("/api/settings")
def get_public_settings() -> dict:
    """Return safe-to-expose settings for client defaults (launch secret removed)."""
    settings = get_settings()
    return {
        "app": {"name": settings.app.name},
        "hunt": settings.hunt.model_dump(mode="json"),
        "launch": {
            "secret_configured": settings.launch.secret is not None,
            "max_age_seconds": settings.launch.max_age_seconds,
        },
    }
