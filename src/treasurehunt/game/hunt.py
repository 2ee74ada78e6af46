"""
Hunt session state for one player.

A `HuntSession` is owned by whoever drives the position stream (a client
adapter, a test, the CLI). It samples a target around the first fix it sees,
then evaluates every later fix against that target. Once found, the session
stays found until `reset()`.

The geo and proximity functions it calls are stateless, so a session can be
fed again after any upstream position error without cleanup.
"""

from __future__ import annotations

import logging
import random
import uuid
from datetime import date

from treasurehunt.config.settings import HuntSettings
from treasurehunt.core.geo import GeoPoint, sample_point_in_disc
from treasurehunt.game.proximity import ProximityReading, read_proximity

logger = logging.getLogger(__name__)


def hunt_radius_m(
    today: date,
    *,
    launch_date: date,
    base_radius_m: float,
    radius_step_m: float,
    max_radius_m: float | None = None,
) -> float:
    """Search radius for `today`: grows by `radius_step_m` per day since launch."""
    days = abs((today - launch_date).days)
    radius = float(base_radius_m) + float(radius_step_m) * days
    if max_radius_m is not None:
        radius = min(radius, float(max_radius_m))
    return radius


def scheduled_radius_m(settings: HuntSettings, today: date) -> float:
    return hunt_radius_m(
        today,
        launch_date=settings.launch_date,
        base_radius_m=settings.base_radius_m,
        radius_step_m=settings.radius_step_m,
        max_radius_m=settings.max_radius_m,
    )


class HuntSession:
    def __init__(
        self,
        *,
        radius_m: float,
        threshold_m: float,
        max_distance_m: float,
        rng: random.Random | None = None,
    ):
        self._radius_m = float(radius_m)
        self._threshold_m = float(threshold_m)
        self._max_distance_m = float(max_distance_m)
        self._rng = rng
        self._target: GeoPoint | None = None
        self._target_id: str | None = None
        self._found = False
        self._last_reading: ProximityReading | None = None

    @classmethod
    def from_settings(
        cls,
        settings: HuntSettings,
        *,
        today: date | None = None,
        rng: random.Random | None = None,
    ) -> "HuntSession":
        radius = scheduled_radius_m(settings, today) if today is not None else settings.default_radius_m
        return cls(
            radius_m=radius,
            threshold_m=settings.find_threshold_m,
            max_distance_m=settings.heat_max_distance_m,
            rng=rng,
        )

    @property
    def radius_m(self) -> float:
        return self._radius_m

    @property
    def target(self) -> GeoPoint | None:
        return self._target

    @property
    def target_id(self) -> str | None:
        return self._target_id

    @property
    def found(self) -> bool:
        return self._found

    @property
    def last_reading(self) -> ProximityReading | None:
        return self._last_reading

    def update(self, position: GeoPoint) -> ProximityReading:
        """Feed one position fix; samples the target on the first call."""
        if self._target is None:
            self._target = sample_point_in_disc(position, self._radius_m, rng=self._rng)
            self._target_id = uuid.uuid4().hex
            logger.debug("Sampled target %s within %.1f m", self._target_id, self._radius_m)

        reading = read_proximity(
            position,
            self._target,
            threshold_m=self._threshold_m,
            max_distance_m=self._max_distance_m,
        )
        if reading.found and not self._found:
            self._found = True
            logger.info("Target %s found at %.1f m", self._target_id, reading.distance_m)
        self._last_reading = reading
        return reading

    def reset(self) -> None:
        """Drop the current target; the next fix starts a new hunt."""
        self._target = None
        self._target_id = None
        self._found = False
        self._last_reading = None
