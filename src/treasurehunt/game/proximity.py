"""
Proximity indicator math.

Turns a live distance into the numbers a client needs to draw the "heat"
indicator: a 0..1 progress value (1 = on top of the treasure) and an HSL hue
(120 = green on the treasure, 0 = red at or beyond the scale). No rendering happens here.
"""

from __future__ import annotations

from dataclasses import dataclass

from treasurehunt.core.geo import GeoPoint, haversine_m

DEFAULT_FIND_THRESHOLD_M = 5.0
DEFAULT_HEAT_MAX_DISTANCE_M = 100.0
NEAR_HUE = 120.0


def clamp01(x: float) -> float:
    """Clamp a number into the [0.0, 1.0] range."""
    return max(0.0, min(1.0, float(x)))


def _check_max_distance(max_distance_m: float) -> float:
    value = float(max_distance_m)
    if value <= 0:
        raise ValueError("max_distance_m must be > 0")
    return value


def is_found(distance_m: float, threshold_m: float = DEFAULT_FIND_THRESHOLD_M) -> bool:
    """A find registers when the player is strictly inside the threshold."""
    return float(distance_m) < float(threshold_m)


def proximity_progress(distance_m: float, max_distance_m: float = DEFAULT_HEAT_MAX_DISTANCE_M) -> float:
    max_d = _check_max_distance(max_distance_m)
    return clamp01(1.0 - min(max(float(distance_m), 0.0), max_d) / max_d)


def heat_hue(distance_m: float, max_distance_m: float = DEFAULT_HEAT_MAX_DISTANCE_M) -> float:
    """Map distance to an HSL hue: 120 at the target, 0 at or beyond `max_distance_m`."""
    max_d = _check_max_distance(max_distance_m)
    percentage = min(max(float(distance_m), 0.0) / max_d * 100.0, 100.0)
    return max(0.0, NEAR_HUE - percentage * 1.2)


@dataclass(frozen=True)
class ProximityReading:
    """One evaluation of a player position against a target."""

    distance_m: float
    progress: float
    heat_hue: float
    found: bool

    def as_dict(self) -> dict[str, float | bool]:
        return {
            "distance_m": self.distance_m,
            "progress": self.progress,
            "heat_hue": self.heat_hue,
            "found": self.found,
        }


def read_proximity(
    position: GeoPoint,
    target: GeoPoint,
    *,
    threshold_m: float = DEFAULT_FIND_THRESHOLD_M,
    max_distance_m: float = DEFAULT_HEAT_MAX_DISTANCE_M,
) -> ProximityReading:
    distance = haversine_m(position, target)
    return ProximityReading(
        distance_m=distance,
        progress=proximity_progress(distance, max_distance_m),
        heat_hue=heat_hue(distance, max_distance_m),
        found=is_found(distance, threshold_m),
    )
