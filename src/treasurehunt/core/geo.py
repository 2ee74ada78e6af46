from __future__ import annotations

import math
import random
from dataclasses import dataclass
from math import asin, atan2, cos, degrees, pi, radians, sin, sqrt

from treasurehunt.core.errors import InvalidCoordinate, InvalidRadius

"""
Geospatial helpers.

Two pure operations live here:
- `haversine_m`: great-circle distance on a spherical Earth.
- `sample_point_in_disc`: a target point drawn uniformly by area inside a disc.

We keep this layer dependency-free so the game, API and CLI can share it without
pulling in heavier GIS packages.
"""

EARTH_RADIUS_M = 6_371_000
# Fixed approximation: one degree of latitude ~ 111.3 km.
METERS_PER_DEGREE = 111_300
# Above this radius-to-pole-distance ratio the flat offset distorts; sample on the sphere instead.
PLANAR_POLE_RATIO = 1e-3


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lon: float

    def __post_init__(self) -> None:
        lat, lon = validate_coordinate(self.lat, self.lon)
        object.__setattr__(self, "lat", lat)
        object.__setattr__(self, "lon", lon)


def validate_coordinate(lat: float, lon: float) -> tuple[float, float]:
    """Return (lat, lon) as floats; raise `InvalidCoordinate` unless they form a finite in-range pair."""
    try:
        lat_f = float(lat)
        lon_f = float(lon)
    except (TypeError, ValueError) as exc:
        raise InvalidCoordinate(f"coordinate must be numeric, got ({lat!r}, {lon!r})") from exc
    if not (math.isfinite(lat_f) and math.isfinite(lon_f)):
        raise InvalidCoordinate(f"coordinate must be finite, got ({lat_f}, {lon_f})")
    if not -90.0 <= lat_f <= 90.0:
        raise InvalidCoordinate(f"latitude {lat_f} outside [-90, 90]")
    if not -180.0 <= lon_f <= 180.0:
        raise InvalidCoordinate(f"longitude {lon_f} outside [-180, 180]")
    return lat_f, lon_f


def haversine_m(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in meters between two points.

    The intermediate haversine term is clamped into [0, 1] so floating-point
    drift near coincident or antipodal points never reaches `sqrt` as a
    negative number.
    """
    phi1 = radians(a.lat)
    phi2 = radians(b.lat)
    dphi = radians(b.lat - a.lat)
    dlambda = radians(b.lon - a.lon)

    h = sin(dphi / 2) ** 2 + cos(phi1) * cos(phi2) * sin(dlambda / 2) ** 2
    h = min(1.0, max(0.0, h))
    c = 2 * atan2(sqrt(h), sqrt(1 - h))
    return EARTH_RADIUS_M * c


def _normalize(lat: float, lon: float) -> tuple[float, float]:
    # Continue over the pole instead of producing |lat| > 90.
    if lat > 90.0:
        lat = 180.0 - lat
        lon += 180.0
    elif lat < -90.0:
        lat = -180.0 - lat
        lon += 180.0
    if not -180.0 <= lon <= 180.0:
        lon = (lon + 180.0) % 360.0 - 180.0
    return lat, lon


def sample_point_in_disc(
    center: GeoPoint,
    radius_m: float,
    *,
    rng: random.Random | None = None,
) -> GeoPoint:
    """Return a point uniformly distributed (by area) within `radius_m` of `center`.

    Notes:
    - The radial draw is `sqrt(u)` scaled, so points do not cluster at the center.
    - Longitude offsets are divided by `cos(center.lat)` to compensate for
      meridian convergence away from the equator.
    - Discs that come close to a pole are sampled on the sphere (`_destination`),
      where the flat offset would stretch longitude without bound.
    - `rng` defaults to the module-level `random` source; pass a seeded
      `random.Random` for reproducible draws.
    """
    try:
        radius = float(radius_m)
    except (TypeError, ValueError) as exc:
        raise InvalidRadius(f"radius must be numeric, got {radius_m!r}") from exc
    if not math.isfinite(radius) or radius <= 0:
        raise InvalidRadius(f"radius must be a positive finite number of meters, got {radius}")

    source = rng if rng is not None else random
    radius_deg = radius / METERS_PER_DEGREE

    u = source.random()
    v = source.random()
    w = radius_deg * sqrt(u)
    t = 2 * pi * v

    if radius_deg > PLANAR_POLE_RATIO * (90.0 - abs(center.lat)):
        return _destination(center, w, t)

    x = w * cos(t)
    y = w * sin(t)
    lat, lon = _normalize(center.lat + y, center.lon + x / cos(radians(center.lat)))
    return GeoPoint(lat=lat, lon=lon)


def _destination(center: GeoPoint, arc_deg: float, angle: float) -> GeoPoint:
    """Point `arc_deg` of great-circle arc from `center`; `angle` is counterclockwise from east."""
    phi1 = radians(center.lat)
    delta = radians(arc_deg)
    if cos(phi1) < 1e-12:
        # At a pole every direction points at the equator; the angle picks the meridian.
        lat = 90.0 - arc_deg if center.lat > 0 else -90.0 + arc_deg
        return GeoPoint(*_normalize(lat, center.lon + degrees(angle)))

    bearing = pi / 2 - angle
    sin_phi2 = sin(phi1) * cos(delta) + cos(phi1) * sin(delta) * cos(bearing)
    phi2 = asin(min(1.0, max(-1.0, sin_phi2)))
    dlon = atan2(sin(bearing) * sin(delta) * cos(phi1), cos(delta) - sin(phi1) * sin_phi2)
    return GeoPoint(*_normalize(degrees(phi2), center.lon + degrees(dlon)))
