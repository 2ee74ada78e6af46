import itertools

import pytest

from treasurehunt.core.errors import GeoError, InvalidCoordinate
from treasurehunt.core.geo import GeoPoint, haversine_m

POINTS = [
    GeoPoint(lat=0.0, lon=0.0),
    GeoPoint(lat=51.5007, lon=0.1246),
    GeoPoint(lat=40.6892, lon=-74.0445),
    GeoPoint(lat=-33.8568, lon=151.2153),
    GeoPoint(lat=89.9, lon=45.0),
    GeoPoint(lat=-45.0, lon=-179.9),
    GeoPoint(lat=35.6586, lon=139.7454),
]


def test_distance_one_degree_of_longitude_at_equator():
    d = haversine_m(GeoPoint(lat=0, lon=0), GeoPoint(lat=0, lon=1))
    assert d == pytest.approx(111_195, abs=50)


def test_distance_london_to_new_york_landmarks():
    d = haversine_m(GeoPoint(lat=51.5007, lon=0.1246), GeoPoint(lat=40.6892, lon=-74.0445))
    assert d == pytest.approx(5_570_000, rel=0.01)


@pytest.mark.parametrize("p", POINTS)
def test_distance_to_self_is_exactly_zero(p):
    assert haversine_m(p, p) == 0.0


@pytest.mark.parametrize("a,b", list(itertools.combinations(POINTS, 2)))
def test_distance_is_symmetric(a, b):
    assert haversine_m(a, b) == pytest.approx(haversine_m(b, a), abs=1e-6)


def test_distance_satisfies_triangle_inequality():
    for a, b, c in itertools.permutations(POINTS, 3):
        assert haversine_m(a, c) <= haversine_m(a, b) + haversine_m(b, c) + 1e-6


def test_antipodal_points_do_not_produce_nan():
    d = haversine_m(GeoPoint(lat=0, lon=0), GeoPoint(lat=0, lon=180))
    # Half the circumference of a 6,371 km sphere.
    assert d == pytest.approx(20_015_086.8, rel=1e-6)


@pytest.mark.parametrize(
    "lat,lon",
    [(90.0001, 0), (-91, 0), (0, 180.5), (0, -181), (float("nan"), 0), (0, float("inf")), ("north", 0)],
)
def test_out_of_range_coordinates_are_rejected(lat, lon):
    with pytest.raises(InvalidCoordinate):
        GeoPoint(lat=lat, lon=lon)


def test_invalid_coordinate_is_a_geo_error_with_code():
    with pytest.raises(GeoError) as excinfo:
        GeoPoint(lat=100, lon=0)
    assert excinfo.value.code == "INVALID_COORDINATE"
    assert excinfo.value.as_detail()["code"] == "INVALID_COORDINATE"


def test_boundary_coordinates_are_accepted():
    assert haversine_m(GeoPoint(lat=90, lon=180), GeoPoint(lat=-90, lon=-180)) > 0


def test_numeric_strings_are_stored_as_floats():
    p = GeoPoint(lat="45", lon=0)
    assert p.lat == 45.0
    assert isinstance(p.lat, float)
    assert isinstance(p.lon, float)
    assert haversine_m(p, GeoPoint(lat=45.0, lon=0.0)) == 0.0
