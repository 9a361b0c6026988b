import math

import pytest

from bathroomfinder.core.geo import GeoPoint, haversine_miles

NEW_YORK = GeoPoint(lat=40.7128, lng=-74.0060)
LOS_ANGELES = GeoPoint(lat=34.0522, lng=-118.2437)


def _reference_miles(lat1, lon1, lat2, lon2):
    r = 3959
    d_lat = (lat2 - lat1) * math.pi / 180
    d_lon = (lon2 - lon1) * math.pi / 180
    a = math.sin(d_lat / 2) * math.sin(d_lat / 2) + math.cos(lat1 * math.pi / 180) * math.cos(
        lat2 * math.pi / 180
    ) * math.sin(d_lon / 2) * math.sin(d_lon / 2)
    return r * 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))


def test_distance_to_self_is_zero():
    assert haversine_miles(NEW_YORK, NEW_YORK) == 0
    assert haversine_miles(LOS_ANGELES, LOS_ANGELES) == 0


def test_distance_is_symmetric():
    assert haversine_miles(NEW_YORK, LOS_ANGELES) == pytest.approx(haversine_miles(LOS_ANGELES, NEW_YORK), rel=1e-12)


def test_new_york_to_los_angeles_is_about_2445_miles():
    assert abs(haversine_miles(NEW_YORK, LOS_ANGELES) - 2445) <= 5


@pytest.mark.parametrize(
    "a,b",
    [
        (GeoPoint(40.7536, -73.9832), GeoPoint(40.7527, -73.9772)),
        (GeoPoint(-33.8688, 151.2093), GeoPoint(51.5074, -0.1278)),
        (GeoPoint(0.0, 179.9), GeoPoint(0.0, -179.9)),
    ],
)
def test_matches_reference_formula(a, b):
    expected = _reference_miles(a.lat, a.lng, b.lat, b.lng)
    assert haversine_miles(a, b) == pytest.approx(expected, rel=1e-9)
