"""
Geospatial helpers.

Distances are reported in miles because the listing UI shows "x.y mi away".
We keep this dependency-free so the ranking engine stays a pure function.
"""

from __future__ import annotations

from dataclasses import dataclass
from math import atan2, cos, radians, sin, sqrt

EARTH_RADIUS_MILES = 3959


@dataclass(frozen=True)
class GeoPoint:
    """A latitude/longitude pair in decimal degrees."""

    lat: float
    lng: float


def haversine_miles(a: GeoPoint, b: GeoPoint) -> float:
    """Compute great-circle distance in miles between two points.

    Inputs are not validated: out-of-range or NaN coordinates are a caller error.
    """
    lat1 = radians(a.lat)
    lat2 = radians(b.lat)
    dlat = radians(b.lat - a.lat)
    dlng = radians(b.lng - a.lng)

    h = sin(dlat / 2) ** 2 + cos(lat1) * cos(lat2) * sin(dlng / 2) ** 2
    return EARTH_RADIUS_MILES * 2 * atan2(sqrt(h), sqrt(1 - h))
