"""Great-circle geodesy on a spherical Earth, plus aviation unit conversions.

Spherical haversine is within 0.5 % of the ellipsoid everywhere and well
under 0.1 % at regional ranges, which is what route planning and nearest
airport lookups need. No rounding happens here; display formatting belongs
to the UI.
"""

from __future__ import annotations

import math

from efb.contracts.common import Coordinate
from efb.errors import InvalidInputError

METERS_PER_NM = 1852.0
METERS_PER_FOOT = 0.3048
METERS_PER_STATUTE_MILE = 1609.344
EARTH_RADIUS_M = 6_371_008.8  # IUGG mean radius
EARTH_RADIUS_NM = EARTH_RADIUS_M / METERS_PER_NM


# ------------------------------------------------------------------
# Unit conversions
# ------------------------------------------------------------------

def nm_to_meters(nm: float) -> float:
    return nm * METERS_PER_NM


def meters_to_nm(meters: float) -> float:
    return meters / METERS_PER_NM


def feet_to_meters(feet: float) -> float:
    return feet * METERS_PER_FOOT


def meters_to_feet(meters: float) -> float:
    return meters / METERS_PER_FOOT


def statute_miles_to_nm(sm: float) -> float:
    return sm * METERS_PER_STATUTE_MILE / METERS_PER_NM


# ------------------------------------------------------------------
# Distance and bearing
# ------------------------------------------------------------------

def haversine_nm(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Haversine distance in nautical miles between two lat/lon pairs."""
    _check_finite(lat1, lon1, lat2, lon2)
    la1, lo1 = math.radians(lat1), math.radians(lon1)
    la2, lo2 = math.radians(lat2), math.radians(lon2)
    dlat = la2 - la1
    dlon = lo2 - lo1
    a = math.sin(dlat / 2) ** 2 + math.cos(la1) * math.cos(la2) * math.sin(dlon / 2) ** 2
    # Clamp guards asin against a rounding overshoot for antipodal points
    return 2 * math.asin(math.sqrt(min(1.0, a))) * EARTH_RADIUS_NM


def initial_bearing_deg(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Initial great-circle bearing in degrees true, in [0, 360).

    Coincident points have no defined course; they return 0.0.
    """
    _check_finite(lat1, lon1, lat2, lon2)
    if lat1 == lat2 and lon1 == lon2:
        return 0.0
    la1, la2 = math.radians(lat1), math.radians(lat2)
    dlon = math.radians(lon2 - lon1)
    y = math.sin(dlon) * math.cos(la2)
    x = math.cos(la1) * math.sin(la2) - math.sin(la1) * math.cos(la2) * math.cos(dlon)
    bearing = math.degrees(math.atan2(y, x)) % 360.0
    # A tiny negative angle wraps to exactly 360.0 under float modulo
    return 0.0 if bearing >= 360.0 else bearing


def distance_nm(a: Coordinate, b: Coordinate) -> float:
    """Great-circle distance between two coordinates in nautical miles."""
    return haversine_nm(a.latitude, a.longitude, b.latitude, b.longitude)


def bearing_deg(origin: Coordinate, target: Coordinate) -> float:
    """Initial true bearing from *origin* to *target*, in [0, 360)."""
    return initial_bearing_deg(origin.latitude, origin.longitude, target.latitude, target.longitude)


def _check_finite(*values: float) -> None:
    for v in values:
        if not math.isfinite(v):
            raise InvalidInputError(f"Coordinate component must be finite, got {v!r}")
