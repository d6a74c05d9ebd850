"""Geographic utility functions for CrisisFusion.

Pure geographic computations. No I/O, no external calls.
"""

from __future__ import annotations

import math
from numbers import Real
from typing import Any, Tuple

from config.defaults import EARTH_RADIUS_KM


def is_valid_coordinates(latitude: Any, longitude: Any) -> bool:
    """Strict range check for a latitude/longitude pair.

    Booleans, NaN, infinities, and non-numeric values are rejected.

    Args:
        latitude: Candidate latitude in decimal degrees.
        longitude: Candidate longitude in decimal degrees.

    Returns:
        True iff latitude is in [-90, 90] and longitude is in [-180, 180].
    """
    for value in (latitude, longitude):
        if isinstance(value, bool) or not isinstance(value, Real):
            return False
        if not math.isfinite(value):
            return False
    return -90.0 <= latitude <= 90.0 and -180.0 <= longitude <= 180.0


def haversine_km(lat1: float, lon1: float, lat2: float, lon2: float) -> float:
    """Calculate the great-circle distance between two points using the Haversine formula.

    Callers must validate coordinates first; this function assumes valid input.

    Args:
        lat1: Latitude of first point in decimal degrees.
        lon1: Longitude of first point in decimal degrees.
        lat2: Latitude of second point in decimal degrees.
        lon2: Longitude of second point in decimal degrees.

    Returns:
        Distance in kilometres.
    """
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    d_phi = math.radians(lat2 - lat1)
    d_lambda = math.radians(lon2 - lon1)

    a = (
        math.sin(d_phi / 2) ** 2
        + math.cos(phi1) * math.cos(phi2) * math.sin(d_lambda / 2) ** 2
    )
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c


def round_coordinates(latitude: float, longitude: float, precision: int) -> Tuple[float, float]:
    """Round a coordinate pair, e.g. for building stable cache keys."""
    return round(latitude, precision), round(longitude, precision)


def to_wkt_point(latitude: float, longitude: float) -> str:
    """Format coordinates as a WKT ``POINT(lon lat)`` string."""
    return f"POINT({longitude} {latitude})"
