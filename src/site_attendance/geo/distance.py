"""Great-circle distance between two geographic points (haversine)."""

from __future__ import annotations

import math

from ..core.constants import EARTH_RADIUS_KM
from .model import Position


def deg_to_rad(deg: float) -> float:
    return deg * (math.pi / 180)


def haversine_meters(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Distance in meters between (lat1, lng1) and (lat2, lng2), in degrees."""
    d_lat = deg_to_rad(lat2 - lat1)
    d_lng = deg_to_rad(lng2 - lng1)
    a = (
        math.sin(d_lat / 2) ** 2
        + math.cos(deg_to_rad(lat1)) * math.cos(deg_to_rad(lat2)) * math.sin(d_lng / 2) ** 2
    )
    # Rounding can push `a` a hair past 1 for antipodal points.
    a = min(max(a, 0.0), 1.0)
    c = 2 * math.atan2(math.sqrt(a), math.sqrt(1 - a))
    return EARTH_RADIUS_KM * c * 1000


def distance_between(a: Position, b: Position) -> float:
    return haversine_meters(a.lat, a.lng, b.lat, b.lng)
