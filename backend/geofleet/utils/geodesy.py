from __future__ import annotations

import math

from geofleet.config import settings
from geofleet.schemas.geo import Coordinate


def calculate_distance(a: Coordinate, b: Coordinate) -> float:
    """Great-circle (Haversine) distance in meters. Altitude is ignored."""
    phi1 = math.radians(a.latitude)
    phi2 = math.radians(b.latitude)
    dphi = math.radians(b.latitude - a.latitude)
    dlmb = math.radians(b.longitude - a.longitude)

    h = math.sin(dphi / 2) ** 2 + math.cos(phi1) * math.cos(phi2) * math.sin(dlmb / 2) ** 2
    c = 2 * math.atan2(math.sqrt(h), math.sqrt(1 - h))
    return settings.earth_radius_m * c


def calculate_speed(current: Coordinate, previous: Coordinate, time_delta_s: float) -> float:
    """Average ground speed in m/s between two fixes; 0 for a non-positive time delta."""
    if time_delta_s <= 0:
        return 0.0
    return calculate_distance(previous, current) / time_delta_s
