from __future__ import annotations

import math

EARTH_RADIUS_M = 6_371_000.0
METERS_PER_DEG_LAT = (math.pi / 180.0) * EARTH_RADIUS_M


def haversine_m(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dphi = phi2 - phi1
    dlambda = math.radians(lng2 - lng1)
    a = (
        math.sin(dphi / 2.0) ** 2
        + (math.cos(phi1) * math.cos(phi2) * (math.sin(dlambda / 2.0) ** 2))
    )
    return 2.0 * EARTH_RADIUS_M * math.asin(min(1.0, math.sqrt(max(0.0, a))))


def bearing_deg(lat1: float, lng1: float, lat2: float, lng2: float) -> float:
    """Initial great-circle bearing, clockwise from north in [0, 360)."""
    phi1 = math.radians(lat1)
    phi2 = math.radians(lat2)
    dlambda = math.radians(lng2 - lng1)
    y = math.sin(dlambda) * math.cos(phi2)
    x = math.cos(phi1) * math.sin(phi2) - math.sin(phi1) * math.cos(phi2) * math.cos(dlambda)
    if abs(x) <= 1e-15 and abs(y) <= 1e-15:
        return 0.0
    return (math.degrees(math.atan2(y, x)) + 360.0) % 360.0


def turn_angle_deg(incoming_bearing: float, outgoing_bearing: float) -> float:
    """Signed turn in (-180, 180]; positive turns right."""
    delta = (float(outgoing_bearing) - float(incoming_bearing)) % 360.0
    if delta > 180.0:
        delta -= 360.0
    return delta


def meters_per_deg_lng(lat: float) -> float:
    return METERS_PER_DEG_LAT * max(1e-9, math.cos(math.radians(lat)))


def compass_heading(bearing: float) -> str:
    names = ("north", "northeast", "east", "southeast", "south", "southwest", "west", "northwest")
    normalized = (float(bearing) + 360.0) % 360.0
    return names[int(((normalized + 22.5) % 360.0) // 45.0)]
