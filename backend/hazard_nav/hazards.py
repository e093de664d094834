from __future__ import annotations

from collections.abc import Iterable, Sequence

from .geo import haversine_m
from .models import HazardZone, LatLng
from .road_network import RoadNode
from .spatial_index import SpatialIndex

CRITICAL_LEVEL = 4.0
HIGH_LEVEL = 3.0
MEDIUM_LEVEL = 2.0
WARNING_RADIUS_FACTOR = 1.5


def select_zones(zones: Iterable[HazardZone], hazard_types: Sequence[str] | None = None) -> list[HazardZone]:
    """Zones matching ``hazard_types`` (case-insensitive); all zones when no types are given."""
    wanted = {t.strip().lower() for t in hazard_types or () if t.strip()}
    if not wanted:
        return list(zones)
    return [z for z in zones if z.hazard_type.strip().lower() in wanted]


def hazard_overlay(zones: Iterable[HazardZone], index: SpatialIndex) -> dict[str, float]:
    """Per-request hazard levels keyed by node id; the shared network is left untouched."""
    overlay: dict[str, float] = {}
    for zone in zones:
        for node in index.nodes_within_radius(zone.center, zone.radius_m):
            overlay[node.id] = max(overlay.get(node.id, 0.0), float(zone.level))
    return overlay


def effective_hazard(node: RoadNode, overlay: dict[str, float] | None) -> float:
    if not overlay:
        return node.hazard_level
    return max(node.hazard_level, overlay.get(node.id, 0.0))


def route_warnings(path: Sequence[LatLng], zones: Sequence[HazardZone], *, prefer_safety: bool) -> list[str]:
    warnings: list[str] = []
    passed: set[int] = set()
    for point in path:
        for idx, zone in enumerate(zones):
            if idx in passed:
                continue
            distance = haversine_m(point.lat, point.lng, zone.center.lat, zone.center.lng)
            if distance >= zone.radius_m * WARNING_RADIUS_FACTOR:
                continue
            passed.add(idx)
            if zone.level >= CRITICAL_LEVEL:
                warnings.append(
                    f"Route passes through a critical-risk area ({zone.hazard_type}); proceed with extreme caution."
                )
            elif zone.level >= HIGH_LEVEL:
                warnings.append(f"Route passes through a high-risk area ({zone.hazard_type}); consider a detour.")
            elif zone.level >= MEDIUM_LEVEL and prefer_safety:
                warnings.append(f"Route passes near a moderate-risk area ({zone.hazard_type}).")

    if not warnings:
        warnings.append("Route is relatively safe; stay alert to local conditions.")
    else:
        warnings.append("Keep your phone reachable for the latest alerts.")
    return warnings
