from __future__ import annotations

from conftest import build_grid, grid_coord, grid_id
from hazard_nav.hazards import effective_hazard, hazard_overlay, route_warnings, select_zones
from hazard_nav.models import HazardZone, LatLng
from hazard_nav.spatial_index import LinearScanIndex


def _zone(row: int, col: int, *, radius_m: float, level: float, hazard_type: str = "flood") -> HazardZone:
    lat, lng = grid_coord(row, col)
    return HazardZone(center=LatLng(lat=lat, lng=lng), radius_m=radius_m, level=level, hazard_type=hazard_type)


def test_select_zones_filters_case_insensitively() -> None:
    zones = [
        _zone(0, 0, radius_m=50, level=3, hazard_type="Flood"),
        _zone(1, 1, radius_m=50, level=3, hazard_type="fire"),
    ]

    assert select_zones(zones, ["FLOOD"]) == [zones[0]]
    assert select_zones(zones, []) == zones
    assert select_zones(zones, [" "]) == zones
    assert select_zones(zones, ["landslide"]) == []


def test_legacy_zone_keys_are_accepted() -> None:
    zone = HazardZone.model_validate(
        {"center": {"lat": 25.0, "lon": 121.5}, "radius": 250, "type": "landslide", "riskLevel": 4}
    )
    assert zone.center.lng == 121.5
    assert zone.radius_m == 250.0
    assert zone.hazard_type == "landslide"
    assert zone.level == 4.0


def test_overlay_takes_max_level_and_leaves_network_untouched() -> None:
    network = build_grid(3, 3)
    network.set_hazard_level(grid_id(1, 1), 1.0)
    index = LinearScanIndex(network)
    zones = [_zone(1, 1, radius_m=30, level=4), _zone(1, 1, radius_m=120, level=2)]

    overlay = hazard_overlay(zones, index)

    assert overlay[grid_id(1, 1)] == 4.0
    assert overlay[grid_id(0, 1)] == 2.0
    assert overlay[grid_id(1, 0)] == 2.0
    assert grid_id(0, 0) not in overlay
    assert network.node(grid_id(1, 1)).hazard_level == 1.0
    assert network.node(grid_id(0, 1)).hazard_level == 0.0
    assert effective_hazard(network.node(grid_id(1, 1)), overlay) == 4.0
    assert effective_hazard(network.node(grid_id(1, 1)), None) == 1.0


def test_route_warnings_by_severity() -> None:
    path = [LatLng(lat=lat, lng=lng) for lat, lng in (grid_coord(1, 0), grid_coord(1, 1), grid_coord(1, 2))]
    critical = _zone(1, 1, radius_m=30, level=4.5, hazard_type="fire")
    high = _zone(1, 2, radius_m=30, level=3, hazard_type="flood")
    moderate = _zone(1, 0, radius_m=30, level=2, hazard_type="landslide")
    far = _zone(2, 2, radius_m=30, level=5, hazard_type="flood")

    warnings = route_warnings(path, [critical, high, moderate, far], prefer_safety=True)

    assert warnings == [
        "Route passes near a moderate-risk area (landslide).",
        "Route passes through a critical-risk area (fire); proceed with extreme caution.",
        "Route passes through a high-risk area (flood); consider a detour.",
        "Keep your phone reachable for the latest alerts.",
    ]


def test_route_warnings_clear_route() -> None:
    path = [LatLng(lat=25.0, lng=121.5)]
    moderate = _zone(0, 0, radius_m=30, level=2)

    assert route_warnings(path, [moderate], prefer_safety=False) == [
        "Route is relatively safe; stay alert to local conditions."
    ]
    assert route_warnings(path, [], prefer_safety=True) == [
        "Route is relatively safe; stay alert to local conditions."
    ]
