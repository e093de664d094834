from __future__ import annotations

import numpy as np
import pytest

from hazard_nav.errors import RoutingError
from hazard_nav.geo import haversine_m
from hazard_nav.models import LatLng, RouteOptions
from hazard_nav.network_builder import (
    MajorRoad,
    Region,
    build_road_network,
    generate_region_grid,
    interpolate_points,
)
from hazard_nav.planner import RoutePlanner
from hazard_nav.road_network import RoadNetwork, RoadNode, node_id_for
from hazard_nav.spatial_index import LinearScanIndex, neighbors_within

SMALL_REGION = Region(name="Test District", north=25.002, south=25.000, east=121.502, west=121.500, density="high")
MEDIUM_REGION = Region(name="Test Suburb", north=25.004, south=25.000, east=121.504, west=121.500, density="medium")
LOW_REGION = Region(name="Test Outskirts", north=25.008, south=25.000, east=121.508, west=121.500, density="low")
ZHONGXIAO_START = LatLng(lat=25.0418, lng=121.5120)
ZHONGXIAO_END = LatLng(lat=25.0418, lng=121.5720)


def test_lattice_covers_bounds_inclusively() -> None:
    network = RoadNetwork()
    created = generate_region_grid(network, SMALL_REGION, np.random.default_rng(1))

    assert created == 25
    assert len(network) == 25
    assert node_id_for(25.0, 121.5) in network
    assert node_id_for(25.002, 121.502) in network
    for node in network:
        assert node.district == "Test District"
        assert 0.0 <= node.hazard_level < 2.0
        assert node.road_type in {"highway", "main", "secondary", "local", "alley"}


@pytest.mark.parametrize("region", [SMALL_REGION, MEDIUM_REGION, LOW_REGION], ids=lambda r: r.density)
def test_repair_pass_connects_nominal_lattice(region: Region) -> None:
    network = build_road_network([region], [], seed=3)
    stats = network.stats()
    radius = region.step_m * 1.1

    assert stats["total_nodes"] == 25
    # A spanning tree over 25 nodes needs 24 links.
    assert stats["total_segments"] >= 24
    assert stats["isolated_nodes"] < 25
    index = LinearScanIndex(network)
    for node in network:
        if node.connections:
            continue
        # Only nodes with no compatible neighbor may stay isolated.
        assert all(not network.can_connect(node, other, max_distance_m=radius) for other in neighbors_within(index, node, radius))
    for segment in network.segments.values():
        assert segment.road_type == "local"
        assert segment.road_name == "Local road"
        assert segment.distance_m <= radius


def test_highway_never_connects_to_alley() -> None:
    network = RoadNetwork()
    highway = network.add_node(RoadNode(id="h", lat=25.0, lng=121.5, road_type="highway"))
    alley = network.add_node(RoadNode(id="a", lat=25.0002, lng=121.5, road_type="alley"))
    local = network.add_node(RoadNode(id="l", lat=25.0002, lng=121.5, road_type="local"))
    far = network.add_node(RoadNode(id="f", lat=25.002, lng=121.5, road_type="local"))

    assert not network.can_connect(highway, alley)
    assert not network.can_connect(alley, highway)
    assert network.can_connect(highway, local)
    assert not network.can_connect(local, far)

    built = build_road_network([SMALL_REGION], [], seed=5)
    for segment in built.segments.values():
        kinds = {built.node(segment.start_node_id).road_type, built.node(segment.end_node_id).road_type}
        assert kinds != {"highway", "alley"}


def test_seeded_builds_are_reproducible() -> None:
    road = MajorRoad(name="Test Road", waypoints=(LatLng(lat=25.0, lng=121.5), LatLng(lat=25.0, lng=121.51)))

    first = build_road_network([SMALL_REGION], [road], seed=42)
    second = build_road_network([SMALL_REGION], [road], seed=42)
    other = build_road_network([SMALL_REGION], [road], seed=43)

    def snapshot(network: RoadNetwork) -> list[tuple[str, str, float, tuple[str, ...]]]:
        return [(n.id, n.road_type, n.hazard_level, tuple(n.connections)) for n in network]

    assert snapshot(first) == snapshot(second)
    assert snapshot(first) != snapshot(other)


def test_road_laid_over_lattice_point_takes_road_metadata() -> None:
    road = MajorRoad(
        name="Merge Road",
        waypoints=(LatLng(lat=25.0, lng=121.5), LatLng(lat=25.0, lng=121.501)),
        road_type="main",
        speed_limit_kph=55.0,
        interval_m=50.0,
        curvature=False,
    )

    network = build_road_network([SMALL_REGION], [road], seed=9)
    merged = network.node(node_id_for(25.0, 121.5))

    assert merged.road_name == "Merge Road"
    assert merged.road_type == "main"
    assert merged.speed_limit_kph == 55.0
    assert merged.district == "Test District"
    assert len(network) == 25 + 2
    seg = network.segment_between(merged.id, merged.connections[0])
    assert seg is not None and seg.road_name == "Merge Road"


def test_roads_crossing_a_region_are_joined_to_its_lattice() -> None:
    road = MajorRoad(
        name="Crossing Road",
        waypoints=(LatLng(lat=25.0025, lng=121.498), LatLng(lat=25.0025, lng=121.506)),
        road_type="main",
        interval_m=20.0,
        curvature=False,
    )

    network = build_road_network([MEDIUM_REGION], [road], seed=11)

    inside = [n for n in network if n.road_name == "Crossing Road" and MEDIUM_REGION.west <= n.lng <= MEDIUM_REGION.east]
    assert inside
    for node in inside:
        lattice = [network.node(other) for other in node.connections if network.node(other).district == "Test Suburb"]
        assert lattice
        assert all(network.segment_between(node.id, other.id).road_name == "Local road" for other in lattice)  # type: ignore[union-attr]


def test_interpolation_keeps_endpoints_and_spacing() -> None:
    rng = np.random.default_rng(0)
    points = interpolate_points(ZHONGXIAO_START, ZHONGXIAO_END, 605.0, curvature=True, rng=rng)

    assert len(points) == 11
    assert points[0] == ZHONGXIAO_START
    assert points[-1] == ZHONGXIAO_END
    assert all(p.lat == round(p.lat, 6) and p.lng == round(p.lng, 6) for p in points)
    assert interpolate_points(ZHONGXIAO_START, ZHONGXIAO_START, 10.0) == [ZHONGXIAO_START, ZHONGXIAO_START]


def test_travel_time_uses_start_node_speed_in_meters_per_second() -> None:
    road = MajorRoad(
        name="Speed Road",
        waypoints=(LatLng(lat=25.0, lng=121.5), LatLng(lat=25.001, lng=121.5)),
        speed_limit_kph=36.0,
        interval_m=200.0,
        curvature=False,
    )
    network = build_road_network([], [road], seed=1)
    (segment,) = network.segments.values()

    assert segment.travel_time_s == pytest.approx(segment.distance_m / 10.0)


@pytest.mark.parametrize(("interval_m", "expected_nodes"), [(605.0, 11), (10.0, 606)])
def test_straight_road_route_matches_endpoint_distance(interval_m: float, expected_nodes: int) -> None:
    road = MajorRoad(
        name="Zhongxiao East Road",
        waypoints=(ZHONGXIAO_START, ZHONGXIAO_END),
        road_type="main",
        speed_limit_kph=50.0,
        interval_m=interval_m,
    )
    network = build_road_network([], [road], seed=20240915)
    planner = RoutePlanner(network)

    route = planner.plan_route(ZHONGXIAO_START, ZHONGXIAO_END, RouteOptions(optimize_for="distance"))

    straight_m = haversine_m(ZHONGXIAO_START.lat, ZHONGXIAO_START.lng, ZHONGXIAO_END.lat, ZHONGXIAO_END.lng)
    assert len(network) == expected_nodes
    assert len(route.nodes) == expected_nodes
    assert route.nodes[0].id == node_id_for(ZHONGXIAO_START.lat, ZHONGXIAO_START.lng)
    assert route.nodes[-1].id == node_id_for(ZHONGXIAO_END.lat, ZHONGXIAO_END.lng)
    assert route.total_distance_m == pytest.approx(straight_m, rel=0.01)
    assert route.instruction_texts[0] == "Head east on Zhongxiao East Road"


def test_empty_region_bounds_are_rejected() -> None:
    bad = Region(name="Flipped", north=25.0, south=25.01, east=121.51, west=121.5)
    with pytest.raises(RoutingError) as exc_info:
        build_road_network([bad], [], seed=1)
    assert exc_info.value.reason_code == "invalid_region"
