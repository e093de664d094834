from __future__ import annotations

import math
from collections.abc import Sequence
from dataclasses import dataclass
from typing import Literal

import numpy as np

from .errors import RoutingError
from .geo import METERS_PER_DEG_LAT, haversine_m
from .logging_utils import timed_event
from .models import LatLng
from .road_network import (
    ROAD_TYPES,
    RoadNetwork,
    RoadNode,
    node_id_for,
    road_width_for,
    speed_limit_for,
)
from .spatial_index import GridBucketIndex, neighbors_within

Density = Literal["high", "medium", "low"]

DENSITY_STEP_DEG: dict[str, float] = {
    "high": 0.0005,  # ~50 m
    "medium": 0.001,  # ~100 m
    "low": 0.002,  # ~200 m
}
# Cumulative thresholds for highway / main / secondary / local; the rest is alley.
LATTICE_ROAD_TYPE_CDF = (0.05, 0.15, 0.35, 0.80)
LATTICE_MAX_BASE_HAZARD = 2.0
LATTICE_REPAIR_STEP_FACTOR = 1.1

BEND_LAT_DEG = 0.00003
CURVE_LNG_DEG = 0.00002
INTERSECTION_EVERY = 20
INTERSECTION_JITTER_DEG = 0.00005
LOCAL_ROAD_NAME = "Local road"


@dataclass(frozen=True)
class Region:
    name: str
    north: float
    south: float
    east: float
    west: float
    density: Density = "medium"

    @property
    def step_deg(self) -> float:
        return DENSITY_STEP_DEG.get(self.density, DENSITY_STEP_DEG["low"])

    @property
    def step_m(self) -> float:
        return self.step_deg * METERS_PER_DEG_LAT


@dataclass(frozen=True)
class MajorRoad:
    name: str
    waypoints: tuple[LatLng, ...]
    road_type: str = "main"
    speed_limit_kph: float = 50.0
    interval_m: float | None = None
    curvature: bool = True


def _validate_region(region: Region) -> None:
    if region.north <= region.south or region.east <= region.west:
        raise RoutingError(
            reason_code="invalid_region",
            message=f"region {region.name!r} has empty bounds",
            details={"north": region.north, "south": region.south, "east": region.east, "west": region.west},
        )


def generate_region_grid(network: RoadNetwork, region: Region, rng: np.random.Generator) -> int:
    """Lay a uniform lattice over the region, row by row from the south-west corner."""
    _validate_region(region)
    step = region.step_deg
    lat_count = int(math.floor((region.north - region.south) / step + 1e-6)) + 1
    lng_count = int(math.floor((region.east - region.west) / step + 1e-6)) + 1
    lats = np.round(region.south + np.arange(lat_count) * step, 6)
    lngs = np.round(region.west + np.arange(lng_count) * step, 6)

    total = lat_count * lng_count
    type_idx = np.searchsorted(np.asarray(LATTICE_ROAD_TYPE_CDF), rng.random(total), side="right")
    hazards = rng.uniform(0.0, LATTICE_MAX_BASE_HAZARD, total)

    k = 0
    for lat in lats:
        for lng in lngs:
            road_type = ROAD_TYPES[int(type_idx[k])]
            node_id = node_id_for(float(lat), float(lng))
            existing = network.nodes.get(node_id)
            node = RoadNode(
                id=node_id,
                lat=float(lat),
                lng=float(lng),
                road_type=road_type,
                speed_limit_kph=speed_limit_for(road_type),
                road_width_m=road_width_for(road_type),
                district=region.name,
                hazard_level=float(hazards[k]),
            )
            if existing is not None:
                # Overlapping regions: last write wins on metadata, links survive.
                node.connections = existing.connections
            network.add_node(node)
            k += 1
    return total


def interpolate_points(
    start: LatLng,
    end: LatLng,
    interval_m: float,
    *,
    curvature: bool = False,
    rng: np.random.Generator | None = None,
) -> list[LatLng]:
    """
    Points every ``interval_m`` meters from start to end, both ends included.

    With ``curvature`` the interior points get a small sinusoidal bend (a few
    meters) and every 20th interior point an extra seeded offset that mimics
    the kink of an intersection corner. Endpoints are never moved.
    """
    distance = haversine_m(start.lat, start.lng, end.lat, end.lng)
    steps = max(1, int(math.ceil(distance / max(0.1, float(interval_m)))))
    points: list[LatLng] = []
    for i in range(steps + 1):
        ratio = i / steps
        lat = start.lat + (end.lat - start.lat) * ratio
        lng = start.lng + (end.lng - start.lng) * ratio
        if curvature and 0 < i < steps:
            lat += math.sin(ratio * math.pi * 4.0) * BEND_LAT_DEG
            lng += math.cos(ratio * math.pi * 6.0) * CURVE_LNG_DEG
            if i % INTERSECTION_EVERY == 0 and rng is not None:
                corner = (float(rng.random()) - 0.5) * INTERSECTION_JITTER_DEG
                lat += corner
                lng += corner
        points.append(LatLng(lat=round(lat, 6), lng=round(lng, 6)))
    return points


def lay_major_road(
    network: RoadNetwork,
    road: MajorRoad,
    rng: np.random.Generator,
    *,
    default_interval_m: float,
) -> int:
    interval_m = road.interval_m if road.interval_m is not None else default_interval_m
    laid = 0
    for start, end in zip(road.waypoints, road.waypoints[1:]):
        points = interpolate_points(start, end, interval_m, curvature=road.curvature, rng=rng)
        prev_id: str | None = None
        for point in points:
            node = network.upsert_road_node(
                point.lat,
                point.lng,
                road_name=road.name,
                road_type=road.road_type,
                speed_limit_kph=road.speed_limit_kph,
            )
            laid += 1
            if prev_id is not None:
                network.connect(prev_id, node.id, road_type=road.road_type, road_name=road.name)
            prev_id = node.id
    return laid


def connect_isolated_nodes(
    network: RoadNetwork,
    *,
    radius_m: float,
    radius_by_district: dict[str, float] | None = None,
) -> int:
    """Link each still-isolated node to every compatible node within the repair radius."""
    index = GridBucketIndex(network)
    radius_by_district = radius_by_district or {}
    created = 0
    for node in list(network.nodes.values()):
        if node.connections:
            continue
        radius = radius_by_district.get(node.district or "", radius_m)
        for other in neighbors_within(index, node, radius):
            if not network.can_connect(node, other, max_distance_m=radius):
                continue
            before = len(network.segments)
            network.connect(node.id, other.id, road_type="local", road_name=LOCAL_ROAD_NAME)
            created += len(network.segments) - before
    return created


def _region_containing(regions: Sequence[Region], lat: float, lng: float) -> Region | None:
    for region in regions:
        if region.south <= lat <= region.north and region.west <= lng <= region.east:
            return region
    return None


def link_road_junctions(
    network: RoadNetwork,
    regions: Sequence[Region],
    radius_by_district: dict[str, float],
) -> int:
    """
    Join major roads to the lattices they cross.

    Every road node inside a region links to its nearest compatible lattice
    node within that region's repair radius. Roads are never isolated, so the
    repair pass alone would leave them floating over the grid.
    """
    index = GridBucketIndex(network)
    created = 0
    for node in list(network.nodes.values()):
        if node.road_name is None:
            continue
        region = _region_containing(regions, node.lat, node.lng)
        if region is None:
            continue
        radius = radius_by_district[region.name]
        candidates = [
            other
            for other in neighbors_within(index, node, radius)
            if other.district == region.name
            and other.road_name is None
            and network.can_connect(node, other, max_distance_m=radius)
        ]
        if not candidates:
            continue
        nearest = min(candidates, key=lambda other: haversine_m(node.lat, node.lng, other.lat, other.lng))
        before = len(network.segments)
        network.connect(node.id, nearest.id, road_type="local", road_name=LOCAL_ROAD_NAME)
        created += len(network.segments) - before
    return created


def build_road_network(
    regions: Sequence[Region],
    roads: Sequence[MajorRoad],
    *,
    seed: int,
    local_connect_radius_m: float = 50.0,
    default_interval_m: float = 10.0,
) -> RoadNetwork:
    rng = np.random.default_rng(seed)
    network = RoadNetwork()

    with timed_event("road_network_built", seed=seed, regions=len(regions), roads=len(roads)) as fields:
        lattice_nodes = 0
        radius_by_district: dict[str, float] = {}
        for region in regions:
            lattice_nodes += generate_region_grid(network, region, rng)
            radius_by_district[region.name] = max(
                float(local_connect_radius_m),
                region.step_m * LATTICE_REPAIR_STEP_FACTOR,
            )

        road_nodes = 0
        for road in roads:
            road_nodes += lay_major_road(network, road, rng, default_interval_m=default_interval_m)

        repair_segments = connect_isolated_nodes(
            network,
            radius_m=float(local_connect_radius_m),
            radius_by_district=radius_by_district,
        )
        junction_segments = link_road_junctions(network, regions, radius_by_district)
        stats = network.stats()
        fields.update(
            lattice_nodes=lattice_nodes,
            road_nodes=road_nodes,
            repair_segments=repair_segments,
            junction_segments=junction_segments,
            total_nodes=stats["total_nodes"],
            total_segments=stats["total_segments"],
            isolated_nodes=stats["isolated_nodes"],
        )
    return network


def _pts(*coords: tuple[float, float]) -> tuple[LatLng, ...]:
    return tuple(LatLng(lat=lat, lng=lng) for lat, lng in coords)


TAIPEI_CORE = Region(name="Taipei Core", north=25.0700, south=25.0300, east=121.5700, west=121.5300, density="high")
TAICHUNG_CORE = Region(
    name="Taichung Core", north=24.1800, south=24.1400, east=120.6800, west=120.6400, density="medium"
)


def taipei_roads() -> list[MajorRoad]:
    return [
        MajorRoad(
            name="Zhongxiao East Road",
            waypoints=_pts((25.0418, 121.5120), (25.0418, 121.5320), (25.0418, 121.5520), (25.0418, 121.5720)),
            road_type="main",
            speed_limit_kph=50.0,
        ),
        MajorRoad(
            name="Xinyi Road",
            waypoints=_pts((25.0320, 121.5200), (25.0320, 121.5600)),
            road_type="main",
            speed_limit_kph=50.0,
        ),
        MajorRoad(
            name="Ren'ai Road",
            waypoints=_pts((25.0380, 121.5150), (25.0380, 121.5650)),
            road_type="main",
            speed_limit_kph=50.0,
        ),
        MajorRoad(
            name="Jianguo Road",
            waypoints=_pts((25.0200, 121.5365), (25.0600, 121.5365)),
            road_type="main",
            speed_limit_kph=50.0,
            interval_m=15.0,
        ),
        MajorRoad(
            name="Dunhua Road",
            waypoints=_pts((25.0200, 121.5488), (25.0600, 121.5488)),
            road_type="main",
            speed_limit_kph=50.0,
            interval_m=15.0,
        ),
    ]


def taiwan_roads(*, intercity_interval_m: float) -> list[MajorRoad]:
    return [
        MajorRoad(
            name="National Freeway 1",
            waypoints=_pts(
                (25.0780, 121.5753),  # Taipei
                (24.8066, 121.0181),  # Hsinchu
                (24.1477, 120.6736),  # Taichung
                (23.5539, 120.2620),  # Chiayi
                (22.6273, 120.3014),  # Kaohsiung
            ),
            road_type="highway",
            speed_limit_kph=100.0,
            interval_m=intercity_interval_m,
        ),
        *taipei_roads(),
        MajorRoad(
            name="Taiwan Boulevard",
            waypoints=_pts((24.1630, 120.6065), (24.1630, 120.6265), (24.1630, 120.6465), (24.1630, 120.6665)),
            road_type="main",
            speed_limit_kph=60.0,
            interval_m=20.0,
        ),
    ]


def build_default_network(
    profile: str,
    *,
    seed: int,
    local_connect_radius_m: float = 50.0,
    default_interval_m: float = 10.0,
    intercity_interval_m: float = 50.0,
) -> RoadNetwork:
    if profile == "taipei":
        regions: list[Region] = [TAIPEI_CORE]
        roads = taipei_roads()
    else:
        regions = [TAIPEI_CORE, TAICHUNG_CORE]
        roads = taiwan_roads(intercity_interval_m=intercity_interval_m)
    return build_road_network(
        regions,
        roads,
        seed=seed,
        local_connect_radius_m=local_connect_radius_m,
        default_interval_m=default_interval_m,
    )
