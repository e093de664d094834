from __future__ import annotations

from collections.abc import Iterator
from dataclasses import dataclass, field
from typing import Any, Literal

from .errors import UnknownNodeError
from .geo import haversine_m

RoadType = Literal["highway", "main", "secondary", "local", "alley"]
TrafficCondition = Literal["smooth", "slow", "congested", "blocked"]

ROAD_TYPES: tuple[str, ...] = ("highway", "main", "secondary", "local", "alley")
SPEED_LIMIT_KPH: dict[str, float] = {
    "highway": 100.0,
    "main": 60.0,
    "secondary": 50.0,
    "local": 40.0,
    "alley": 30.0,
}
ROAD_WIDTH_M: dict[str, float] = {
    "highway": 12.0,
    "main": 8.0,
    "secondary": 6.0,
    "local": 4.0,
    "alley": 3.0,
}
TRAFFIC_MULTIPLIER: dict[str, float] = {
    "smooth": 1.0,
    "slow": 1.5,
    "congested": 2.0,
    "blocked": 10.0,
}
DEFAULT_SPEED_KPH = 40.0
MAX_CONNECT_DISTANCE_M = 100.0
INCOMPATIBLE_ROAD_TYPES: frozenset[frozenset[str]] = frozenset({frozenset({"highway", "alley"})})


def speed_limit_for(road_type: str | None) -> float:
    return SPEED_LIMIT_KPH.get(str(road_type or ""), DEFAULT_SPEED_KPH)


def road_width_for(road_type: str | None) -> float:
    return ROAD_WIDTH_M.get(str(road_type or ""), ROAD_WIDTH_M["local"])


def node_id_for(lat: float, lng: float) -> str:
    return f"node_{round(lat * 1_000_000)}_{round(lng * 1_000_000)}"


def segment_id_for(start_id: str, end_id: str) -> str:
    return f"{start_id}-{end_id}"


@dataclass
class RoadNode:
    id: str
    lat: float
    lng: float
    road_type: str = "local"
    speed_limit_kph: float = DEFAULT_SPEED_KPH
    road_width_m: float | None = None
    road_name: str | None = None
    district: str | None = None
    connections: list[str] = field(default_factory=list)
    hazard_level: float = 0.0
    traffic_signals: bool = False

    @property
    def is_intersection(self) -> bool:
        return len(self.connections) >= 3


@dataclass
class RoadSegment:
    id: str
    start_node_id: str
    end_node_id: str
    distance_m: float
    travel_time_s: float
    road_type: str
    road_name: str | None = None
    traffic: str = "smooth"

    @property
    def traffic_multiplier(self) -> float:
        return TRAFFIC_MULTIPLIER.get(self.traffic, 1.0)


class RoadNetwork:
    """In-memory road graph. Segments are undirected and found by either orientation."""

    def __init__(self) -> None:
        self.nodes: dict[str, RoadNode] = {}
        self.segments: dict[tuple[str, str], RoadSegment] = {}

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: object) -> bool:
        return node_id in self.nodes

    def __iter__(self) -> Iterator[RoadNode]:
        return iter(self.nodes.values())

    def node(self, node_id: str) -> RoadNode:
        found = self.nodes.get(node_id)
        if found is None:
            raise UnknownNodeError(node_id)
        return found

    def add_node(self, node: RoadNode) -> RoadNode:
        self.nodes[node.id] = node
        return node

    def upsert_road_node(
        self,
        lat: float,
        lng: float,
        *,
        road_name: str,
        road_type: str,
        speed_limit_kph: float,
    ) -> RoadNode:
        node_id = node_id_for(lat, lng)
        existing = self.nodes.get(node_id)
        if existing is None:
            return self.add_node(
                RoadNode(
                    id=node_id,
                    lat=lat,
                    lng=lng,
                    road_type=road_type,
                    speed_limit_kph=speed_limit_kph,
                    road_width_m=road_width_for(road_type),
                    road_name=road_name,
                )
            )
        # Road metadata wins over lattice metadata; last road laid wins.
        existing.road_name = road_name
        existing.road_type = road_type
        existing.speed_limit_kph = speed_limit_kph
        existing.road_width_m = road_width_for(road_type)
        return existing

    def segment_between(self, a: str, b: str) -> RoadSegment | None:
        return self.segments.get((a, b)) or self.segments.get((b, a))

    def connect(self, a: str, b: str, *, road_type: str, road_name: str | None) -> RoadSegment | None:
        """Link two nodes both ways and create the segment if it does not exist yet."""
        if a == b:
            return None
        node_a = self.node(a)
        node_b = self.node(b)
        if b not in node_a.connections:
            node_a.connections.append(b)
        if a not in node_b.connections:
            node_b.connections.append(a)
        existing = self.segment_between(a, b)
        if existing is not None:
            return existing
        distance_m = haversine_m(node_a.lat, node_a.lng, node_b.lat, node_b.lng)
        speed_kph = node_a.speed_limit_kph or DEFAULT_SPEED_KPH
        segment = RoadSegment(
            id=segment_id_for(a, b),
            start_node_id=a,
            end_node_id=b,
            distance_m=distance_m,
            travel_time_s=distance_m / (speed_kph / 3.6),
            road_type=road_type,
            road_name=road_name,
        )
        self.segments[(a, b)] = segment
        return segment

    def can_connect(self, a: RoadNode, b: RoadNode, *, max_distance_m: float = MAX_CONNECT_DISTANCE_M) -> bool:
        if haversine_m(a.lat, a.lng, b.lat, b.lng) > max_distance_m:
            return False
        pair = frozenset({a.road_type or "local", b.road_type or "local"})
        return pair not in INCOMPATIBLE_ROAD_TYPES

    def set_traffic(self, a: str, b: str, condition: str) -> RoadSegment:
        if condition not in TRAFFIC_MULTIPLIER:
            raise ValueError(f"unknown traffic condition: {condition}")
        segment = self.segment_between(a, b)
        if segment is None:
            raise UnknownNodeError(segment_id_for(a, b))
        segment.traffic = condition
        return segment

    def set_hazard_level(self, node_id: str, level: float) -> RoadNode:
        node = self.node(node_id)
        node.hazard_level = max(0.0, min(5.0, float(level)))
        return node

    def stats(self) -> dict[str, Any]:
        node_count = len(self.nodes)
        connection_total = sum(len(n.connections) for n in self.nodes.values())
        road_type_counts: dict[str, int] = {}
        for node in self.nodes.values():
            road_type_counts[node.road_type] = road_type_counts.get(node.road_type, 0) + 1
        return {
            "total_nodes": node_count,
            "total_segments": len(self.segments),
            "average_connections": round(connection_total / node_count, 3) if node_count else 0.0,
            "isolated_nodes": sum(1 for n in self.nodes.values() if not n.connections),
            "road_type_counts": dict(sorted(road_type_counts.items())),
            "named_roads": sorted({n.road_name for n in self.nodes.values() if n.road_name}),
        }
