from __future__ import annotations

from collections.abc import Sequence
from dataclasses import dataclass, field

from .geo import bearing_deg, compass_heading, haversine_m, turn_angle_deg
from .hazards import effective_hazard
from .models import LatLng
from .road_network import RoadNetwork, RoadNode, RoadSegment

STRAIGHT_LIMIT_DEG = 15.0
SLIGHT_LIMIT_DEG = 45.0
SHARP_FROM_DEG = 135.0
CONNECTOR_MIN_M = 1.0
UNNAMED_STREET = "unnamed road"

AVERAGE_SPEED_KPH: dict[str, float] = {
    "driving": 40.0,
    "driving_highway": 60.0,
    "walking": 5.0,
}

DIRECTION_VERB: dict[str, str] = {
    "straight": "continue straight",
    "slight_left": "bear left",
    "slight_right": "bear right",
    "left": "turn left",
    "right": "turn right",
    "sharp_left": "turn sharp left",
    "sharp_right": "turn sharp right",
}


def classify_turn(angle_deg: float) -> str:
    """Bucket a signed turn angle (positive = right) into a direction."""
    a = float(angle_deg)
    if abs(a) < STRAIGHT_LIMIT_DEG:
        return "straight"
    if a > 0:
        if a < SLIGHT_LIMIT_DEG:
            return "slight_right"
        if a < SHARP_FROM_DEG:
            return "right"
        return "sharp_right"
    if a > -SLIGHT_LIMIT_DEG:
        return "slight_left"
    if a > -SHARP_FROM_DEG:
        return "left"
    return "sharp_left"


def turn_direction(prev: RoadNode | LatLng, current: RoadNode | LatLng, nxt: RoadNode | LatLng) -> str:
    incoming = bearing_deg(prev.lat, prev.lng, current.lat, current.lng)
    outgoing = bearing_deg(current.lat, current.lng, nxt.lat, nxt.lng)
    return classify_turn(turn_angle_deg(incoming, outgoing))


def average_speed_kph(mode: str, *, prefer_highways: bool = False) -> float:
    if mode == "walking":
        return AVERAGE_SPEED_KPH["walking"]
    return AVERAGE_SPEED_KPH["driving_highway" if prefer_highways else "driving"]


@dataclass(frozen=True)
class Instruction:
    node_id: str
    direction: str
    distance_m: float
    street_name: str
    text: str
    landmarks: tuple[str, ...] = ()


@dataclass(frozen=True)
class Route:
    nodes: tuple[RoadNode, ...]
    segments: tuple[RoadSegment, ...]
    path: tuple[LatLng, ...]
    total_distance_m: float
    total_time_s: float
    instructions: tuple[Instruction, ...]
    risk_score: float
    objective: str
    warnings: tuple[str, ...] = ()
    cost: float = 0.0
    expanded_nodes: int = 0
    hazard_levels: tuple[float, ...] = field(default=(), repr=False)

    @property
    def node_ids(self) -> tuple[str, ...]:
        return tuple(n.id for n in self.nodes)

    @property
    def instruction_texts(self) -> list[str]:
        return [i.text for i in self.instructions]


def _street(segment: RoadSegment | None, node: RoadNode) -> str:
    if segment is not None and segment.road_name:
        return segment.road_name
    return node.road_name or UNNAMED_STREET


def _landmarks(node: RoadNode) -> tuple[str, ...]:
    marks: list[str] = []
    if node.is_intersection:
        marks.append("intersection")
    if node.traffic_signals:
        marks.append("traffic signals")
    if node.district:
        marks.append(node.district)
    return tuple(marks)


def _maneuver_text(direction: str, street: str, distance_m: float) -> str:
    meters = round(distance_m)
    if direction == "straight":
        return f"Continue straight on {street} for {meters} m"
    return f"In {meters} m, {DIRECTION_VERB[direction]} onto {street}"


def build_instructions(
    nodes: Sequence[RoadNode],
    segments: Sequence[RoadSegment],
    *,
    instruction_interval: int = 0,
) -> list[Instruction]:
    """
    Departure, then one instruction per turn or street change (or every
    ``instruction_interval`` nodes when set), then arrival. Each instruction
    carries the distance covered since the previous one.
    """
    if not nodes:
        return []
    last = nodes[-1]
    if len(nodes) == 1:
        return [
            Instruction(
                node_id=last.id,
                direction="straight",
                distance_m=0.0,
                street_name=_street(None, last),
                text="You are at your destination",
                landmarks=_landmarks(last),
            )
        ]

    first_street = _street(segments[0] if segments else None, nodes[0])
    heading = compass_heading(bearing_deg(nodes[0].lat, nodes[0].lng, nodes[1].lat, nodes[1].lng))
    out = [
        Instruction(
            node_id=nodes[0].id,
            direction="straight",
            distance_m=0.0,
            street_name=first_street,
            text=f"Head {heading} on {first_street}",
            landmarks=_landmarks(nodes[0]),
        )
    ]

    street = first_street
    since_last = 0.0
    for i in range(1, len(nodes) - 1):
        prev, current, nxt = nodes[i - 1], nodes[i], nodes[i + 1]
        since_last += haversine_m(prev.lat, prev.lng, current.lat, current.lng)
        direction = turn_direction(prev, current, nxt)
        next_street = _street(segments[i] if i < len(segments) else None, nxt)
        if instruction_interval > 0:
            emit = i % instruction_interval == 0
        else:
            emit = direction != "straight" or next_street != street
        if not emit:
            continue
        out.append(
            Instruction(
                node_id=current.id,
                direction=direction,
                distance_m=round(since_last, 2),
                street_name=next_street,
                text=_maneuver_text(direction, next_street, since_last),
                landmarks=_landmarks(current),
            )
        )
        street = next_street
        since_last = 0.0

    since_last += haversine_m(nodes[-2].lat, nodes[-2].lng, last.lat, last.lng)
    out.append(
        Instruction(
            node_id=last.id,
            direction="straight",
            distance_m=round(since_last, 2),
            street_name=street,
            text=f"Arrive at destination in {round(since_last)} m",
            landmarks=_landmarks(last),
        )
    )
    return out


def polyline_distance_m(points: Sequence[LatLng | RoadNode]) -> float:
    return sum(haversine_m(a.lat, a.lng, b.lat, b.lng) for a, b in zip(points, points[1:]))


def risk_score(nodes: Sequence[RoadNode], hazard_overlay: dict[str, float] | None = None) -> float:
    if not nodes:
        return 0.0
    total = sum(effective_hazard(n, hazard_overlay) for n in nodes)
    return round(total / len(nodes), 1)


def assemble_route(
    network: RoadNetwork,
    node_ids: Sequence[str],
    *,
    start: LatLng,
    end: LatLng,
    objective: str,
    mode: str = "driving",
    prefer_highways: bool = False,
    hazard_overlay: dict[str, float] | None = None,
    instruction_interval: int = 0,
    warnings: Sequence[str] = (),
    cost: float = 0.0,
    expanded_nodes: int = 0,
) -> Route:
    nodes = tuple(network.node(nid) for nid in node_ids)
    segments: list[RoadSegment] = []
    for a, b in zip(node_ids, node_ids[1:]):
        segment = network.segment_between(a, b)
        if segment is not None:
            segments.append(segment)

    # Connector legs join the query points to the snapped graph nodes.
    path: list[LatLng] = []
    connector_m = 0.0
    head = haversine_m(start.lat, start.lng, nodes[0].lat, nodes[0].lng)
    if head >= CONNECTOR_MIN_M:
        path.append(start)
        connector_m += head
    path.extend(LatLng(lat=n.lat, lng=n.lng) for n in nodes)
    tail = haversine_m(nodes[-1].lat, nodes[-1].lng, end.lat, end.lng)
    if tail >= CONNECTOR_MIN_M:
        path.append(end)
        connector_m += tail

    total_distance_m = polyline_distance_m(path)
    leg_speed_mps = average_speed_kph(mode, prefer_highways=prefer_highways) / 3.6
    if mode == "walking":
        total_time_s = total_distance_m / leg_speed_mps
    else:
        total_time_s = sum(s.travel_time_s for s in segments) + connector_m / leg_speed_mps

    return Route(
        nodes=nodes,
        segments=tuple(segments),
        path=tuple(path),
        total_distance_m=round(total_distance_m, 2),
        total_time_s=round(total_time_s, 1),
        instructions=tuple(build_instructions(nodes, segments, instruction_interval=instruction_interval)),
        risk_score=risk_score(nodes, hazard_overlay),
        objective=objective,
        warnings=tuple(warnings),
        cost=cost,
        expanded_nodes=expanded_nodes,
        hazard_levels=tuple(effective_hazard(n, hazard_overlay) for n in nodes),
    )
