from __future__ import annotations

import heapq
import logging
from collections.abc import Callable
from dataclasses import dataclass

from .errors import NoPathError, SearchBudgetExceededError
from .geo import haversine_m
from .hazards import effective_hazard
from .logging_utils import log_event
from .road_network import RoadNetwork, RoadNode, RoadSegment

CostFn = Callable[[RoadNode, RoadNode, RoadSegment], float]
HeuristicFn = Callable[[RoadNode, RoadNode], float]
PassableFn = Callable[[RoadNode], bool]

OBJECTIVES: frozenset[str] = frozenset({"time", "distance", "safety"})
TIME_COST_WEIGHT = 10.0
SAFETY_HAZARD_PENALTY = 1000.0
NON_HIGHWAY_PENALTY = 1.2


@dataclass(frozen=True)
class PathResult:
    nodes: tuple[str, ...]
    cost: float
    expanded: int


def resolve_objective(optimize_for: str | None) -> str:
    requested = str(optimize_for or "").strip().lower()
    if requested in OBJECTIVES:
        return requested
    log_event("route_options_defaulted", level=logging.WARNING, requested=requested, objective="distance")
    return "distance"


def make_cost_function(
    objective: str,
    *,
    prefer_highways: bool = False,
    hazard_overlay: dict[str, float] | None = None,
) -> CostFn:
    """
    Edge cost for the given objective, scaled by the segment's traffic factor.

    distance: meters. time: travel seconds x 10. safety: meters plus 1000 per
    hazard level of the node being left. Any other objective costs meters.
    """

    def _cost(from_node: RoadNode, to_node: RoadNode, segment: RoadSegment) -> float:
        if objective == "time":
            cost = segment.travel_time_s * TIME_COST_WEIGHT
        elif objective == "safety":
            cost = segment.distance_m + effective_hazard(from_node, hazard_overlay) * SAFETY_HAZARD_PENALTY
        else:
            cost = segment.distance_m
        if prefer_highways and segment.road_type != "highway":
            cost *= NON_HIGHWAY_PENALTY
        return cost * segment.traffic_multiplier

    return _cost


def haversine_heuristic(node: RoadNode, goal: RoadNode) -> float:
    return haversine_m(node.lat, node.lng, goal.lat, goal.lng)


def make_heuristic(objective: str, *, admissible_time: bool = False, max_speed_kph: float = 100.0) -> HeuristicFn:
    # Straight-line meters only bound the distance and safety objectives; the
    # scaled variant bounds travel time at the fastest speed limit.
    if objective != "time" or not admissible_time:
        return haversine_heuristic
    max_speed_mps = max(0.1, float(max_speed_kph) / 3.6)

    def _time_heuristic(node: RoadNode, goal: RoadNode) -> float:
        return haversine_heuristic(node, goal) / max_speed_mps * TIME_COST_WEIGHT

    return _time_heuristic


def _reconstruct(came_from: dict[str, str], current: str) -> tuple[str, ...]:
    path = [current]
    while current in came_from:
        current = came_from[current]
        path.append(current)
    path.reverse()
    return tuple(path)


def a_star_search(
    network: RoadNetwork,
    start_id: str,
    goal_id: str,
    *,
    cost_fn: CostFn,
    heuristic: HeuristicFn = haversine_heuristic,
    is_passable: PassableFn | None = None,
    max_expansions: int | None = None,
) -> PathResult:
    """
    A* over ``network`` from ``start_id`` to ``goal_id``.

    The open set is a heap keyed on (f, node_id), so equal f scores go to the
    lexicographically lowest node id. Nodes are re-opened whenever a cheaper
    g score turns up; stale heap entries are skipped on pop. Start and goal are
    always passable.
    """
    start = network.node(start_id)
    goal = network.node(goal_id)

    g_score: dict[str, float] = {start_id: 0.0}
    came_from: dict[str, str] = {}
    heap: list[tuple[float, str, float]] = [(heuristic(start, goal), start_id, 0.0)]
    expanded = 0

    while heap:
        _f, current_id, g = heapq.heappop(heap)
        if g > g_score.get(current_id, float("inf")):
            continue
        if current_id == goal_id:
            return PathResult(nodes=_reconstruct(came_from, current_id), cost=g, expanded=expanded)
        expanded += 1
        if max_expansions and expanded > max_expansions:
            raise SearchBudgetExceededError(
                details={"start": start_id, "goal": goal_id, "max_expansions": max_expansions}
            )

        current = network.nodes[current_id]
        for neighbor_id in current.connections:
            neighbor = network.nodes.get(neighbor_id)
            if neighbor is None:
                continue
            if is_passable is not None and neighbor_id != goal_id and not is_passable(neighbor):
                continue
            segment = network.segment_between(current_id, neighbor_id)
            if segment is None:
                continue
            tentative = g + cost_fn(current, neighbor, segment)
            if tentative < g_score.get(neighbor_id, float("inf")):
                came_from[neighbor_id] = current_id
                g_score[neighbor_id] = tentative
                heapq.heappush(heap, (tentative + heuristic(neighbor, goal), neighbor_id, tentative))

    raise NoPathError(details={"start": start_id, "goal": goal_id, "expanded": expanded})
