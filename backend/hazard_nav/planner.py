from __future__ import annotations

import dataclasses
import logging
from collections.abc import Sequence
from typing import Any

from .errors import NoPathError
from .hazards import effective_hazard, hazard_overlay, route_warnings, select_zones
from .logging_utils import log_event, timed_event
from .models import HazardZone, LatLng, RouteOptions
from .network_builder import build_default_network
from .path_search import a_star_search, make_cost_function, make_heuristic, resolve_objective
from .road_network import DEFAULT_SPEED_KPH, RoadNetwork, RoadNode
from .route_assembler import Route, assemble_route
from .settings import Settings, settings
from .spatial_index import SpatialIndex, build_spatial_index

NO_SAFE_ROUTE_WARNING = "No route avoids every hazard zone; showing the lowest-risk route instead."


class RoutePlanner:
    """Owns a road network and its spatial index; each call plans independently."""

    def __init__(
        self,
        network: RoadNetwork,
        *,
        index: SpatialIndex | None = None,
        max_snap_distance_m: float | None = 2000.0,
        hazard_avoid_threshold: float = 3.0,
        admissible_time_heuristic: bool = False,
        max_expansions: int = 0,
        instruction_interval: int = 0,
        default_optimize_for: str = "distance",
    ) -> None:
        self.network = network
        self.index = index if index is not None else build_spatial_index(network)
        self.max_snap_distance_m = max_snap_distance_m
        self.hazard_avoid_threshold = float(hazard_avoid_threshold)
        self.admissible_time_heuristic = bool(admissible_time_heuristic)
        self.max_expansions = max(0, int(max_expansions))
        self.instruction_interval = max(0, int(instruction_interval))
        self.default_optimize_for = default_optimize_for
        self._max_speed_kph = max((n.speed_limit_kph for n in network), default=DEFAULT_SPEED_KPH)

    @classmethod
    def from_settings(cls, cfg: Settings = settings, *, network: RoadNetwork | None = None) -> RoutePlanner:
        if network is None:
            network = build_default_network(
                cfg.network_profile,
                seed=cfg.network_seed,
                local_connect_radius_m=cfg.local_connect_radius_m,
                default_interval_m=cfg.road_interpolation_interval_m,
                intercity_interval_m=cfg.intercity_interpolation_interval_m,
            )
        return cls(
            network,
            index=build_spatial_index(network, cfg.spatial_index_kind),
            max_snap_distance_m=cfg.route_max_snap_distance_m,
            hazard_avoid_threshold=cfg.route_hazard_avoid_threshold,
            admissible_time_heuristic=cfg.route_admissible_time_heuristic,
            max_expansions=cfg.route_max_expansions,
            instruction_interval=cfg.route_instruction_interval,
            default_optimize_for=cfg.default_optimize_for,
        )

    def snap(self, point: LatLng) -> tuple[RoadNode, float]:
        return self.index.nearest_node(point, max_distance_m=self.max_snap_distance_m)

    def plan_route(self, start: LatLng, end: LatLng, options: RouteOptions | None = None) -> Route:
        options = options or RouteOptions()
        objective = resolve_objective(options.optimize_for or self.default_optimize_for)

        start_node, start_snap_m = self.snap(start)
        end_node, end_snap_m = self.snap(end)

        overlay = hazard_overlay(options.hazard_zones, self.index) if options.hazard_zones else {}
        threshold = self.hazard_avoid_threshold
        is_passable = (lambda n: effective_hazard(n, overlay) < threshold) if options.avoid_hazards else None

        with timed_event(
            "route_planned",
            objective=objective,
            start_node=start_node.id,
            end_node=end_node.id,
            start_snap_m=round(start_snap_m, 2),
            end_snap_m=round(end_snap_m, 2),
        ) as fields:
            try:
                result = a_star_search(
                    self.network,
                    start_node.id,
                    end_node.id,
                    cost_fn=make_cost_function(
                        objective,
                        prefer_highways=options.prefer_highways,
                        hazard_overlay=overlay,
                    ),
                    heuristic=make_heuristic(
                        objective,
                        admissible_time=self.admissible_time_heuristic,
                        max_speed_kph=self._max_speed_kph,
                    ),
                    is_passable=is_passable,
                    max_expansions=self.max_expansions or None,
                )
            except NoPathError as exc:
                log_event(
                    "route_no_path",
                    level=logging.WARNING,
                    objective=objective,
                    start_node=start_node.id,
                    end_node=end_node.id,
                    avoid_hazards=options.avoid_hazards,
                    expanded=(exc.details or {}).get("expanded"),
                )
                raise

            route = assemble_route(
                self.network,
                result.nodes,
                start=start,
                end=end,
                objective=objective,
                mode=options.mode,
                prefer_highways=options.prefer_highways,
                hazard_overlay=overlay,
                instruction_interval=self.instruction_interval,
                cost=result.cost,
                expanded_nodes=result.expanded,
            )
            if options.hazard_zones:
                route = dataclasses.replace(
                    route,
                    warnings=tuple(
                        route_warnings(route.path, options.hazard_zones, prefer_safety=options.avoid_hazards)
                    ),
                )
            fields.update(
                node_count=len(route.nodes),
                distance_m=route.total_distance_m,
                duration_s=route.total_time_s,
                risk_score=route.risk_score,
                expanded=result.expanded,
            )
        return route

    def plan_route_variants(
        self,
        start: LatLng,
        end: LatLng,
        *,
        avoid_hazard_types: Sequence[str] = (),
        prefer_safety: bool = True,
        hazard_zones: Sequence[HazardZone] = (),
        mode: str = "driving",
    ) -> dict[str, Route]:
        """Safest (safety objective, hazards avoided), fastest (time) and balanced (distance) routes."""
        zones = select_zones(hazard_zones, avoid_hazard_types)
        variants = {
            "safest": self._plan_avoiding(
                start, end, RouteOptions(optimize_for="safety", avoid_hazards=True, mode=mode, hazard_zones=zones)
            ),
            "fastest": self.plan_route(
                start, end, RouteOptions(optimize_for="time", mode=mode, hazard_zones=zones)
            ),
            "balanced": self._plan_avoiding(
                start,
                end,
                RouteOptions(optimize_for="distance", avoid_hazards=prefer_safety, mode=mode, hazard_zones=zones),
            ),
        }
        log_event(
            "route_variants_planned",
            zones=len(zones),
            prefer_safety=prefer_safety,
            **{f"{name}_distance_m": route.total_distance_m for name, route in variants.items()},
        )
        return variants

    def _plan_avoiding(self, start: LatLng, end: LatLng, options: RouteOptions) -> Route:
        try:
            return self.plan_route(start, end, options)
        except NoPathError:
            if not options.avoid_hazards:
                raise
        # Retry once without hard avoidance.
        fallback = self.plan_route(start, end, options.model_copy(update={"avoid_hazards": False}))
        return dataclasses.replace(fallback, warnings=(NO_SAFE_ROUTE_WARNING, *fallback.warnings))

    def stats(self) -> dict[str, Any]:
        return self.network.stats()
