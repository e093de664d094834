from __future__ import annotations

from contextlib import asynccontextmanager
from typing import Annotated

from fastapi import Depends, FastAPI, HTTPException, Query, Request
from fastapi.middleware.cors import CORSMiddleware

from .errors import RoutingError, normalize_reason_code
from .logging_utils import configure_logging, timed_event
from .models import (
    InstructionPayload,
    LatLng,
    NetworkStatsResponse,
    PreciseRouteRequest,
    RouteNodePayload,
    RoutePayload,
    RoutePlanRequest,
    RouteVariantsResponse,
)
from .planner import RoutePlanner
from .route_assembler import Route
from .settings import settings


@asynccontextmanager
async def lifespan(app: FastAPI):
    configure_logging(level=settings.log_level, out_dir=settings.out_dir)
    # The graph is built once per process and shared read-mostly by every request.
    app.state.planner = RoutePlanner.from_settings(settings)
    yield
    app.state.planner = None


app = FastAPI(title="Taiwan Hazard-Aware Navigation", version="0.1.0", lifespan=lifespan)

app.add_middleware(
    CORSMiddleware,
    allow_origins=["*"],
    allow_credentials=False,
    allow_methods=["*"],
    allow_headers=["*"],
)


def route_planner(request: Request) -> RoutePlanner:
    planner: RoutePlanner | None = getattr(request.app.state, "planner", None)  # type: ignore[attr-defined]
    if planner is None:
        raise HTTPException(status_code=503, detail="route planner not initialised")
    return planner


PlannerDep = Annotated[RoutePlanner, Depends(route_planner)]


def _routing_http_error(exc: RoutingError) -> HTTPException:
    return HTTPException(
        status_code=422,
        detail={
            "reason_code": normalize_reason_code(exc.reason_code),
            "message": exc.message,
            "details": exc.details or {},
        },
    )


def route_payload(route: Route) -> RoutePayload:
    return RoutePayload(
        objective=route.objective,
        distance_m=route.total_distance_m,
        duration_s=route.total_time_s,
        risk_score=route.risk_score,
        node_count=len(route.nodes),
        path=list(route.path),
        nodes=[
            RouteNodePayload(
                id=node.id,
                lat=node.lat,
                lng=node.lng,
                road_name=node.road_name,
                road_type=node.road_type,
                hazard_level=round(level, 2),
            )
            for node, level in zip(route.nodes, route.hazard_levels, strict=True)
        ],
        instructions=[
            InstructionPayload(
                node_id=i.node_id,
                direction=i.direction,  # type: ignore[arg-type]
                distance_m=i.distance_m,
                street_name=i.street_name,
                landmarks=list(i.landmarks),
                text=i.text,
            )
            for i in route.instructions
        ],
        warnings=list(route.warnings),
        expanded_nodes=route.expanded_nodes,
    )


@app.get("/health")
async def health() -> dict[str, str]:
    return {"status": "ok"}


@app.get("/map/network/stats", response_model=NetworkStatsResponse)
def network_stats(planner: PlannerDep) -> NetworkStatsResponse:
    return NetworkStatsResponse(profile=settings.network_profile, seed=settings.network_seed, **planner.stats())


@app.post("/map/route", response_model=RouteVariantsResponse)
def plan_route_variants(req: RoutePlanRequest, planner: PlannerDep) -> RouteVariantsResponse:
    try:
        with timed_event("route_request", hazard_zones=len(req.hazard_zones), mode=req.mode):
            variants = planner.plan_route_variants(
                req.start,
                req.end,
                avoid_hazard_types=req.avoid_hazard_types,
                prefer_safety=req.prefer_safety,
                hazard_zones=req.hazard_zones,
                mode=req.mode,
            )
    except RoutingError as e:
        raise _routing_http_error(e) from e
    return RouteVariantsResponse(
        safest_route=route_payload(variants["safest"]),
        fastest_route=route_payload(variants["fastest"]),
        balanced_route=route_payload(variants["balanced"]),
    )


@app.post("/map/route/precise", response_model=RoutePayload)
def plan_precise_route(req: PreciseRouteRequest, planner: PlannerDep) -> RoutePayload:
    try:
        route = planner.plan_route(req.start, req.end, req.options)
    except RoutingError as e:
        raise _routing_http_error(e) from e
    return route_payload(route)


@app.get("/map/snap", response_model=RouteNodePayload)
def snap_point(
    lat: Annotated[float, Query(ge=-90, le=90)],
    lng: Annotated[float, Query(ge=-180, le=180)],
    planner: PlannerDep,
) -> RouteNodePayload:
    try:
        node, _distance = planner.snap(LatLng(lat=lat, lng=lng))
    except RoutingError as e:
        raise _routing_http_error(e) from e
    return RouteNodePayload(
        id=node.id,
        lat=node.lat,
        lng=node.lng,
        road_name=node.road_name,
        road_type=node.road_type,
        hazard_level=round(node.hazard_level, 2),
    )
