from __future__ import annotations

from typing import Literal

from pydantic import BaseModel, Field, field_validator, model_validator

OptimizeFor = Literal["time", "distance", "safety"]
TravelMode = Literal["driving", "walking"]
Direction = Literal[
    "straight",
    "slight_left",
    "slight_right",
    "left",
    "right",
    "sharp_left",
    "sharp_right",
]


def _camel_aliases(value: object, aliases: dict[str, str]) -> object:
    if not isinstance(value, dict):
        return value
    data = dict(value)
    for camel, snake in aliases.items():
        if snake not in data and camel in data:
            data[snake] = data.pop(camel)
    return data


class LatLng(BaseModel):
    lat: float = Field(..., ge=-90, le=90)
    lng: float = Field(..., ge=-180, le=180)

    @model_validator(mode="before")
    @classmethod
    def accept_lon_alias(cls, value: object) -> object:
        return _camel_aliases(value, {"lon": "lng"})


class HazardZone(BaseModel):
    """A reported disaster area; raises the hazard level of nodes inside its radius."""

    center: LatLng
    radius_m: float = Field(default=500.0, gt=0.0, le=50_000.0)
    hazard_type: str = "general"
    level: float = Field(default=3.0, ge=0.0, le=5.0)

    @model_validator(mode="before")
    @classmethod
    def accept_legacy_aliases(cls, value: object) -> object:
        return _camel_aliases(value, {"radius": "radius_m", "type": "hazard_type", "riskLevel": "level"})


class RouteOptions(BaseModel):
    # Unrecognized objectives are defaulted to distance by the planner rather than rejected.
    optimize_for: str = "distance"
    avoid_hazards: bool = False
    prefer_highways: bool = False
    mode: TravelMode = "driving"
    hazard_zones: list[HazardZone] = Field(default_factory=list, max_length=200)

    @model_validator(mode="before")
    @classmethod
    def accept_camel_case(cls, value: object) -> object:
        return _camel_aliases(
            value,
            {
                "optimizeFor": "optimize_for",
                "avoidHazards": "avoid_hazards",
                "preferHighways": "prefer_highways",
                "hazardZones": "hazard_zones",
            },
        )

    @field_validator("optimize_for", mode="before")
    @classmethod
    def normalize_objective(cls, v: object) -> str:
        return str(v or "").strip().lower()


class PreciseRouteRequest(BaseModel):
    start: LatLng
    end: LatLng
    options: RouteOptions = Field(default_factory=RouteOptions)


class RoutePlanRequest(BaseModel):
    start: LatLng
    end: LatLng
    avoid_hazard_types: list[str] = Field(default_factory=list, max_length=32)
    prefer_safety: bool = True
    mode: TravelMode = "driving"
    hazard_zones: list[HazardZone] = Field(default_factory=list, max_length=200)

    @model_validator(mode="before")
    @classmethod
    def accept_camel_case(cls, value: object) -> object:
        return _camel_aliases(
            value,
            {
                "avoidHazardTypes": "avoid_hazard_types",
                "preferSafety": "prefer_safety",
                "hazardZones": "hazard_zones",
            },
        )


class RouteNodePayload(BaseModel):
    id: str
    lat: float
    lng: float
    road_name: str | None = None
    road_type: str
    hazard_level: float


class InstructionPayload(BaseModel):
    node_id: str
    direction: Direction
    distance_m: float = Field(..., ge=0.0)
    street_name: str
    landmarks: list[str] = Field(default_factory=list)
    text: str


class RoutePayload(BaseModel):
    objective: str
    distance_m: float
    duration_s: float
    risk_score: float = Field(..., ge=0.0, le=5.0)
    node_count: int
    path: list[LatLng]
    nodes: list[RouteNodePayload]
    instructions: list[InstructionPayload]
    warnings: list[str] = Field(default_factory=list)
    expanded_nodes: int = 0


class RouteVariantsResponse(BaseModel):
    safest_route: RoutePayload
    fastest_route: RoutePayload
    balanced_route: RoutePayload


class NetworkStatsResponse(BaseModel):
    profile: str
    seed: int
    total_nodes: int
    total_segments: int
    average_connections: float
    isolated_nodes: int
    road_type_counts: dict[str, int]
    named_roads: list[str]
