from __future__ import annotations

from pathlib import Path

from pydantic import Field, model_validator
from pydantic_settings import BaseSettings, SettingsConfigDict


def _default_out_dir() -> str:
    # Keep logs and generated artifacts in backend/out by default.
    return str(Path(__file__).resolve().parents[1] / "out")


class Settings(BaseSettings):
    """Network generation and route planning knobs, read from the environment or a .env file."""

    model_config = SettingsConfigDict(
        # .env in the working directory or its parent (running from backend/).
        env_file=(".env", "../.env"),
        env_file_encoding="utf-8",
        extra="ignore",
    )

    out_dir: str = Field(default_factory=_default_out_dir, alias="OUT_DIR")
    log_level: str = Field(default="INFO", alias="LOG_LEVEL")

    # Synthetic road network
    network_seed: int = Field(default=20240915, alias="NETWORK_SEED")
    network_profile: str = Field(default="taiwan", alias="NETWORK_PROFILE")
    local_connect_radius_m: float = Field(default=50.0, ge=1.0, le=100.0, alias="LOCAL_CONNECT_RADIUS_M")
    road_interpolation_interval_m: float = Field(
        default=10.0,
        ge=1.0,
        le=500.0,
        alias="ROAD_INTERPOLATION_INTERVAL_M",
    )
    # Long intercity roads are sampled more coarsely to keep startup fast.
    intercity_interpolation_interval_m: float = Field(
        default=50.0,
        ge=1.0,
        le=1000.0,
        alias="INTERCITY_INTERPOLATION_INTERVAL_M",
    )
    spatial_index_kind: str = Field(default="linear", alias="SPATIAL_INDEX_KIND")

    # Route planning
    default_optimize_for: str = Field(default="distance", alias="DEFAULT_OPTIMIZE_FOR")
    route_max_snap_distance_m: float = Field(default=2000.0, gt=0.0, alias="ROUTE_MAX_SNAP_DISTANCE_M")
    route_hazard_avoid_threshold: float = Field(
        default=3.0,
        ge=0.0,
        le=5.0,
        alias="ROUTE_HAZARD_AVOID_THRESHOLD",
    )
    route_admissible_time_heuristic: bool = Field(default=False, alias="ROUTE_ADMISSIBLE_TIME_HEURISTIC")
    route_max_expansions: int = Field(default=0, ge=0, alias="ROUTE_MAX_EXPANSIONS")
    # 0 emits one instruction per turn event; N > 0 emits every N nodes instead.
    route_instruction_interval: int = Field(default=0, ge=0, alias="ROUTE_INSTRUCTION_INTERVAL")

    @model_validator(mode="after")
    def _normalize_choices(self) -> "Settings":
        profile = str(self.network_profile or "taiwan").strip().lower()
        if profile not in {"taiwan", "taipei"}:
            profile = "taiwan"
        self.network_profile = profile
        index_kind = str(self.spatial_index_kind or "linear").strip().lower()
        if index_kind not in {"linear", "grid"}:
            index_kind = "linear"
        self.spatial_index_kind = index_kind
        self.default_optimize_for = str(self.default_optimize_for or "distance").strip().lower()
        return self


settings = Settings()
