from __future__ import annotations

import pytest
from pydantic import ValidationError

from hazard_nav.settings import Settings


def test_env_overrides_and_choice_normalization(monkeypatch) -> None:
    monkeypatch.setenv("NETWORK_PROFILE", " TAIPEI ")
    monkeypatch.setenv("SPATIAL_INDEX_KIND", "kd-tree")
    monkeypatch.setenv("NETWORK_SEED", "7")
    monkeypatch.setenv("DEFAULT_OPTIMIZE_FOR", "Time")

    cfg = Settings()

    assert cfg.network_profile == "taipei"
    assert cfg.spatial_index_kind == "linear"
    assert cfg.network_seed == 7
    assert cfg.default_optimize_for == "time"


def test_unknown_profile_falls_back_to_taiwan() -> None:
    assert Settings(NETWORK_PROFILE="mars").network_profile == "taiwan"


def test_bounds_are_validated() -> None:
    with pytest.raises(ValidationError):
        Settings(LOCAL_CONNECT_RADIUS_M=500.0)
    with pytest.raises(ValidationError):
        Settings(ROUTE_HAZARD_AVOID_THRESHOLD=9.0)
