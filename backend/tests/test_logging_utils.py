from __future__ import annotations

import json
import logging
from pathlib import Path

import pytest

from hazard_nav.logging_utils import LOG_FILE_NAME, configure_logging, log_event, timed_event
from hazard_nav.settings import settings


def _records(out_dir: Path) -> list[dict]:
    lines = (out_dir / "logs" / LOG_FILE_NAME).read_text(encoding="utf-8").splitlines()
    return [json.loads(line) for line in lines if line.strip()]


def test_events_are_written_as_json_lines(tmp_path: Path) -> None:
    configure_logging(level="INFO", out_dir=str(tmp_path))
    try:
        log_event("route_options_defaulted", requested="scenic", objective="distance")
        with timed_event("road_network_built", seed=7) as fields:
            fields["total_nodes"] = 25

        first, second = _records(tmp_path)
        assert first["event"] == "route_options_defaulted"
        assert first["requested"] == "scenic"
        assert first["network_profile"] == settings.network_profile
        assert first["level"] == "INFO"
        assert second["event"] == "road_network_built"
        assert second["seed"] == 7
        assert second["total_nodes"] == 25
        assert second["elapsed_ms"] >= 0.0
    finally:
        configure_logging()


def test_timed_event_skips_failed_blocks(tmp_path: Path) -> None:
    configure_logging(out_dir=str(tmp_path))
    try:
        with pytest.raises(RuntimeError):
            with timed_event("route_planned"):
                raise RuntimeError("boom")
        assert _records(tmp_path) == []
    finally:
        configure_logging()


def test_level_threshold_filters_lower_levels(tmp_path: Path) -> None:
    configure_logging(level="WARNING", out_dir=str(tmp_path))
    try:
        log_event("route_planned")
        log_event("route_no_path", level=logging.WARNING)
        assert [r["event"] for r in _records(tmp_path)] == ["route_no_path"]
    finally:
        configure_logging()
