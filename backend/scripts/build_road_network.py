from __future__ import annotations

import argparse
import json
import time
from pathlib import Path
from typing import Any, Sequence

from hazard_nav.models import LatLng, RouteOptions
from hazard_nav.network_builder import build_default_network
from hazard_nav.planner import RoutePlanner
from hazard_nav.settings import settings
from hazard_nav.spatial_index import build_spatial_index


def _parse_point(raw: str) -> LatLng:
    parts = [p.strip() for p in str(raw).split(",")]
    if len(parts) != 2:
        raise ValueError(f"expected 'lat,lng', got {raw!r}")
    try:
        return LatLng(lat=float(parts[0]), lng=float(parts[1]))
    except ValueError as e:
        raise ValueError(f"invalid coordinate: {raw!r}") from e


def run_build(args: argparse.Namespace) -> dict[str, Any]:
    t0 = time.perf_counter()
    network = build_default_network(
        args.profile,
        seed=int(args.seed),
        local_connect_radius_m=settings.local_connect_radius_m,
        default_interval_m=float(args.interval_m),
        intercity_interval_m=settings.intercity_interpolation_interval_m,
    )
    payload: dict[str, Any] = {
        "profile": args.profile,
        "seed": int(args.seed),
        "build_ms": round((time.perf_counter() - t0) * 1000.0, 2),
        "stats": network.stats(),
    }

    if args.route_from and args.route_to:
        planner = RoutePlanner(
            network,
            index=build_spatial_index(network, settings.spatial_index_kind),
            max_snap_distance_m=settings.route_max_snap_distance_m,
        )
        route = planner.plan_route(
            _parse_point(args.route_from),
            _parse_point(args.route_to),
            RouteOptions(optimize_for=args.optimize_for),
        )
        payload["route"] = {
            "objective": route.objective,
            "distance_m": route.total_distance_m,
            "duration_s": route.total_time_s,
            "risk_score": route.risk_score,
            "node_count": len(route.nodes),
            "instructions": route.instruction_texts,
        }

    if args.out_file:
        out_path = Path(args.out_file).resolve()
        out_path.parent.mkdir(parents=True, exist_ok=True)
        out_path.write_text(json.dumps(payload, indent=2), encoding="utf-8")
        payload["out_file"] = str(out_path)
    return payload


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Build the synthetic road network and print its stats.")
    parser.add_argument("--profile", choices=("taiwan", "taipei"), default=settings.network_profile)
    parser.add_argument("--seed", type=int, default=settings.network_seed)
    parser.add_argument("--interval-m", type=float, default=settings.road_interpolation_interval_m)
    parser.add_argument("--route-from", default=None, help="Optional 'lat,lng' to plan a sample route from.")
    parser.add_argument("--route-to", default=None, help="Optional 'lat,lng' to plan a sample route to.")
    parser.add_argument("--optimize-for", choices=("time", "distance", "safety"), default="distance")
    parser.add_argument("--out-file", default=None)
    return parser


def main(argv: Sequence[str] | None = None) -> int:
    args = build_parser().parse_args(list(argv) if argv is not None else None)
    payload = run_build(args)
    print(json.dumps(payload, indent=2))
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
