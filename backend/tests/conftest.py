from __future__ import annotations

from collections.abc import Callable

import pytest

from hazard_nav.road_network import RoadNetwork, RoadNode, node_id_for


def grid_coord(row: int, col: int, *, step_deg: float = 0.001) -> tuple[float, float]:
    return round(25.0 + row * step_deg, 6), round(121.5 + col * step_deg, 6)


def grid_id(row: int, col: int, *, step_deg: float = 0.001) -> str:
    return node_id_for(*grid_coord(row, col, step_deg=step_deg))


def build_grid(rows: int, cols: int, *, step_deg: float = 0.001, road_type: str = "local") -> RoadNetwork:
    """Rows run east along "Row r", columns run north along "Column c"."""
    network = RoadNetwork()
    for r in range(rows):
        for c in range(cols):
            lat, lng = grid_coord(r, c, step_deg=step_deg)
            network.add_node(
                RoadNode(
                    id=node_id_for(lat, lng),
                    lat=lat,
                    lng=lng,
                    road_type=road_type,
                    speed_limit_kph=40.0,
                    road_name=f"Row {r}",
                    district="Test Grid",
                )
            )
    for r in range(rows):
        for c in range(cols):
            here = grid_id(r, c, step_deg=step_deg)
            if c + 1 < cols:
                network.connect(here, grid_id(r, c + 1, step_deg=step_deg), road_type=road_type, road_name=f"Row {r}")
            if r + 1 < rows:
                network.connect(
                    here, grid_id(r + 1, c, step_deg=step_deg), road_type=road_type, road_name=f"Column {c}"
                )
    return network


@pytest.fixture
def make_grid() -> Callable[..., RoadNetwork]:
    return build_grid
