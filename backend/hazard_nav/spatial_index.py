from __future__ import annotations

import math
from typing import Protocol, runtime_checkable

import numpy as np

from .errors import EmptyNetworkError, SnapDistanceExceededError
from .geo import EARTH_RADIUS_M, haversine_m, meters_per_deg_lng
from .models import LatLng
from .road_network import RoadNetwork, RoadNode


@runtime_checkable
class SpatialIndex(Protocol):
    """
    Nearest-node and radius queries over a road network.
    Ties always go to the node inserted first.
    """

    def nearest_node(self, point: LatLng, *, max_distance_m: float | None = None) -> tuple[RoadNode, float]: ...
    def nodes_within_radius(
        self, point: LatLng, radius_m: float, *, exclude_id: str | None = None
    ) -> list[RoadNode]: ...


def _haversine_many(lat: float, lng: float, lats: np.ndarray, lngs: np.ndarray) -> np.ndarray:
    phi1 = math.radians(lat)
    phi2 = np.radians(lats)
    dphi = phi2 - phi1
    dlambda = np.radians(lngs - lng)
    a = np.sin(dphi / 2.0) ** 2 + math.cos(phi1) * np.cos(phi2) * np.sin(dlambda / 2.0) ** 2
    return 2.0 * EARTH_RADIUS_M * np.arcsin(np.minimum(1.0, np.sqrt(np.maximum(0.0, a))))


def _check_snap(node: RoadNode, distance_m: float, point: LatLng, max_distance_m: float | None) -> None:
    if max_distance_m is not None and distance_m > max_distance_m:
        raise SnapDistanceExceededError(
            f"no road node within {max_distance_m:.0f} m of ({point.lat}, {point.lng})",
            details={
                "nearest_node_id": node.id,
                "nearest_distance_m": round(distance_m, 2),
                "max_distance_m": max_distance_m,
            },
        )


class LinearScanIndex:
    """Brute-force scan over every node; fine for graphs in the low thousands."""

    def __init__(self, network: RoadNetwork) -> None:
        self._nodes: list[RoadNode] = list(network.nodes.values())
        self._lats = np.fromiter((n.lat for n in self._nodes), dtype=float, count=len(self._nodes))
        self._lngs = np.fromiter((n.lng for n in self._nodes), dtype=float, count=len(self._nodes))

    def nearest_node(self, point: LatLng, *, max_distance_m: float | None = None) -> tuple[RoadNode, float]:
        if not self._nodes:
            raise EmptyNetworkError()
        distances = _haversine_many(point.lat, point.lng, self._lats, self._lngs)
        # argmin returns the first occurrence, so insertion order breaks ties.
        idx = int(np.argmin(distances))
        node, distance_m = self._nodes[idx], float(distances[idx])
        _check_snap(node, distance_m, point, max_distance_m)
        return node, distance_m

    def nodes_within_radius(
        self, point: LatLng, radius_m: float, *, exclude_id: str | None = None
    ) -> list[RoadNode]:
        if not self._nodes:
            return []
        distances = _haversine_many(point.lat, point.lng, self._lats, self._lngs)
        hits = np.flatnonzero(distances <= float(radius_m))
        return [self._nodes[int(i)] for i in hits if self._nodes[int(i)].id != exclude_id]


class GridBucketIndex:
    """Lat/lng bucket index scanned in rings; same answers as the linear scan."""

    def __init__(self, network: RoadNetwork, *, bucket_deg: float = 0.001) -> None:
        self._bucket_deg = float(bucket_deg)
        self._ordinal: dict[str, int] = {}
        self._buckets: dict[tuple[int, int], list[RoadNode]] = {}
        for ordinal, node in enumerate(network.nodes.values()):
            self._ordinal[node.id] = ordinal
            self._buckets.setdefault(self._key(node.lat, node.lng), []).append(node)
        if self._buckets:
            keys = list(self._buckets)
            self._min_key = (min(k[0] for k in keys), min(k[1] for k in keys))
            self._max_key = (max(k[0] for k in keys), max(k[1] for k in keys))

    def _key(self, lat: float, lng: float) -> tuple[int, int]:
        return (int(math.floor(lat / self._bucket_deg)), int(math.floor(lng / self._bucket_deg)))

    def _min_bucket_m(self, lat: float) -> float:
        return self._bucket_deg * min(meters_per_deg_lng(lat), meters_per_deg_lng(min(89.0, abs(lat) + 1.0)))

    @staticmethod
    def _ring_offsets(radius: int) -> tuple[tuple[int, int], ...]:
        if radius <= 0:
            return ((0, 0),)
        offsets: list[tuple[int, int]] = []
        for dx in range(-radius, radius + 1):
            offsets.append((dx, -radius))
            offsets.append((dx, radius))
        for dy in range(-radius + 1, radius):
            offsets.append((-radius, dy))
            offsets.append((radius, dy))
        return tuple(offsets)

    def _max_ring(self, center: tuple[int, int]) -> int:
        return max(
            abs(center[0] - self._min_key[0]),
            abs(center[0] - self._max_key[0]),
            abs(center[1] - self._min_key[1]),
            abs(center[1] - self._max_key[1]),
        )

    def nearest_node(self, point: LatLng, *, max_distance_m: float | None = None) -> tuple[RoadNode, float]:
        if not self._buckets:
            raise EmptyNetworkError()
        center = self._key(point.lat, point.lng)
        ring_m = self._min_bucket_m(point.lat)
        best: tuple[float, int, RoadNode] | None = None
        for radius in range(0, self._max_ring(center) + 1):
            for dy, dx in self._ring_offsets(radius):
                for node in self._buckets.get((center[0] + dy, center[1] + dx), ()):
                    dist = haversine_m(point.lat, point.lng, node.lat, node.lng)
                    rank = (dist, self._ordinal[node.id])
                    if best is None or rank < best[:2]:
                        best = (dist, self._ordinal[node.id], node)
            # Anything in the next ring is at least radius * ring_m away.
            if best is not None and best[0] < radius * ring_m:
                break
        if best is None:
            raise EmptyNetworkError()
        _check_snap(best[2], best[0], point, max_distance_m)
        return best[2], best[0]

    def nodes_within_radius(
        self, point: LatLng, radius_m: float, *, exclude_id: str | None = None
    ) -> list[RoadNode]:
        if not self._buckets:
            return []
        center = self._key(point.lat, point.lng)
        rings = int(math.ceil(float(radius_m) / self._min_bucket_m(point.lat))) + 1
        found: list[RoadNode] = []
        for radius in range(0, min(rings, self._max_ring(center)) + 1):
            for dy, dx in self._ring_offsets(radius):
                for node in self._buckets.get((center[0] + dy, center[1] + dx), ()):
                    if node.id == exclude_id:
                        continue
                    if haversine_m(point.lat, point.lng, node.lat, node.lng) <= float(radius_m):
                        found.append(node)
        found.sort(key=lambda n: self._ordinal[n.id])
        return found


def neighbors_within(index: SpatialIndex, node: RoadNode, radius_m: float) -> list[RoadNode]:
    return index.nodes_within_radius(LatLng(lat=node.lat, lng=node.lng), radius_m, exclude_id=node.id)


def build_spatial_index(network: RoadNetwork, kind: str = "linear") -> SpatialIndex:
    if kind == "grid":
        return GridBucketIndex(network)
    return LinearScanIndex(network)
