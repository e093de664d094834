from __future__ import annotations

from dataclasses import dataclass
from typing import Any

FROZEN_REASON_CODES: frozenset[str] = frozenset(
    {
        "no_path",
        "snap_distance_exceeded",
        "empty_network",
        "search_budget_exceeded",
        "unknown_node",
        "invalid_region",
    }
)


@dataclass
class RoutingError(ValueError):
    reason_code: str
    message: str
    details: dict[str, Any] | None = None

    def __str__(self) -> str:
        return self.message


class NoPathError(RoutingError):
    def __init__(self, message: str = "no feasible path", details: dict[str, Any] | None = None) -> None:
        super().__init__(reason_code="no_path", message=message, details=details)


class SnapDistanceExceededError(RoutingError):
    def __init__(self, message: str, details: dict[str, Any] | None = None) -> None:
        super().__init__(reason_code="snap_distance_exceeded", message=message, details=details)


class SearchBudgetExceededError(RoutingError):
    def __init__(self, message: str = "search budget exceeded", details: dict[str, Any] | None = None) -> None:
        super().__init__(reason_code="search_budget_exceeded", message=message, details=details)


class EmptyNetworkError(RoutingError):
    def __init__(self, message: str = "road network has no nodes", details: dict[str, Any] | None = None) -> None:
        super().__init__(reason_code="empty_network", message=message, details=details)


class UnknownNodeError(RoutingError):
    def __init__(self, node_id: str) -> None:
        super().__init__(
            reason_code="unknown_node",
            message=f"unknown road node: {node_id}",
            details={"node_id": node_id},
        )


def normalize_reason_code(reason_code: str, *, default: str = "no_path") -> str:
    code = str(reason_code or "").strip()
    if code in FROZEN_REASON_CODES:
        return code
    return default
