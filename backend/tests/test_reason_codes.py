from __future__ import annotations

import pytest

from hazard_nav.errors import (
    FROZEN_REASON_CODES,
    EmptyNetworkError,
    NoPathError,
    RoutingError,
    SearchBudgetExceededError,
    SnapDistanceExceededError,
    UnknownNodeError,
    normalize_reason_code,
)


@pytest.mark.parametrize(
    ("error", "code"),
    [
        (NoPathError(), "no_path"),
        (SnapDistanceExceededError("too far"), "snap_distance_exceeded"),
        (SearchBudgetExceededError(), "search_budget_exceeded"),
        (EmptyNetworkError(), "empty_network"),
        (UnknownNodeError("node_1_2"), "unknown_node"),
    ],
)
def test_routing_errors_carry_frozen_reason_codes(error: RoutingError, code: str) -> None:
    assert isinstance(error, ValueError)
    assert error.reason_code == code
    assert code in FROZEN_REASON_CODES
    assert str(error) == error.message


def test_unknown_node_details() -> None:
    err = UnknownNodeError("node_1_2")
    assert err.details == {"node_id": "node_1_2"}
    assert "node_1_2" in str(err)


def test_normalize_reason_code() -> None:
    assert normalize_reason_code(" no_path ") == "no_path"
    assert normalize_reason_code("invalid_region") == "invalid_region"
    assert normalize_reason_code("something_else") == "no_path"
    assert normalize_reason_code("", default="empty_network") == "empty_network"
