from __future__ import annotations

import pytest

from record_desk.views.aggregates import (
    EmptySentinel,
    average,
    count_by,
    percentage_average,
    percentages,
    rate,
    round_half_up,
    sum_by,
    total,
)


@pytest.mark.parametrize(
    "value,digits,expected",
    [(2.5, 0, 3), (84.25, 1, 84.3), (87.75, 1, 87.8), (0.5, 0, 1), (89.94, 1, 89.9), (84.35, 1, 84.3)],
)
def test_round_half_up(value, digits, expected):
    assert round_half_up(value, digits) == expected


def test_round_half_up_whole_digits_returns_int():
    assert isinstance(round_half_up(92.0), int)


def test_average_empty_returns_sentinel():
    assert average([]) == "N/A"
    assert average([], sentinel=EmptySentinel.ZERO) == 0
    assert average([None, float("nan")], sentinel=EmptySentinel.ZERO) == 0


def test_average_ignores_none():
    assert average([80, None, 90]) == 85.0


def test_percentage_average_within_bounds():
    records = [
        {"score": 45, "max": 50},
        {"score": 0, "max": 20},
        {"score": 100, "max": 100},
    ]
    result = percentage_average(records, "score", "max")
    assert 0 <= result <= 100
    assert result == 63.3


def test_percentages_skip_missing_and_non_positive_totals():
    records = [
        {"id": "a", "score": 10, "max": 0},
        {"id": "b", "score": None, "max": 10},
        {"id": "c", "score": 5, "max": 10},
        {"id": "d", "score": 5, "max": -10},
    ]
    assert percentages(records, "score", "max") == [50.0]


def test_rate_handles_zero_denominator():
    assert rate(0, 0) == 0
    assert rate(1, 3) == 33.3
    assert rate(2, 2) == 100.0


def test_sum_and_count_by_keep_first_appearance_order():
    records = [
        {"category": "Tools", "quantity": 5},
        {"category": "Packaging", "quantity": 40},
        {"category": "Tools", "quantity": "7"},
        {"category": None, "quantity": 1},
    ]
    assert sum_by(records, "category", "quantity") == {"Tools": 12, "Packaging": 40, "": 1}
    assert count_by(records, "category") == {"Tools": 2, "Packaging": 1, "": 1}
    assert count_by(records, lambda r: "big" if r["quantity"] == 40 else "small") == {"small": 3, "big": 1}


def test_sum_and_count_by_empty():
    assert sum_by([], "a", "b") == {}
    assert count_by([], "a") == {}


def test_total_treats_non_numeric_as_zero():
    assert total([{"v": 1.5}, {"v": "x"}, {"v": 2.5}], "v") == 4
    assert total([], "v") == 0
