import math

import pytest

from forecast_agent.stats import (
    clip,
    finite_or,
    mean,
    ols_intercept,
    ols_slope,
    percentile,
    percentiles,
    trailing_mean,
)


def test_percentile_interpolates_between_order_statistics() -> None:
    assert percentile([10, 20, 30, 40], 0.5) == 25
    assert percentile([40, 10, 30, 20], 0.5) == 25
    assert percentile([10, 20, 30, 40], 0.1) == pytest.approx(13.0)


def test_percentile_single_value_for_any_q() -> None:
    for q in (0.0, 0.1, 0.5, 0.9, 1.0):
        assert percentile([7.5], q) == 7.5


def test_percentile_empty_is_zero() -> None:
    assert percentile([], 0.5) == 0.0
    assert percentiles([]) == [0.0, 0.0, 0.0]


def test_percentiles_are_ordered() -> None:
    p10, p50, p90 = percentiles([5, -3, 12, 0, 8, 8, 1])
    assert p10 <= p50 <= p90


def test_ols_on_exact_line() -> None:
    x = list(range(1, 11))
    y = [2 * v + 1 for v in x]
    slope = ols_slope(y, x)
    assert slope == pytest.approx(2.0)
    assert ols_intercept(y, x, slope) == pytest.approx(1.0)


def test_ols_slope_zero_variance_x() -> None:
    assert ols_slope([1, 2, 3], [5, 5, 5]) == 0.0
    assert ols_slope([], []) == 0.0


def test_trailing_mean_includes_current_value() -> None:
    assert list(trailing_mean([1, 2, 3], 2)) == [1.0, 1.5, 2.5]


def test_finite_or_and_helpers() -> None:
    assert finite_or(math.nan, 1.0) == 1.0
    assert finite_or(math.inf, 0.0) == 0.0
    assert finite_or('x', 3.0) == 3.0
    assert finite_or(2, 0.0) == 2.0
    assert mean([]) == 0.0
    assert clip(5, 0, 1) == 1
    assert clip(-5, 0, 1) == 0
