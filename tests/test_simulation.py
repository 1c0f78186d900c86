from datetime import date

import numpy as np
import pytest

from forecast_agent.factors import client_factor, opinion_factor
from forecast_agent.model import TrendSeasonalModel
from forecast_agent.months import month_range
from forecast_agent.residuals import ResidualQuantiles
from forecast_agent.simulation import (
    forecast_by_residual_quantiles,
    forecast_monte_carlo_mixed,
    regression_reference,
)

MONTHS = month_range(date(2025, 4, 1), 12)


def _build_flat_model(level=100.0):
    return TrendSeasonalModel(intercept=level, slope=0.0, seasonal_index=[1.0] * 12, fitted=[level] * 48)


def test_objective_band_from_residual_quantiles() -> None:
    band = forecast_by_residual_quantiles(_build_flat_model(), [0.0] * 12, ResidualQuantiles(-0.1, 0.0, 0.1))
    assert band.p10 == [pytest.approx(90.0)] * 12
    assert band.p50 == [pytest.approx(100.0)] * 12
    assert band.p90 == [pytest.approx(110.0)] * 12


def test_fixed_additions_identical_in_both_tracks() -> None:
    fixed = [0.0] * 12
    fixed[3] = 500.0
    model = _build_flat_model()
    objective = forecast_by_residual_quantiles(model, fixed, ResidualQuantiles(0.0, 0.0, 0.0))
    mixed = forecast_monte_carlo_mixed(model, fixed, [0.0], MONTHS, np.random.default_rng(1), n_sim=50)

    assert mixed.p50 == objective.p50
    assert objective.p50[3] - objective.p50[0] == pytest.approx(500.0)


def test_fixed_addition_is_not_scaled_by_factors() -> None:
    fixed = [1000.0] * 12
    factors = [client_factor('Sato', date(2025, 4, 1), -1.0)]
    mixed = forecast_monte_carlo_mixed(
        _build_flat_model(), fixed, [0.0], MONTHS, np.random.default_rng(1),
        factors_client=factors, n_sim=50,
    )
    assert mixed.p10 == [1000.0] * 12
    assert mixed.p90 == [1000.0] * 12


def test_mixed_band_is_ordered_and_finite() -> None:
    rng = np.random.default_rng(7)
    pool = list(rng.normal(0, 0.15, size=48))
    opinions = [
        opinion_factor('Sato', date(2025, 4, 1), 0.2, 0.8),
        opinion_factor('Suzuki', date(2025, 9, 1), -0.1, 0.5),
    ]
    mixed = forecast_monte_carlo_mixed(_build_flat_model(), [0.0] * 12, pool, MONTHS, rng,
                                       opinions=opinions, n_sim=500)
    for lo, mid, hi in zip(mixed.p10, mixed.p50, mixed.p90):
        assert np.isfinite([lo, mid, hi]).all()
        assert lo <= mid <= hi


def test_ops_track_is_floored_before_fixed() -> None:
    mixed = forecast_monte_carlo_mixed(_build_flat_model(), [50.0] * 12, [-2.0], MONTHS,
                                       np.random.default_rng(0), n_sim=20)
    assert mixed.p10 == [50.0] * 12
    assert mixed.p90 == [50.0] * 12


def test_mixed_without_factors_converges_to_objective() -> None:
    pool = list(np.linspace(-0.2, 0.2, 41))
    objective = forecast_by_residual_quantiles(_build_flat_model(), [0.0] * 12, ResidualQuantiles(-0.16, 0.0, 0.16))
    mixed = forecast_monte_carlo_mixed(_build_flat_model(), [0.0] * 12, pool, MONTHS,
                                       np.random.default_rng(3), n_sim=20_000)
    assert np.mean(mixed.p50) == pytest.approx(np.mean(objective.p50), abs=1.5)
    assert np.mean(mixed.p10) == pytest.approx(np.mean(objective.p10), abs=1.5)
    assert np.mean(mixed.p90) == pytest.approx(np.mean(objective.p90), abs=1.5)


def test_seeded_runs_are_reproducible() -> None:
    pool = [-0.1, 0.0, 0.2]
    opinions = [opinion_factor('Sato', date(2025, 4, 1), 0.2, 0.8)]
    a = forecast_monte_carlo_mixed(_build_flat_model(), [0.0] * 12, pool, MONTHS,
                                   np.random.default_rng(5), opinions=opinions, n_sim=100)
    b = forecast_monte_carlo_mixed(_build_flat_model(), [0.0] * 12, pool, MONTHS,
                                   np.random.default_rng(5), opinions=opinions, n_sim=100)
    assert a == b


def test_empty_pool_and_bad_fixed_length() -> None:
    mixed = forecast_monte_carlo_mixed(_build_flat_model(), [0.0] * 12, [], MONTHS,
                                       np.random.default_rng(0), n_sim=10)
    assert mixed.p50 == [100.0] * 12
    with pytest.raises(ValueError):
        forecast_monte_carlo_mixed(_build_flat_model(), [0.0] * 11, [], MONTHS, np.random.default_rng(0))


def test_regression_reference_adds_fixed() -> None:
    fixed = [10.0] * 12
    assert regression_reference(_build_flat_model(), fixed) == [pytest.approx(110.0)] * 12
