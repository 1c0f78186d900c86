from datetime import date

import numpy as np
import pandas as pd
import pytest

from forecast_agent.config import DEFAULT_CONFIG
from forecast_agent.engine import ForecastInputs, run_forecast_core
from forecast_agent.factors import FixedAmount
from forecast_agent.mock_generator import build_mock_inputs

CONFIG = DEFAULT_CONFIG.with_overrides(n_sim=300, seed=11)
# Everything through Mar 2025 is closed: the whole FY2025 history.
RUN_DATE = date(2025, 4, 15)


def _build_constant_inputs(value=100.0, **kwargs):
    sales = pd.DataFrame([[value] * 48], index=['Only'], columns=range(48))
    return ForecastInputs(fy=2025, sales=sales, **kwargs)


def test_constant_history_forecasts_flat() -> None:
    result = run_forecast_core(_build_constant_inputs(), CONFIG, run_date=RUN_DATE)

    assert result.months[0] == date(2025, 4, 1)
    assert result.months[-1] == date(2026, 3, 1)
    assert result.model.slope == pytest.approx(0.0, abs=1e-9)
    assert result.objective.p50 == [pytest.approx(100.0)] * 12
    assert result.mixed.p50 == [pytest.approx(100.0)] * 12
    assert result.regression == [pytest.approx(100.0)] * 12


def test_mock_run_bands_are_ordered_and_finite() -> None:
    result = run_forecast_core(build_mock_inputs(2025, seed=1), CONFIG, run_date=RUN_DATE)

    for band in (result.objective, result.mixed):
        assert len(band.p10) == len(band.p50) == len(band.p90) == 12
        for lo, mid, hi in zip(band.p10, band.p50, band.p90):
            assert np.isfinite([lo, mid, hi]).all()
            assert 0.0 <= lo <= mid <= hi

    d = result.diagnostics()
    assert d['last_closed_month'] == '2025/03'
    assert d['residual_months'] == 48
    assert set(result.product_weights) == {'Core License', 'Support', 'Consulting', 'Training'}
    assert sum(result.product_weights.values()) == pytest.approx(1.0)


def test_fixed_additions_flow_into_both_tracks() -> None:
    inputs = build_mock_inputs(2025, seed=1)
    result = run_forecast_core(inputs, CONFIG, run_date=RUN_DATE)

    assert result.fixed_by_month[2] == pytest.approx(3_000_000 * 0.9)
    assert result.fixed_by_month[7] == pytest.approx(1_200_000 * 0.5)
    breakdown = result.breakdown_frame()
    assert list(breakdown['fixed']) == result.fixed_by_month
    assert (breakdown['ops_p50_objective'] >= 0).all()
    assert (breakdown['ops_p50_mixed'] >= 0).all()


def test_seeded_runs_are_reproducible() -> None:
    inputs = build_mock_inputs(2025, seed=1)
    a = run_forecast_core(inputs, CONFIG, run_date=RUN_DATE)
    b = run_forecast_core(inputs, CONFIG, run_date=RUN_DATE)
    assert a.mixed == b.mixed


def test_unclosed_history_is_imputed() -> None:
    inputs = _build_constant_inputs()
    inputs.sales.iloc[0, 44:] = 0.0
    # Last closed is Nov 2024, index 43.
    result = run_forecast_core(inputs, CONFIG, run_date=date(2024, 12, 10))
    assert result.imputation.series[44:] == [pytest.approx(100.0)] * 4
    assert sum(result.imputation.closed) == 44


def test_fixed_only_inputs_with_zero_history() -> None:
    inputs = _build_constant_inputs(0.0, fixed=[FixedAmount(date(2025, 5, 1), 1000.0, 1.0)])
    result = run_forecast_core(inputs, CONFIG, run_date=RUN_DATE)
    assert result.objective.p50[1] == pytest.approx(1000.0)
    assert result.mixed.p50[1] == pytest.approx(1000.0)
    assert result.objective.p50[0] == 0.0


def test_structural_errors_raise() -> None:
    short = ForecastInputs(fy=2025, sales=pd.DataFrame([[1.0] * 47], columns=range(47)))
    with pytest.raises(ValueError, match="48 months"):
        run_forecast_core(short, CONFIG)
    with pytest.raises(ValueError, match="n_sim"):
        run_forecast_core(_build_constant_inputs(), CONFIG.with_overrides(n_sim=0))
