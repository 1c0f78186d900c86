"""
Forecast core: 48 months of history plus stakeholder adjustments in,
12-month objective-only and mixed P10/P50/P90 bands out.

Steps, in order:
  1. Sum products and impute unclosed months
  2. Smooth one-off spikes (seasonality kept)
  3. Fit trend + seasonal index
  4. Residual % from closed months
  5. Product weights from the last 12 closed months
  6. Objective-only band from residual quantiles
  7. Mixed band by Monte Carlo with subjective multipliers
"""
import logging
from dataclasses import dataclass, field
from datetime import date
from typing import Dict, List

import numpy as np
import pandas as pd

from forecast_agent.config import DEFAULT_CONFIG
from forecast_agent.factors import (
    resolve_fixed_additions,
    summarize_opinions_by_month,
    summarize_opinions_top,
)
from forecast_agent.imputation import ImputationResult, adjust_for_unclosed_months
from forecast_agent.model import TrendSeasonalModel, fit_trend_season_model
from forecast_agent.months import (
    forecast_start_for_fy,
    format_month,
    last_closed_month_start,
    month_range,
    series_start_for_fy,
)
from forecast_agent.residuals import ResidualQuantiles, residual_pct_closed, summarize_residuals
from forecast_agent.simulation import (
    PercentileBand,
    forecast_by_residual_quantiles,
    forecast_monte_carlo_mixed,
    regression_reference,
)
from forecast_agent.smoothing import smooth_series_seasonal_aware
from forecast_agent.weights import compute_product_weights_closed12

logger = logging.getLogger(__name__)


@dataclass
class ForecastInputs:
    fy: int
    sales: pd.DataFrame
    client_name: str = ''
    is_complete: bool = True
    factors_product: list = field(default_factory=list)
    factors_client: list = field(default_factory=list)
    opinions: list = field(default_factory=list)
    fixed: list = field(default_factory=list)
    people: list = field(default_factory=list)


@dataclass
class ForecastResult:
    fy: int
    client_name: str
    months: List[date]
    objective: PercentileBand
    mixed: PercentileBand
    regression: List[float]
    fixed_by_month: List[float]
    model: TrendSeasonalModel
    residual_quantiles: ResidualQuantiles
    residual_pct: List[float]
    product_weights: Dict[str, float]
    imputation: ImputationResult
    smoothed: List[float]
    opinions_summary_top: str = ''
    opinions_summary_by_month: List[str] = field(default_factory=list)

    def diagnostics(self):
        q = self.residual_quantiles
        return {
            'slope': self.model.slope,
            'intercept': self.model.intercept,
            'resid_p10': q.p10,
            'resid_p50': q.p50,
            'resid_p90': q.p90,
            'last_closed_month': format_month(self.imputation.last_closed_month_start),
            'residual_months': len(self.residual_pct),
        }

    def bands_frame(self):
        labels = [format_month(m) for m in self.months]
        frames = []
        for track, band in (('mixed', self.mixed), ('objective', self.objective)):
            df = band.to_frame(labels)
            df.insert(0, 'track', track)
            df['regression'] = self.regression
            frames.append(df)
        return pd.concat(frames, ignore_index=True)

    def breakdown_frame(self):
        """P50 comparison with the fixed additions split out."""
        rows = []
        for i, m in enumerate(self.months):
            fixed = self.fixed_by_month[i]
            obj = self.objective.p50[i]
            mix = self.mixed.p50[i]
            rows.append({
                'month': format_month(m),
                'ops_p50_objective': max(0.0, obj - fixed),
                'ops_p50_mixed': max(0.0, mix - fixed),
                'fixed': fixed,
                'total_p50_objective': obj,
                'total_p50_mixed': mix,
                'opinions': self.opinions_summary_by_month[i] if i < len(self.opinions_summary_by_month) else '',
            })
        return pd.DataFrame(rows)


def aggregate_sales(sales):
    return sales.apply(pd.to_numeric, errors='coerce').fillna(0.0).sum(axis=0).astype(float).tolist()


def _check_inputs(inputs, config):
    if inputs.sales.shape[1] != config.history_months:
        raise ValueError(f"Sales history must have {config.history_months} months, got {inputs.sales.shape[1]}")
    if config.n_sim < 1:
        raise ValueError(f"n_sim must be >= 1, got {config.n_sim}")


def run_forecast_core(inputs, config=DEFAULT_CONFIG, rng=None, run_date=None):
    _check_inputs(inputs, config)
    if rng is None:
        rng = np.random.default_rng(config.seed)

    if not inputs.is_complete:
        logger.warning(f"Sales history is shorter than {config.history_months} months; missing months count as 0")

    series_start = series_start_for_fy(inputs.fy, config.fiscal_start_month)
    forecast_start = forecast_start_for_fy(inputs.fy, config.fiscal_start_month)
    months = month_range(forecast_start, config.horizon_months)
    last_closed = last_closed_month_start(run_date)

    logger.info(f"STEP 1/6: Imputing unclosed months (history from {format_month(series_start)})")
    raw = aggregate_sales(inputs.sales)
    adj = adjust_for_unclosed_months(raw, series_start, last_closed, config)

    logger.info("STEP 2/6: Smoothing spikes and fitting trend + seasonality")
    smoothed = smooth_series_seasonal_aware(adj.series, config)
    model = fit_trend_season_model(smoothed, config)

    logger.info("STEP 3/6: Residual quantiles from closed months")
    residual_pct = residual_pct_closed(smoothed, model.fitted, adj.closed)
    quantiles = summarize_residuals(residual_pct)

    logger.info("STEP 4/6: Fixed additions and subjective factors")
    fixed_by_month = resolve_fixed_additions(inputs.fixed, forecast_start, config.horizon_months)
    product_weights = compute_product_weights_closed12(inputs.sales, series_start, last_closed)

    logger.info("STEP 5/6: Objective-only band and regression reference")
    regression = regression_reference(model, fixed_by_month, config.history_months)
    objective = forecast_by_residual_quantiles(model, fixed_by_month, quantiles, config.history_months)

    logger.info(f"STEP 6/6: Mixed band ({config.n_sim:,} trials)")
    mixed = forecast_monte_carlo_mixed(
        model, fixed_by_month, residual_pct, months, rng,
        factors_product=inputs.factors_product,
        factors_client=inputs.factors_client,
        opinions=inputs.opinions,
        product_weights=product_weights,
        n_sim=config.n_sim,
        history_months=config.history_months,
        opinion_jitter=config.opinion_jitter,
    )

    return ForecastResult(
        fy=inputs.fy,
        client_name=inputs.client_name,
        months=months,
        objective=objective,
        mixed=mixed,
        regression=regression,
        fixed_by_month=fixed_by_month,
        model=model,
        residual_quantiles=quantiles,
        residual_pct=residual_pct,
        product_weights=product_weights,
        imputation=adj,
        smoothed=smoothed,
        opinions_summary_top=summarize_opinions_top(inputs.opinions),
        opinions_summary_by_month=summarize_opinions_by_month(inputs.opinions, months),
    )
