import logging
from dataclasses import dataclass
from typing import List

import numpy as np
import pandas as pd

from forecast_agent.factors import (
    client_factors_multiplier,
    product_factors_multiplier,
    sample_opinion_multipliers,
)
from forecast_agent.stats import finite_or, percentiles

logger = logging.getLogger(__name__)

PERCENTILES = (0.10, 0.50, 0.90)


@dataclass(frozen=True)
class PercentileBand:
    p10: List[float]
    p50: List[float]
    p90: List[float]

    def to_frame(self, months=None):
        df = pd.DataFrame({'p10': self.p10, 'p50': self.p50, 'p90': self.p90})
        if months is not None:
            df.insert(0, 'month', list(months))
        return df


def _finite_list(values):
    return [finite_or(v, 0.0) for v in values]


# --- Objective only ---

def forecast_by_residual_quantiles(model, fixed_by_month, quantiles, history_months=48):
    """Trend x seasonality x (1 + residual quantile) + fixed addition, per forecast month."""
    p10, p50, p90 = [], [], []
    for i, fixed in enumerate(fixed_by_month):
        base = model.trend_value(history_months + i + 1)
        p10.append(base * (1 + quantiles.p10) + fixed)
        p50.append(base * (1 + quantiles.p50) + fixed)
        p90.append(base * (1 + quantiles.p90) + fixed)
    return PercentileBand(_finite_list(p10), _finite_list(p50), _finite_list(p90))


def regression_reference(model, fixed_by_month, history_months=48):
    return _finite_list(
        model.trend_value(history_months + i + 1) + fixed
        for i, fixed in enumerate(fixed_by_month)
    )


# --- Mixed (Monte Carlo) ---

def forecast_monte_carlo_mixed(model, fixed_by_month, residual_pct, months, rng,
                               factors_product=(), factors_client=(), opinions=(),
                               product_weights=None, n_sim=1000, history_months=48,
                               opinion_jitter=0.05):
    """
    Resample the closed-month residuals ``n_sim`` times per forecast month and
    apply the product, client and opinion multipliers. The opinion multiplier is
    redrawn for every trial. Fixed additions are added after the floor at zero
    and never scaled.
    """
    if len(fixed_by_month) != len(months):
        raise ValueError(f"Fixed additions cover {len(fixed_by_month)} months, expected {len(months)}")
    product_weights = product_weights or {}
    pool = np.asarray(residual_pct, dtype=float)
    if pool.size == 0:
        logger.warning("Empty residual pool; simulating with zero residual")
        pool = np.zeros(1)

    k_prod = [product_factors_multiplier(factors_product, m, product_weights) for m in months]
    k_client = [client_factors_multiplier(factors_client, m) for m in months]

    p10, p50, p90 = [], [], []
    for i, (month, fixed) in enumerate(zip(months, fixed_by_month)):
        base = model.trend_value(history_months + i + 1)
        e = pool[rng.integers(0, pool.size, size=n_sim)]
        k_opinion = sample_opinion_multipliers(opinions, month, rng, n_sim, opinion_jitter)

        ops = base * (1 + e) * k_prod[i] * k_client[i] * k_opinion
        ops = np.nan_to_num(ops, nan=0.0, posinf=0.0, neginf=0.0)
        totals = np.maximum(0.0, ops) + fixed

        q10, q50, q90 = percentiles(totals, PERCENTILES)
        p10.append(q10)
        p50.append(q50)
        p90.append(q90)

    logger.info(f"Monte Carlo: {n_sim:,} trials x {len(months)} months")
    return PercentileBand(_finite_list(p10), _finite_list(p50), _finite_list(p90))
