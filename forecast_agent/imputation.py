import logging
from dataclasses import dataclass
from datetime import date
from typing import List

import numpy as np

from forecast_agent.config import DEFAULT_CONFIG
from forecast_agent.months import closed_mask, last_closed_month_start
from forecast_agent.stats import clip, finite_or, mean, median

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ImputationResult:
    series: List[float]
    last_closed_month_start: date
    closed: List[bool]
    month_trend_factors: List[float]


# --- Same-month year-over-year trend ---

def compute_month_trend_factors(y, closed, config=DEFAULT_CONFIG):
    """
    Median current/prior-year ratio per calendar-month bucket, from closed pairs
    with a positive prior value. Clamped; 1.0 where a bucket has no pairs.
    """
    factors = [1.0] * 12
    for m in range(12):
        ratios = []
        for i in range(m, len(y), 12):
            if i - 12 < 0 or not (closed[i] and closed[i - 12]):
                continue
            prev = y[i - 12]
            if prev > 0:
                ratios.append(y[i] / prev)
        if not ratios:
            continue
        med = finite_or(median(ratios), 1.0)
        factors[m] = clip(med, config.trend_factor_min, config.trend_factor_max)
    return factors


def estimate_month_average(y, closed, month_mod):
    values = [y[i] for i in range(month_mod, len(y), 12) if closed[i]]
    return mean(values)


# --- Unclosed month imputation ---

def adjust_for_unclosed_months(y, series_start, last_closed=None, config=DEFAULT_CONFIG):
    """
    Fill months after the closed boundary from the same month a year earlier
    times that bucket's trend factor. A partial actual already recorded for an
    unclosed month is a floor: imputation can only revise it upward.
    """
    if last_closed is None:
        last_closed = last_closed_month_start()

    raw = [float(v) for v in y]
    n = len(raw)
    closed = closed_mask(series_start, n, last_closed)
    factors = compute_month_trend_factors(raw, closed, config)

    out = list(raw)
    for i in range(n):
        if closed[i]:
            continue

        m = i % 12
        current = raw[i]
        # Chains through earlier imputed months when more than a year is unclosed
        prev = out[i - 12] if i - 12 >= 0 else 0.0

        if prev > 0:
            candidate = prev * factors[m]
        else:
            candidate = estimate_month_average(raw, closed, m)

        candidate = max(0.0, finite_or(candidate, current))
        out[i] = max(candidate, current)

    n_unclosed = n - int(np.sum(closed))
    logger.info(f"Closed through {last_closed:%Y-%m}; imputed {n_unclosed} unclosed month(s)")

    return ImputationResult(
        series=out,
        last_closed_month_start=last_closed,
        closed=closed,
        month_trend_factors=factors,
    )
