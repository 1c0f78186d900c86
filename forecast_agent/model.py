import logging
from dataclasses import dataclass
from typing import List

import numpy as np

from forecast_agent.config import DEFAULT_CONFIG
from forecast_agent.stats import clip, finite_or, mean, ols_intercept, ols_slope, trailing_mean

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TrendSeasonalModel:
    intercept: float
    slope: float
    seasonal_index: List[float]
    fitted: List[float]

    def trend_value(self, t):
        """Trend x seasonality at 1-based time index ``t``, floored at zero."""
        value = (self.intercept + self.slope * t) * self.seasonal_index[(t - 1) % 12]
        return max(0.0, finite_or(value, 0.0))

    def project(self, start_t, n):
        return [self.trend_value(t) for t in range(start_t, start_t + n)]


def seasonal_indices(y, config=DEFAULT_CONFIG):
    """Average y / trailing-12 mean per bucket, clamped; 1.0 for an empty bucket."""
    ma12 = trailing_mean(y, 12)
    by_month = [[] for _ in range(12)]
    for i, (v, ma) in enumerate(zip(y, ma12)):
        if ma > 0:
            by_month[i % 12].append(v / ma)

    index = []
    for ratios in by_month:
        s = finite_or(mean(ratios), 1.0) if ratios else 1.0
        index.append(clip(s, config.seasonal_index_min, config.seasonal_index_max))
    return index


def fit_trend_season_model(y, config=DEFAULT_CONFIG):
    y = np.asarray(y, dtype=float)
    x = np.arange(1, len(y) + 1, dtype=float)

    slope = finite_or(ols_slope(y, x), 0.0)
    intercept = finite_or(ols_intercept(y, x, slope), 0.0)
    seasonal = seasonal_indices(y, config)

    model = TrendSeasonalModel(intercept=intercept, slope=slope, seasonal_index=seasonal, fitted=[])
    fitted = model.project(1, len(y))

    logger.info(f"Trend fit: intercept={intercept:,.1f} slope={slope:+,.2f}/month")
    return TrendSeasonalModel(intercept=intercept, slope=slope, seasonal_index=seasonal, fitted=fitted)
