import math

import numpy as np
import pandas as pd


def finite_or(value, default):
    try:
        value = float(value)
    except (TypeError, ValueError):
        return default
    return value if math.isfinite(value) else default


def percentile(values, q):
    """Linear interpolation between order statistics (R-7). Empty input -> 0."""
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return 0.0
    return float(np.percentile(arr, q * 100.0, method='linear'))


def percentiles(values, qs=(0.10, 0.50, 0.90)):
    # One sort for every q, so lower q never exceeds higher q
    arr = np.asarray(values, dtype=float)
    if arr.size == 0:
        return [0.0 for _ in qs]
    return [float(v) for v in np.percentile(arr, [q * 100.0 for q in qs], method='linear')]


def median(values):
    return percentile(values, 0.50)


def mean(values):
    arr = np.asarray(values, dtype=float)
    return float(arr.mean()) if arr.size else 0.0


def trailing_mean(values, window):
    """Mean of up to ``window`` values ending at (and including) each index."""
    return pd.Series(values, dtype=float).rolling(window=window, min_periods=1).mean().to_numpy()


def ols_slope(y, x):
    y = np.asarray(y, dtype=float)
    x = np.asarray(x, dtype=float)
    if y.size == 0:
        return 0.0
    dx = x - x.mean()
    den = float((dx * dx).sum())
    if den == 0:
        return 0.0
    return float((dx * (y - y.mean())).sum() / den)


def ols_intercept(y, x, slope):
    y = np.asarray(y, dtype=float)
    x = np.asarray(x, dtype=float)
    if y.size == 0:
        return 0.0
    return float(y.mean() - slope * x.mean())


def clip(value, lo, hi):
    return max(lo, min(hi, value))
