import logging

import numpy as np

from forecast_agent.config import DEFAULT_CONFIG
from forecast_agent.stats import clip, mean, median

logger = logging.getLogger(__name__)

TRAILING_WINDOW = 12


def trailing_base(y, window=TRAILING_WINDOW):
    """Average of the prior ``window`` months; the month itself when nothing precedes it."""
    base = []
    for i in range(len(y)):
        prior = y[max(0, i - window):i]
        base.append(mean(prior) if prior else float(y[i]))
    return base


def seasonal_ratio_profile(y, base, config=DEFAULT_CONFIG):
    """Per calendar-month bucket: median of y/base and the MAD around it."""
    by_month = [[] for _ in range(12)]
    for i, (v, b) in enumerate(zip(y, base)):
        ratio = v / b if b > 0 else 1.0
        if np.isfinite(ratio) and ratio > 0:
            by_month[i % 12].append(ratio)

    med = [1.0] * 12
    mad = [config.mad_floor] * 12
    for m, ratios in enumerate(by_month):
        if not ratios:
            continue
        med[m] = median(ratios)
        mad[m] = max(config.mad_floor, median([abs(r - med[m]) for r in ratios]))
    return med, mad


def smooth_series_seasonal_aware(y, config=DEFAULT_CONFIG):
    """
    Damp one-off spikes while keeping recurring seasonal extremes.

    A month whose ratio to its trailing 12-month average leaves
    [spike_clip_min, spike_clip_max] is a spike candidate. If that ratio still
    sits inside its bucket's band (median +/- k*MAD) it is seasonality and kept;
    otherwise the value is pulled back to base * clipped ratio.

    The MAD is taken once from the input; a second call does not re-derive it
    from already-smoothed values.
    """
    y = [float(v) for v in y]
    base = trailing_base(y)
    med, mad = seasonal_ratio_profile(y, base, config)

    out = list(y)
    clipped = 0
    for i, b in enumerate(base):
        if b <= 0:
            continue

        ratio = out[i] / b
        if not np.isfinite(ratio) or ratio <= 0:
            continue
        if config.spike_clip_min <= ratio <= config.spike_clip_max:
            continue

        m = i % 12
        lo = max(config.seasonal_band_floor, med[m] - config.seasonal_mad_k * mad[m])
        hi = max(lo + config.seasonal_band_min_width, med[m] + config.seasonal_mad_k * mad[m])
        if lo <= ratio <= hi:
            continue

        out[i] = b * clip(ratio, config.spike_clip_min, config.spike_clip_max)
        clipped += 1

    logger.info(f"Spike smoothing: {clipped} month(s) clipped")
    return out
