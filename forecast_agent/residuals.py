import logging
from dataclasses import dataclass
from typing import List

from forecast_agent.stats import finite_or, percentiles

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ResidualQuantiles:
    p10: float
    p50: float
    p90: float

    def as_dict(self):
        return {'p10': self.p10, 'p50': self.p50, 'p90': self.p90}


def residual_pct_closed(y, fitted, closed):
    """
    Percent deviation of the smoothed series from the model on closed months.
    Falls back to every month when no closed month has a positive fitted value.
    """
    pool = [y[i] / f - 1 for i, f in enumerate(fitted) if closed[i] and f > 0]
    if pool:
        return [finite_or(r, 0.0) for r in pool]

    logger.warning("No closed month with a positive fitted value; using residuals of all months")
    return [finite_or(y[i] / f - 1, 0.0) if f else 0.0 for i, f in enumerate(fitted)]


def residual_quantiles(residual_pct):
    p10, p50, p90 = percentiles(residual_pct, (0.10, 0.50, 0.90))
    return ResidualQuantiles(p10=p10, p50=p50, p90=p90)


def summarize_residuals(residual_pct: List[float]):
    q = residual_quantiles(residual_pct)
    logger.info(f"Residuals ({len(residual_pct)} months): P10={q.p10:+.1%} P50={q.p50:+.1%} P90={q.p90:+.1%}")
    return q
