"""
Subjective adjustments: product, client and stakeholder-opinion factors, plus
the fixed (non-probabilistic) additions.

All three factor kinds share one record type. A record missing any field its
kind requires is simply not usable and is left out of every aggregate; that
is not an error.
"""
import logging
import math
from dataclasses import dataclass
from datetime import date
from enum import Enum
from typing import Optional

import numpy as np
import pandas as pd

from forecast_agent.months import month_index_from_start, month_start

logger = logging.getLogger(__name__)


class FactorKind(str, Enum):
    PRODUCT = 'product'
    CLIENT = 'client'
    OPINION = 'opinion'


def _present(value):
    if value is None:
        return False
    if isinstance(value, str):
        return bool(value.strip())
    if isinstance(value, float):
        return math.isfinite(value)
    return True


@dataclass(frozen=True)
class AdjustmentRecord:
    kind: FactorKind
    person: Optional[str] = None
    effective_month: Optional[date] = None
    step: Optional[float] = None
    product: Optional[str] = None
    confidence: Optional[float] = None
    note: str = ''

    def is_usable(self):
        if not (_present(self.person) and _present(self.effective_month) and _present(self.step)):
            return False
        if self.kind is FactorKind.PRODUCT:
            return _present(self.product)
        if self.kind is FactorKind.OPINION:
            return _present(self.confidence) and 0.0 <= self.confidence <= 1.0
        return True

    def applies_to(self, month):
        return month_start(self.effective_month) <= month_start(month)


def product_factor(person, product, effective_month, step, reason=''):
    return AdjustmentRecord(FactorKind.PRODUCT, person, effective_month, step, product=product, note=reason)


def client_factor(person, effective_month, step, reason=''):
    return AdjustmentRecord(FactorKind.CLIENT, person, effective_month, step, note=reason)


def opinion_factor(person, effective_month, step, confidence, note=''):
    return AdjustmentRecord(FactorKind.OPINION, person, effective_month, step, confidence=confidence, note=note)


def usable(records, kind):
    return [r for r in records if r.kind is kind and r.is_usable()]


# --- Product / client multipliers ---

def product_factors_multiplier(factors, target_month, product_weights):
    """1 + sum over products of (weight x summed step), floored at 0."""
    step_by_product = {}
    for f in usable(factors, FactorKind.PRODUCT):
        if not f.applies_to(target_month):
            continue
        step_by_product[f.product] = step_by_product.get(f.product, 0.0) + f.step
    if not step_by_product:
        return 1.0

    agg_step = sum(product_weights.get(p, 0.0) * step for p, step in step_by_product.items())
    return max(0.0, 1.0 + agg_step)


def client_factors_multiplier(factors, target_month):
    steps = [f.step for f in usable(factors, FactorKind.CLIENT) if f.applies_to(target_month)]
    if not steps:
        return 1.0
    return max(0.0, 1.0 + sum(steps))


# --- Opinions ---

def latest_opinions(opinions, target_month=None, with_note=False):
    """Each stakeholder's most recent usable opinion effective by ``target_month``."""
    latest = {}
    for o in usable(opinions, FactorKind.OPINION):
        if target_month is not None and not o.applies_to(target_month):
            continue
        if with_note and not (o.note or '').strip():
            continue
        prev = latest.get(o.person)
        if prev is None or pd.Timestamp(prev.effective_month) < pd.Timestamp(o.effective_month):
            latest[o.person] = o
    return latest


def sample_opinion_multipliers(opinions, target_month, rng, size, jitter=0.05):
    """
    ``size`` independent draws of prod(1 + (step + jitter) x confidence) over
    stakeholders, with jitter drawn per stakeholder per draw from {-j, 0, +j}.
    """
    latest = list(latest_opinions(opinions, target_month).values())
    if not latest:
        return np.ones(size)

    steps = np.array([o.step for o in latest], dtype=float)
    conf = np.array([o.confidence for o in latest], dtype=float)
    noise = rng.integers(-1, 2, size=(size, len(latest))) * jitter
    return np.prod(1.0 + (steps + noise) * conf, axis=1)


def sample_opinion_multiplier(opinions, target_month, rng, jitter=0.05):
    return float(sample_opinion_multipliers(opinions, target_month, rng, 1, jitter)[0])


def _format_opinion(o):
    pct = round(o.step * 100)
    sign = '+' if pct > 0 else ''
    return f"{o.person} {sign}{pct}%({o.confidence:.2f})"


def summarize_opinions_top(opinions):
    parts = []
    for o in latest_opinions(opinions).values():
        memo = f": {o.note}" if (o.note or '').strip() else ''
        parts.append(f"{_format_opinion(o)}{memo}")
    return ' / '.join(parts)


def summarize_opinions_by_month(opinions, months):
    return [
        ' / '.join(_format_opinion(o) for o in latest_opinions(opinions, m, with_note=True).values())
        for m in months
    ]


def find_missing_opinions(opinions, required_people):
    ok = {o.person for o in usable(opinions, FactorKind.OPINION)}
    return [p for p in required_people if p not in ok]


# --- Fixed additions ---

@dataclass(frozen=True)
class FixedAmount:
    month: Optional[date]
    amount: Optional[float]
    confidence: Optional[float]
    person: str = ''
    project: str = ''

    def is_usable(self):
        if not (_present(self.month) and _present(self.amount) and _present(self.confidence)):
            return False
        return self.amount > 0 and 0.0 <= self.confidence <= 1.0


def resolve_fixed_additions(records, forecast_start, horizon=12):
    """Sum amount x confidence per forecast month over usable rows inside the window."""
    out = [0.0] * horizon
    skipped = 0
    for r in records:
        if not r.is_usable():
            skipped += 1
            continue
        idx = month_index_from_start(r.month, forecast_start)
        if 0 <= idx < horizon:
            out[idx] += r.amount * r.confidence
    if skipped:
        logger.info(f"Fixed additions: ignored {skipped} incomplete row(s)")
    return out
