import json
import os

import numpy as np
import pandas as pd

from forecast_agent.config import (
    DATA_DIR,
    FACTORS_CLIENT_FILE,
    FACTORS_PRODUCT_FILE,
    FIXED_FILE,
    OPINIONS_FILE,
    SALES_FILE,
    SETTINGS_FILE,
)
from forecast_agent.engine import ForecastInputs
from forecast_agent.factors import FixedAmount, client_factor, opinion_factor, product_factor
from forecast_agent.months import add_months, forecast_start_for_fy, month_range, series_start_for_fy

# ==========================================
# CONFIGURATION
# ==========================================
"""
Mock inputs for trying the forecast end to end:
- a handful of products with their own size, growth and noise
- calendar seasonality (year-end heavy, summer slow)
- one row per stakeholder in every adjustment file
"""

CLIENT_NAME = 'Mock Client'
PEOPLE = ['Sato', 'Suzuki', 'Tanaka']

PRODUCT_CONFIG = {
    'Core License': {'base': 4_000_000, 'growth': 0.06, 'noise': 0.05},
    'Support':      {'base': 1_500_000, 'growth': 0.03, 'noise': 0.03},
    'Consulting':   {'base':   900_000, 'growth': 0.10, 'noise': 0.15},
    'Training':     {'base':   250_000, 'growth': -0.02, 'noise': 0.20},
}

# Seasonality - monthly multipliers by calendar month
SEASONALITY = {
    1: 0.90,
    2: 0.95,
    3: 1.30,    # Fiscal year-end close
    4: 0.85,
    5: 0.90,
    6: 1.00,
    7: 0.95,
    8: 0.80,    # Summer slowdown
    9: 1.15,    # Half-year close
    10: 0.95,
    11: 1.00,
    12: 1.15,
}

# A one-off spike the smoother should damp (product, month offset, multiplier)
SPIKE = ('Consulting', 30, 3.0)


def _fmt(d):
    return d.strftime('%Y/%m/%d')


def generate_sales(fy, rng, history_months=48, fiscal_start_month=4):
    start = series_start_for_fy(fy, fiscal_start_month)
    months = month_range(start, history_months)
    rows = {}
    for product, cfg in PRODUCT_CONFIG.items():
        values = []
        for i, m in enumerate(months):
            trend = (1 + cfg['growth']) ** (i / 12)
            noise = 1 + rng.normal(0, cfg['noise'])
            values.append(max(0.0, round(cfg['base'] * trend * SEASONALITY[m.month] * noise)))
        rows[product] = values

    spike_product, spike_idx, spike_mult = SPIKE
    if spike_idx < history_months:
        rows[spike_product][spike_idx] *= spike_mult

    return pd.DataFrame.from_dict(rows, orient='index', columns=range(history_months))


def generate_adjustments(fy, rng, fiscal_start_month=4):
    """Product, client and opinion factors plus fixed additions for ``fy``."""
    forecast_start = forecast_start_for_fy(fy, fiscal_start_month)
    products = list(PRODUCT_CONFIG)

    factors_product = [
        product_factor(PEOPLE[0], products[0], add_months(forecast_start, 3), 0.10, 'Price revision'),
        product_factor(PEOPLE[1], products[3], add_months(forecast_start, 6), -0.30, 'Course retired'),
    ]
    factors_client = [
        client_factor(PEOPLE[2], add_months(forecast_start, 9), -0.05, 'Budget freeze expected'),
    ]
    opinions = []
    for person in PEOPLE:
        step = float(rng.choice([-0.10, -0.05, 0.0, 0.05, 0.10, 0.20]))
        conf = float(rng.choice([0.5, 0.6, 0.7, 0.8]))
        opinions.append(opinion_factor(person, forecast_start, step, conf, f'{person} outlook'))

    fixed = [
        FixedAmount(add_months(forecast_start, 2), 3_000_000.0, 0.9, PEOPLE[0], 'System migration'),
        FixedAmount(add_months(forecast_start, 7), 1_200_000.0, 0.5, PEOPLE[1], 'Add-on module'),
    ]
    return factors_product, factors_client, opinions, fixed


def build_mock_inputs(fy, seed=42, history_months=48, fiscal_start_month=4):
    rng = np.random.default_rng(seed)
    sales = generate_sales(fy, rng, history_months, fiscal_start_month)
    factors_product, factors_client, opinions, fixed = generate_adjustments(fy, rng, fiscal_start_month)
    return ForecastInputs(
        fy=fy,
        sales=sales,
        client_name=CLIENT_NAME,
        factors_product=factors_product,
        factors_client=factors_client,
        opinions=opinions,
        fixed=fixed,
        people=list(PEOPLE),
    )


# ==========================================
# FILE OUTPUT
# ==========================================

def write_mock_inputs(inputs, data_dir, fiscal_start_month=4):
    os.makedirs(data_dir, exist_ok=True)

    sales = inputs.sales.copy()
    sales.index.name = 'product'
    start = series_start_for_fy(inputs.fy, fiscal_start_month)
    sales.columns = [add_months(start, i).strftime('%Y/%m') for i in range(sales.shape[1])]
    sales.reset_index().to_csv(os.path.join(data_dir, SALES_FILE), index=False)

    pd.DataFrame([
        {'person': f.person, 'product': f.product, 'month': _fmt(f.effective_month),
         'step': f'{f.step:+.0%}', 'reason': f.note}
        for f in inputs.factors_product
    ], columns=['person', 'product', 'month', 'step', 'reason']).to_csv(
        os.path.join(data_dir, FACTORS_PRODUCT_FILE), index=False)

    pd.DataFrame([
        {'person': f.person, 'month': _fmt(f.effective_month), 'step': f'{f.step:+.0%}', 'reason': f.note}
        for f in inputs.factors_client
    ], columns=['person', 'month', 'step', 'reason']).to_csv(
        os.path.join(data_dir, FACTORS_CLIENT_FILE), index=False)

    pd.DataFrame([
        {'person': o.person, 'month': _fmt(o.effective_month), 'step': f'{o.step:+.0%}',
         'confidence': o.confidence, 'note': o.note}
        for o in inputs.opinions
    ], columns=['person', 'month', 'step', 'confidence', 'note']).to_csv(
        os.path.join(data_dir, OPINIONS_FILE), index=False)

    pd.DataFrame([
        {'person': r.person, 'month': _fmt(r.month), 'project': r.project,
         'amount': r.amount, 'confidence': r.confidence}
        for r in inputs.fixed
    ], columns=['person', 'month', 'project', 'amount', 'confidence']).to_csv(
        os.path.join(data_dir, FIXED_FILE), index=False)

    with open(os.path.join(data_dir, SETTINGS_FILE), 'w', encoding='utf-8') as f:
        json.dump({'client_name': inputs.client_name, 'fy': inputs.fy, 'people': inputs.people}, f, indent=4)


def generate_mock_inputs(data_dir=DATA_DIR, fy=2025, seed=42):
    inputs = build_mock_inputs(fy, seed)
    write_mock_inputs(inputs, data_dir)

    print("=" * 70)
    print(f"MOCK INPUTS: FY{fy} ({data_dir})")
    print("=" * 70)
    totals = inputs.sales.sum(axis=1)
    for product, total in totals.items():
        print(f"  {product:15s}: {total:>15,.0f} over {inputs.sales.shape[1]} months")
    print(f"  Opinions: {len(inputs.opinions)}, fixed rows: {len(inputs.fixed)}")
    return inputs


if __name__ == "__main__":
    generate_mock_inputs()
