"""
Loading and validation of the CSV inputs.

Rows that are entirely blank or only partly filled are skipped. A row whose
required fields are all present but hold nonsense (bad date, unreadable step,
confidence outside 0..1, ...) stops the run with a ValueError.
"""
import json
import logging
import math
import os
import re

import pandas as pd

from forecast_agent.config import (
    DEFAULT_CONFIG,
    FACTORS_CLIENT_FILE,
    FACTORS_PRODUCT_FILE,
    FIXED_FILE,
    OPINIONS_FILE,
    SALES_FILE,
    SETTINGS_FILE,
)
from forecast_agent.engine import ForecastInputs
from forecast_agent.factors import (
    FixedAmount,
    client_factor,
    find_missing_opinions,
    opinion_factor,
    product_factor,
)

logger = logging.getLogger(__name__)

PRODUCT_COLUMNS = ['person', 'product', 'month', 'step', 'reason']
CLIENT_COLUMNS = ['person', 'month', 'step', 'reason']
OPINION_COLUMNS = ['person', 'month', 'step', 'confidence', 'note']
FIXED_COLUMNS = ['person', 'month', 'project', 'amount', 'confidence']

_PCT_RE = re.compile(r'^([+-]?\d+(?:\.\d+)?)%$')


# --- Cell coercion ---

def _clean(v):
    if v is None:
        return ''
    if isinstance(v, float) and math.isnan(v):
        return ''
    return str(v).strip()


def to_number(v):
    """Numeric value of a cell, ignoring separators and currency marks. NaN if unreadable."""
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        return float(v)
    s = _clean(v)
    if not s:
        return math.nan
    s = re.sub(r'[,\s¥￥$]', '', s)
    try:
        return float(s)
    except ValueError:
        return math.nan


def parse_rate(v):
    """
    Step as a fraction: "-30%" -> -0.30, "-30" -> -0.30, "-0.3" -> -0.30.
    Magnitudes above 1 are read as percents. Blank -> 0, unreadable -> NaN.
    """
    if isinstance(v, (int, float)) and not isinstance(v, bool):
        if not math.isfinite(v):
            return 0.0
        return v / 100 if abs(v) > 1 else float(v)
    s = _clean(v)
    if not s:
        return 0.0
    s = s.replace('％', '%')
    s = re.sub(r'[,\s¥￥]', '', s)
    m = _PCT_RE.match(s)
    if m:
        return float(m.group(1)) / 100
    try:
        num = float(s)
    except ValueError:
        return math.nan
    if not math.isfinite(num):
        return math.nan
    return num / 100 if abs(num) > 1 else num


def to_date(v):
    s = _clean(v)
    if not s:
        return None
    ts = pd.to_datetime(s.replace('/', '-'), errors='coerce')
    if pd.isna(ts):
        return None
    return ts.date()


# --- Readers ---

def _read_table(path, columns):
    if not os.path.exists(path):
        return pd.DataFrame(columns=columns)
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [c.strip().lower() for c in df.columns]
    missing = set(columns) - set(df.columns)
    if missing:
        raise ValueError(f"{path}: missing required columns: {sorted(missing)}")
    df = df[columns].copy()
    for col in columns:
        df[col] = df[col].map(_clean)
    return df


def _blank(row):
    return all(v == '' for v in row.values)


def _check_step(path, row_num, raw, max_abs_step):
    step = parse_rate(raw)
    if not math.isfinite(step):
        raise ValueError(f"{path} row {row_num}: step {raw!r} is not a rate (e.g. -30% or +10%)")
    if abs(step) > max_abs_step:
        raise ValueError(f"{path} row {row_num}: step {raw!r} is implausibly large")
    return step


def _check_date(path, row_num, raw):
    d = to_date(raw)
    if d is None:
        raise ValueError(f"{path} row {row_num}: month {raw!r} is not a date (use yyyy/mm/dd)")
    return d


def _check_confidence(path, row_num, raw):
    conf = to_number(raw)
    if not math.isfinite(conf) or conf < 0 or conf > 1:
        raise ValueError(f"{path} row {row_num}: confidence {raw!r} must be between 0 and 1")
    return conf


def read_factors_product(path, config=DEFAULT_CONFIG):
    df = _read_table(path, PRODUCT_COLUMNS)
    records = []
    for idx, row in df.iterrows():
        row_num = idx + 2
        if _blank(row):
            continue
        if not (row['person'] and row['product'] and row['month'] and row['step']):
            continue
        records.append(product_factor(
            person=row['person'],
            product=row['product'],
            effective_month=_check_date(path, row_num, row['month']),
            step=_check_step(path, row_num, row['step'], config.max_abs_step),
            reason=row['reason'],
        ))
    return records


def read_factors_client(path, config=DEFAULT_CONFIG):
    df = _read_table(path, CLIENT_COLUMNS)
    records = []
    for idx, row in df.iterrows():
        row_num = idx + 2
        if _blank(row):
            continue
        if not (row['person'] and row['month'] and row['step']):
            continue
        records.append(client_factor(
            person=row['person'],
            effective_month=_check_date(path, row_num, row['month']),
            step=_check_step(path, row_num, row['step'], config.max_abs_step),
            reason=row['reason'],
        ))
    return records


def read_opinions(path, config=DEFAULT_CONFIG):
    df = _read_table(path, OPINION_COLUMNS)
    records = []
    for idx, row in df.iterrows():
        row_num = idx + 2
        if _blank(row):
            continue
        if not (row['person'] and row['month'] and row['step'] and row['confidence']):
            continue
        records.append(opinion_factor(
            person=row['person'],
            effective_month=_check_date(path, row_num, row['month']),
            step=_check_step(path, row_num, row['step'], config.max_abs_step),
            confidence=_check_confidence(path, row_num, row['confidence']),
            note=row['note'],
        ))
    return records


def read_fixed(path):
    df = _read_table(path, FIXED_COLUMNS)
    records = []
    for idx, row in df.iterrows():
        row_num = idx + 2
        if _blank(row):
            continue
        if not (row['month'] and row['amount'] and row['confidence']):
            continue
        amount = to_number(row['amount'])
        if not math.isfinite(amount):
            raise ValueError(f"{path} row {row_num}: amount {row['amount']!r} is not a number")
        if amount < 0:
            raise ValueError(f"{path} row {row_num}: amount {amount:,.0f} is negative")
        records.append(FixedAmount(
            month=_check_date(path, row_num, row['month']),
            amount=amount,
            confidence=_check_confidence(path, row_num, row['confidence']),
            person=row['person'],
            project=row['project'],
        ))
    return records


def read_sales(path, history_months=48):
    """
    Wide sales table: ``product`` then one column per month, oldest first.
    Returns (DataFrame indexed by product with exactly ``history_months``
    columns, is_complete).
    """
    if not os.path.exists(path):
        raise ValueError(f"{path}: sales file not found")
    df = pd.read_csv(path, dtype=str, keep_default_na=False)
    df.columns = [c.strip() for c in df.columns]
    if not len(df.columns) or df.columns[0].lower() != 'product':
        raise ValueError(f"{path}: first column must be 'product'")

    df = df.rename(columns={df.columns[0]: 'product'})
    df['product'] = df['product'].map(_clean)
    df = df[df['product'] != '']
    if df.empty:
        raise ValueError(f"{path}: no product rows")

    month_cols = list(df.columns[1:history_months + 1])
    is_complete = len(month_cols) >= history_months

    values = pd.DataFrame(index=df.index)
    for c_idx, col in enumerate(month_cols):
        cells = df[col].map(_clean)
        nums = cells.map(lambda v: to_number(v) if v else 0.0)
        bad = nums.map(lambda v: not math.isfinite(v))
        if bad.any():
            first = bad.idxmax()
            raise ValueError(
                f"{path}: non-numeric sales value {df.at[first, col]!r} "
                f"(product {df.at[first, 'product']}, column {col})"
            )
        values[c_idx] = nums
    for c_idx in range(len(month_cols), history_months):
        values[c_idx] = 0.0

    values['product'] = df['product']
    sales = values.groupby('product', sort=False).sum()
    sales.columns = range(history_months)

    if not is_complete:
        logger.warning(f"{path}: only {len(month_cols)} of {history_months} months present")
    return sales, is_complete


def read_settings(path):
    if not os.path.exists(path):
        raise ValueError(f"{path}: settings file not found")
    with open(path, encoding='utf-8') as f:
        settings = json.load(f)

    client = str(settings.get('client_name', '')).strip()
    fy = settings.get('fy')
    people = settings.get('people', [])
    if isinstance(people, str):
        people = people.split(',')
    people = [str(p).strip() for p in people if str(p).strip()]

    if not client:
        raise ValueError(f"{path}: client_name is required")
    if not isinstance(fy, int) or fy <= 2000:
        raise ValueError(f"{path}: fy must be a year after 2000, got {fy!r}")
    return {'client_name': client, 'fy': fy, 'people': people, 'config': settings.get('config', {})}


def load_inputs(data_dir, config=DEFAULT_CONFIG):
    """Read and validate every input under ``data_dir``. Returns (ForecastInputs, config)."""
    settings = read_settings(os.path.join(data_dir, SETTINGS_FILE))
    if settings['config']:
        config = config.with_overrides(**settings['config'])

    sales, is_complete = read_sales(os.path.join(data_dir, SALES_FILE), config.history_months)
    factors_product = read_factors_product(os.path.join(data_dir, FACTORS_PRODUCT_FILE), config)
    factors_client = read_factors_client(os.path.join(data_dir, FACTORS_CLIENT_FILE), config)
    opinions = read_opinions(os.path.join(data_dir, OPINIONS_FILE), config)
    fixed = read_fixed(os.path.join(data_dir, FIXED_FILE))

    missing = find_missing_opinions(opinions, settings['people'])
    if missing:
        raise ValueError(f"Every stakeholder needs a complete opinion row. Missing: {', '.join(missing)}")

    logger.info(
        f"Loaded {len(sales)} products, {len(factors_product)} product factors, "
        f"{len(factors_client)} client factors, {len(opinions)} opinions, {len(fixed)} fixed rows"
    )

    inputs = ForecastInputs(
        fy=settings['fy'],
        sales=sales,
        client_name=settings['client_name'],
        is_complete=is_complete,
        factors_product=factors_product,
        factors_client=factors_client,
        opinions=opinions,
        fixed=fixed,
        people=settings['people'],
    )
    return inputs, config
