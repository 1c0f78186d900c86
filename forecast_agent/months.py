from datetime import date

import pandas as pd

# --- Month arithmetic ---

def month_start(d):
    d = pd.Timestamp(d)
    return date(d.year, d.month, 1)


def add_months(d, n):
    p = pd.Period(month_start(d), freq='M') + n
    return date(p.year, p.month, 1)


def month_index_from_start(d, start):
    d = pd.Timestamp(d)
    start = pd.Timestamp(start)
    return (d.year - start.year) * 12 + (d.month - start.month)


def month_range(start, n):
    return [add_months(start, i) for i in range(n)]


# --- Closed boundary ---

def last_closed_month_start(run_date=None):
    """The month before the run date is the last closed one."""
    if run_date is None:
        run_date = date.today()
    return add_months(month_start(run_date), -1)


def closed_mask(series_start, n, last_closed):
    last_idx = month_index_from_start(last_closed, series_start)
    return [i <= last_idx for i in range(n)]


def series_start_for_fy(fy, fiscal_start_month):
    return date(fy - 4, fiscal_start_month, 1)


def forecast_start_for_fy(fy, fiscal_start_month):
    return date(fy, fiscal_start_month, 1)


def format_month(d):
    return f"{d.year:04d}/{d.month:02d}"
