import logging

import pandas as pd

from forecast_agent.months import month_index_from_start

logger = logging.getLogger(__name__)

WEIGHT_WINDOW_MONTHS = 12


def compute_product_weights_closed12(sales, series_start, last_closed):
    """
    Share of each product in the last 12 closed months.

    ``sales`` is a DataFrame indexed by product with one column per history
    month. Uniform weights when nothing is closed yet or the window sums to 0.
    """
    products = list(sales.index)
    if not products:
        return {}

    n = sales.shape[1]
    closed_end = min(month_index_from_start(last_closed, series_start), n - 1)
    uniform = {p: 1.0 / len(products) for p in products}
    if closed_end < 0:
        logger.warning("No closed months in history; product weights are uniform")
        return uniform

    start = max(0, closed_end - WEIGHT_WINDOW_MONTHS + 1)
    window = sales.iloc[:, start:closed_end + 1].apply(pd.to_numeric, errors='coerce').fillna(0.0)
    sums = window.sum(axis=1)
    total = float(sums.sum())

    if total <= 0:
        logger.warning("Closed 12-month product total is zero; product weights are uniform")
        return uniform

    return {p: float(sums[p]) / total for p in products}
