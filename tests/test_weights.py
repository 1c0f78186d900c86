from datetime import date

import pandas as pd
import pytest

from forecast_agent.weights import compute_product_weights_closed12

SERIES_START = date(2021, 4, 1)


def _build_sales(rows):
    return pd.DataFrame.from_dict(rows, orient='index', columns=range(48))


def test_weights_from_last_twelve_closed_months() -> None:
    # Before the window B dominates; inside it A sells three times B.
    sales = _build_sales({
        'A': [0.0] * 36 + [300.0] * 12,
        'B': [1000.0] * 36 + [100.0] * 12,
    })
    weights = compute_product_weights_closed12(sales, SERIES_START, date(2025, 3, 1))
    assert weights == {'A': pytest.approx(0.75), 'B': pytest.approx(0.25)}


def test_window_ends_at_last_closed_month() -> None:
    sales = _build_sales({
        'A': [100.0] * 47 + [10_000.0],
        'B': [100.0] * 48,
    })
    # Index 46 is the last closed month; the spike in 47 is ignored.
    weights = compute_product_weights_closed12(sales, SERIES_START, date(2025, 2, 1))
    assert weights['A'] == pytest.approx(0.5)


def test_uniform_when_nothing_closed() -> None:
    sales = _build_sales({'A': [1.0] * 48, 'B': [3.0] * 48})
    weights = compute_product_weights_closed12(sales, SERIES_START, date(2020, 1, 1))
    assert weights == {'A': 0.5, 'B': 0.5}


def test_uniform_when_window_is_zero() -> None:
    sales = _build_sales({'A': [0.0] * 48, 'B': [0.0] * 48, 'C': [0.0] * 48})
    weights = compute_product_weights_closed12(sales, SERIES_START, date(2025, 3, 1))
    assert weights == {p: pytest.approx(1 / 3) for p in 'ABC'}


def test_no_products() -> None:
    empty = pd.DataFrame(columns=range(48))
    assert compute_product_weights_closed12(empty, SERIES_START, date(2025, 3, 1)) == {}
