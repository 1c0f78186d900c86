import json
import logging
import os
from datetime import datetime

from openpyxl import Workbook
from openpyxl.chart import LineChart, Reference
from openpyxl.styles import Alignment, Border, Font, PatternFill, Side

from forecast_agent.months import format_month

logger = logging.getLogger(__name__)

# Styling
HEADER_FONT = Font(bold=True, color='FFFFFF')
HEADER_FILL = PatternFill('solid', fgColor='2F5496')
MIXED_FILL = PatternFill('solid', fgColor='F4CCCC')
OBJECTIVE_FILL = PatternFill('solid', fgColor='CFE2F3')
P50_FILL = PatternFill('solid', fgColor='FFF2CC')
CURRENCY_FORMAT = '#,##0'
PERCENT_FORMAT = '0.0%'
NUMBER_FORMAT = '#,##0.00'
THIN_BORDER = Border(
    left=Side(style='thin'),
    right=Side(style='thin'),
    top=Side(style='thin'),
    bottom=Side(style='thin')
)


# =============================================================================
# CSV / JSON
# =============================================================================

def export_assumptions(config, result, path):
    payload = {
        'config': config.to_dict(),
        'diagnostics': result.diagnostics(),
        'seasonal_index': result.model.seasonal_index,
        'month_trend_factors': result.imputation.month_trend_factors,
        'product_weights': result.product_weights,
        'generated_at': datetime.now().isoformat(),
    }
    with open(path, 'w', encoding='utf-8') as f:
        json.dump(payload, f, indent=4, default=str)


def export_results(result, config, export_dir):
    os.makedirs(export_dir, exist_ok=True)
    paths = {
        'bands': os.path.join(export_dir, 'forecast_bands.csv'),
        'breakdown': os.path.join(export_dir, 'forecast_breakdown.csv'),
        'assumptions': os.path.join(export_dir, 'assumptions.json'),
        'summary': os.path.join(export_dir, 'executive_summary.txt'),
        'workbook': os.path.join(export_dir, f'forecast_FY{result.fy}.xlsx'),
    }

    result.bands_frame().to_csv(paths['bands'], index=False)
    result.breakdown_frame().to_csv(paths['breakdown'], index=False)
    export_assumptions(config, result, paths['assumptions'])

    with open(paths['summary'], 'w', encoding='utf-8') as f:
        f.write(build_executive_summary(result, config))

    build_workbook(result).save(paths['workbook'])

    for p in paths.values():
        logger.info(f"Saved {p}")
    return paths


# =============================================================================
# EXECUTIVE SUMMARY
# =============================================================================

def build_executive_summary(result, config):
    d = result.diagnostics()
    mixed_p10, mixed_p50, mixed_p90 = (sum(v) for v in (result.mixed.p10, result.mixed.p50, result.mixed.p90))
    obj_p10, obj_p50, obj_p90 = (sum(v) for v in (result.objective.p10, result.objective.p50, result.objective.p90))
    start, end = result.months[0], result.months[-1]

    summary = f"""
{'=' * 70}
FY{result.fy} REVENUE FORECAST: {result.client_name or '(client not set)'}
{format_month(start)} - {format_month(end)}
Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}
{'=' * 70}

ANNUAL TOTALS                     P10             P50             P90
-------------
Mixed (objective + opinions): {mixed_p10:>15,.0f} {mixed_p50:>15,.0f} {mixed_p90:>15,.0f}
Objective only:               {obj_p10:>15,.0f} {obj_p50:>15,.0f} {obj_p90:>15,.0f}
Regression reference:         {sum(result.regression):>47,.0f}
Fixed additions:              {sum(result.fixed_by_month):>47,.0f}

STAKEHOLDER OPINIONS
--------------------
{result.opinions_summary_top or '(none)'}

MODEL DIAGNOSTICS
-----------------
Last closed month:         {d['last_closed_month']}
Trend intercept:           {d['intercept']:>14,.1f}
Trend slope (per month):   {d['slope']:>+14,.2f}
Residual P10 / P50 / P90:  {d['resid_p10']:+.1%} / {d['resid_p50']:+.1%} / {d['resid_p90']:+.1%}
Residual months used:      {d['residual_months']}
Simulations run:           {config.n_sim:,}

MONTHLY (P50)
-------------
"""
    for row in result.breakdown_frame().itertuples(index=False):
        summary += f"  {row.month}: mixed {row.total_p50_mixed:>14,.0f}  objective {row.total_p50_objective:>14,.0f}  fixed {row.fixed:>12,.0f}\n"

    summary += f"""
METHODOLOGY
-----------
1. Products are summed; months after the last closed month are imputed from
   the same month a year earlier times a clipped year-over-year trend.
2. One-off spikes are damped unless they match the month's usual seasonal ratio.
3. A linear trend and 12-month seasonal index are fitted.
4. Objective only: trend x season x (1 + residual P10/P50/P90) + fixed additions.
5. Mixed: {config.n_sim:,} Monte Carlo trials resampling residuals, scaled by
   product, client and stakeholder-opinion factors, plus fixed additions.

{'=' * 70}
"""
    return summary


# =============================================================================
# EXCEL WORKBOOK
# =============================================================================

def style_header_row(ws, row_num, num_cols):
    for col in range(1, num_cols + 1):
        cell = ws.cell(row=row_num, column=col)
        cell.font = HEADER_FONT
        cell.fill = HEADER_FILL
        cell.alignment = Alignment(horizontal='center', wrap_text=True)
        cell.border = THIN_BORDER


def auto_width(ws):
    for column_cells in ws.columns:
        max_length = 0
        column = None
        for cell in column_cells:
            if hasattr(cell, 'column_letter'):
                column = cell.column_letter
            if cell.value is not None:
                max_length = max(max_length, len(str(cell.value)))
        if column:
            ws.column_dimensions[column].width = min(max_length + 2, 60)


def add_dataframe_to_sheet(ws, df, start_row=1, currency_cols=None, pct_cols=None, number_cols=None):
    currency_cols = currency_cols or []
    pct_cols = pct_cols or []
    number_cols = number_cols or []

    for c_idx, col_name in enumerate(df.columns, 1):
        ws.cell(row=start_row, column=c_idx, value=col_name)
    style_header_row(ws, start_row, len(df.columns))

    for r_idx, row in enumerate(df.itertuples(index=False), start_row + 1):
        for c_idx, value in enumerate(row, 1):
            cell = ws.cell(row=r_idx, column=c_idx, value=value)
            cell.border = THIN_BORDER

            col_name = df.columns[c_idx - 1]
            if col_name in currency_cols:
                cell.number_format = CURRENCY_FORMAT
            elif col_name in pct_cols:
                cell.number_format = PERCENT_FORMAT
            elif col_name in number_cols:
                cell.number_format = NUMBER_FORMAT
    return start_row + len(df)


def add_band_chart(ws, title, header_row, last_row, anchor):
    chart = LineChart()
    chart.title = title
    chart.y_axis.title = 'Revenue'
    chart.x_axis.title = 'Month'
    chart.height = 9
    chart.width = 22

    # Columns: month, p10, p50, p90, regression
    data = Reference(ws, min_col=2, max_col=5, min_row=header_row, max_row=last_row)
    cats = Reference(ws, min_col=1, min_row=header_row + 1, max_row=last_row)
    chart.add_data(data, titles_from_data=True)
    chart.set_categories(cats)
    ws.add_chart(chart, anchor)


def build_band_sheet(ws, result, band, label, fill):
    ws.cell(row=1, column=1, value=label).font = Font(bold=True, size=12)
    ws.cell(row=1, column=1).fill = fill
    ws.merge_cells('A1:E1')

    df = band.to_frame([format_month(m) for m in result.months])
    df['regression'] = result.regression
    last_row = add_dataframe_to_sheet(ws, df, start_row=3, currency_cols=['p10', 'p50', 'p90', 'regression'])
    for r in range(4, last_row + 1):
        ws.cell(row=r, column=3).fill = P50_FILL

    add_band_chart(ws, f"{label}: FY{result.fy} P10-P50-P90 + regression", 3, last_row, 'G3')
    auto_width(ws)


def build_workbook(result):
    wb = Workbook()

    ws_mixed = wb.active
    ws_mixed.title = 'Mixed'
    build_band_sheet(ws_mixed, result, result.mixed, 'Mixed: history + stakeholder input', MIXED_FILL)

    ws_obj = wb.create_sheet('Objective')
    build_band_sheet(ws_obj, result, result.objective, 'Objective only: history', OBJECTIVE_FILL)

    ws_break = wb.create_sheet('Breakdown')
    ws_break.cell(row=1, column=1, value='Opinions').font = Font(bold=True)
    ws_break.cell(row=1, column=2, value=result.opinions_summary_top or '(none)')
    ws_break.cell(row=1, column=2).alignment = Alignment(wrap_text=True)
    add_dataframe_to_sheet(
        ws_break, result.breakdown_frame(), start_row=3,
        currency_cols=['ops_p50_objective', 'ops_p50_mixed', 'fixed', 'total_p50_objective', 'total_p50_mixed'],
    )
    auto_width(ws_break)

    ws_diag = wb.create_sheet('Diagnostics')
    diag = result.diagnostics()
    ws_diag.cell(row=1, column=1, value='metric')
    ws_diag.cell(row=1, column=2, value='value')
    style_header_row(ws_diag, 1, 2)
    for r, (k, v) in enumerate(diag.items(), 2):
        ws_diag.cell(row=r, column=1, value=k)
        cell = ws_diag.cell(row=r, column=2, value=v)
        if k.startswith('resid_'):
            cell.number_format = PERCENT_FORMAT
        elif isinstance(v, float):
            cell.number_format = NUMBER_FORMAT

    r = len(diag) + 3
    ws_diag.cell(row=r, column=1, value='seasonal_index').font = Font(bold=True)
    ws_diag.cell(row=r, column=2, value='trend_factor').font = Font(bold=True)
    for i, (s, t) in enumerate(zip(result.model.seasonal_index, result.imputation.month_trend_factors), r + 1):
        ws_diag.cell(row=i, column=1, value=s).number_format = NUMBER_FORMAT
        ws_diag.cell(row=i, column=2, value=t).number_format = NUMBER_FORMAT
    auto_width(ws_diag)

    return wb
