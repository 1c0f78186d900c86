import argparse
import logging
from datetime import date

from forecast_agent.config import DATA_DIR, DEFAULT_CONFIG, EXPORT_DIR, load_config
from forecast_agent.engine import run_forecast_core
from forecast_agent.export import export_results
from forecast_agent.inputs import load_inputs
from forecast_agent.mock_generator import generate_mock_inputs

logger = logging.getLogger(__name__)


def setup_logging(level=logging.INFO):
    logging.basicConfig(
        level=level,
        format='%(asctime)s | %(levelname)s | %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S'
    )


def format_currency_m(x):
    if x == 0:
        return "0.00M"
    return f"{x / 1_000_000:,.2f}M"


# --- Main ---

def run_forecast(data_dir=DATA_DIR, export_dir=EXPORT_DIR, config=DEFAULT_CONFIG, run_date=None, overrides=None):
    inputs, config = load_inputs(data_dir, config)
    # Command-line overrides beat settings.json
    if overrides:
        config = config.with_overrides(**overrides)
    result = run_forecast_core(inputs, config, run_date=run_date)

    mixed_total = sum(result.mixed.p50)
    objective_total = sum(result.objective.p50)
    diff_pct = ((mixed_total / objective_total) - 1) * 100 if objective_total > 0 else 0
    logger.info(
        f"FY{result.fy} Forecast P50: mixed {format_currency_m(mixed_total)} vs "
        f"objective {format_currency_m(objective_total)} ({diff_pct:+.1f}%)"
    )
    if abs(diff_pct) > 40:
        logger.warning("Stakeholder input moves the forecast by more than 40% from history alone.")

    export_results(result, config, export_dir)
    return result


def parse_args(argv=None):
    ap = argparse.ArgumentParser(description="12-month P10/P50/P90 revenue forecast")
    ap.add_argument("--data-dir", default=DATA_DIR, help="Directory holding sales.csv, the factor CSVs and settings.json")
    ap.add_argument("--export-dir", default=EXPORT_DIR)
    ap.add_argument("--config", default="", help="JSON file of model parameter overrides")
    ap.add_argument("--n-sim", type=int, default=None)
    ap.add_argument("--seed", type=int, default=None)
    ap.add_argument("--run-date", default="", help="yyyy-mm-dd; the month before it is the last closed month")
    ap.add_argument("--mock", action="store_true", help="Write mock inputs into --data-dir first")
    ap.add_argument("--fy", type=int, default=2025, help="Fiscal year for --mock")
    ap.add_argument("--verbose", action="store_true")
    return ap.parse_args(argv)


def main(argv=None):
    args = parse_args(argv)
    setup_logging(logging.DEBUG if args.verbose else logging.INFO)

    config = load_config(args.config) if args.config else DEFAULT_CONFIG
    overrides = {}
    if args.n_sim is not None:
        overrides['n_sim'] = args.n_sim
    if args.seed is not None:
        overrides['seed'] = args.seed

    run_date = date.fromisoformat(args.run_date) if args.run_date else None

    if args.mock:
        generate_mock_inputs(args.data_dir, fy=args.fy, seed=args.seed if args.seed is not None else 42)

    try:
        run_forecast(args.data_dir, args.export_dir, config, run_date, overrides)
    except ValueError as e:
        logger.error(str(e))
        return 1
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
