import json
import os
from dataclasses import asdict, dataclass, fields, replace
from typing import Optional

# --- Paths ---

def _project_root():
    d = os.path.dirname(os.path.abspath(__file__))
    return os.path.dirname(d)

_ROOT = _project_root()
DATA_DIR = os.path.join(_ROOT, 'data')
EXPORT_DIR = os.path.join(_ROOT, 'exports')

SALES_FILE = 'sales.csv'
FACTORS_PRODUCT_FILE = 'factors_product.csv'
FACTORS_CLIENT_FILE = 'factors_client.csv'
OPINIONS_FILE = 'opinions.csv'
FIXED_FILE = 'fixed.csv'
SETTINGS_FILE = 'settings.json'


# --- Model parameters ---

@dataclass(frozen=True)
class ForecastConfig:
    """Every tunable of the forecast run. Passed explicitly; never mutated."""

    n_sim: int = 1000

    # Spike smoothing
    spike_clip_min: float = 0.70
    spike_clip_max: float = 1.40
    seasonal_mad_k: float = 3.0
    mad_floor: float = 0.05
    seasonal_band_floor: float = 0.30
    seasonal_band_min_width: float = 0.05

    # Year-over-year trend for unclosed months
    trend_factor_min: float = 0.85
    trend_factor_max: float = 1.15

    seasonal_index_min: float = 0.80
    seasonal_index_max: float = 1.20

    # +/- jitter applied to each opinion step per trial
    opinion_jitter: float = 0.05

    history_months: int = 48
    horizon_months: int = 12
    fiscal_start_month: int = 4

    # Steps beyond +/-500% are treated as data entry mistakes
    max_abs_step: float = 5.0

    seed: Optional[int] = None

    def with_overrides(self, **overrides):
        unknown = set(overrides) - {f.name for f in fields(self)}
        if unknown:
            raise ValueError(f"Unknown config keys: {sorted(unknown)}")
        return replace(self, **overrides)

    def to_dict(self):
        return asdict(self)


DEFAULT_CONFIG = ForecastConfig()


def load_config(path, base=DEFAULT_CONFIG):
    """Read a JSON object of overrides on top of ``base``."""
    with open(path, encoding='utf-8') as f:
        overrides = json.load(f)
    if not isinstance(overrides, dict):
        raise ValueError(f"{path}: expected a JSON object of config overrides")
    return base.with_overrides(**overrides)
