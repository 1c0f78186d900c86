from forecast_agent.config import DEFAULT_CONFIG, ForecastConfig, load_config
from forecast_agent.engine import ForecastInputs, ForecastResult, run_forecast_core

__all__ = [
    'DEFAULT_CONFIG',
    'ForecastConfig',
    'ForecastInputs',
    'ForecastResult',
    'load_config',
    'run_forecast_core',
]
