import json

import pytest

from forecast_agent.config import DEFAULT_CONFIG, ForecastConfig, load_config


def test_defaults() -> None:
    c = ForecastConfig()
    assert c.n_sim == 1000
    assert (c.spike_clip_min, c.spike_clip_max) == (0.70, 1.40)
    assert c.seasonal_mad_k == 3.0
    assert (c.trend_factor_min, c.trend_factor_max) == (0.85, 1.15)
    assert (c.seasonal_index_min, c.seasonal_index_max) == (0.80, 1.20)
    assert c.seed is None


def test_with_overrides_returns_copy() -> None:
    c = DEFAULT_CONFIG.with_overrides(n_sim=50, seed=3)
    assert (c.n_sim, c.seed) == (50, 3)
    assert DEFAULT_CONFIG.n_sim == 1000


def test_unknown_override_rejected() -> None:
    with pytest.raises(ValueError, match="Unknown config keys"):
        DEFAULT_CONFIG.with_overrides(n_sims=10)


def test_load_config(tmp_path) -> None:
    path = tmp_path / 'config.json'
    path.write_text(json.dumps({'n_sim': 200, 'opinion_jitter': 0.0}), encoding='utf-8')
    c = load_config(str(path))
    assert c.n_sim == 200
    assert c.opinion_jitter == 0.0
    assert c.to_dict()['n_sim'] == 200


def test_load_config_requires_object(tmp_path) -> None:
    path = tmp_path / 'config.json'
    path.write_text('[1, 2]', encoding='utf-8')
    with pytest.raises(ValueError):
        load_config(str(path))
