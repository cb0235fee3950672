#!/usr/bin/env python3
"""
Tests for hunter_config.py — YAML configuration loading.

Run: pytest test_hunter_config.py -v
"""

import pytest

from hunter_config import (
    ConfigError,
    DEFAULT_CACHE_TTL,
    DEFAULT_USER_AGENT,
    load_config,
)
from hunter_core import (
    DEFAULT_MAX_MARKET_CAP,
    EXCLUDED_TICKERS,
    FutureCategory,
    ScoreWeights,
)


@pytest.fixture(autouse=True)
def no_env_agent(monkeypatch):
    monkeypatch.delenv('HUNTER_USER_AGENT', raising=False)


def write_config(tmp_path, text: str) -> str:
    path = tmp_path / 'hunter_config.yaml'
    path.write_text(text)
    return str(path)


class TestDefaults:

    def test_missing_file_gives_defaults(self, tmp_path):
        config = load_config(str(tmp_path / 'missing.yaml'))
        assert config.db_path == 'hunter.db'
        assert config.screening.max_market_cap == DEFAULT_MAX_MARKET_CAP
        assert config.screening.exclude_tickers == EXCLUDED_TICKERS
        assert config.weights == ScoreWeights()
        assert config.user_agent == DEFAULT_USER_AGENT
        assert config.cache_ttl == DEFAULT_CACHE_TTL
        assert config.batch_size == 5

    def test_empty_file_gives_defaults(self, tmp_path):
        config = load_config(write_config(tmp_path, ''))
        assert config.log_level == 'INFO'


class TestOverrides:

    def test_full_config(self, tmp_path):
        config = load_config(write_config(tmp_path, """
database:
  path: research.db
screening:
  max_market_cap: 5e9
  min_insider_ownership: 10
  categories: [advanced-energy, synthetic_biology]
  exclude_tickers: [nvda]
weights:
  founder_conviction: 2
sec:
  user_agent: "Research/1.0 (me@example.com)"
cache_ttl:
  quote: 60
settings:
  batch_size: 3
  max_retries: 5
  retry_delay_seconds: 0.5
  log_level: debug
"""))
        assert config.db_path == 'research.db'
        assert config.screening.max_market_cap == 5e9
        assert config.screening.min_insider_ownership == 10
        assert config.screening.min_tam_multiple == 10
        assert config.screening.categories == (
            FutureCategory.ADVANCED_ENERGY, FutureCategory.SYNTHETIC_BIOLOGY)
        assert config.screening.exclude_tickers == ('NVDA',)
        assert config.weights.founder_conviction == 2
        assert config.weights.asymmetry == 1
        assert config.user_agent == 'Research/1.0 (me@example.com)'
        assert config.cache_ttl['quote'] == 60
        assert config.cache_ttl['fundamentals'] == 86400
        assert config.batch_size == 3
        assert config.max_retries == 5
        assert config.retry_delay == 0.5
        assert config.log_level == 'DEBUG'

    def test_null_threshold_disables_filter(self, tmp_path):
        config = load_config(write_config(tmp_path, "screening:\n  min_tam_multiple: null\n"))
        assert config.screening.min_tam_multiple is None

    def test_env_user_agent_wins(self, tmp_path, monkeypatch):
        monkeypatch.setenv('HUNTER_USER_AGENT', 'Env/2.0 (env@example.com)')
        config = load_config(write_config(tmp_path, "sec:\n  user_agent: Yaml/1.0\n"))
        assert config.user_agent == 'Env/2.0 (env@example.com)'


class TestInvalid:

    @pytest.mark.parametrize('text', [
        "screening: [unclosed\n",
        "- just\n- a list\n",
        "screening:\n  categories: [quantum]\n",
        "screening:\n  max_cap: 5\n",
        "screening:\n  min_insider_ownership: lots\n",
        "weights:\n  founder_conviction: -1\n",
        "weights:\n  asymmetry: .inf\n",
        "weights:\n  white_space: .nan\n",
        "weights:\n  hype: 1\n",
        "screening: 5\n",
        "settings:\n  batch_size: 0\n",
        "settings:\n  max_retries: 0\n",
        "settings:\n  log_level: LOUD\n",
    ])
    def test_raises_config_error(self, tmp_path, text):
        with pytest.raises(ConfigError):
            load_config(write_config(tmp_path, text))
