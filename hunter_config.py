"""
Hunter Config — YAML configuration for the screener and dashboard.

Example hunter_config.yaml:

    database:
      path: hunter.db
      company_database: company_database.json
    screening:
      max_market_cap: 5000000000
      min_insider_ownership: 10
      categories: [advanced-energy, synthetic-biology]
      exclude_tickers: [NVDA, TSLA]
    weights:
      founder_conviction: 1.5
    sec:
      user_agent: "MyResearch/1.0 (me@example.com)"
    settings:
      request_timeout_seconds: 10
      log_level: DEBUG

Secrets and contact details can come from the environment (or a .env
file): HUNTER_USER_AGENT overrides sec.user_agent.
"""

import logging
import os
from dataclasses import dataclass, field, replace
from typing import Dict, Optional, Any

import yaml
from dotenv import load_dotenv

from hunter_core import (
    InvalidCategory,
    ScoreWeights,
    ScreeningCriteria,
)

logger = logging.getLogger(__name__)

DEFAULT_CONFIG_PATH = 'hunter_config.yaml'
DEFAULT_USER_AGENT = 'AsymmetryHunter/1.0 (contact@example.com)'

# Seconds
DEFAULT_CACHE_TTL = {
    'quote': 300,          # 5 minutes for price data
    'fundamentals': 86400, # 24 hours
    'insider': 3600,       # 1 hour
    'filings': 86400,      # 24 hours
}

# Requests per minute
DEFAULT_RATE_LIMITS = {
    'sec-edgar': 10,
    'yahoo-finance': 120,
}

_SCREENING_KEYS = (
    'max_market_cap', 'min_market_cap', 'min_insider_ownership',
    'min_tam_multiple', 'min_asymmetry_score', 'categories', 'exclude_tickers',
)
_WEIGHT_KEYS = ('founder_conviction', 'ai_disruption', 'white_space', 'asymmetry')


class ConfigError(Exception):
    """Raised when configuration is invalid."""


@dataclass
class HunterConfig:
    """Configuration for the screener, data layer and dashboard."""
    db_path: str = 'hunter.db'
    company_database: Optional[str] = None    # None = company_database.json beside the modules
    screening: ScreeningCriteria = field(default_factory=ScreeningCriteria)
    weights: ScoreWeights = field(default_factory=ScoreWeights)
    user_agent: str = DEFAULT_USER_AGENT
    cache_ttl: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_CACHE_TTL))
    rate_limits: Dict[str, int] = field(default_factory=lambda: dict(DEFAULT_RATE_LIMITS))
    request_timeout: float = 10.0
    max_retries: int = 3
    retry_delay: float = 2.0
    batch_size: int = 5
    batch_delay: float = 0.2
    log_level: str = 'INFO'
    log_file: Optional[str] = None


def _section(data: Dict[str, Any], name: str) -> Dict[str, Any]:
    value = data.get(name) or {}
    if not isinstance(value, dict):
        raise ConfigError(f"Section '{name}' must be a mapping, got {type(value).__name__}")
    return value


def _parse_screening(raw: Dict[str, Any]) -> ScreeningCriteria:
    unknown = set(raw) - set(_SCREENING_KEYS)
    if unknown:
        raise ConfigError(f"Unknown screening option(s): {', '.join(sorted(unknown))}")
    options = dict(raw)
    for key in ('categories', 'exclude_tickers'):
        if key in options:
            options[key] = tuple(options[key] or ())
    for key in _SCREENING_KEYS[:5]:
        if options.get(key) is not None:
            try:
                options[key] = float(options[key])
            except (TypeError, ValueError):
                raise ConfigError(f"Screening option '{key}' must be a number, got {options[key]!r}") from None
    try:
        return replace(ScreeningCriteria(), **options)
    except InvalidCategory as e:
        raise ConfigError(str(e)) from e
    except (TypeError, AttributeError) as e:
        raise ConfigError(f"Invalid screening section: {e}") from e


def _parse_weights(raw: Dict[str, Any]) -> ScoreWeights:
    unknown = set(raw) - set(_WEIGHT_KEYS)
    if unknown:
        raise ConfigError(f"Unknown weight(s): {', '.join(sorted(unknown))}")
    try:
        return ScoreWeights(**{k: float(v) for k, v in raw.items()})
    except (TypeError, ValueError) as e:
        raise ConfigError(f"Invalid weights: {e}") from e


def load_config(config_path: str = DEFAULT_CONFIG_PATH) -> HunterConfig:
    """Load configuration from a YAML file.

    A missing file yields the defaults. Malformed YAML or invalid values
    raise ConfigError.
    """
    load_dotenv()
    config = HunterConfig()

    if not os.path.exists(config_path):
        logger.info("Config file not found: %s (using defaults)", config_path)
        data: Dict[str, Any] = {}
    else:
        try:
            with open(config_path, 'r') as f:
                data = yaml.safe_load(f) or {}
        except yaml.YAMLError as e:
            raise ConfigError(f"Failed to parse YAML: {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Configuration root must be a mapping: {config_path}")

    database = _section(data, 'database')
    config.db_path = database.get('path', config.db_path)
    config.company_database = database.get('company_database', config.company_database)

    config.screening = _parse_screening(_section(data, 'screening'))
    config.weights = _parse_weights(_section(data, 'weights'))

    sec = _section(data, 'sec')
    config.user_agent = sec.get('user_agent', config.user_agent)

    config.cache_ttl.update(_section(data, 'cache_ttl'))
    config.rate_limits.update(_section(data, 'rate_limits'))

    settings = _section(data, 'settings')
    config.request_timeout = float(settings.get('request_timeout_seconds', config.request_timeout))
    config.max_retries = int(settings.get('max_retries', config.max_retries))
    config.retry_delay = float(settings.get('retry_delay_seconds', config.retry_delay))
    config.batch_size = int(settings.get('batch_size', config.batch_size))
    config.batch_delay = float(settings.get('batch_delay_seconds', config.batch_delay))
    config.log_level = str(settings.get('log_level', config.log_level)).upper()
    config.log_file = settings.get('log_file', config.log_file)

    if config.batch_size < 1:
        raise ConfigError(f"batch_size must be >= 1, got {config.batch_size}")
    if config.max_retries < 1:
        raise ConfigError(f"max_retries must be >= 1, got {config.max_retries}")
    if config.log_level not in ('DEBUG', 'INFO', 'WARNING', 'ERROR', 'CRITICAL'):
        raise ConfigError(f"Invalid log_level: {config.log_level}")

    env_agent = os.getenv('HUNTER_USER_AGENT')
    if env_agent:
        config.user_agent = env_agent

    return config
