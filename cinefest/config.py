#!/usr/bin/env python3
"""
YAML configuration loading with defaults

Every key is optional. A missing file yields the defaults; a file that
exists but cannot be parsed (or is not a mapping) raises ConfigError.
"""

import logging
import os
from pathlib import Path
from typing import Dict, Optional

import yaml

from cinefest.constants import (
    DEFAULT_BACKEND_URL, DEFAULT_REQUEST_TIMEOUT, DEFAULT_LOOKUP_TIMEOUT,
    DEFAULT_MAX_CONCURRENT_LOOKUPS, DEFAULT_MAP_ZOOM, DEFAULT_SESSION_PATH,
    DEFAULT_TMDB_CACHE_PATH,
)
from cinefest.errors import ConfigError

logger = logging.getLogger(__name__)

DEFAULTS = {
    'backend_url': DEFAULT_BACKEND_URL,
    'tmdb_api_key': None,
    'tmdb_cache_path': DEFAULT_TMDB_CACHE_PATH,
    'session_path': DEFAULT_SESSION_PATH,
    'request_timeout': DEFAULT_REQUEST_TIMEOUT,
    'lookup_timeout': DEFAULT_LOOKUP_TIMEOUT,
    'max_concurrent_lookups': DEFAULT_MAX_CONCURRENT_LOOKUPS,
    'map_zoom': DEFAULT_MAP_ZOOM,
    'location': None,
    'log_level': 'INFO',
}


def load_config(config_path: Optional[Path] = None) -> Dict:
    """Load configuration from YAML file, merged over DEFAULTS"""
    config = dict(DEFAULTS)

    if config_path is not None and config_path.exists():
        try:
            with open(config_path, 'r', encoding='utf-8') as f:
                loaded = yaml.safe_load(f)
        except yaml.YAMLError as e:
            raise ConfigError(f"Could not parse {config_path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"{config_path} must contain a mapping, got {type(loaded).__name__}")

        unknown = sorted(set(loaded) - set(DEFAULTS))
        if unknown:
            logger.warning(f"Ignoring unknown config keys: {', '.join(unknown)}")

        config.update({k: v for k, v in loaded.items() if k in DEFAULTS})
        logger.debug(f"Loaded config from {config_path}")
    elif config_path is not None:
        logger.info(f"Config file not found: {config_path} — using defaults")

    # Environment wins for the API key so it can stay out of the YAML file
    env_key = os.environ.get('TMDB_API_KEY')
    if env_key:
        config['tmdb_api_key'] = env_key

    config['backend_url'] = str(config['backend_url']).rstrip('/')

    for key in ('request_timeout', 'lookup_timeout'):
        try:
            config[key] = float(config[key])
        except (TypeError, ValueError) as e:
            raise ConfigError(f"'{key}' must be a number, got {config[key]!r}") from e
        if config[key] <= 0:
            raise ConfigError(f"'{key}' must be positive, got {config[key]}")

    try:
        config['max_concurrent_lookups'] = int(config['max_concurrent_lookups'])
    except (TypeError, ValueError) as e:
        raise ConfigError(
            f"'max_concurrent_lookups' must be an integer, got {config['max_concurrent_lookups']!r}"
        ) from e
    if config['max_concurrent_lookups'] < 1:
        raise ConfigError("'max_concurrent_lookups' must be at least 1")

    return config
