"""
load the downloader config from config.yaml, .env and the environment
"""

import os
import yaml
from pathlib import Path
from typing import Dict, Any, Optional

from dotenv import load_dotenv


DEFAULTS: Dict[str, Any] = {
    'fetcher': {
        'timeout': 10.0,
        'follow_redirects': True,
        'max_redirects': 10,
        'user_agent': None,
    },
    'logging': {
        'level': 'INFO',
    },
}


class Config:
    """Configuration loader that reads from config.yaml and environment variables."""

    def __init__(self, config_path: str = None, dotenv_path: str = None):
        """Initialize configuration loader.

        Args:
            config_path: Path to config.yaml file. If None, uses $FETCHBOT_CONFIG
                        or config.yaml in the same directory as this module.
                        A missing file means "use the defaults".
            dotenv_path: Optional .env file loaded before environment overrides.
        """
        if config_path is None:
            config_path = os.getenv('FETCHBOT_CONFIG') or Path(__file__).parent / "config.yaml"
        if dotenv_path:
            load_dotenv(dotenv_path)

        self.config_path = Path(config_path)
        self._config = self._load_config()

    def _load_config(self) -> Dict[str, Any]:
        """Load configuration from YAML file and override with environment variables."""
        config = _merge(DEFAULTS, {})
        if self.config_path.is_file():
            try:
                with open(self.config_path, 'r') as f:
                    loaded = yaml.safe_load(f) or {}
            except yaml.YAMLError as e:
                raise ValueError(f"Invalid YAML in configuration file: {e}")
            if not isinstance(loaded, dict):
                raise ValueError(f"Configuration file must contain a mapping: {self.config_path}")
            config = _merge(config, loaded)

        return self._apply_env_overrides(config)

    def _apply_env_overrides(self, config: Dict[str, Any]) -> Dict[str, Any]:
        """Apply environment variable overrides to configuration."""
        env_mappings = {
            'FETCHER_TIMEOUT': ('fetcher', 'timeout'),
            'FETCHER_FOLLOW_REDIRECTS': ('fetcher', 'follow_redirects'),
            'FETCHER_MAX_REDIRECTS': ('fetcher', 'max_redirects'),
            'FETCHER_USER_AGENT': ('fetcher', 'user_agent'),
            'LOG_LEVEL': ('logging', 'level'),
        }

        for env_var, config_path in env_mappings.items():
            env_value = os.getenv(env_var)
            if env_value is not None:
                current = config
                for key in config_path[:-1]:
                    current = current.setdefault(key, {})
                current[config_path[-1]] = self._convert_env_value(env_value)

        return config

    def _convert_env_value(self, value: str):
        """Convert environment variable string to appropriate Python type."""
        if value.lower() in ('true', 'false'):
            return value.lower() == 'true'

        try:
            return int(value)
        except ValueError:
            pass

        try:
            return float(value)
        except ValueError:
            pass

        return value

    def get(self, *keys, default=None):
        """Get configuration value by nested keys.

        Args:
            *keys: Configuration keys (e.g., 'fetcher', 'timeout')
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        current = self._config
        for key in keys:
            if isinstance(current, dict) and key in current:
                current = current[key]
            else:
                return default
        return current

    @property
    def fetcher(self) -> Dict[str, Any]:
        """Get HTTP fetcher configuration."""
        return self.get('fetcher', default={})

    @property
    def logging(self) -> Dict[str, Any]:
        """Get logging configuration."""
        return self.get('logging', default={})


def _merge(base: Dict[str, Any], override: Dict[str, Any]) -> Dict[str, Any]:
    merged = {key: dict(value) if isinstance(value, dict) else value for key, value in base.items()}
    for key, value in override.items():
        if isinstance(value, dict) and isinstance(merged.get(key), dict):
            merged[key] = _merge(merged[key], value)
        else:
            merged[key] = value
    return merged


_config: Optional[Config] = None


def get_config() -> Config:
    """Return the process-wide configuration, loading it on first use rather than at import."""
    global _config
    if _config is None:
        _config = Config(dotenv_path=os.getenv('FETCHBOT_ENV_FILE'))
    return _config


def reset_config() -> None:
    """Forget the loaded configuration; the next get_config() reloads it."""
    global _config
    _config = None
