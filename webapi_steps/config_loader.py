"""
================================================================================
Configuration Loader
================================================================================

YAML-based configuration management with environment variable override support.

Features:
    - YAML configuration loading (config/config.yaml or $WEBAPI_CONFIG)
    - Environment variable override (API_BASE_URL overrides api.base_url)
    - Dot notation path access
    - Default value support with type coercion for env values

Author: Automation Team
License: MIT
================================================================================
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Optional

import yaml
from loguru import logger


# Project-relative configuration file, looked up from the working directory
LOCAL_CONFIG_PATH = Path("config") / "config.yaml"

# Configuration shipped next to the package in a source checkout
BUNDLED_CONFIG_PATH = Path(__file__).parent.parent / "config" / "config.yaml"

# Environment variable pointing at an alternative configuration file
CONFIG_PATH_ENV = "WEBAPI_CONFIG"


def default_config_path() -> Path:
    """
    Locate the configuration used when no path is given.

    A project's own config/config.yaml (relative to the working directory,
    i.e. where pytest is run) wins over the file bundled with the package.
    """
    local_path = Path.cwd() / LOCAL_CONFIG_PATH
    if local_path.exists():
        return local_path
    return BUNDLED_CONFIG_PATH


class ConfigurationError(Exception):
    """Raised when configuration loading fails or a required collaborator is missing."""
    pass


class ConfigLoader:
    """
    Configuration loader with YAML and environment variable support.

    Configuration hierarchy (highest to lowest priority):
        1. Environment variables (API_BASE_URL)
        2. YAML configuration file
        3. Default values

    Usage:
        >>> config = ConfigLoader()
        >>> config.get("api.base_url", "http://localhost:8000")
        'https://api.example.com'  # From YAML or env var

        >>> config.get("api.http_errors", True)
        True  # Default value if not configured

    Environment Variable Mapping:
        - api.base_url -> API_BASE_URL
        - api.log_all -> API_LOG_ALL
        - assertions.known_charset -> ASSERTIONS_KNOWN_CHARSET
    """

    def __init__(self, config_path: Optional[Path] = None) -> None:
        """
        Initialize configuration loader.

        Args:
            config_path: Path to YAML configuration file.
                        Falls back to $WEBAPI_CONFIG, then default_config_path().
        """
        env_path = os.environ.get(CONFIG_PATH_ENV)
        self._config_path = Path(config_path or env_path or default_config_path())
        self._config: Dict[str, Any] = {}
        self._load_config()

    @property
    def config_path(self) -> Path:
        return self._config_path

    def _load_config(self) -> None:
        """Load configuration from YAML file."""
        if not self._config_path.exists():
            logger.warning(
                f"Configuration file not found: {self._config_path}. "
                f"Using defaults and environment variables only."
            )
            self._config = {}
            return

        try:
            with open(self._config_path, "r", encoding="utf-8") as f:
                self._config = yaml.safe_load(f) or {}
            logger.debug(f"Loaded configuration from: {self._config_path}")
        except yaml.YAMLError as e:
            raise ConfigurationError(
                f"Invalid YAML in configuration file: {e}"
            ) from e

    def get(self, key: str, default: Any = None) -> Any:
        """
        Get configuration value by dot-notation path.

        First checks environment variables, then YAML config, then default.

        Args:
            key: Dot-notation path (e.g., "api.base_url")
            default: Default value if key not found

        Returns:
            Configuration value or default
        """
        env_key = key.upper().replace(".", "_")
        env_value = os.environ.get(env_key)
        if env_value is not None:
            return self._convert_type(env_value, default)

        value = self._config
        for part in key.split("."):
            if isinstance(value, dict):
                value = value.get(part)
            else:
                value = None

            if value is None:
                return default

        return value

    def get_section(self, section: str) -> Dict[str, Any]:
        """Get entire configuration section, or an empty dict."""
        return self._config.get(section, {})

    def reload(self) -> None:
        """Reload configuration from file."""
        self._load_config()
        logger.info(f"Configuration reloaded from: {self._config_path}")

    def _convert_type(self, value: str, reference: Any) -> Any:
        """
        Convert string value to match reference type.

        Used for environment variables which are always strings.
        """
        if reference is None:
            return value

        if isinstance(reference, bool):
            return value.lower() in ("true", "1", "yes", "on")
        if isinstance(reference, int):
            try:
                return int(value)
            except ValueError:
                return value
        if isinstance(reference, float):
            try:
                return float(value)
            except ValueError:
                return value

        return value


__all__ = [
    "ConfigLoader",
    "ConfigurationError",
]
