"""
Configuration loader: reads config.yml into the Settings model.

The config directory is resolved in precedence order:
    --config-dir flag  >  BUNDLECTL_CONFIG env var  >  ~/.bundlectl

A missing config.yml is not an error: every setting has a default.
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml

from bundlectl.core.models.settings import Settings

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "config.yml"
CONFIG_DIR_ENV = "BUNDLECTL_CONFIG"
DRIVER_ENV = "BUNDLECTL_DRIVER"
EXPERIMENTAL_ENV = "BUNDLECTL_EXPERIMENTAL"


class ConfigError(Exception):
    """Raised when the configuration file is invalid."""


def default_config_dir() -> Path:
    """Resolve the config directory from the environment or home."""
    env = os.environ.get(CONFIG_DIR_ENV)
    if env:
        return Path(env).expanduser()
    return Path.home() / ".bundlectl"


def load_settings(config_dir: Path | None = None) -> Settings:
    """Load and validate the configuration.

    Args:
        config_dir: Explicit config directory. If None, uses the default.

    Returns:
        Validated Settings model (defaults if no config.yml exists).

    Raises:
        ConfigError: If the file exists but is unreadable or invalid.
    """
    if config_dir is None:
        config_dir = default_config_dir()

    path = config_dir / CONFIG_FILE
    data: dict = {}

    if path.is_file():
        logger.debug("Loading settings from %s", path)
        try:
            raw = path.read_text(encoding="utf-8")
        except OSError as e:
            raise ConfigError(f"Cannot read {path}: {e}") from e

        try:
            loaded = yaml.safe_load(raw)
        except yaml.YAMLError as e:
            raise ConfigError(f"Invalid YAML in {path}: {e}") from e

        if loaded is None:
            loaded = {}
        if not isinstance(loaded, dict):
            raise ConfigError(f"Expected a YAML mapping in {path}, got {type(loaded).__name__}")
        data = loaded
    else:
        logger.debug("No settings file at %s, using defaults", path)

    # Environment overrides
    driver = os.environ.get(DRIVER_ENV)
    if driver:
        data["driver"] = driver

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.debug(
        "Settings: %d context(s), driver=%s", len(settings.context_names()), settings.driver
    )
    return settings


def experimental_enabled(settings: Settings | None = None) -> bool:
    """Whether experimental commands should be registered.

    ``BUNDLECTL_EXPERIMENTAL=on`` wins over the config file.
    """
    env = os.environ.get(EXPERIMENTAL_ENV, "").strip().lower()
    if env:
        return env in ("on", "1", "true", "yes")
    return bool(settings and settings.experimental)
