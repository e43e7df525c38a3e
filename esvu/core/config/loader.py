"""
Configuration loader — reads ``config.yml`` into a Settings model.

The file is optional.  It lives in the esvu home directory (or is
given explicitly with ``--config``) and looks like::

    engines: [v8, quickjs, spidermonkey]   # default selection on first run
    download_timeout: 120                  # seconds per HTTP read
    test_timeout: 30                       # seconds per smoke test
"""

from __future__ import annotations

import logging
from pathlib import Path

import yaml
from pydantic import BaseModel, Field

from esvu.core import context

logger = logging.getLogger(__name__)


class ConfigError(Exception):
    """Raised when the configuration file is invalid."""


class Settings(BaseModel):
    """User settings.  Every field has a working default."""

    engines: list[str] | None = None
    download_timeout: int = Field(default=60, gt=0)
    test_timeout: int = Field(default=30, gt=0)


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit path to config.yml.  If None, uses the home directory's.

    Returns:
        Validated Settings (defaults if the file does not exist).

    Raises:
        ConfigError: If the file exists but is unreadable or invalid.
    """
    explicit = path is not None
    if path is None:
        path = context.config_path()

    if not path.is_file():
        if explicit:
            raise ConfigError(f"Config file not found: {path}")
        logger.debug("No config at %s — using defaults", path)
        return Settings()

    logger.debug("Loading config from %s", path)

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return Settings()
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")

    try:
        settings = Settings.model_validate(data)
    except Exception as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded config from %s", path)
    return settings
