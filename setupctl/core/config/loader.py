"""
Configuration loader — reads setupctl.yml into the Settings model.

Reads YAML, validates against the Pydantic schema, and returns typed
settings. A missing config file is not an error: every setting has
a default.

Lookup order:
    --config PATH  >  $SETUPCTL_CONFIG  >  setupctl.yml (searched upward
    from the cwd)  >  /etc/setupctl/setupctl.yml
"""

from __future__ import annotations

import logging
import os
from pathlib import Path

import yaml
from pydantic import ValidationError

from setupctl.core.models.settings import Settings

logger = logging.getLogger(__name__)

# Default config filename
CONFIG_FILE = "setupctl.yml"
SYSTEM_CONFIG = Path("/etc/setupctl") / CONFIG_FILE
CONFIG_ENV_VAR = "SETUPCTL_CONFIG"


class ConfigError(Exception):
    """Raised when setupctl.yml is unreadable or invalid."""


def find_config_file(start_dir: Path | None = None) -> Path | None:
    """Locate setupctl.yml.

    Checks ``$SETUPCTL_CONFIG``, then walks upward from ``start_dir``
    (default: cwd), then falls back to the system-wide file.

    Returns:
        Path to the config file, or None if there is none.
    """
    env_path = os.environ.get(CONFIG_ENV_VAR)
    if env_path:
        return Path(env_path).expanduser()

    current = (start_dir or Path.cwd()).resolve()
    for _ in range(20):  # safety limit
        candidate = current / CONFIG_FILE
        if candidate.is_file():
            return candidate
        parent = current.parent
        if parent == current:
            break  # filesystem root
        current = parent

    if SYSTEM_CONFIG.is_file():
        return SYSTEM_CONFIG
    return None


def read_config(path: Path) -> dict:
    """Read and parse a config file into a raw mapping.

    Raises:
        ConfigError: If the file is missing, unreadable or not a mapping.
    """
    if not path.is_file():
        raise ConfigError(f"Config file not found: {path}")

    try:
        raw = path.read_text(encoding="utf-8")
    except OSError as e:
        raise ConfigError(f"Cannot read {path}: {e}") from e

    try:
        data = yaml.safe_load(raw)
    except yaml.YAMLError as e:
        raise ConfigError(f"Invalid YAML in {path}: {e}") from e

    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Expected a YAML mapping in {path}, got {type(data).__name__}")
    return data


def load_settings(path: Path | None = None) -> Settings:
    """Load and validate settings.

    Args:
        path: Explicit path to setupctl.yml. If None, searches for one
            and returns defaults when none exists.

    Raises:
        ConfigError: If the file is invalid, or an explicit path is missing.
    """
    if path is None:
        path = find_config_file()
    if path is None:
        logger.debug("No %s found, using defaults", CONFIG_FILE)
        return Settings()

    logger.debug("Loading settings from %s", path)
    data = read_config(path)

    try:
        settings = Settings.model_validate(data)
    except ValidationError as e:
        raise ConfigError(f"Invalid configuration in {path}: {e}") from e

    logger.info("Loaded settings from %s (%d recipe override(s))", path, len(settings.recipes))
    return settings
