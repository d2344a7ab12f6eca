"""Helpers for loading the user configuration file (~/.aabconv/config.json)."""

from __future__ import annotations

import json
import logging
from functools import lru_cache
from pathlib import Path
from typing import Any

CONFIG_DIR = Path.home() / ".aabconv"
CONFIG_FILE = CONFIG_DIR / "config.json"

logger = logging.getLogger(__name__)


@lru_cache(maxsize=1)
def load_config() -> dict[str, Any]:
    """Load configuration data from disk (cached)."""

    if not CONFIG_FILE.exists():
        return {}

    try:
        raw = CONFIG_FILE.read_text()
    except OSError as exc:
        logger.warning("Could not read %s: %s", CONFIG_FILE, exc)
        return {}

    try:
        data = json.loads(raw)
    except ValueError:
        logger.warning("Ignoring malformed config file %s", CONFIG_FILE)
        return {}

    if isinstance(data, dict):
        return data

    return {}


def get_config_value(key: str, default: Any | None = None) -> Any | None:
    """Fetch a configuration value by key."""

    return load_config().get(key, default)


def reload_config() -> None:
    """Force the cached configuration to be reloaded on next access."""

    load_config.cache_clear()


def get_config_path(key: str) -> Path | None:
    """Fetch a configuration value as an expanded path, if set to a string."""

    value = get_config_value(key)
    if isinstance(value, str) and value:
        return Path(value).expanduser()
    return None
