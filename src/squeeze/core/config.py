"""Configuration management — TOML config at ~/.config/squeeze/squeeze.toml.

Only machine-level preferences live here (where the database is, how chatty
logging is, how dates print). Per-user money settings are stored in the
database alongside the subscriptions.
"""

from __future__ import annotations

import copy
import os
import sys
from pathlib import Path
from typing import Any

import tomli_w

from squeeze.core.exceptions import ConfigError

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

_DEFAULT_CONFIG: dict[str, Any] = {
    "general": {
        "data_dir": "~/.local/share/squeeze",
        "log_level": "WARNING",
    },
    "display": {
        "date_format": "%b %d, %Y",
    },
}

_LOG_LEVELS = ("DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL")


def get_config_dir() -> Path:
    """Return the config directory, creating it if needed."""
    config_dir = Path(os.environ.get("SQUEEZE_CONFIG_DIR", "~/.config/squeeze")).expanduser()
    config_dir.mkdir(parents=True, exist_ok=True)
    return config_dir


def get_config_path() -> Path:
    return get_config_dir() / "squeeze.toml"


def get_data_dir(config: dict[str, Any] | None = None) -> Path:
    """Return the data directory, creating it if needed."""
    if config is None:
        config = load_config()
    data_dir = Path(config["general"]["data_dir"]).expanduser()
    data_dir.mkdir(parents=True, exist_ok=True)
    return data_dir


def load_config() -> dict[str, Any]:
    """Read the TOML file merged over the defaults. A missing file means all defaults."""
    config = copy.deepcopy(_DEFAULT_CONFIG)
    config_path = get_config_path()
    if not config_path.exists():
        return config
    try:
        with open(config_path, "rb") as f:
            user_config = tomllib.load(f)
    except (OSError, tomllib.TOMLDecodeError) as e:
        raise ConfigError(f"Failed to load config {config_path}: {e}") from e
    return _validate(_merge_config(config, user_config))


def save_config(config: dict[str, Any]) -> None:
    config_path = get_config_path()
    try:
        with open(config_path, "wb") as f:
            tomli_w.dump(_validate(config), f)
    except OSError as e:
        raise ConfigError(f"Failed to save config {config_path}: {e}") from e


def update_config(**updates: Any) -> dict[str, Any]:
    """Load config, apply per-section updates, save, and return the result.

    Usage: update_config(general={"log_level": "INFO"})
    """
    config = load_config()
    for section, values in updates.items():
        if not isinstance(values, dict):
            raise ConfigError(f"Config section [{section}] must be a table.")
        config.setdefault(section, {}).update(values)
    save_config(config)
    return config


def get_value(key: str, config: dict[str, Any] | None = None) -> Any:
    """Look up a dotted ``section.name`` key."""
    config = config if config is not None else load_config()
    section, _, name = key.partition(".")
    try:
        return config[section][name]
    except KeyError:
        raise ConfigError(f"Unknown config key: {key}") from None


def set_value(key: str, value: str) -> dict[str, Any]:
    """Set a known dotted key from its string form and save."""
    section, _, name = key.partition(".")
    if name not in _DEFAULT_CONFIG.get(section, {}):
        raise ConfigError(f"Unknown config key: {key}")
    return update_config(**{section: {name: value}})


def _validate(config: dict[str, Any]) -> dict[str, Any]:
    for section in _DEFAULT_CONFIG:
        if not isinstance(config.get(section), dict):
            raise ConfigError(f"Config section [{section}] must be a table.")

    level = str(config["general"].get("log_level", "WARNING")).upper()
    if level not in _LOG_LEVELS:
        raise ConfigError(f"general.log_level must be one of {', '.join(_LOG_LEVELS)}, got {level!r}")
    config["general"]["log_level"] = level

    if not isinstance(config["general"].get("data_dir"), str):
        raise ConfigError("general.data_dir must be a path string.")
    if not isinstance(config["display"].get("date_format"), str):
        raise ConfigError("display.date_format must be a strftime string.")
    return config


def _merge_config(base: dict[str, Any], override: dict[str, Any]) -> dict[str, Any]:
    """Deep-merge override into base."""
    for key, value in override.items():
        if key in base and isinstance(base[key], dict) and isinstance(value, dict):
            _merge_config(base[key], value)
        else:
            base[key] = value
    return base
