"""Configuration management for copilot-usage.

Provides functions for loading, saving, validating, and migrating
configuration files.
"""

import json
import os
import sys
from pathlib import Path
from typing import Any, Callable, List, Optional, Tuple, Union

from copilot_usage.config.eventlog import Event, log_event
from copilot_usage.errors import ConfigError
from copilot_usage.utils.platform import get_config_dir

# File paths
CONFIG_FILE = get_config_dir() / "config.json"

# Available dashboard themes
THEME_NAMES = (
    "dark",
    "light",
    "dracula",
    "nord",
    "monokai",
    "gruvbox",
)

# Default configuration values
DEFAULT_CONFIG = {
    "token": None,
    "username": None,
    "theme": "dark",
    "cache_ttl_minutes": 5,
    "waybar_format": "{percentage}%",
    "monthly_limit": 300,
    "timeout": 30,
}

# Config version for migration tracking
CONFIG_VERSION = 2

# Migration history:
# v1: token, username, theme, cache_ttl_minutes, waybar_format
# v2: Added monthly_limit, timeout

# Format: key -> (expected_types, required, validator_func or None)
# validator_func takes value and returns (is_valid, error_message)
ValidatorFunc = Callable[[Union[str, int, float, bool, None]], Tuple[bool, str]]

CONFIG_SCHEMA: dict[str, tuple[tuple, bool, Optional[ValidatorFunc]]] = {
    "token": (
        (str, type(None)),
        False,
        lambda v: (True, "")
        if v is None or (isinstance(v, str) and len(v) > 0)
        else (False, "must be a non-empty string or null"),
    ),
    "username": ((str, type(None)), False, None),
    "theme": (
        (str,),
        False,
        lambda v: (True, "")
        if v in THEME_NAMES
        else (False, f"must be one of: {', '.join(THEME_NAMES)}"),
    ),
    "cache_ttl_minutes": (
        (int, float),
        False,
        lambda v: (True, "") if 0 < v <= 1440 else (False, "must be between 0 and 1440"),
    ),
    "waybar_format": ((str,), False, None),
    "monthly_limit": (
        (int, float),
        False,
        lambda v: (True, "") if v > 0 else (False, "must be positive"),
    ),
    "timeout": (
        (int, float),
        False,
        lambda v: (True, "") if 0 < v <= 300 else (False, "must be between 0 and 300"),
    ),
    "_config_version": ((int,), False, None),  # Internal version tracking for migrations
}


def validate_config(config: dict) -> List[str]:
    """Validate configuration against schema.

    Args:
        config: Configuration dictionary to validate.

    Returns:
        List of validation error messages. Empty list if valid.
    """
    errors = []

    for key in config:
        if key not in CONFIG_SCHEMA:
            errors.append(f"Unknown config key: '{key}'")

    for key, (expected_types, required, validator) in CONFIG_SCHEMA.items():
        if required and key not in config:
            errors.append(f"Missing required key: '{key}'")
            continue

        if key not in config:
            continue

        value = config[key]

        # bool is an int subclass; never accept it for numeric keys
        if not isinstance(value, expected_types) or (
            isinstance(value, bool) and bool not in expected_types
        ):
            type_names = " or ".join(t.__name__ for t in expected_types)
            errors.append(
                f"'{key}' has invalid type: expected {type_names}, got {type(value).__name__}"
            )
            continue

        if validator and value is not None:
            is_valid, error_msg = validator(value)
            if not is_valid:
                errors.append(f"'{key}' {error_msg}")

    return errors


def migrate_config(config: dict) -> Tuple[dict, bool]:
    """Migrate old config formats to the current schema.

    Args:
        config: Configuration dictionary to migrate.

    Returns:
        Tuple of (migrated_config, was_migrated).
    """
    was_migrated = False
    migrated = config.copy()

    current_version = migrated.get("_config_version", 1)

    # Migration from v1 to v2: Add monthly_limit and timeout
    if current_version < 2:
        for key in ("monthly_limit", "timeout"):
            if key not in migrated:
                migrated[key] = DEFAULT_CONFIG[key]
                was_migrated = True
        current_version = 2

    if was_migrated:
        migrated["_config_version"] = CONFIG_VERSION

    return migrated, was_migrated


def load_config(
    validate: bool = True,
    auto_migrate: bool = True,
    config_file: Optional[Path] = None,
    silent: bool = False,
) -> dict:
    """Load configuration from file.

    Args:
        validate: Whether to validate config and warn on errors. Default True.
        auto_migrate: Whether to automatically migrate old config formats. Default True.
        config_file: Optional path to config file. Defaults to CONFIG_FILE.
        silent: If True, suppress warning output. Default False.

    Returns:
        Configuration dictionary merged with defaults.
    """
    if config_file is None:
        config_file = CONFIG_FILE

    if not config_file.exists():
        return DEFAULT_CONFIG.copy()

    try:
        with open(config_file, encoding="utf-8") as f:
            config = json.load(f)
    except (OSError, json.JSONDecodeError):
        return DEFAULT_CONFIG.copy()

    if not isinstance(config, dict):
        return DEFAULT_CONFIG.copy()

    if auto_migrate:
        config, was_migrated = migrate_config(config)
        if was_migrated:
            try:
                save_config(config, config_file=config_file)
            except OSError:
                pass  # Keep the in-memory migration if the file is read-only
            if not silent:
                print(f"Config migrated to version {CONFIG_VERSION}", file=sys.stderr)

    if validate and not silent:
        errors = validate_config(config)
        if errors:
            print("Warning: Config validation errors:", file=sys.stderr)
            for error in errors:
                print(f"  - {error}", file=sys.stderr)

    return {**DEFAULT_CONFIG, **config}


def save_config(config: dict, config_file: Optional[Path] = None) -> None:
    """Save configuration to file.

    Args:
        config: Configuration dictionary to save.
        config_file: Optional path to config file. Defaults to CONFIG_FILE.
    """
    if config_file is None:
        config_file = CONFIG_FILE

    config_file.parent.mkdir(parents=True, exist_ok=True)
    with open(config_file, "w", encoding="utf-8") as f:
        json.dump(config, f, indent=2)

    # Secure the file (contains the GitHub token)
    os.chmod(config_file, 0o600)

    log_event(Event.CONFIG_WRITE, "Config saved", details={"path": str(config_file)})


def reset_config(config_file: Optional[Path] = None) -> None:
    """Reset configuration to default values.

    Args:
        config_file: Optional path to config file. Defaults to CONFIG_FILE.
    """
    save_config(DEFAULT_CONFIG.copy(), config_file=config_file)


def coerce_config_value(key: str, raw: str) -> Any:
    """Convert a command-line string into the type the schema expects.

    Args:
        key: Configuration key.
        raw: Value as typed by the user.

    Returns:
        Converted value.

    Raises:
        ConfigError: If the key is unknown or the value fails validation.
    """
    if key not in DEFAULT_CONFIG:
        raise ConfigError(
            f"Unknown config key: '{key}'",
            suggestion=f"Valid keys: {', '.join(sorted(DEFAULT_CONFIG))}",
        )

    expected_types, _, validator = CONFIG_SCHEMA[key]
    value: Any
    if raw.lower() in ("null", "none", "") and type(None) in expected_types:
        value = None
    elif int in expected_types:
        try:
            value = int(raw)
        except ValueError:
            try:
                value = float(raw)
            except ValueError:
                raise ConfigError(f"'{key}' must be a number, got '{raw}'") from None
    else:
        value = raw

    if validator and value is not None:
        is_valid, error_msg = validator(value)
        if not is_valid:
            raise ConfigError(f"'{key}' {error_msg}")
    return value


def set_config_value(key: str, raw: str, config_file: Optional[Path] = None) -> dict:
    """Validate, store, and return the updated configuration.

    Raises:
        ConfigError: If the key or value is invalid.
    """
    config = load_config(config_file=config_file, silent=True)
    config[key] = coerce_config_value(key, raw)
    save_config(config, config_file=config_file)
    return config


__all__ = [
    "CONFIG_FILE",
    "DEFAULT_CONFIG",
    "THEME_NAMES",
    "CONFIG_VERSION",
    "CONFIG_SCHEMA",
    "validate_config",
    "migrate_config",
    "load_config",
    "save_config",
    "reset_config",
    "coerce_config_value",
    "set_config_value",
]
