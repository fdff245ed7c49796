"""Configuration management.

Modules:
    settings: Config loading, saving, validation, and migration
    credentials: GitHub token lookup
    eventlog: JSON-lines event log
"""

from copilot_usage.config.credentials import (
    Credentials,
    get_credentials,
    mask_token,
    validate_token_format,
)
from copilot_usage.config.settings import (
    CONFIG_FILE,
    CONFIG_SCHEMA,
    CONFIG_VERSION,
    DEFAULT_CONFIG,
    THEME_NAMES,
    load_config,
    migrate_config,
    reset_config,
    save_config,
    set_config_value,
    validate_config,
)

__all__ = [
    # Settings
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
    "set_config_value",
    # Credentials
    "Credentials",
    "get_credentials",
    "mask_token",
    "validate_token_format",
]
