"""Platform detection and per-user directory locations."""

import os
import platform
from pathlib import Path

APP_DIR_NAME = "copilot-usage"


def _base_dir(env_var: str, fallback: str) -> Path:
    value = os.environ.get(env_var)
    if value:
        return Path(value)
    if platform.system() == "Windows":
        return Path(os.environ.get("APPDATA", Path.home()))
    return Path.home() / fallback


def get_config_dir() -> Path:
    """Directory holding config.json (XDG_CONFIG_HOME aware)."""
    return _base_dir("XDG_CONFIG_HOME", ".config") / APP_DIR_NAME


def get_cache_dir() -> Path:
    """Directory holding the single usage cache slot (XDG_CACHE_HOME aware)."""
    return _base_dir("XDG_CACHE_HOME", ".cache") / APP_DIR_NAME


def get_state_dir() -> Path:
    """Directory holding the event log (XDG_STATE_HOME aware)."""
    return _base_dir("XDG_STATE_HOME", ".local/state") / APP_DIR_NAME


__all__ = ["APP_DIR_NAME", "get_config_dir", "get_cache_dir", "get_state_dir"]
