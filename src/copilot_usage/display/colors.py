"""Terminal color handling and detection.

Provides ANSI color codes for the plain-text outputs (cache status,
config show) with automatic detection of color support.
"""

import os
import platform
import sys


class Colors:
    """ANSI color codes for terminal output."""

    RESET = "\033[0m"
    BOLD = "\033[1m"
    DIM = "\033[2m"
    GREEN = "\033[92m"
    YELLOW = "\033[93m"
    RED = "\033[91m"
    CYAN = "\033[96m"
    WHITE = "\033[97m"
    GRAY = "\033[90m"
    BAR_FILL = "\033[94m"
    BAR_EMPTY = "\033[90m"


_ANSI_DEFAULTS = {attr: getattr(Colors, attr) for attr in dir(Colors) if not attr.startswith("_")}


def supports_color() -> bool:
    """Check if the terminal supports color output.

    Returns:
        True if colors should be displayed, False otherwise.
    """
    # NO_COLOR convention plus our own override (any non-empty value disables color)
    if os.environ.get("NO_COLOR") or os.environ.get("COPILOT_USAGE_NO_COLOR"):
        return False
    if not hasattr(sys.stdout, "isatty") or not sys.stdout.isatty():
        return False
    if platform.system() == "Windows":
        return bool(os.environ.get("TERM") or os.environ.get("WT_SESSION"))
    return True


def disable_colors() -> None:
    """Blank every color code (used by --no-color)."""
    for attr in _ANSI_DEFAULTS:
        setattr(Colors, attr, "")


def init_colors() -> None:
    """Initialize colors based on terminal support.

    Disables all color codes if the terminal doesn't support colors.
    """
    if supports_color():
        for attr, code in _ANSI_DEFAULTS.items():
            setattr(Colors, attr, code)
    else:
        disable_colors()


# Auto-initialize on import
init_colors()

__all__ = ["Colors", "supports_color", "init_colors", "disable_colors"]
