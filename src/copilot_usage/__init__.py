"""Copilot Usage - terminal dashboard for GitHub Copilot premium request usage.

This package provides a live curses dashboard backed by a single-slot
cache, and a one-shot export mode for status bars such as waybar.
"""

from copilot_usage._version import __version__
from copilot_usage.cli import create_parser, handle_config_command, print_version

__all__ = [
    "__version__",
    "create_parser",
    "print_version",
    "handle_config_command",
]
