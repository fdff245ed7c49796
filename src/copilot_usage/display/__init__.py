"""Display and formatting.

Modules:
    colors: ANSI colors for plain-text output
    progress: Progress bar geometry and percentage formatting
    themes: Dashboard color palettes
    keys: Key bindings and modal state
    view: Pure frame rendering
    loop: Fixed-rate render loop and curses screen
    statusbar: Waybar JSON and one-line status output

The curses-backed loop is imported from ``copilot_usage.display.loop``
directly so that Export Mode never loads curses.
"""

from copilot_usage.display.colors import Colors, disable_colors, init_colors, supports_color
from copilot_usage.display.keys import Action, UiModal, UiState, handle_key
from copilot_usage.display.progress import (
    format_amount,
    format_percentage,
    get_usage_color,
    make_progress_bar,
)
from copilot_usage.display.statusbar import (
    format_line,
    format_tooltip,
    format_waybar,
    get_css_class,
)
from copilot_usage.display.themes import THEMES, Theme, get_theme
from copilot_usage.display.view import Frame, Segment, render_frame

__all__ = [
    # Colors
    "Colors",
    "supports_color",
    "init_colors",
    "disable_colors",
    # Progress
    "make_progress_bar",
    "get_usage_color",
    "format_percentage",
    "format_amount",
    # Themes
    "THEMES",
    "Theme",
    "get_theme",
    # Keys
    "Action",
    "UiModal",
    "UiState",
    "handle_key",
    # View
    "Frame",
    "Segment",
    "render_frame",
    # Status bar
    "format_line",
    "format_tooltip",
    "format_waybar",
    "get_css_class",
]
