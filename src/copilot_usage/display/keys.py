"""Keyboard handling for the dashboard.

Keys arrive as single characters or as one of the named keys below. The
UI state here is purely presentational; the only way a key reaches the
data layer is through the returned Action.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import NamedTuple, Optional

from copilot_usage.display.themes import THEMES

# Named keys produced by the screen adapter
KEY_UP = "up"
KEY_DOWN = "down"
KEY_ENTER = "enter"
KEY_ESC = "esc"
KEY_RESIZE = "resize"

THEME_ORDER = tuple(THEMES)


class UiModal(Enum):
    """Which overlay, if any, is shown above the dashboard."""

    NONE = "none"
    THEME_PICKER = "theme_picker"
    COMMAND_MENU = "command_menu"
    HELP = "help"
    CACHE_INFO = "cache_info"


class Action(Enum):
    """What the render loop must do after a key press."""

    NONE = "none"
    QUIT = "quit"
    REFRESH = "refresh"
    APPLY_THEME = "apply_theme"


class Command(NamedTuple):
    id: str
    label: str
    shortcut: str


COMMANDS = (
    Command("refresh", "Refresh Data", "r"),
    Command("theme", "Change Theme", "t"),
    Command("cache", "Cache Status", "s"),
    Command("help", "Help", "h"),
    Command("quit", "Quit", "q"),
)


@dataclass
class UiState:
    """Modal and cursor state owned by the render loop."""

    modal: UiModal = UiModal.NONE
    selected_command: int = 0
    selected_theme: int = 0
    spinner_index: int = 0
    active_theme: str = THEME_ORDER[0]

    @property
    def selected_theme_name(self) -> str:
        return THEME_ORDER[self.selected_theme % len(THEME_ORDER)]

    def select_theme(self, name: str) -> None:
        """Move the picker cursor to ``name``."""
        if name in THEME_ORDER:
            self.selected_theme = THEME_ORDER.index(name)

    def set_active_theme(self, name: str) -> None:
        """Record the theme in use and put the picker cursor on it."""
        if name in THEME_ORDER:
            self.active_theme = name
            self.select_theme(name)

    def advance_spinner(self) -> None:
        self.spinner_index = (self.spinner_index + 1) % 10

    def close(self) -> None:
        self.modal = UiModal.NONE


def handle_key(ui: UiState, key: Optional[str]) -> Action:
    """Apply one key press to ``ui``.

    Args:
        ui: UI state to update in place.
        key: Character or named key; None means no key this tick.

    Returns:
        The action the caller must carry out.
    """
    if key is None or key == KEY_RESIZE:
        return Action.NONE

    if ui.modal is UiModal.NONE:
        return _handle_dashboard(ui, key)
    elif ui.modal is UiModal.COMMAND_MENU:
        return _handle_command_menu(ui, key)
    elif ui.modal is UiModal.THEME_PICKER:
        return _handle_theme_picker(ui, key)

    # Help and cache info are read-only; any of these closes them
    if key in (KEY_ESC, KEY_ENTER, "q", "h", "?", "c"):
        ui.close()
    return Action.NONE


def _handle_dashboard(ui: UiState, key: str) -> Action:
    if key == "q":
        return Action.QUIT
    elif key == "r":
        return Action.REFRESH
    elif key == "t":
        ui.modal = UiModal.THEME_PICKER
    elif key in ("/", ":"):
        ui.modal = UiModal.COMMAND_MENU
        ui.selected_command = 0
    elif key in ("h", "?"):
        ui.modal = UiModal.HELP
    elif key == "c":
        ui.modal = UiModal.CACHE_INFO
    return Action.NONE


def _handle_command_menu(ui: UiState, key: str) -> Action:
    if key == KEY_ESC:
        ui.close()
    elif key in (KEY_DOWN, "j"):
        ui.selected_command = (ui.selected_command + 1) % len(COMMANDS)
    elif key in (KEY_UP, "k"):
        ui.selected_command = (ui.selected_command - 1) % len(COMMANDS)
    elif key == KEY_ENTER:
        return _run_command(ui, COMMANDS[ui.selected_command])
    else:
        for index, command in enumerate(COMMANDS):
            if command.shortcut == key.lower():
                ui.selected_command = index
                return _run_command(ui, command)
    return Action.NONE


def _run_command(ui: UiState, command: Command) -> Action:
    ui.close()
    if command.id == "refresh":
        return Action.REFRESH
    elif command.id == "theme":
        ui.modal = UiModal.THEME_PICKER
    elif command.id == "cache":
        ui.modal = UiModal.CACHE_INFO
    elif command.id == "help":
        ui.modal = UiModal.HELP
    elif command.id == "quit":
        return Action.QUIT
    return Action.NONE


def _handle_theme_picker(ui: UiState, key: str) -> Action:
    if key in (KEY_ESC, "q"):
        ui.select_theme(ui.active_theme)
        ui.close()
    elif key in (KEY_DOWN, "j"):
        ui.selected_theme = (ui.selected_theme + 1) % len(THEME_ORDER)
    elif key in (KEY_UP, "k"):
        ui.selected_theme = (ui.selected_theme - 1) % len(THEME_ORDER)
    elif key == KEY_ENTER:
        ui.active_theme = ui.selected_theme_name
        ui.close()
        return Action.APPLY_THEME
    return Action.NONE


__all__ = [
    "KEY_UP",
    "KEY_DOWN",
    "KEY_ENTER",
    "KEY_ESC",
    "KEY_RESIZE",
    "THEME_ORDER",
    "UiModal",
    "Action",
    "Command",
    "COMMANDS",
    "UiState",
    "handle_key",
]
