"""Fixed-rate render loop and the curses screen it draws on.

Each tick reads at most one key, asks the refresh coordinator for the
current state, renders a frame, and presents it. Fetch latency never
enters the loop: results are picked up by ``coordinator.poll()`` on the
next tick after they land.
"""

from __future__ import annotations

import curses
import os
import time
from datetime import datetime, timedelta
from typing import Callable, Dict, Optional, Tuple

from copilot_usage.display.keys import (
    KEY_DOWN,
    KEY_ENTER,
    KEY_ESC,
    KEY_RESIZE,
    KEY_UP,
    Action,
    UiState,
    handle_key,
)
from copilot_usage.display.themes import Rgb, get_theme
from copilot_usage.display.view import Frame, render_frame
from copilot_usage.refresh import RefreshCoordinator
from copilot_usage.state import is_busy
from copilot_usage.utils.time import utc_now

# 20 frames per second
TICK_INTERVAL = 0.05

# Milliseconds curses waits after Esc for the rest of an escape sequence
ESC_DELAY_MS = 25

# Nearest-match table for terminals limited to the 8 basic colors
_BASIC_COLORS = (
    ((0, 0, 0), curses.COLOR_BLACK),
    ((205, 49, 49), curses.COLOR_RED),
    ((13, 188, 121), curses.COLOR_GREEN),
    ((229, 229, 16), curses.COLOR_YELLOW),
    ((36, 114, 200), curses.COLOR_BLUE),
    ((188, 63, 188), curses.COLOR_MAGENTA),
    ((17, 168, 205), curses.COLOR_CYAN),
    ((229, 229, 229), curses.COLOR_WHITE),
)


def rgb_to_curses(rgb: Rgb, colors: int) -> int:
    """Closest terminal color number for ``rgb``.

    Uses the xterm 6x6x6 cube when 256 colors are available, otherwise
    the nearest of the 8 basic colors.
    """
    r, g, b = rgb
    if colors >= 256:
        return 16 + 36 * round(r / 255 * 5) + 6 * round(g / 255 * 5) + round(b / 255 * 5)
    return min(
        _BASIC_COLORS,
        key=lambda item: sum((a - c) ** 2 for a, c in zip(item[0], rgb)),
    )[1]


class CursesScreen:
    """Adapts a curses window to the read_key/size/present interface."""

    def __init__(self, window, tick_interval: float = TICK_INTERVAL, use_color: bool = True):
        self.window = window
        self._pairs: Dict[Tuple[Rgb, Optional[Rgb]], int] = {}
        self._use_color = use_color and curses.has_colors()

        try:
            curses.curs_set(0)
        except curses.error:
            pass  # Some terminals cannot hide the cursor
        window.keypad(True)
        window.timeout(int(tick_interval * 1000))

        if self._use_color:
            curses.start_color()
            curses.use_default_colors()

    def read_key(self) -> Optional[str]:
        """Wait up to one tick for a key.

        Returns:
            A character, one of the named keys, or None if nothing was pressed.
        """
        ch = self.window.getch()
        if ch == -1:
            return None
        if ch == curses.KEY_UP:
            return KEY_UP
        elif ch == curses.KEY_DOWN:
            return KEY_DOWN
        elif ch in (10, 13, curses.KEY_ENTER):
            return KEY_ENTER
        elif ch == 27:
            return KEY_ESC
        elif ch == curses.KEY_RESIZE:
            return KEY_RESIZE
        elif 0 <= ch < 256:
            return chr(ch)
        return None

    def size(self) -> Tuple[int, int]:
        height, width = self.window.getmaxyx()
        return width, height

    def present(self, frame: Frame, background: Optional[Rgb] = None) -> None:
        """Draw ``frame`` from the top-left corner and refresh the window.

        Cells no segment covers are painted ``background`` when one is given.
        """
        if background is not None:
            self.window.bkgd(" ", self._attr_for(background, background))
        self.window.erase()
        width, _ = self.size()
        for y, line in enumerate(frame):
            x = 0
            for segment in line:
                if x >= width or not segment.text:
                    continue
                attr = self._attr_for(segment.fg, segment.bg or background)
                if segment.bold:
                    attr |= curses.A_BOLD
                try:
                    self.window.addnstr(y, x, segment.text, width - x, attr)
                except curses.error:
                    pass  # Writing the bottom-right cell raises after drawing it
                x += len(segment.text)
        self.window.refresh()

    def _attr_for(self, fg: Rgb, bg: Optional[Rgb] = None) -> int:
        if not self._use_color:
            return 0
        pair = self._pairs.get((fg, bg))
        if pair is None:
            pair = len(self._pairs) + 1
            if pair >= curses.COLOR_PAIRS:
                return 0
            back = -1 if bg is None else rgb_to_curses(bg, curses.COLORS)
            curses.init_pair(pair, rgb_to_curses(fg, curses.COLORS), back)
            self._pairs[(fg, bg)] = pair
        return curses.color_pair(pair)


class RenderLoop:
    """Drives the dashboard at a fixed tick rate."""

    def __init__(
        self,
        coordinator: RefreshCoordinator,
        screen,
        ui: UiState,
        theme_name: str,
        ttl: timedelta,
        tick_interval: float = TICK_INTERVAL,
        on_theme_change: Optional[Callable[[str], None]] = None,
        clock: Callable[[], float] = time.monotonic,
        sleep: Callable[[float], None] = time.sleep,
        wall_clock: Callable[[], datetime] = utc_now,
    ):
        self.coordinator = coordinator
        self.screen = screen
        self.ui = ui
        self.ttl = ttl
        self.tick_interval = tick_interval
        self.on_theme_change = on_theme_change
        self._clock = clock
        self._sleep = sleep
        self._wall_clock = wall_clock

        self.theme = get_theme(theme_name)
        self.ui.set_active_theme(self.theme.name)
        self.last_frame: Frame = ()

    def tick(self) -> bool:
        """Run one frame.

        Returns:
            False when the user asked to quit.
        """
        action = handle_key(self.ui, self.screen.read_key())
        if action is Action.QUIT:
            return False
        elif action is Action.REFRESH:
            self.coordinator.request_refresh(reason="manual")
        elif action is Action.APPLY_THEME:
            self.apply_theme(self.ui.selected_theme_name)

        state = self.coordinator.poll()
        if is_busy(state):
            self.ui.advance_spinner()

        frame = render_frame(
            state,
            self.ui,
            self.theme,
            self.screen.size(),
            now=self._wall_clock(),
            ttl=self.ttl,
        )
        self.screen.present(frame, background=self.theme.background)
        self.last_frame = frame
        return True

    def apply_theme(self, name: str) -> None:
        self.theme = get_theme(name)
        if self.on_theme_change is not None:
            self.on_theme_change(self.theme.name)

    def run(self) -> None:
        """Tick until quit, sleeping out the rest of each slot."""
        while True:
            started = self._clock()
            if not self.tick():
                return
            remaining = self.tick_interval - (self._clock() - started)
            if remaining > 0:
                self._sleep(remaining)


def run_dashboard(
    coordinator: RefreshCoordinator,
    theme_name: str,
    ttl: timedelta,
    on_theme_change: Optional[Callable[[str], None]] = None,
    use_color: bool = True,
) -> None:
    """Take over the terminal and run the dashboard until the user quits.

    ``curses.wrapper`` restores the terminal on exit, including when an
    exception propagates.
    """

    def _main(window) -> None:
        screen = CursesScreen(window, use_color=use_color)
        loop = RenderLoop(
            coordinator,
            screen,
            UiState(),
            theme_name,
            ttl,
            on_theme_change=on_theme_change,
        )
        loop.run()

    os.environ.setdefault("ESCDELAY", str(ESC_DELAY_MS))
    curses.wrapper(_main)


__all__ = [
    "ESC_DELAY_MS",
    "TICK_INTERVAL",
    "CursesScreen",
    "RenderLoop",
    "rgb_to_curses",
    "run_dashboard",
]
