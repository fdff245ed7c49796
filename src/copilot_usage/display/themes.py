"""Dashboard color themes.

Each theme is a palette of RGB triples. The curses screen maps them to
the nearest color the terminal can show.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Tuple

Rgb = Tuple[int, int, int]


@dataclass(frozen=True)
class Theme:
    name: str
    background: Rgb
    foreground: Rgb
    accent: Rgb
    success: Rgb
    warning: Rgb
    error: Rgb
    muted: Rgb
    border: Rgb
    highlight: Rgb
    bar_empty: Rgb
    bar_filled: Rgb

    @property
    def title(self) -> str:
        return self.name.capitalize()


THEMES: Dict[str, Theme] = {
    "dark": Theme(
        name="dark",
        background=(30, 30, 30),
        foreground=(248, 248, 242),
        accent=(98, 114, 164),
        success=(80, 250, 123),
        warning=(255, 184, 108),
        error=(255, 85, 85),
        muted=(98, 114, 164),
        border=(68, 71, 90),
        highlight=(68, 71, 90),
        bar_empty=(40, 42, 54),
        bar_filled=(80, 250, 123),
    ),
    "light": Theme(
        name="light",
        background=(250, 250, 250),
        foreground=(60, 60, 60),
        accent=(120, 120, 120),
        success=(34, 139, 34),
        warning=(255, 140, 0),
        error=(220, 20, 60),
        muted=(128, 128, 128),
        border=(200, 200, 200),
        highlight=(230, 230, 230),
        bar_empty=(220, 220, 220),
        bar_filled=(34, 139, 34),
    ),
    "dracula": Theme(
        name="dracula",
        background=(40, 42, 54),
        foreground=(248, 248, 242),
        accent=(98, 114, 164),
        success=(80, 250, 123),
        warning=(255, 184, 108),
        error=(255, 85, 85),
        muted=(98, 114, 164),
        border=(68, 71, 90),
        highlight=(68, 71, 90),
        bar_empty=(68, 71, 90),
        bar_filled=(189, 147, 249),
    ),
    "nord": Theme(
        name="nord",
        background=(46, 52, 64),
        foreground=(216, 222, 233),
        accent=(136, 192, 208),
        success=(163, 190, 140),
        warning=(235, 203, 139),
        error=(191, 97, 106),
        muted=(76, 86, 106),
        border=(76, 86, 106),
        highlight=(76, 86, 106),
        bar_empty=(59, 66, 82),
        bar_filled=(136, 192, 208),
    ),
    "monokai": Theme(
        name="monokai",
        background=(39, 40, 34),
        foreground=(248, 248, 242),
        accent=(117, 113, 94),
        success=(166, 226, 46),
        warning=(253, 151, 31),
        error=(249, 38, 114),
        muted=(117, 113, 94),
        border=(73, 72, 62),
        highlight=(73, 72, 62),
        bar_empty=(73, 72, 62),
        bar_filled=(166, 226, 46),
    ),
    "gruvbox": Theme(
        name="gruvbox",
        background=(40, 40, 40),
        foreground=(235, 219, 178),
        accent=(146, 131, 116),
        success=(184, 187, 38),
        warning=(250, 189, 47),
        error=(251, 73, 52),
        muted=(146, 131, 116),
        border=(102, 92, 84),
        highlight=(102, 92, 84),
        bar_empty=(60, 56, 54),
        bar_filled=(184, 187, 38),
    ),
}

DEFAULT_THEME = "dark"


def get_theme(name: str) -> Theme:
    """Look up a theme by name, falling back to the default for unknown names."""
    return THEMES.get(name.lower(), THEMES[DEFAULT_THEME])


def usage_color(theme: Theme, percentage: float) -> Rgb:
    """Palette color for a usage level: error at 90%, warning at 75%."""
    if percentage >= 90:
        return theme.error
    elif percentage >= 75:
        return theme.warning
    return theme.success


__all__ = ["Rgb", "Theme", "THEMES", "DEFAULT_THEME", "get_theme", "usage_color"]
