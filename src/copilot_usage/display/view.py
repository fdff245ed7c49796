"""Dashboard rendering.

``render_frame`` turns (state, ui, theme, size) into a Frame: a tuple of
lines, each a tuple of colored text segments. It performs no I/O and
reads the clock only through its ``now`` argument, so identical inputs
always give identical frames.
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import List, NamedTuple, Optional, Sequence, Tuple

from copilot_usage.display.keys import COMMANDS, THEME_ORDER, UiModal, UiState
from copilot_usage.display.progress import (
    BAR_EMPTY,
    BAR_FILLED,
    bar_cells,
    format_amount,
    month_marker,
)
from copilot_usage.display.themes import THEMES, Rgb, Theme, usage_color
from copilot_usage.errors import FetchError, FetchErrorKind
from copilot_usage.models import UsageSnapshot
from copilot_usage.state import AppState, Failed, Ready, Refreshing, is_busy, snapshot_of
from copilot_usage.utils.time import (
    format_absolute_time,
    format_age,
    format_reset_date,
    month_elapsed_fraction,
)


class Segment(NamedTuple):
    text: str
    fg: Rgb
    bold: bool = False
    bg: Optional[Rgb] = None


Line = Tuple[Segment, ...]
Frame = Tuple[Line, ...]

# Below either of these the compact one-line layout is used
MIN_WIDTH = 40
MIN_HEIGHT = 8

MODAL_MAX_WIDTH = 52

SPINNER_FRAMES = ("⠋", "⠙", "⠹", "⠸", "⠼", "⠴", "⠦", "⠧", "⠇", "⠏")

_KIND_LABELS = {
    FetchErrorKind.UNAUTHORIZED: "unauthorized",
    FetchErrorKind.RATE_LIMITED: "rate limited",
    FetchErrorKind.NETWORK: "network error",
    FetchErrorKind.MALFORMED_RESPONSE: "bad response",
}

_HELP_LINES = (
    ("Global:", True),
    ("  / or :      Open command menu", False),
    ("  r           Refresh data from API", False),
    ("  t           Change theme", False),
    ("  c           Cache status", False),
    ("  h or ?      Show this help", False),
    ("  q           Quit", False),
    ("In menus:", True),
    ("  j/k or ↑/↓  Navigate", False),
    ("  Enter       Select item", False),
    ("  Esc         Close", False),
)


def spinner_char(index: int) -> str:
    return SPINNER_FRAMES[index % len(SPINNER_FRAMES)]


def error_hint(error: FetchError) -> str:
    """What the user can do about a failed fetch."""
    if error.kind is FetchErrorKind.UNAUTHORIZED:
        return "Run 'copilot-usage --config set token <TOKEN>', then press r."
    elif error.kind is FetchErrorKind.RATE_LIMITED:
        return "Wait a few minutes, then press r to retry."
    return "Press r to retry."


def render_frame(
    state: AppState,
    ui: UiState,
    theme: Theme,
    size: Tuple[int, int],
    *,
    now: datetime,
    ttl: timedelta,
) -> Frame:
    """Render one dashboard frame.

    Args:
        state: Current data state.
        ui: Modal and cursor state.
        theme: Palette to draw with.
        size: Terminal (width, height).
        now: Reference time for ages and the month indicator.
        ttl: Cache freshness window, shown in the cache info overlay.

    Returns:
        At most ``height`` lines, none wider than ``width``.
    """
    width, height = size
    if width <= 0 or height <= 0:
        return ()
    if width < MIN_WIDTH or height < MIN_HEIGHT:
        return (_fit(_compact_line(state, ui, theme), width),)

    snapshot = snapshot_of(state)
    lines: List[Line] = _header(state, snapshot, ui, theme)
    if snapshot is not None:
        lines += _usage_lines(snapshot, theme, width, now)
        lines.append(())
        lines += _model_lines(snapshot, theme, width)
    elif is_busy(state):
        lines.append((Segment(f" {spinner_char(ui.spinner_index)} Fetching usage...", theme.accent),))

    bottom = [_status_line(state, snapshot, ui, theme, now), _footer(theme)]
    available = height - len(bottom)
    lines = lines[:available]

    if ui.modal is not UiModal.NONE:
        lines += [()] * (available - len(lines))
        box = _modal_box(ui, snapshot, theme, width, now, ttl)
        lines = _overlay(lines, box, width, theme)

    lines += bottom
    return tuple(_fit(line, width) for line in lines)


def _header(
    state: AppState,
    snapshot: Optional[UsageSnapshot],
    ui: UiState,
    theme: Theme,
) -> List[Line]:
    title: List[Segment] = [Segment(" GitHub Copilot Usage", theme.foreground, True)]
    if is_busy(state):
        title.append(Segment(f"  {spinner_char(ui.spinner_index)}", theme.accent))
    if isinstance(state, Ready) and state.is_stale:
        title.append(Segment("  [stale]", theme.warning, True))

    info = []
    if snapshot is not None:
        if snapshot.username:
            info.append(snapshot.username)
        if snapshot.reset_at is not None:
            info.append(f"Resets {format_reset_date(snapshot.reset_at)}")
    info.append(f"Theme: {theme.title}")
    return [tuple(title), (Segment(" " + " • ".join(info), theme.muted),), ()]


def _usage_lines(snapshot: UsageSnapshot, theme: Theme, width: int, now: datetime) -> List[Line]:
    color = usage_color(theme, snapshot.percentage)
    inner = width - 2

    filled, empty = bar_cells(snapshot.percentage, inner)
    fraction = month_elapsed_fraction(now)
    marker = month_marker(fraction, inner)

    return [
        (
            Segment(" Requests: ", theme.muted),
            Segment(f"{format_amount(snapshot.used)}/{format_amount(snapshot.limit)}", color, True),
            Segment(f" ({snapshot.percentage:.1f}%)", theme.muted),
        ),
        (
            Segment(" ", theme.muted),
            Segment(BAR_FILLED * filled, theme.bar_filled if snapshot.percentage < 75 else color),
            Segment(BAR_EMPTY * empty, theme.bar_empty),
        ),
        (
            Segment(f" Remaining: {format_amount(snapshot.remaining)}", theme.foreground),
            Segment(f" • Est. overage: ${snapshot.estimated_cost:.2f}", theme.muted),
        ),
        (Segment(f" Month: {fraction * 100:.1f}% elapsed", theme.muted),),
        (
            Segment(" " + "." * marker, theme.muted),
            Segment("|", theme.foreground, True),
            Segment("." * max(inner - marker - 1, 0), theme.bar_empty),
        ),
    ]


def _model_lines(snapshot: UsageSnapshot, theme: Theme, width: int) -> List[Line]:
    inner = width - 2
    lines: List[Line] = [
        (Segment(" " + "Model".ljust(inner - 10) + "Requests".rjust(10), theme.accent, True),)
    ]
    if not snapshot.breakdown:
        lines.append((Segment(" No premium requests this month", theme.muted),))
    for name, amount in snapshot.breakdown:
        amount_text = format_amount(amount).rjust(10)
        name_text = name[: inner - 11].ljust(inner - 10)
        lines.append((Segment(" " + name_text, theme.foreground), Segment(amount_text, theme.accent)))
    return lines


def _status_line(
    state: AppState,
    snapshot: Optional[UsageSnapshot],
    ui: UiState,
    theme: Theme,
    now: datetime,
) -> Line:
    if isinstance(state, Failed):
        return (
            Segment(" ✗ ", theme.error, True),
            Segment(state.error.message + " ", theme.error, True),
            Segment(error_hint(state.error), theme.warning),
        )
    if isinstance(state, Refreshing):
        return (Segment(f" {spinner_char(ui.spinner_index)} Refreshing...", theme.accent),)
    if isinstance(state, Ready):
        segments = [Segment(f" Updated {format_age(now - state.snapshot.obtained_at)}", theme.muted)]
        if state.is_stale:
            segments.append(Segment(" • data is stale, press r to refresh", theme.warning))
        return tuple(segments)
    return ()


def _footer(theme: Theme) -> Line:
    return (
        Segment(" r refresh  t theme  / commands  c cache  h help  q quit", theme.muted),
    )


def _compact_line(state: AppState, ui: UiState, theme: Theme) -> Line:
    snapshot = snapshot_of(state)
    segments: List[Segment] = []
    if is_busy(state):
        segments.append(Segment(spinner_char(ui.spinner_index) + " ", theme.accent))

    if snapshot is None:
        if isinstance(state, Failed):
            segments.append(Segment(f"Copilot: {_KIND_LABELS[state.error.kind]}", theme.error, True))
        else:
            segments.append(Segment("Copilot: loading", theme.muted))
        return tuple(segments)

    color = usage_color(theme, snapshot.percentage)
    segments.append(Segment(f"Copilot {snapshot.percentage:.0f}%", color, True))
    segments.append(
        Segment(f" {format_amount(snapshot.used)}/{format_amount(snapshot.limit)}", theme.muted)
    )
    if isinstance(state, Ready) and state.is_stale:
        segments.append(Segment(" stale", theme.warning))
    if isinstance(state, Failed):
        segments.append(Segment(f" ({_KIND_LABELS[state.error.kind]})", theme.error))
    return tuple(segments)


def _modal_box(
    ui: UiState,
    snapshot: Optional[UsageSnapshot],
    theme: Theme,
    width: int,
    now: datetime,
    ttl: timedelta,
) -> List[Line]:
    if ui.modal is UiModal.HELP:
        title = "Help"
        body: List[Line] = [
            (Segment(text, theme.success if heading else theme.foreground, heading),)
            for text, heading in _HELP_LINES
        ]
    elif ui.modal is UiModal.COMMAND_MENU:
        title = "Commands"
        body = [
            _menu_row(f"[{cmd.shortcut.upper()}] {cmd.label}", i == ui.selected_command, theme)
            for i, cmd in enumerate(COMMANDS)
        ]
    elif ui.modal is UiModal.THEME_PICKER:
        title = "Theme"
        body = [
            _menu_row(THEMES[name].title, i == ui.selected_theme, theme, swatch=THEMES[name])
            for i, name in enumerate(THEME_ORDER)
        ]
    else:
        title = "Cache"
        body = _cache_info_rows(snapshot, theme, now, ttl)

    box_width = min(width - 4, MODAL_MAX_WIDTH)
    inner = box_width - 4
    top_rule = "─" * max(box_width - len(title) - 5, 0)
    lines: List[Line] = [(Segment(f"┌─ {title} {top_rule}┐", theme.border, True),)]
    for row in body:
        content = _fit(row, inner)
        pad = inner - sum(len(seg.text) for seg in content)
        lines.append(
            (Segment("│ ", theme.border),)
            + content
            + (Segment(" " * pad + " │", theme.border),)
        )
    lines.append((Segment("└" + "─" * (box_width - 2) + "┘", theme.border),))
    return lines


def _menu_row(label: str, selected: bool, theme: Theme, swatch: Optional[Theme] = None) -> Line:
    marker = "> " if selected else "  "
    if selected:
        row = [Segment(marker + label, theme.accent, True, theme.highlight)]
    else:
        row = [Segment(marker + label, theme.foreground)]
    if swatch is not None:
        row.append(Segment("  ●", swatch.success))
        row.append(Segment("●", swatch.warning))
        row.append(Segment("●", swatch.error))
    return tuple(row)


def _cache_info_rows(
    snapshot: Optional[UsageSnapshot],
    theme: Theme,
    now: datetime,
    ttl: timedelta,
) -> List[Line]:
    ttl_minutes = int(ttl.total_seconds() // 60)
    if snapshot is None:
        return [
            (Segment("No cached data", theme.muted),),
            (Segment(f"TTL: {ttl_minutes} min", theme.foreground),),
        ]
    age = now - snapshot.obtained_at
    fresh = age < ttl
    return [
        (Segment(f"Last updated: {format_absolute_time(snapshot.obtained_at)}", theme.foreground),),
        (Segment(f"Age: {format_age(age)}", theme.muted),),
        (
            Segment("Status: ", theme.foreground),
            Segment("Fresh" if fresh else "Stale", theme.success if fresh else theme.warning, True),
        ),
        (Segment(f"TTL: {ttl_minutes} min", theme.foreground),),
    ]


def _overlay(lines: List[Line], box: Sequence[Line], width: int, theme: Theme) -> List[Line]:
    box = list(box)[: len(lines)]
    start = max((len(lines) - len(box)) // 2, 0)
    box_width = sum(len(seg.text) for seg in box[0]) if box else 0
    left = Segment(" " * max((width - box_width) // 2, 0), theme.foreground)
    result = list(lines)
    for offset, row in enumerate(box):
        result[start + offset] = (left,) + row
    return result


def _fit(line: Line, width: int) -> Line:
    """Truncate a line to ``width`` characters."""
    fitted: List[Segment] = []
    remaining = width
    for segment in line:
        if remaining <= 0:
            break
        if len(segment.text) > remaining:
            fitted.append(segment._replace(text=segment.text[:remaining]))
            break
        fitted.append(segment)
        remaining -= len(segment.text)
    return tuple(fitted)


__all__ = [
    "Segment",
    "Line",
    "Frame",
    "MIN_WIDTH",
    "MIN_HEIGHT",
    "SPINNER_FRAMES",
    "spinner_char",
    "error_hint",
    "render_frame",
]
