"""Status bar output formatters.

Provides the one-line outputs used by Export Mode: waybar JSON and a
plain text line for tmux, polybar, i3blocks and similar bars.
"""

import json
from typing import List

from copilot_usage.display.progress import format_amount
from copilot_usage.models import UsageSnapshot

DEFAULT_FORMAT = "{percentage}%"

STALE_CLASS = "copilot-stale"


def get_css_class(percentage: float) -> str:
    """Get the waybar CSS class for a usage level.

    Args:
        percentage: Usage percentage (0-100, may exceed 100).

    Returns:
        One of copilot-critical, copilot-warning, copilot-normal, copilot-low.
    """
    if percentage >= 90:
        return "copilot-critical"
    elif percentage >= 75:
        return "copilot-warning"
    elif percentage >= 50:
        return "copilot-normal"
    return "copilot-low"


def format_line(snapshot: UsageSnapshot, template: str = DEFAULT_FORMAT) -> str:
    """Fill a status line template.

    Recognized fields are {percentage}, {used}, {limit} and {remaining}.
    Other braces are left as typed.

    Args:
        snapshot: Usage to show.
        template: Format string, e.g. "{percentage}% ({used}/{limit})".

    Returns:
        The substituted text.
    """
    fields = {
        "{percentage}": str(int(snapshot.percentage)),
        "{used}": format_amount(snapshot.used),
        "{limit}": format_amount(snapshot.limit),
        "{remaining}": format_amount(snapshot.remaining),
    }
    text = template
    for placeholder, value in fields.items():
        text = text.replace(placeholder, value)
    return text


def format_tooltip(snapshot: UsageSnapshot, is_stale: bool = False) -> str:
    """Multi-line tooltip with totals, reset date, per-model usage and cost."""
    lines = [
        "GitHub Copilot Usage",
        f"{format_amount(snapshot.used)} / {format_amount(snapshot.limit)} "
        f"({snapshot.percentage:.1f}%)",
    ]
    if snapshot.reset_at is not None:
        lines.append(f"Resets: {snapshot.reset_at.strftime('%B %d, %Y at %H:%M UTC')}")

    if snapshot.breakdown:
        lines.append("")
        lines.append("Per-model usage:")
        for name, amount in snapshot.breakdown:
            share = amount / snapshot.limit * 100 if snapshot.limit > 0 else 0.0
            lines.append(f"  {name}: {format_amount(amount)} ({share:.1f}%)")

    if snapshot.estimated_cost > 0:
        lines.append("")
        lines.append(f"Estimated cost: ${snapshot.estimated_cost:.2f}")

    if is_stale:
        lines.append("")
        lines.append(f"Cached data from {snapshot.obtained_at.strftime('%Y-%m-%d %H:%M UTC')}")

    return "\n".join(lines)


def get_css_classes(snapshot: UsageSnapshot, is_stale: bool = False) -> List[str]:
    classes = [get_css_class(snapshot.percentage)]
    if is_stale:
        classes.append(STALE_CLASS)
    return classes


def format_waybar(
    snapshot: UsageSnapshot,
    template: str = DEFAULT_FORMAT,
    is_stale: bool = False,
) -> str:
    """Format usage as one line of waybar custom-module JSON.

    Returns:
        JSON object with "text", "tooltip" and "class". "class" is a string,
        or a list when the stale class is added.
    """
    classes = get_css_classes(snapshot, is_stale)
    output = {
        "text": format_line(snapshot, template),
        "tooltip": format_tooltip(snapshot, is_stale),
        "class": classes[0] if len(classes) == 1 else classes,
    }
    return json.dumps(output, ensure_ascii=False)


__all__ = [
    "DEFAULT_FORMAT",
    "STALE_CLASS",
    "get_css_class",
    "get_css_classes",
    "format_line",
    "format_tooltip",
    "format_waybar",
]
