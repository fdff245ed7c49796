"""Progress bar geometry and percentage formatting.

The dashboard draws bars from ``bar_cells`` and ``month_marker``; the
plain-text outputs use the ANSI helpers.
"""

from copilot_usage.display.colors import Colors

BAR_FILLED = "█"
BAR_EMPTY = "░"


def bar_cells(percentage: float, width: int) -> tuple[int, int]:
    """Split a bar of ``width`` cells into filled and empty counts.

    Args:
        percentage: Usage percentage; values outside 0-100 are clamped.
        width: Total cells available.

    Returns:
        Tuple of (filled, empty).
    """
    width = max(width, 0)
    clamped = min(max(percentage, 0.0), 100.0)
    filled = min(int(width * clamped / 100), width)
    return filled, width - filled


def month_marker(fraction: float, width: int) -> int:
    """Column of the "today" marker on a month bar of ``width`` cells."""
    if width <= 1:
        return 0
    fraction = min(max(fraction, 0.0), 1.0)
    return int(fraction * (width - 1))


def format_amount(value: float) -> str:
    """Request counts as whole numbers when whole, one decimal otherwise."""
    if value == int(value):
        return f"{value:.0f}"
    return f"{value:.1f}"


def make_progress_bar(percentage: float, width: int = 25) -> str:
    """Create a visual progress bar with block characters.

    Args:
        percentage: Usage percentage (0-100).
        width: Width of the progress bar in characters.

    Returns:
        Colored string representation of the progress bar.
    """
    filled, empty = bar_cells(percentage, width)
    color = get_usage_color(percentage)
    return f"{color}{BAR_FILLED * filled}{Colors.BAR_EMPTY}{BAR_EMPTY * empty}{Colors.RESET}"


def get_usage_color(percentage: float) -> str:
    """Get the appropriate color code for a usage percentage.

    Args:
        percentage: Usage percentage (0-100).

    Returns:
        ANSI color code string.
    """
    if percentage >= 90:
        return Colors.RED
    elif percentage >= 75:
        return Colors.YELLOW
    return Colors.GREEN


def format_percentage(percentage: float) -> str:
    """Format a percentage with appropriate color coding.

    Returns:
        Colored string like "42.0% used".
    """
    color = get_usage_color(percentage)
    return f"{color}{percentage:.1f}% used{Colors.RESET}"


__all__ = [
    "BAR_FILLED",
    "BAR_EMPTY",
    "bar_cells",
    "month_marker",
    "format_amount",
    "make_progress_bar",
    "get_usage_color",
    "format_percentage",
]
