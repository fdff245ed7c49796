"""Time formatting and parsing utilities.

Provides functions for handling ISO timestamps, the monthly billing
cycle, and formatting relative/absolute time displays.
"""

from datetime import datetime, timedelta, timezone


def utc_now() -> datetime:
    """Current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def parse_timestamp(iso_str: str) -> datetime:
    """Parse an ISO 8601 timestamp string to an aware UTC datetime.

    Handles a trailing Z and naive timestamps (treated as UTC).

    Args:
        iso_str: ISO 8601 timestamp string (e.g., "2024-01-15T10:30:00Z").

    Returns:
        Timezone-aware datetime object.

    Raises:
        ValueError: If the value is not a valid timestamp string.
    """
    if not isinstance(iso_str, str):
        raise ValueError(f"Expected an ISO timestamp string, got {type(iso_str).__name__}")
    parsed = datetime.fromisoformat(iso_str.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def next_month_start(now: datetime) -> datetime:
    """First instant of the calendar month after ``now`` (UTC).

    Premium request allowances reset on the first day of each month.
    """
    if now.month == 12:
        return datetime(now.year + 1, 1, 1, tzinfo=timezone.utc)
    return datetime(now.year, now.month + 1, 1, tzinfo=timezone.utc)


def month_elapsed_fraction(now: datetime) -> float:
    """Fraction (0-1) of the current calendar month that has elapsed."""
    start = datetime(now.year, now.month, 1, tzinfo=timezone.utc)
    end = next_month_start(now)
    return (now - start) / (end - start)


def format_age(delta: timedelta) -> str:
    """Format an age as a short human string.

    Args:
        delta: Elapsed time.

    Returns:
        String like "just now", "4 min ago" or "2 hr 5 min ago".
    """
    total_seconds = max(0, int(delta.total_seconds()))

    hours = total_seconds // 3600
    minutes = (total_seconds % 3600) // 60

    if hours > 0:
        return f"{hours} hr {minutes} min ago"
    elif minutes > 0:
        return f"{minutes} min ago"
    return "just now"


def format_absolute_time(moment: datetime) -> str:
    """Format a moment as local absolute time.

    Args:
        moment: Timezone-aware datetime.

    Returns:
        Local time string like "2024-12-19 14:30:00".
    """
    return moment.astimezone().strftime("%Y-%m-%d %H:%M:%S")


def format_reset_date(moment: datetime) -> str:
    """Format a reset moment as "Jan 01"."""
    return moment.strftime("%b %d")


__all__ = [
    "utc_now",
    "parse_timestamp",
    "next_month_start",
    "month_elapsed_fraction",
    "format_age",
    "format_absolute_time",
    "format_reset_date",
]
