"""Utility functions.

Modules:
    time: Time formatting and billing-cycle helpers
    platform: Per-user directory locations
"""

from copilot_usage.utils.platform import get_cache_dir, get_config_dir, get_state_dir
from copilot_usage.utils.time import (
    format_absolute_time,
    format_age,
    format_reset_date,
    month_elapsed_fraction,
    next_month_start,
    parse_timestamp,
    utc_now,
)

__all__ = [
    "utc_now",
    "parse_timestamp",
    "next_month_start",
    "month_elapsed_fraction",
    "format_age",
    "format_absolute_time",
    "format_reset_date",
    "get_config_dir",
    "get_cache_dir",
    "get_state_dir",
]
