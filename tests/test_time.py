"""
Tests for time parsing and formatting functions.
"""

from datetime import datetime, timedelta, timezone

import pytest

from copilot_usage.utils.time import (
    format_age,
    format_reset_date,
    month_elapsed_fraction,
    next_month_start,
    parse_timestamp,
)


class TestParseTimestamp:
    """Tests for parse_timestamp function."""

    def test_zulu_format(self):
        """Test parsing ISO format with Z suffix."""
        result = parse_timestamp("2024-12-19T14:30:00Z")
        assert result == datetime(2024, 12, 19, 14, 30, tzinfo=timezone.utc)

    def test_offset_converted_to_utc(self):
        result = parse_timestamp("2024-12-19T16:30:00+02:00")
        assert result.hour == 14
        assert result.utcoffset() == timedelta(0)

    def test_with_milliseconds(self):
        result = parse_timestamp("2024-12-19T14:30:00.123Z")
        assert result.minute == 30
        assert result.microsecond == 123000

    def test_naive_is_utc(self):
        result = parse_timestamp("2024-12-19T14:30:00")
        assert result.tzinfo is not None
        assert result.hour == 14

    def test_invalid(self):
        with pytest.raises(ValueError):
            parse_timestamp("yesterday")

    @pytest.mark.parametrize("value", [1734618600, None, ["2024-12-19"]])
    def test_non_string_is_value_error(self, value):
        with pytest.raises(ValueError):
            parse_timestamp(value)


class TestMonthBoundaries:
    """Tests for next_month_start and month_elapsed_fraction."""

    def test_mid_year(self):
        now = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)
        assert next_month_start(now) == datetime(2024, 7, 1, tzinfo=timezone.utc)

    def test_december_rolls_year(self):
        now = datetime(2024, 12, 31, 23, 59, tzinfo=timezone.utc)
        assert next_month_start(now) == datetime(2025, 1, 1, tzinfo=timezone.utc)

    def test_fraction_at_start(self):
        assert month_elapsed_fraction(datetime(2024, 2, 1, tzinfo=timezone.utc)) == 0.0

    def test_fraction_midway_through_february(self):
        # 2024 is a leap year: 29 days
        now = datetime(2024, 2, 15, 12, 0, tzinfo=timezone.utc)
        assert month_elapsed_fraction(now) == pytest.approx(0.5)


class TestFormatAge:
    """Tests for format_age function."""

    @pytest.mark.parametrize(
        "delta,expected",
        [
            (timedelta(seconds=0), "just now"),
            (timedelta(seconds=59), "just now"),
            (timedelta(minutes=1), "1 min ago"),
            (timedelta(minutes=45), "45 min ago"),
            (timedelta(hours=2, minutes=5), "2 hr 5 min ago"),
            (timedelta(seconds=-30), "just now"),
        ],
    )
    def test_format_age(self, delta, expected):
        assert format_age(delta) == expected


class TestFormatResetDate:
    def test_format(self):
        assert format_reset_date(datetime(2025, 1, 1, tzinfo=timezone.utc)) == "Jan 01"
