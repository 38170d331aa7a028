"""
Unit Tests - Date and Window Utilities
"""
from datetime import date, datetime, timezone

import pytest

from salesync.utils.dates import (
    iso_string,
    iso_week,
    iso_year,
    parse_order_date,
    quarter,
    resolve_window,
    window_days_back,
    year_week,
)

NOW = datetime(2024, 3, 15, 18, 45, 12, tzinfo=timezone.utc)


class TestIsoWeek:
    """Tests for ISO-8601 week numbering"""

    def test_first_monday_of_2024_is_week_one(self):
        """2024-01-01 is a Monday, so it starts week 1"""
        assert iso_week(date(2024, 1, 1)) == 1
        assert iso_year(date(2024, 1, 1)) == 2024

    def test_new_year_sunday_belongs_to_previous_year(self):
        """2023-01-01 is a Sunday and falls in week 52 of ISO year 2022"""
        assert iso_week(date(2023, 1, 1)) == 52
        assert iso_year(date(2023, 1, 1)) == 2022
        assert year_week(date(2023, 1, 1)) == "2022-W52"

    def test_late_december_can_be_week_one(self):
        """2024-12-30 belongs to ISO week 1 of 2025"""
        assert iso_week(date(2024, 12, 30)) == 1
        assert year_week(date(2024, 12, 30)) == "2025-W01"

    def test_week_53(self):
        """2020 has 53 ISO weeks"""
        assert iso_week(date(2020, 12, 31)) == 53

    @pytest.mark.parametrize(
        "day,expected",
        [(date(2024, 1, 1), 1), (date(2024, 3, 31), 1), (date(2024, 4, 1), 2), (date(2024, 12, 31), 4)],
    )
    def test_quarter(self, day, expected):
        """Quarters follow the calendar month"""
        assert quarter(day) == expected


class TestWindows:
    """Tests for fetch window resolution"""

    def test_days_back_bounds(self):
        """Window spans start of the first day to end of today in UTC"""
        window = window_days_back(7, now=NOW)

        assert window.start == "2024-03-08T00:00:00.000Z"
        assert window.end == "2024-03-15T23:59:59.999Z"

    def test_zero_days_is_today(self):
        """0 days covers only today"""
        window = window_days_back(0, now=NOW)

        assert window.start == "2024-03-15T00:00:00.000Z"
        assert window.end == "2024-03-15T23:59:59.999Z"

    def test_negative_days_rejected(self):
        """A negative lookback is an error"""
        with pytest.raises(ValueError):
            window_days_back(-1, now=NOW)

    def test_explicit_range_wins_over_days(self):
        """start/end take precedence over days"""
        window = resolve_window("2024-01-01", "2024-01-31", days=3, now=NOW)

        assert window.start == "2024-01-01T00:00:00.000Z"
        assert window.end == "2024-01-31T23:59:59.999Z"

    def test_days_win_over_default(self):
        """days take precedence over the default lookback"""
        window = resolve_window(days="2", default_days=35, now=NOW)

        assert window.start == "2024-03-13T00:00:00.000Z"

    def test_default_lookback(self):
        """Nothing given falls back to the default lookback"""
        window = resolve_window(default_days=35, now=NOW)

        assert window.start == "2024-02-09T00:00:00.000Z"
        assert window.end == "2024-03-15T23:59:59.999Z"

    def test_start_without_end_rejected(self):
        """start and end must come together"""
        with pytest.raises(ValueError):
            resolve_window(start="2024-01-01", now=NOW)

    def test_inverted_range_rejected(self):
        """start after end is an error"""
        with pytest.raises(ValueError):
            resolve_window("2024-02-01", "2024-01-01", now=NOW)

    def test_iso_string_converts_to_utc(self):
        """Aware datetimes are rendered in UTC with milliseconds"""
        local = datetime.fromisoformat("2024-03-15T20:00:00.123456+02:00")

        assert iso_string(local) == "2024-03-15T18:00:00.123Z"


class TestParseOrderDate:
    """Tests for order creation date parsing"""

    def test_offset_timestamp_keeps_local_date(self):
        """A timestamp with an offset resolves to the date in that offset"""
        assert parse_order_date("2024-03-15T22:30:00-04:00") == date(2024, 3, 15)

    def test_zulu_timestamp(self):
        """Z suffix is accepted"""
        assert parse_order_date("2024-01-01T08:00:00Z") == date(2024, 1, 1)

    def test_bare_date(self):
        """A bare date is taken as-is"""
        assert parse_order_date("2023-12-31") == date(2023, 12, 31)

    def test_unparseable_falls_back_to_today(self):
        """Garbage falls back to the given today"""
        assert parse_order_date("not a date", today=date(2024, 5, 5)) == date(2024, 5, 5)
        assert parse_order_date(None, today=date(2024, 5, 5)) == date(2024, 5, 5)
