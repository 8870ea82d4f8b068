"""Tests for calendar date math and HH:MM time helpers."""

from __future__ import annotations

import datetime as dt

import pytest

from slotkeeper.clock import FixedClock
from slotkeeper.modules.calendar.dates import (
    DayOfWeek,
    add_days,
    add_months,
    calendar_grid,
    day_of_week,
    days_in_month,
    first_weekday_of_month,
    format_iso_date,
    is_same_day,
    is_same_month,
    is_today,
    parse_iso_date,
    week_dates,
)
from slotkeeper.modules.calendar.times import (
    TimeRange,
    add_minutes,
    format_minutes,
    parse_time,
    ranges_overlap,
    time_in_range,
)


class TestMonthFacts:
    """Tests for days_in_month and first_weekday_of_month."""

    @pytest.mark.parametrize(
        ("year", "month", "expected"),
        [(2026, 1, 31), (2025, 2, 28), (2024, 2, 29), (2026, 4, 30), (2026, 12, 31)],
    )
    def test_days_in_month(self, year: int, month: int, expected: int) -> None:
        assert days_in_month(year, month) == expected

    def test_first_weekday(self) -> None:
        """Monday is 0: Feb 2026 starts on Sunday, Jan on Thursday, June on Monday."""
        assert first_weekday_of_month(2026, 2) == 6
        assert first_weekday_of_month(2026, 1) == 3
        assert first_weekday_of_month(2026, 6) == 0

    def test_day_of_week(self) -> None:
        assert day_of_week(dt.date(2026, 2, 10)) == DayOfWeek.TUESDAY
        assert day_of_week(dt.datetime(2026, 2, 15, 23, 59)) == DayOfWeek.SUNDAY


class TestCalendarGrid:
    """Tests for the fixed 6x7 month grid."""

    def test_shape(self) -> None:
        grid = calendar_grid(2026, 2)
        assert len(grid) == 6
        assert all(len(week) == 7 for week in grid)

    def test_monday_first(self) -> None:
        grid = calendar_grid(2026, 2)
        assert grid[0][0] == dt.date(2026, 1, 26)
        assert all(week[0].weekday() == 0 for week in grid)

    def test_contains_whole_month_with_padding(self) -> None:
        cells = [day for week in calendar_grid(2026, 2) for day in week]
        assert sum(1 for d in cells if d.month == 2) == 28
        assert any(d.month == 1 for d in cells)
        assert any(d.month == 3 for d in cells)

    def test_thirty_one_day_month(self) -> None:
        cells = [day for week in calendar_grid(2026, 1) for day in week]
        assert sum(1 for d in cells if d.month == 1 and d.year == 2026) == 31
        assert cells[0] == dt.date(2025, 12, 29)


class TestWeekDates:
    """Tests for week_dates."""

    def test_monday_to_sunday(self) -> None:
        dates = week_dates(dt.date(2026, 2, 12))
        assert len(dates) == 7
        assert dates[0] == dt.date(2026, 2, 9)
        assert dates[6] == dt.date(2026, 2, 15)

    def test_given_a_sunday(self) -> None:
        dates = week_dates(dt.date(2026, 2, 15))
        assert dates[0] == dt.date(2026, 2, 9)
        assert dates[-1] == dt.date(2026, 2, 15)

    def test_spans_month_boundary(self) -> None:
        dates = week_dates(dt.date(2026, 3, 1))
        assert dates[0] == dt.date(2026, 2, 23)
        assert dates[-1] == dt.date(2026, 3, 1)


class TestOffsets:
    """Tests for add_days / add_months."""

    def test_add_days_crosses_month(self) -> None:
        assert add_days(dt.date(2026, 1, 30), 3) == dt.date(2026, 2, 2)
        assert add_days(dt.date(2026, 2, 10), -5) == dt.date(2026, 2, 5)

    def test_add_days_keeps_input(self) -> None:
        original = dt.date(2026, 2, 10)
        add_days(original, 5)
        assert original == dt.date(2026, 2, 10)

    def test_add_months_crosses_year(self) -> None:
        assert add_months(dt.date(2026, 11, 15), 3) == dt.date(2027, 2, 15)
        assert add_months(dt.date(2026, 6, 15), -2) == dt.date(2026, 4, 15)

    def test_add_months_clamps_day(self) -> None:
        assert add_months(dt.date(2026, 1, 31), 1) == dt.date(2026, 2, 28)
        assert add_months(dt.date(2024, 3, 31), -1) == dt.date(2024, 2, 29)

    def test_add_months_datetime(self) -> None:
        moment = dt.datetime(2026, 1, 31, 14, 30)
        assert add_months(moment, 1) == dt.datetime(2026, 2, 28, 14, 30)


class TestPredicates:
    """Tests for is_same_day, is_same_month and is_today."""

    def test_same_day_ignores_time(self) -> None:
        assert is_same_day(dt.datetime(2026, 2, 10, 9, 0), dt.datetime(2026, 2, 10, 17, 30))
        assert not is_same_day(dt.date(2026, 2, 10), dt.date(2026, 2, 11))
        assert not is_same_day(dt.date(2026, 1, 10), dt.date(2026, 2, 10))

    def test_same_month(self) -> None:
        assert is_same_month(dt.date(2026, 2, 1), dt.date(2026, 2, 28))
        assert not is_same_month(dt.date(2026, 1, 31), dt.date(2026, 2, 1))
        assert not is_same_month(dt.date(2025, 2, 10), dt.date(2026, 2, 10))

    def test_is_today(self) -> None:
        clock = FixedClock(dt.datetime(2026, 2, 10, 12, 0), "UTC")
        assert is_today(dt.date(2026, 2, 10), clock)
        assert is_today(dt.datetime(2026, 2, 10, 23, 0), clock)
        assert not is_today(dt.date(2026, 2, 9), clock)

    def test_iso_format(self) -> None:
        assert format_iso_date(dt.date(2026, 1, 5)) == "2026-01-05"
        assert format_iso_date(dt.datetime(2026, 12, 25, 8, 0)) == "2026-12-25"
        assert parse_iso_date("2026-02-10") == dt.date(2026, 2, 10)


class TestTimes:
    """Tests for minute-level HH:MM helpers."""

    def test_parse_and_format(self) -> None:
        assert parse_time("00:00") == 0
        assert parse_time("09:30") == 570
        assert parse_time("23:59") == 1439
        assert format_minutes(570) == "09:30"

    @pytest.mark.parametrize("bad", ["9:00", "24:00", "12:60", "ab:cd", "", "12:00:00"])
    def test_malformed_times_fail(self, bad: str) -> None:
        with pytest.raises(ValueError):
            parse_time(bad)

    def test_add_minutes_wraps(self) -> None:
        assert add_minutes("09:00", 30) == "09:30"
        assert add_minutes("23:45", 30) == "00:15"
        assert add_minutes("00:10", -20) == "23:50"

    def test_time_in_range(self) -> None:
        morning = TimeRange(start="09:00", end="12:00")
        assert time_in_range("09:00", morning)
        assert time_in_range("11:59", morning)
        assert not time_in_range("12:00", morning)
        assert not time_in_range("08:59", morning)

    def test_overlap(self) -> None:
        a = TimeRange(start="09:00", end="10:00")
        assert ranges_overlap(a, TimeRange(start="09:30", end="10:30"))
        assert ranges_overlap(a, TimeRange(start="08:00", end="11:00"))
        assert not ranges_overlap(a, TimeRange(start="10:00", end="11:00"))
        assert not ranges_overlap(TimeRange(start="10:00", end="11:00"), a)

    def test_range_must_be_ordered(self) -> None:
        with pytest.raises(ValueError):
            TimeRange(start="10:00", end="09:00")
        with pytest.raises(ValueError):
            TimeRange(start="10:00", end="10:00")

    def test_range_duration(self) -> None:
        assert TimeRange(start="09:15", end="10:00").duration_minutes == 45
