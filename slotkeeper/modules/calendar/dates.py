"""Pure calendar arithmetic: month grids, week bounds, day offsets.

All helpers return new values and never mutate their inputs. Weekday
numbers follow Python's convention (Monday = 0 ... Sunday = 6).
"""

from __future__ import annotations

import calendar
import datetime as dt
from enum import StrEnum
from typing import TYPE_CHECKING, Union

if TYPE_CHECKING:
    from slotkeeper.clock import Clock

DateLike = Union[dt.date, dt.datetime]

GRID_WEEKS = 6


class DayOfWeek(StrEnum):
    """Days of the week, in ``date.weekday()`` order."""

    MONDAY = "monday"
    TUESDAY = "tuesday"
    WEDNESDAY = "wednesday"
    THURSDAY = "thursday"
    FRIDAY = "friday"
    SATURDAY = "saturday"
    SUNDAY = "sunday"

    @classmethod
    def from_index(cls, index: int) -> "DayOfWeek":
        return list(cls)[index]


def _as_date(value: DateLike) -> dt.date:
    if isinstance(value, dt.datetime):
        return value.date()
    return value


def days_in_month(year: int, month: int) -> int:
    """Number of days in ``month`` (1-12) of ``year``."""
    return calendar.monthrange(year, month)[1]


def first_weekday_of_month(year: int, month: int) -> int:
    """Weekday index (Monday = 0) of the first day of the month."""
    return calendar.monthrange(year, month)[0]


def day_of_week(day: DateLike) -> DayOfWeek:
    return DayOfWeek.from_index(_as_date(day).weekday())


def calendar_grid(year: int, month: int) -> list[list[dt.date]]:
    """Fixed 6x7 grid of dates with Monday-first columns.

    The grid always starts on the Monday on or before the 1st and is padded
    with days from the neighbouring months so every row has seven cells.
    """
    first = dt.date(year, month, 1)
    start = first - dt.timedelta(days=first.weekday())
    return [
        [start + dt.timedelta(days=week * 7 + col) for col in range(7)]
        for week in range(GRID_WEEKS)
    ]


def week_dates(day: DateLike) -> list[dt.date]:
    """Monday through Sunday of the week containing ``day``."""
    day = _as_date(day)
    monday = day - dt.timedelta(days=day.weekday())
    return [monday + dt.timedelta(days=i) for i in range(7)]


def add_days(day: DateLike, days: int) -> DateLike:
    return day + dt.timedelta(days=days)


def add_months(day: DateLike, months: int) -> DateLike:
    """Shift by whole months, clamping the day to the target month's length."""
    index = day.year * 12 + (day.month - 1) + months
    year, month = divmod(index, 12)
    month += 1
    return day.replace(year=year, month=month, day=min(day.day, days_in_month(year, month)))


def is_same_day(a: DateLike, b: DateLike) -> bool:
    return _as_date(a) == _as_date(b)


def is_same_month(a: DateLike, b: DateLike) -> bool:
    return (a.year, a.month) == (b.year, b.month)


def is_today(day: DateLike, clock: "Clock") -> bool:
    """True if ``day`` falls on the clock's current date."""
    return _as_date(day) == clock.today()


def format_iso_date(day: DateLike) -> str:
    """Zero-padded ``YYYY-MM-DD``."""
    day = _as_date(day)
    return f"{day.year:04d}-{day.month:02d}-{day.day:02d}"


def parse_iso_date(text: str) -> dt.date:
    return dt.date.fromisoformat(text)
