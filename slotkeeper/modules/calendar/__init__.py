"""Calendar and time math — dates, HH:MM arithmetic, timezone conversion."""

from slotkeeper.modules.calendar.dates import DayOfWeek, calendar_grid, day_of_week, format_iso_date
from slotkeeper.modules.calendar.times import TimeRange, add_minutes, parse_time, ranges_overlap
from slotkeeper.modules.calendar.timezones import ConvertedTime, convert_time, utc_offset

__all__ = [
    "DayOfWeek",
    "TimeRange",
    "ConvertedTime",
    "calendar_grid",
    "day_of_week",
    "format_iso_date",
    "add_minutes",
    "parse_time",
    "ranges_overlap",
    "convert_time",
    "utc_offset",
]
