"""IANA timezone conversion for wall-clock times on a given date."""

from __future__ import annotations

import datetime as dt
from functools import lru_cache

import pytz
from pydantic import BaseModel

from slotkeeper.modules.calendar.times import format_minutes, parse_time


class ConvertedTime(BaseModel):
    """A wall-clock time in the target zone, with its (possibly shifted) date."""

    time: str
    date: dt.date
    day_offset: int = 0


@lru_cache(maxsize=128)
def get_zone(name: str) -> dt.tzinfo:
    """Resolve an IANA zone name, raising ValueError when unknown."""
    try:
        return pytz.timezone(name)
    except pytz.UnknownTimeZoneError as exc:
        raise ValueError(f"Unknown IANA timezone: {name}") from exc


def localize(on_date: dt.date, time: str, zone: str) -> dt.datetime:
    """Aware datetime for a wall-clock time on ``on_date`` in ``zone``.

    Times that fall in a DST gap or overlap resolve to standard time.
    """
    minutes = parse_time(time)
    naive = dt.datetime.combine(on_date, dt.time(minutes // 60, minutes % 60))
    return get_zone(zone).localize(naive, is_dst=False)


def convert_time(time: str, from_zone: str, to_zone: str, on_date: dt.date) -> ConvertedTime:
    """Convert ``time`` on ``on_date`` in ``from_zone`` to ``to_zone``.

    The day rollover is reported through ``date`` and ``day_offset`` rather
    than silently dropped.
    """
    source = localize(on_date, time, from_zone)
    target = source.astimezone(get_zone(to_zone))
    return ConvertedTime(
        time=format_minutes(target.hour * 60 + target.minute),
        date=target.date(),
        day_offset=(target.date() - on_date).days,
    )


def format_offset(offset: dt.timedelta) -> str:
    """``±HH:MM``; UTC is ``+00:00``."""
    total = int(offset.total_seconds()) // 60
    sign = "-" if total < 0 else "+"
    total = abs(total)
    return f"{sign}{total // 60:02d}:{total % 60:02d}"


def utc_offset(zone: str, on_date: dt.date, at: str = "12:00") -> str:
    """UTC offset of ``zone`` at ``at`` on ``on_date``."""
    return format_offset(localize(on_date, at, zone).utcoffset())
