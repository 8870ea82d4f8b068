"""Minute-level wall-clock helpers operating on ``HH:MM`` strings."""

from __future__ import annotations

import re

from pydantic import BaseModel, field_validator, model_validator

MINUTES_PER_DAY = 24 * 60

_TIME_RE = re.compile(r"^(\d{2}):(\d{2})$")


def parse_time(value: str) -> int:
    """Convert ``HH:MM`` to minutes since midnight.

    Raises ValueError for anything outside ``00:00``..``23:59``.
    """
    match = _TIME_RE.match(value) if isinstance(value, str) else None
    if not match:
        raise ValueError(f"Malformed time {value!r}, expected HH:MM")
    hours, minutes = int(match.group(1)), int(match.group(2))
    if hours > 23 or minutes > 59:
        raise ValueError(f"Time out of range: {value!r}")
    return hours * 60 + minutes


def format_minutes(minutes: int) -> str:
    """Minutes since midnight to ``HH:MM`` (must already be within the day)."""
    if not 0 <= minutes < MINUTES_PER_DAY:
        raise ValueError(f"Minutes out of range: {minutes}")
    return f"{minutes // 60:02d}:{minutes % 60:02d}"


def add_minutes(time: str, minutes: int) -> str:
    """Add minutes to a time, wrapping past midnight (``23:45 + 30 -> 00:15``)."""
    return format_minutes((parse_time(time) + minutes) % MINUTES_PER_DAY)


class TimeRange(BaseModel):
    """Half-open ``[start, end)`` wall-clock interval with no date."""

    start: str
    end: str

    @field_validator("start", "end")
    @classmethod
    def _valid_time(cls, value: str) -> str:
        parse_time(value)
        return value

    @model_validator(mode="after")
    def _ordered(self) -> "TimeRange":
        if parse_time(self.start) >= parse_time(self.end):
            raise ValueError(f"Range start {self.start} must be before end {self.end}")
        return self

    @property
    def start_minutes(self) -> int:
        return parse_time(self.start)

    @property
    def end_minutes(self) -> int:
        return parse_time(self.end)

    @property
    def duration_minutes(self) -> int:
        return self.end_minutes - self.start_minutes

    def __str__(self) -> str:
        return f"{self.start}-{self.end}"


def time_in_range(time: str, time_range: TimeRange) -> bool:
    """Inclusive start, exclusive end."""
    return time_range.start_minutes <= parse_time(time) < time_range.end_minutes


def ranges_overlap(a: TimeRange, b: TimeRange) -> bool:
    """True iff the ranges share any minute; touching ranges do not overlap."""
    return intervals_overlap(a.start_minutes, a.end_minutes, b.start_minutes, b.end_minutes)


def intervals_overlap(a_start: int, a_end: int, b_start: int, b_end: int) -> bool:
    return a_start < b_end and b_start < a_end
