"""Injected notion of "now" for availability and reporting.

Everything that compares against the current instant takes a ``Clock`` so
that the reference timezone is an explicit input rather than whatever zone
the host happens to run in.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

import pytz

from slotkeeper.modules.calendar.timezones import get_zone


class Clock:
    """Wall clock bound to a reference timezone."""

    def __init__(self, timezone: str = "UTC") -> None:
        self.timezone = timezone
        self._tz = get_zone(timezone)

    @property
    def tzinfo(self) -> dt.tzinfo:
        return self._tz

    def utcnow(self) -> dt.datetime:
        """Current instant as an aware UTC datetime."""
        return dt.datetime.now(dt.UTC)

    def now(self) -> dt.datetime:
        """Current instant in the reference timezone."""
        return self.utcnow().astimezone(self._tz)

    def today(self) -> dt.date:
        """Calendar date of ``now()`` in the reference timezone."""
        return self.now().date()

    def in_zone(self, timezone: Optional[str]) -> "Clock":
        """Return a clock reading the same instant in another zone."""
        if not timezone or timezone == self.timezone:
            return self
        return _ZoneView(self, timezone)

    def __repr__(self) -> str:
        return f"<{type(self).__name__}(timezone={self.timezone})>"


class FixedClock(Clock):
    """Clock pinned to one instant. Naive instants are read in ``timezone``."""

    def __init__(self, instant: dt.datetime, timezone: str = "UTC") -> None:
        super().__init__(timezone)
        if instant.tzinfo is None:
            instant = self._tz.localize(instant)
        self._instant = instant.astimezone(pytz.UTC)

    def utcnow(self) -> dt.datetime:
        return self._instant

    def advance(self, **delta: float) -> None:
        """Move the pinned instant forward (``minutes=5``, ``days=1`` ...)."""
        self._instant = self._instant + dt.timedelta(**delta)


class _ZoneView(Clock):
    """Same instant as a parent clock, reported in a different zone."""

    def __init__(self, parent: Clock, timezone: str) -> None:
        super().__init__(timezone)
        self._parent = parent

    def utcnow(self) -> dt.datetime:
        return self._parent.utcnow()
