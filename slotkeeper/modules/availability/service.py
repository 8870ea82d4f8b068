"""Availability engine: turns schedules, overrides and bookings into slots.

Slot generation for one date runs in four gates followed by a sweep:

1. scheduling window (``today .. today + scheduling_window_days``)
2. date override (``None`` ranges = day off, otherwise replaces the week)
3. weekly schedule for the weekday
4. per-day booking cap
5. step through each open range by the event duration, dropping slots whose
   buffered interval hits an existing booking or that start inside the
   minimum-notice window

``is_date_available`` stops after gate 4. It is a cheap calendar-cell check
and can report a date as open even though the sweep yields nothing once
notice and buffers apply.
"""

from __future__ import annotations

import datetime as dt
from collections.abc import Iterable
from enum import StrEnum
from typing import Optional

from pydantic import BaseModel, Field

from slotkeeper.clock import Clock
from slotkeeper.config import get_settings
from slotkeeper.logging_config import get_logger
from slotkeeper.modules.bookings.models import Booking, EventConfiguration
from slotkeeper.modules.calendar.dates import calendar_grid
from slotkeeper.modules.calendar.times import TimeRange, format_minutes, intervals_overlap, parse_time
from slotkeeper.modules.calendar.timezones import convert_time, localize

logger = get_logger(__name__)


class UnavailableReason(StrEnum):
    """Why a date produced the slots it did."""

    AVAILABLE = "available"
    OUTSIDE_WINDOW = "outside_window"
    DAY_OFF = "day_off"
    CLOSED = "closed"
    FULLY_BOOKED = "fully_booked"
    NO_OPEN_SLOTS = "no_open_slots"


class DayAvailability(BaseModel):
    """Slots for one date together with the reason behind an empty result."""

    date: dt.date
    slots: list[TimeRange] = Field(default_factory=list)
    reason: UnavailableReason = UnavailableReason.AVAILABLE


class LocalizedSlot(BaseModel):
    """A provider-side slot re-expressed in another timezone."""

    date: dt.date
    start: str
    end: str
    timezone: str
    day_offset: int = 0


class AvailabilityEngine:
    """Computes offerable slots for event configurations."""

    def __init__(self, clock: Optional[Clock] = None, max_scan_days: Optional[int] = None) -> None:
        settings = get_settings()
        self._clock = clock or Clock(settings.reference_timezone)
        self._max_scan_days = (
            settings.next_available_max_days if max_scan_days is None else max_scan_days
        )

    @property
    def clock(self) -> Clock:
        return self._clock

    # ── Helpers ─────────────────────────────────────────────────────

    @staticmethod
    def active_bookings_on(
        day: dt.date, event: EventConfiguration, bookings: Iterable[Booking],
    ) -> list[Booking]:
        """Non-cancelled bookings of ``event`` on ``day``."""
        return [
            b for b in bookings
            if b.event_id == event.id and b.date == day and b.is_active
        ]

    def _in_window(self, day: dt.date, event: EventConfiguration, clock: Clock) -> bool:
        today = clock.today()
        return today <= day <= today + dt.timedelta(days=event.scheduling_window_days)

    def _open_ranges(
        self, day: dt.date, event: EventConfiguration,
    ) -> tuple[list[TimeRange], UnavailableReason]:
        override = event.override_for(day)
        if override is not None:
            if override.is_day_off:
                return [], UnavailableReason.DAY_OFF
            if not override.ranges:
                return [], UnavailableReason.CLOSED
            return list(override.ranges), UnavailableReason.AVAILABLE

        schedule = event.day_schedule(day)
        if not schedule.enabled or not schedule.ranges:
            return [], UnavailableReason.CLOSED
        return list(schedule.ranges), UnavailableReason.AVAILABLE

    # ── Slot generation ─────────────────────────────────────────────

    def check_day(
        self,
        day: dt.date,
        event: EventConfiguration,
        bookings: Iterable[Booking],
        timezone: Optional[str] = None,
    ) -> DayAvailability:
        """Compute slots for ``day`` and report why the result may be empty.

        ``timezone`` is the zone in which "today" and "now" are read;
        it defaults to the clock's reference zone.
        """
        clock = self._clock.in_zone(timezone)
        if not self._in_window(day, event, clock):
            return DayAvailability(date=day, reason=UnavailableReason.OUTSIDE_WINDOW)

        ranges, reason = self._open_ranges(day, event)
        if not ranges:
            return DayAvailability(date=day, reason=reason)

        day_bookings = self.active_bookings_on(day, event, bookings)
        if len(day_bookings) >= event.max_bookings_per_day:
            return DayAvailability(date=day, reason=UnavailableReason.FULLY_BOOKED)

        slots = self._sweep(day, event, ranges, day_bookings, clock)
        return DayAvailability(
            date=day,
            slots=slots,
            reason=UnavailableReason.AVAILABLE if slots else UnavailableReason.NO_OPEN_SLOTS,
        )

    def get_available_slots(
        self,
        day: dt.date,
        event: EventConfiguration,
        bookings: Iterable[Booking],
        timezone: Optional[str] = None,
    ) -> list[TimeRange]:
        """Ordered offerable slots for ``day``; empty when nothing is open."""
        return self.check_day(day, event, bookings, timezone).slots

    def _sweep(
        self,
        day: dt.date,
        event: EventConfiguration,
        ranges: list[TimeRange],
        day_bookings: list[Booking],
        clock: Clock,
    ) -> list[TimeRange]:
        duration = event.duration_minutes
        booked = [(b.time_range.start_minutes, b.time_range.end_minutes) for b in day_bookings]
        notice_cutoff = clock.now() + dt.timedelta(minutes=event.minimum_notice_minutes)

        slots: list[TimeRange] = []
        for open_range in ranges:
            cursor = open_range.start_minutes
            while cursor + duration <= open_range.end_minutes:
                start, end = cursor, cursor + duration
                cursor = end

                # Buffers may reach past midnight; compare on the raw minute line.
                buffered_start = start - event.buffer_before_minutes
                buffered_end = end + event.buffer_after_minutes
                if any(intervals_overlap(buffered_start, buffered_end, b_start, b_end)
                       for b_start, b_end in booked):
                    continue

                slot = TimeRange(start=format_minutes(start), end=format_minutes(end))
                if localize(day, slot.start, clock.timezone) <= notice_cutoff:
                    continue
                slots.append(slot)
        return slots

    # ── Date-level checks ───────────────────────────────────────────

    def is_date_available(
        self,
        day: dt.date,
        event: EventConfiguration,
        bookings: Iterable[Booking],
        timezone: Optional[str] = None,
    ) -> bool:
        """Window, override, schedule and day-cap gates only."""
        clock = self._clock.in_zone(timezone)
        if not self._in_window(day, event, clock):
            return False
        ranges, _ = self._open_ranges(day, event)
        if not ranges:
            return False
        return len(self.active_bookings_on(day, event, bookings)) < event.max_bookings_per_day

    def get_next_available_date(
        self,
        from_day: dt.date,
        event: EventConfiguration,
        bookings: Iterable[Booking],
        timezone: Optional[str] = None,
    ) -> Optional[dt.date]:
        """First date from ``from_day`` (inclusive) passing ``is_date_available``."""
        bookings = list(bookings)
        max_days = min(self._max_scan_days, event.scheduling_window_days)
        for offset in range(max_days + 1):
            candidate = from_day + dt.timedelta(days=offset)
            if self.is_date_available(candidate, event, bookings, timezone):
                return candidate
        logger.debug("no_available_date", event_id=event.id, from_day=str(from_day), scanned=max_days + 1)
        return None

    def month_availability(
        self,
        year: int,
        month: int,
        event: EventConfiguration,
        bookings: Iterable[Booking],
        timezone: Optional[str] = None,
    ) -> dict[dt.date, bool]:
        """``is_date_available`` for every cell of the month's 6x7 grid."""
        bookings = list(bookings)
        return {
            day: self.is_date_available(day, event, bookings, timezone)
            for week in calendar_grid(year, month)
            for day in week
        }

    # ── Conflicts ───────────────────────────────────────────────────

    def find_conflicts(
        self,
        event: EventConfiguration,
        bookings: Iterable[Booking],
        day: dt.date,
        start_time: str,
        end_time: str,
        exclude_id: Optional[str] = None,
    ) -> list[Booking]:
        """Active bookings whose buffered interval meets the buffered candidate.

        Both sides carry the event's buffers here, so a stored booking keeps
        its own before/after gap. The slot sweep only buffers the candidate.
        """
        before, after = event.buffer_before_minutes, event.buffer_after_minutes
        buffered_start = parse_time(start_time) - before
        buffered_end = parse_time(end_time) + after
        return [
            b for b in self.active_bookings_on(day, event, bookings)
            if b.id != exclude_id
            and intervals_overlap(
                buffered_start, buffered_end,
                b.time_range.start_minutes - before, b.time_range.end_minutes + after,
            )
        ]

    # ── Presentation ────────────────────────────────────────────────

    @staticmethod
    def localize_slots(
        day: dt.date, slots: Iterable[TimeRange], from_zone: str, to_zone: str,
    ) -> list[LocalizedSlot]:
        """Express provider slots in an invitee's timezone."""
        localized = []
        for slot in slots:
            start = convert_time(slot.start, from_zone, to_zone, day)
            end = convert_time(slot.end, from_zone, to_zone, day)
            localized.append(LocalizedSlot(
                date=start.date,
                start=start.time,
                end=end.time,
                timezone=to_zone,
                day_offset=start.day_offset,
            ))
        return localized
