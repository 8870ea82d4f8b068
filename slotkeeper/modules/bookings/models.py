"""Data models for event configurations, bookings, waitlist and calendar sync."""

from __future__ import annotations

import datetime as dt
from enum import StrEnum
from typing import Any, Optional
from uuid import uuid4

from pydantic import BaseModel, Field, field_validator, model_validator

from slotkeeper.modules.calendar.dates import DayOfWeek, day_of_week
from slotkeeper.modules.calendar.times import TimeRange, parse_time
from slotkeeper.modules.calendar.timezones import get_zone


def _new_id() -> str:
    return str(uuid4())


def _utcnow() -> dt.datetime:
    return dt.datetime.now(dt.UTC)


# ── Status types ─────────────────────────────────────────────────────


class BookingStatus(StrEnum):
    """Lifecycle state of a booking."""

    CONFIRMED = "confirmed"
    CANCELLED = "cancelled"
    RESCHEDULED = "rescheduled"
    COMPLETED = "completed"
    NO_SHOW = "no_show"

    def can_transition_to(self, target: "BookingStatus") -> bool:
        return target in _BOOKING_TRANSITIONS[self]

    @property
    def is_terminal(self) -> bool:
        return not _BOOKING_TRANSITIONS[self]


_BOOKING_TRANSITIONS: dict[BookingStatus, frozenset[BookingStatus]] = {
    BookingStatus.CONFIRMED: frozenset({
        BookingStatus.CANCELLED,
        BookingStatus.RESCHEDULED,
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.RESCHEDULED: frozenset({
        BookingStatus.CANCELLED,
        BookingStatus.RESCHEDULED,
        BookingStatus.COMPLETED,
        BookingStatus.NO_SHOW,
    }),
    BookingStatus.NO_SHOW: frozenset({BookingStatus.CONFIRMED}),
    BookingStatus.CANCELLED: frozenset(),
    BookingStatus.COMPLETED: frozenset(),
}


class WaitlistStatus(StrEnum):
    """Waitlist entry state; only ever moves forward."""

    WAITING = "waiting"
    NOTIFIED = "notified"
    APPROVED = "approved"
    REJECTED = "rejected"
    EXPIRED = "expired"

    def can_transition_to(self, target: "WaitlistStatus") -> bool:
        return target in _WAITLIST_TRANSITIONS[self]

    @property
    def is_resolved(self) -> bool:
        return self in (WaitlistStatus.APPROVED, WaitlistStatus.REJECTED, WaitlistStatus.EXPIRED)


_WAITLIST_TRANSITIONS: dict[WaitlistStatus, frozenset[WaitlistStatus]] = {
    WaitlistStatus.WAITING: frozenset({
        WaitlistStatus.NOTIFIED,
        WaitlistStatus.APPROVED,
        WaitlistStatus.REJECTED,
        WaitlistStatus.EXPIRED,
    }),
    WaitlistStatus.NOTIFIED: frozenset({
        WaitlistStatus.APPROVED,
        WaitlistStatus.REJECTED,
        WaitlistStatus.EXPIRED,
    }),
    WaitlistStatus.APPROVED: frozenset(),
    WaitlistStatus.REJECTED: frozenset(),
    WaitlistStatus.EXPIRED: frozenset(),
}


class BookingFilter(StrEnum):
    """Canned views over the booking collection."""

    UPCOMING = "upcoming"
    PAST = "past"
    CANCELLED = "cancelled"
    ALL = "all"


# ── Event configuration ──────────────────────────────────────────────


class LocationType(StrEnum):
    """Where a meeting takes place."""

    ZOOM = "zoom"
    GOOGLE_MEET = "google_meet"
    MICROSOFT_TEAMS = "microsoft_teams"
    PHONE = "phone"
    IN_PERSON = "in_person"
    CUSTOM = "custom"


LOCATION_LABELS: dict[LocationType, str] = {
    LocationType.ZOOM: "Zoom",
    LocationType.GOOGLE_MEET: "Google Meet",
    LocationType.MICROSOFT_TEAMS: "Microsoft Teams",
    LocationType.PHONE: "Phone call",
    LocationType.IN_PERSON: "In-person",
    LocationType.CUSTOM: "Custom location",
}


class EventCategory(StrEnum):
    """Kind of bookable offering."""

    ONE_ON_ONE = "one_on_one"
    GROUP = "group"
    ROUND_ROBIN = "round_robin"


class DaySchedule(BaseModel):
    """Opening hours for one weekday."""

    enabled: bool = False
    ranges: list[TimeRange] = Field(default_factory=list)


class DateOverride(BaseModel):
    """Replacement ranges for one date; ``ranges=None`` marks a day off."""

    date: dt.date
    ranges: Optional[list[TimeRange]] = None

    @property
    def is_day_off(self) -> bool:
        return self.ranges is None


def default_schedule() -> dict[DayOfWeek, DaySchedule]:
    """Monday to Friday, 09:00-17:00."""
    weekdays = {DayOfWeek.MONDAY, DayOfWeek.TUESDAY, DayOfWeek.WEDNESDAY,
                DayOfWeek.THURSDAY, DayOfWeek.FRIDAY}
    return {
        day: DaySchedule(
            enabled=day in weekdays,
            ranges=[TimeRange(start="09:00", end="17:00")] if day in weekdays else [],
        )
        for day in DayOfWeek
    }


class EventConfiguration(BaseModel):
    """A bookable offering and its scheduling policy."""

    id: str = Field(default_factory=_new_id)
    name: str
    description: str = ""
    slug: str = ""
    category: EventCategory = EventCategory.ONE_ON_ONE
    color: str = "#4F46E5"

    # Timing
    duration_minutes: int = Field(default=30, gt=0)
    buffer_before_minutes: int = Field(default=0, ge=0)
    buffer_after_minutes: int = Field(default=0, ge=0)
    max_bookings_per_day: int = Field(default=10, ge=1)
    minimum_notice_minutes: int = Field(default=0, ge=0)
    scheduling_window_days: int = Field(default=60, ge=0)

    # Where
    location: LocationType = LocationType.ZOOM
    location_details: str = ""

    # When
    schedule: dict[DayOfWeek, DaySchedule] = Field(default_factory=default_schedule)
    date_overrides: list[DateOverride] = Field(default_factory=list)

    # Capacity
    max_attendees: int = Field(default=1, ge=1)
    waitlist_enabled: bool = False
    max_waitlist: int = Field(default=5, ge=0)

    is_active: bool = True
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)

    @field_validator("schedule")
    @classmethod
    def _fill_missing_days(cls, value: dict[DayOfWeek, DaySchedule]) -> dict[DayOfWeek, DaySchedule]:
        return {day: value.get(day, DaySchedule()) for day in DayOfWeek}

    @model_validator(mode="after")
    def _unique_overrides(self) -> "EventConfiguration":
        dates = [o.date for o in self.date_overrides]
        if len(dates) != len(set(dates)):
            raise ValueError("At most one date override per date")
        return self

    def override_for(self, day: dt.date) -> Optional[DateOverride]:
        for override in self.date_overrides:
            if override.date == day:
                return override
        return None

    def day_schedule(self, day: dt.date) -> DaySchedule:
        return self.schedule[day_of_week(day)]

    @property
    def location_label(self) -> str:
        return self.location_details or LOCATION_LABELS[self.location]


# ── Bookings ─────────────────────────────────────────────────────────


class Attendee(BaseModel):
    """Person attending a booking."""

    name: str
    email: str
    timezone: str = "UTC"
    responses: dict[str, Any] = Field(default_factory=dict)


class BookingRequest(BaseModel):
    """Caller-supplied data for a new booking. Every new booking starts confirmed."""

    event_id: str
    date: dt.date
    start_time: str
    end_time: str
    timezone: str = "UTC"
    attendees: list[Attendee] = Field(min_length=1)
    notes: str = ""

    @field_validator("timezone")
    @classmethod
    def _known_zone(cls, value: str) -> str:
        get_zone(value)
        return value

    @model_validator(mode="after")
    def _valid_times(self) -> "BookingRequest":
        TimeRange(start=self.start_time, end=self.end_time)
        return self

    @property
    def time_range(self) -> TimeRange:
        return TimeRange(start=self.start_time, end=self.end_time)


class Booking(BookingRequest):
    """A reservation held in the repository."""

    id: str = Field(default_factory=_new_id)
    status: BookingStatus = BookingStatus.CONFIRMED
    cancel_reason: Optional[str] = None
    reschedule_reason: Optional[str] = None
    recurrence_group_id: Optional[str] = None
    created_at: dt.datetime = Field(default_factory=_utcnow)
    updated_at: dt.datetime = Field(default_factory=_utcnow)

    @property
    def is_active(self) -> bool:
        """Anything but cancelled still holds its slot."""
        return self.status != BookingStatus.CANCELLED

    def has_attendee(self, email: str) -> bool:
        needle = email.casefold()
        return any(a.email.casefold() == needle for a in self.attendees)


# ── Waitlist ─────────────────────────────────────────────────────────


class WaitlistEntry(BaseModel):
    """Request to be told when a slot frees up."""

    id: str = Field(default_factory=_new_id)
    event_id: str
    date: dt.date
    time_slot: str
    name: str
    email: str
    status: WaitlistStatus = WaitlistStatus.WAITING
    created_at: dt.datetime = Field(default_factory=_utcnow)

    @field_validator("time_slot")
    @classmethod
    def _valid_slot(cls, value: str) -> str:
        parse_time(value)
        return value


# ── Calendar sync ────────────────────────────────────────────────────


class CalendarProvider(StrEnum):
    """External calendars a provider can link."""

    GOOGLE = "google"
    OUTLOOK = "outlook"
    APPLE = "apple"


class SyncDirection(StrEnum):
    ONE_WAY = "one_way"
    TWO_WAY = "two_way"


class CalendarConnection(BaseModel):
    """Link to an external calendar."""

    id: str = Field(default_factory=_new_id)
    provider: CalendarProvider
    name: str = ""
    email: str = ""
    sync_direction: SyncDirection = SyncDirection.ONE_WAY
    check_conflicts: bool = True
    connected: bool = False
    last_synced_at: Optional[dt.datetime] = None


# ── Reporting ────────────────────────────────────────────────────────


class BookingSummary(BaseModel):
    """Aggregate view of the booking collection."""

    total: int = 0
    by_status: dict[BookingStatus, int] = Field(default_factory=dict)
    upcoming: int = 0
    past: int = 0
    by_weekday: dict[DayOfWeek, int] = Field(default_factory=dict)
    popular_start_times: list[tuple[str, int]] = Field(default_factory=list)
    no_show_rate: int = 0
    no_show_rate_by_event: dict[str, int] = Field(default_factory=dict)


class RepositorySnapshot(BaseModel):
    """Plain state handed to and from a persistence collaborator."""

    events: list[EventConfiguration] = Field(default_factory=list)
    bookings: list[Booking] = Field(default_factory=list)
    waitlist: list[WaitlistEntry] = Field(default_factory=list)
    calendar_connections: list[CalendarConnection] = Field(default_factory=list)
