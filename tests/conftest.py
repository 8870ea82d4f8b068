"""Shared test fixtures and configuration."""

from __future__ import annotations

import datetime as dt
import logging
import os
from typing import Any, Callable

import pytest
import structlog

os.environ.setdefault("SLOTKEEPER_ENV", "test")
os.environ.setdefault("SLOTKEEPER_LOG_LEVEL", "WARNING")
os.environ.setdefault("REFERENCE_TIMEZONE", "UTC")

# Keep info-level events out of captured command output.
structlog.configure(wrapper_class=structlog.make_filtering_bound_logger(logging.WARNING))

from slotkeeper.clock import FixedClock
from slotkeeper.modules.availability.service import AvailabilityEngine
from slotkeeper.modules.bookings.models import (
    Attendee,
    Booking,
    BookingRequest,
    EventConfiguration,
)
from slotkeeper.modules.bookings.service import BookingRepository

# Monday 9 February 2026, 08:00 UTC.
NOW = dt.datetime(2026, 2, 9, 8, 0)
TODAY = NOW.date()
TUESDAY = dt.date(2026, 2, 10)


@pytest.fixture
def clock() -> FixedClock:
    """Clock pinned to Monday 2026-02-09 08:00 UTC."""
    return FixedClock(NOW, "UTC")


@pytest.fixture
def event() -> EventConfiguration:
    """30-minute event, Mon-Fri 09:00-17:00, no buffers or notice."""
    return EventConfiguration(
        id="et-1",
        name="Quick Chat",
        description="A short intro call.",
        slug="quick-chat",
        duration_minutes=30,
        scheduling_window_days=60,
        max_bookings_per_day=20,
    )


@pytest.fixture
def engine(clock: FixedClock) -> AvailabilityEngine:
    return AvailabilityEngine(clock, max_scan_days=90)


@pytest.fixture
def repo(clock: FixedClock, event: EventConfiguration) -> BookingRepository:
    """Repository with write-time conflict checks and the sample event."""
    repository = BookingRepository(clock=clock, enforce_conflicts=True)
    repository.add_event(event)
    return repository


@pytest.fixture
def make_request() -> Callable[..., BookingRequest]:
    """Factory for booking requests on the sample event."""

    def _make(**overrides: Any) -> BookingRequest:
        data: dict[str, Any] = {
            "event_id": "et-1",
            "date": TUESDAY,
            "start_time": "10:00",
            "end_time": "10:30",
            "timezone": "UTC",
            "attendees": [Attendee(name="Jane Doe", email="jane@example.com")],
        }
        data.update(overrides)
        return BookingRequest(**data)

    return _make


@pytest.fixture
def make_booking() -> Callable[..., Booking]:
    """Factory for stored bookings, bypassing the repository."""

    def _make(**overrides: Any) -> Booking:
        data: dict[str, Any] = {
            "event_id": "et-1",
            "date": TUESDAY,
            "start_time": "10:00",
            "end_time": "10:30",
            "timezone": "UTC",
            "attendees": [Attendee(name="Jane Doe", email="jane@example.com")],
        }
        data.update(overrides)
        return Booking(**data)

    return _make
