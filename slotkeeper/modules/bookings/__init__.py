"""Booking Repository — bookings, lifecycle, waitlist and calendar sync.

The repository itself lives in ``slotkeeper.modules.bookings.service``; only
the data models are re-exported here because the availability engine
depends on them.
"""

from slotkeeper.modules.bookings.models import (
    Booking,
    BookingRequest,
    BookingStatus,
    EventConfiguration,
    WaitlistEntry,
    WaitlistStatus,
)

__all__ = [
    "Booking",
    "BookingRequest",
    "BookingStatus",
    "EventConfiguration",
    "WaitlistEntry",
    "WaitlistStatus",
]
