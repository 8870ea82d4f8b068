"""Availability Engine — offerable slots from schedules, overrides and bookings."""

from slotkeeper.modules.availability.service import (
    AvailabilityEngine,
    DayAvailability,
    LocalizedSlot,
    UnavailableReason,
)

__all__ = ["AvailabilityEngine", "DayAvailability", "LocalizedSlot", "UnavailableReason"]
