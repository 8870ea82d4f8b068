"""Booking repository for event configurations, bookings and their lifecycle.

One ``BookingRepository`` is constructed per process (or per test) and
handed to callers. All state lives in memory; ``snapshot()`` and
``from_snapshot()`` are the seam for a persistence collaborator.
"""

from __future__ import annotations

import datetime as dt
import threading
from collections import Counter
from collections.abc import Iterator, Sequence
from contextlib import ExitStack, contextmanager
from decimal import ROUND_HALF_UP, Decimal
from typing import Any, Optional
from uuid import uuid4

from slotkeeper.clock import Clock
from slotkeeper.config import get_settings
from slotkeeper.logging_config import get_logger
from slotkeeper.modules.availability.service import AvailabilityEngine
from slotkeeper.modules.bookings.models import (
    Booking,
    BookingFilter,
    BookingRequest,
    BookingStatus,
    BookingSummary,
    EventConfiguration,
    RepositorySnapshot,
    WaitlistEntry,
)
from slotkeeper.modules.bookings.sync import CalendarSyncManager
from slotkeeper.modules.bookings.waitlist import WaitlistManager
from slotkeeper.modules.calendar.dates import DayOfWeek, day_of_week
from slotkeeper.modules.calendar.times import TimeRange

logger = get_logger(__name__)

# Statuses that count towards the no-show denominator.
_ATTENDABLE = frozenset({BookingStatus.CONFIRMED, BookingStatus.COMPLETED, BookingStatus.NO_SHOW})

# Fields a generic update may not touch; lifecycle operations own them.
# Moving a booking goes through reschedule_booking so the slot is re-checked.
_PROTECTED_FIELDS = frozenset({
    "id", "status", "created_at", "updated_at", "recurrence_group_id",
    "event_id", "date", "start_time", "end_time",
})


class SlotConflictError(ValueError):
    """A write would overlap an existing booking or exceed a per-day limit."""

    def __init__(self, message: str, conflicting_ids: Sequence[str] = ()) -> None:
        super().__init__(message)
        self.conflicting_ids = list(conflicting_ids)


class BookingRepository:
    """Authoritative in-memory store for scheduling state."""

    def __init__(
        self,
        clock: Optional[Clock] = None,
        engine: Optional[AvailabilityEngine] = None,
        enforce_conflicts: Optional[bool] = None,
    ) -> None:
        settings = get_settings()
        self._clock = clock or Clock(settings.reference_timezone)
        self._engine = engine or AvailabilityEngine(self._clock)
        self._enforce_conflicts = (
            settings.enforce_write_conflicts if enforce_conflicts is None else enforce_conflicts
        )
        self._events: dict[str, EventConfiguration] = {}
        self._bookings: dict[str, Booking] = {}
        self._lock = threading.RLock()
        self._slot_locks: dict[tuple[str, dt.date], threading.Lock] = {}
        self.waitlist = WaitlistManager(self._clock)
        self.calendars = CalendarSyncManager(self._clock)

    @property
    def clock(self) -> Clock:
        return self._clock

    @property
    def engine(self) -> AvailabilityEngine:
        return self._engine

    # ── Locking ─────────────────────────────────────────────────────

    @contextmanager
    def _slot_guard(self, keys: Sequence[tuple[str, dt.date]]) -> Iterator[None]:
        """Hold the per (event, date) locks for ``keys`` in a fixed order."""
        with self._lock:
            locks = [
                self._slot_locks.setdefault(key, threading.Lock())
                for key in sorted(set(keys))
            ]
        with ExitStack() as stack:
            for lock in locks:
                stack.enter_context(lock)
            yield

    # ── Event configurations ────────────────────────────────────────

    def add_event(self, event: EventConfiguration) -> EventConfiguration:
        with self._lock:
            self._events[event.id] = event
        logger.info("event_added", event_id=event.id, name=event.name)
        return event

    def get_event(self, event_id: str) -> Optional[EventConfiguration]:
        return self._events.get(event_id)

    def list_events(self, active_only: bool = False) -> list[EventConfiguration]:
        events = list(self._events.values())
        if active_only:
            events = [e for e in events if e.is_active]
        return events

    def update_event(self, event_id: str, **changes: Any) -> Optional[EventConfiguration]:
        """Apply ``changes`` and re-validate the whole configuration."""
        with self._lock:
            current = self._events.get(event_id)
            if current is None:
                return None
            data = current.model_dump()
            data.update({k: v for k, v in changes.items() if k not in ("id", "created_at")})
            data["updated_at"] = self._clock.utcnow()
            updated = EventConfiguration.model_validate(data)
            self._events[event_id] = updated
        logger.info("event_updated", event_id=event_id, fields=sorted(changes))
        return updated

    def delete_event(self, event_id: str) -> bool:
        """Remove a configuration. Callers make sure nothing still references it."""
        with self._lock:
            removed = self._events.pop(event_id, None)
        if removed:
            logger.info("event_deleted", event_id=event_id)
        return removed is not None

    def duplicate_event(self, event_id: str) -> Optional[EventConfiguration]:
        source = self._events.get(event_id)
        if source is None:
            return None
        now = self._clock.utcnow()
        copy = source.model_copy(
            deep=True,
            update={
                "id": str(uuid4()),
                "name": f"{source.name} (Copy)",
                "slug": f"{source.slug}-copy" if source.slug else "",
                "created_at": now,
                "updated_at": now,
            },
        )
        return self.add_event(copy)

    # ── Write-time validation ───────────────────────────────────────

    def _check_request(
        self,
        request: BookingRequest,
        pending: Sequence[Booking] = (),
        exclude_id: Optional[str] = None,
    ) -> None:
        """Raise SlotConflictError if ``request`` cannot be written."""
        event = self._events.get(request.event_id)
        if event is None:
            raise ValueError(f"Unknown event configuration: {request.event_id}")

        if len(request.attendees) > event.max_attendees:
            raise SlotConflictError(
                f"{len(request.attendees)} attendees exceed the limit of {event.max_attendees}"
            )

        existing = [*self._all_bookings(), *pending]
        day_bookings = [
            b for b in self._engine.active_bookings_on(request.date, event, existing)
            if b.id != exclude_id
        ]
        if len(day_bookings) >= event.max_bookings_per_day:
            raise SlotConflictError(
                f"{event.name} is fully booked on {request.date}",
                [b.id for b in day_bookings],
            )

        conflicts = self._engine.find_conflicts(
            event, existing, request.date, request.start_time, request.end_time,
            exclude_id=exclude_id,
        )
        if conflicts:
            logger.warning(
                "booking_conflict_rejected",
                event_id=event.id,
                date=str(request.date),
                start=request.start_time,
                conflicts=[b.id for b in conflicts],
            )
            raise SlotConflictError(
                f"{request.start_time}-{request.end_time} on {request.date} overlaps an existing booking",
                [b.id for b in conflicts],
            )

    def _new_booking(self, request: BookingRequest, **extra: Any) -> Booking:
        now = self._clock.utcnow()
        data = request.model_dump(include=set(BookingRequest.model_fields))
        return Booking(**data, status=BookingStatus.CONFIRMED, created_at=now, updated_at=now, **extra)

    # ── Bookings ────────────────────────────────────────────────────

    def create_booking(self, request: BookingRequest) -> Booking:
        """Store a new booking.

        Duplicate attendees are not checked here (see ``has_duplicate_booking``).
        With conflict enforcement on, overlapping or over-limit writes raise
        SlotConflictError.
        """
        with self._slot_guard([(request.event_id, request.date)]):
            if self._enforce_conflicts:
                self._check_request(request)
            booking = self._new_booking(request)
            with self._lock:
                self._bookings[booking.id] = booking

        logger.info(
            "booking_created",
            booking_id=booking.id,
            event_id=booking.event_id,
            date=str(booking.date),
            start=booking.start_time,
        )
        return booking

    def create_recurring_batch(self, requests: Sequence[BookingRequest]) -> list[Booking]:
        """Create a series sharing one recurrence group, all or nothing."""
        if not requests:
            return []

        group_id = str(uuid4()) if len(requests) > 1 else None
        keys = [(r.event_id, r.date) for r in requests]
        with self._slot_guard(keys):
            staged: list[Booking] = []
            for request in requests:
                if self._enforce_conflicts:
                    self._check_request(request, pending=staged)
                staged.append(self._new_booking(request, recurrence_group_id=group_id))
            with self._lock:
                for booking in staged:
                    self._bookings[booking.id] = booking

        logger.info("recurring_batch_created", recurrence_group_id=group_id, count=len(staged))
        return staged

    def restore_booking(self, booking: Booking) -> None:
        """Re-insert an existing booking unchanged (snapshot loading)."""
        with self._lock:
            self._bookings[booking.id] = booking

    def get_booking(self, booking_id: str) -> Optional[Booking]:
        return self._bookings.get(booking_id)

    def has_duplicate_booking(self, email: str, event_id: str, day: dt.date) -> bool:
        """True if ``email`` already holds an active booking for the event and date."""
        return any(
            b.event_id == event_id and b.date == day and b.is_active and b.has_attendee(email)
            for b in self._all_bookings()
        )

    def update_booking(self, booking_id: str, **changes: Any) -> Optional[Booking]:
        """Edit non-lifecycle fields (notes, attendees ...)."""
        protected = _PROTECTED_FIELDS.intersection(changes)
        if protected:
            raise ValueError(f"Use lifecycle operations to change: {', '.join(sorted(protected))}")
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                return None
            data = booking.model_dump()
            data.update(changes)
            data["updated_at"] = self._clock.utcnow()
            updated = Booking.model_validate(data)
            self._bookings[booking_id] = updated
        return updated

    # ── Lifecycle ───────────────────────────────────────────────────

    def _transition(self, booking: Booking, target: BookingStatus) -> bool:
        if not booking.status.can_transition_to(target):
            logger.warning(
                "booking_transition_rejected",
                booking_id=booking.id,
                current=booking.status.value,
                target=target.value,
            )
            return False
        booking.status = target
        booking.updated_at = self._clock.utcnow()
        return True

    def cancel_booking(self, booking_id: str, reason: Optional[str] = None) -> Optional[Booking]:
        """Cancel and promote the next waitlist entry for the freed event and date.

        Cancelling an already-cancelled booking changes nothing and does not
        promote again.
        """
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                return None
            if booking.status == BookingStatus.CANCELLED:
                return booking
            if not self._transition(booking, BookingStatus.CANCELLED):
                return None
            booking.cancel_reason = reason

        logger.info("booking_cancelled", booking_id=booking_id, reason=reason)
        self.waitlist.notify_next(booking.event_id, booking.date)
        return booking

    def reschedule_booking(
        self,
        booking_id: str,
        new_date: dt.date,
        new_start: str,
        new_end: str,
        reason: Optional[str] = None,
    ) -> Optional[Booking]:
        """Move a booking in place; the record keeps its id.

        The status is checked again under the collection lock right before
        the move, so a booking cancelled concurrently is left untouched.
        """
        new_range = TimeRange(start=new_start, end=new_end)
        booking = self._bookings.get(booking_id)
        if booking is None:
            return None

        with self._slot_guard([(booking.event_id, new_date)]):
            if not self._can_reschedule(booking_id):
                return None
            if self._enforce_conflicts:
                request = booking.model_copy(
                    update={"date": new_date, "start_time": new_range.start, "end_time": new_range.end},
                )
                self._check_request(request, exclude_id=booking_id)
            with self._lock:
                booking = self._bookings.get(booking_id)
                if booking is None or not self._transition(booking, BookingStatus.RESCHEDULED):
                    return None
                booking.date = new_date
                booking.start_time = new_range.start
                booking.end_time = new_range.end
                booking.reschedule_reason = reason

        logger.info(
            "booking_rescheduled",
            booking_id=booking_id,
            date=str(new_date),
            start=new_range.start,
            reason=reason,
        )
        return booking

    def _can_reschedule(self, booking_id: str) -> bool:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None:
                return False
            if not booking.status.can_transition_to(BookingStatus.RESCHEDULED):
                logger.warning(
                    "booking_transition_rejected",
                    booking_id=booking_id,
                    current=booking.status.value,
                    target=BookingStatus.RESCHEDULED.value,
                )
                return False
        return True

    def complete_booking(self, booking_id: str) -> Optional[Booking]:
        return self._set_status(booking_id, BookingStatus.COMPLETED)

    def mark_no_show(self, booking_id: str) -> Optional[Booking]:
        return self._set_status(booking_id, BookingStatus.NO_SHOW)

    def undo_no_show(self, booking_id: str) -> Optional[Booking]:
        booking = self._bookings.get(booking_id)
        if booking is None or booking.status != BookingStatus.NO_SHOW:
            return None
        return self._set_status(booking_id, BookingStatus.CONFIRMED)

    def _set_status(self, booking_id: str, target: BookingStatus) -> Optional[Booking]:
        with self._lock:
            booking = self._bookings.get(booking_id)
            if booking is None or not self._transition(booking, target):
                return None
        logger.info("booking_status_changed", booking_id=booking_id, status=target.value)
        return booking

    # ── Queries ─────────────────────────────────────────────────────

    def _all_bookings(self) -> list[Booking]:
        with self._lock:
            return list(self._bookings.values())

    def bookings_for_date(self, day: dt.date) -> list[Booking]:
        return [b for b in self._all_bookings() if b.date == day]

    def bookings_for_event(self, event_id: str) -> list[Booking]:
        return [b for b in self._all_bookings() if b.event_id == event_id]

    def filtered_bookings(self, view: BookingFilter = BookingFilter.ALL) -> list[Booking]:
        """Canned views: upcoming ascending, everything else newest first."""
        today = self._clock.today()
        bookings = self._all_bookings()

        if view == BookingFilter.UPCOMING:
            upcoming = [b for b in bookings if b.date >= today and b.is_active]
            return sorted(upcoming, key=lambda b: (b.date, b.start_time))
        if view == BookingFilter.PAST:
            bookings = [b for b in bookings if b.date < today]
        elif view == BookingFilter.CANCELLED:
            bookings = [b for b in bookings if b.status == BookingStatus.CANCELLED]
        return sorted(bookings, key=lambda b: (b.date, b.start_time), reverse=True)

    def no_show_rate(self, event_id: Optional[str] = None) -> int:
        """Whole-percent no-show rate over past attendable bookings."""
        today = self._clock.today()
        past = [
            b for b in self._all_bookings()
            if b.date < today
            and b.status in _ATTENDABLE
            and (event_id is None or b.event_id == event_id)
        ]
        if not past:
            return 0
        no_shows = sum(1 for b in past if b.status == BookingStatus.NO_SHOW)
        rate = Decimal(100 * no_shows) / Decimal(len(past))
        return int(rate.quantize(Decimal("1"), rounding=ROUND_HALF_UP))

    def summarize(self, top_times: int = 3) -> BookingSummary:
        """Status breakdown, busiest weekdays and start times, no-show rates."""
        today = self._clock.today()
        bookings = self._all_bookings()
        active = [b for b in bookings if b.is_active]

        weekday_counts = Counter(day_of_week(b.date) for b in active)
        time_counts = Counter(b.start_time for b in active)

        return BookingSummary(
            total=len(bookings),
            by_status=dict(Counter(b.status for b in bookings)),
            upcoming=sum(1 for b in active if b.date >= today),
            past=sum(1 for b in bookings if b.date < today),
            by_weekday={day: weekday_counts.get(day, 0) for day in DayOfWeek},
            popular_start_times=sorted(time_counts.items(), key=lambda kv: (-kv[1], kv[0]))[:top_times],
            no_show_rate=self.no_show_rate(),
            no_show_rate_by_event={e.id: self.no_show_rate(e.id) for e in self.list_events()},
        )

    # ── Availability shortcuts ──────────────────────────────────────

    def available_slots(self, event_id: str, day: dt.date, timezone: Optional[str] = None) -> list[TimeRange]:
        event = self._events.get(event_id)
        if event is None:
            return []
        return self._engine.get_available_slots(day, event, self.bookings_for_event(event_id), timezone)

    def next_available_date(
        self, event_id: str, from_day: Optional[dt.date] = None, timezone: Optional[str] = None,
    ) -> Optional[dt.date]:
        event = self._events.get(event_id)
        if event is None:
            return None
        return self._engine.get_next_available_date(
            from_day or self._clock.today(), event, self.bookings_for_event(event_id), timezone,
        )

    # ── Waitlist ────────────────────────────────────────────────────

    def join_waitlist(
        self,
        event_id: str,
        day: dt.date,
        time_slot: str,
        name: str,
        email: str,
    ) -> Optional[WaitlistEntry]:
        """Add a waiting entry if the event accepts one for that date."""
        event = self._events.get(event_id)
        if event is None or not event.waitlist_enabled:
            return None
        if self.waitlist.waiting_count(event_id, day) >= event.max_waitlist:
            logger.info("waitlist_full", event_id=event_id, date=str(day))
            return None
        return self.waitlist.add_entry(event_id, day, time_slot, name, email)

    # ── Snapshots ───────────────────────────────────────────────────

    def snapshot(self) -> RepositorySnapshot:
        with self._lock:
            return RepositorySnapshot(
                events=[e.model_copy(deep=True) for e in self._events.values()],
                bookings=[b.model_copy(deep=True) for b in self._bookings.values()],
                waitlist=[e.model_copy(deep=True) for e in self.waitlist.all()],
                calendar_connections=[c.model_copy(deep=True) for c in self.calendars.all()],
            )

    @classmethod
    def from_snapshot(
        cls,
        snapshot: RepositorySnapshot | dict[str, Any],
        clock: Optional[Clock] = None,
        enforce_conflicts: Optional[bool] = None,
    ) -> "BookingRepository":
        if not isinstance(snapshot, RepositorySnapshot):
            snapshot = RepositorySnapshot.model_validate(snapshot)
        repo = cls(clock=clock, enforce_conflicts=enforce_conflicts)
        for event in snapshot.events:
            repo._events[event.id] = event
        for booking in snapshot.bookings:
            repo.restore_booking(booking)
        for entry in snapshot.waitlist:
            repo.waitlist.restore(entry)
        for connection in snapshot.calendar_connections:
            repo.calendars.add(connection)
        logger.info(
            "repository_loaded",
            events=len(snapshot.events),
            bookings=len(snapshot.bookings),
            waitlist=len(snapshot.waitlist),
        )
        return repo
