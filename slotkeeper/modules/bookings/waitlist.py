"""Waitlist manager with FIFO promotion per event and date."""

from __future__ import annotations

import datetime as dt
import threading
from typing import Optional

from slotkeeper.clock import Clock
from slotkeeper.logging_config import get_logger
from slotkeeper.modules.bookings.models import WaitlistEntry, WaitlistStatus

logger = get_logger(__name__)


class WaitlistManager:
    """Holds waitlist entries and moves them forward through their states."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or Clock()
        self._entries: dict[str, WaitlistEntry] = {}
        self._lock = threading.RLock()

    def add_entry(
        self,
        event_id: str,
        day: dt.date,
        time_slot: str,
        name: str,
        email: str,
    ) -> WaitlistEntry:
        """Append a waiting entry stamped with the current instant."""
        entry = WaitlistEntry(
            event_id=event_id,
            date=day,
            time_slot=time_slot,
            name=name,
            email=email,
            created_at=self._clock.utcnow(),
        )
        with self._lock:
            self._entries[entry.id] = entry
        logger.info("waitlist_entry_added", entry_id=entry.id, event_id=event_id, date=str(day))
        return entry

    def restore(self, entry: WaitlistEntry) -> None:
        """Re-insert an existing entry as-is (snapshot loading)."""
        with self._lock:
            self._entries[entry.id] = entry

    def get(self, entry_id: str) -> Optional[WaitlistEntry]:
        return self._entries.get(entry_id)

    def all(self) -> list[WaitlistEntry]:
        with self._lock:
            return sorted(self._entries.values(), key=lambda e: e.created_at)

    def entries_for_event(
        self, event_id: str, status: Optional[WaitlistStatus] = WaitlistStatus.WAITING,
    ) -> list[WaitlistEntry]:
        """Entries for one event in FIFO order; ``status=None`` returns every state."""
        return [
            e for e in self.all()
            if e.event_id == event_id and (status is None or e.status == status)
        ]

    def waiting_count(self, event_id: str, day: dt.date) -> int:
        return sum(
            1 for e in self.entries_for_event(event_id)
            if e.date == day
        )

    # ── Transitions ─────────────────────────────────────────────────

    def _advance(self, entry_id: str, target: WaitlistStatus) -> Optional[WaitlistEntry]:
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None:
                return None
            if not entry.status.can_transition_to(target):
                logger.warning(
                    "waitlist_transition_rejected",
                    entry_id=entry_id,
                    current=entry.status.value,
                    target=target.value,
                )
                return None
            entry.status = target
        logger.info("waitlist_entry_updated", entry_id=entry_id, status=target.value)
        return entry

    def approve(self, entry_id: str) -> Optional[WaitlistEntry]:
        return self._advance(entry_id, WaitlistStatus.APPROVED)

    def reject(self, entry_id: str) -> Optional[WaitlistEntry]:
        return self._advance(entry_id, WaitlistStatus.REJECTED)

    def expire(self, entry_id: str) -> Optional[WaitlistEntry]:
        return self._advance(entry_id, WaitlistStatus.EXPIRED)

    def remove(self, entry_id: str) -> bool:
        """Delete a resolved entry. Waiting and notified entries are kept."""
        with self._lock:
            entry = self._entries.get(entry_id)
            if entry is None or not entry.status.is_resolved:
                return False
            del self._entries[entry_id]
        logger.info("waitlist_entry_removed", entry_id=entry_id)
        return True

    def notify_next(self, event_id: str, day: dt.date) -> Optional[WaitlistEntry]:
        """Promote the earliest-created waiting entry for the event and date."""
        with self._lock:
            candidates = [
                e for e in self._entries.values()
                if e.event_id == event_id and e.date == day and e.status == WaitlistStatus.WAITING
            ]
            if not candidates:
                return None
            entry = min(candidates, key=lambda e: e.created_at)
            entry.status = WaitlistStatus.NOTIFIED
        logger.info("waitlist_entry_notified", entry_id=entry.id, event_id=event_id, date=str(day))
        return entry
