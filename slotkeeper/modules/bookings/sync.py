"""External calendar connections. Bookkeeping only; no provider I/O."""

from __future__ import annotations

from typing import Optional

from slotkeeper.clock import Clock
from slotkeeper.logging_config import get_logger
from slotkeeper.modules.bookings.models import CalendarConnection, SyncDirection

logger = get_logger(__name__)


class CalendarSyncManager:
    """Connect, disconnect and stamp syncs on calendar connections."""

    def __init__(self, clock: Optional[Clock] = None) -> None:
        self._clock = clock or Clock()
        self._connections: dict[str, CalendarConnection] = {}

    def add(self, connection: CalendarConnection) -> CalendarConnection:
        self._connections[connection.id] = connection
        return connection

    def get(self, connection_id: str) -> Optional[CalendarConnection]:
        return self._connections.get(connection_id)

    def all(self) -> list[CalendarConnection]:
        return list(self._connections.values())

    def connect(self, connection_id: str) -> Optional[CalendarConnection]:
        conn = self._connections.get(connection_id)
        if conn:
            conn.connected = True
            conn.last_synced_at = self._clock.utcnow()
            logger.info("calendar_connected", connection_id=connection_id, provider=conn.provider.value)
        return conn

    def disconnect(self, connection_id: str) -> Optional[CalendarConnection]:
        conn = self._connections.get(connection_id)
        if conn:
            conn.connected = False
            logger.info("calendar_disconnected", connection_id=connection_id)
        return conn

    def update_settings(
        self,
        connection_id: str,
        sync_direction: Optional[SyncDirection] = None,
        check_conflicts: Optional[bool] = None,
    ) -> Optional[CalendarConnection]:
        conn = self._connections.get(connection_id)
        if conn is None:
            return None
        if sync_direction is not None:
            conn.sync_direction = sync_direction
        if check_conflicts is not None:
            conn.check_conflicts = check_conflicts
        return conn

    def sync(self, connection_id: str) -> Optional[CalendarConnection]:
        """Stamp ``last_synced_at``; disconnected calendars are left untouched."""
        conn = self._connections.get(connection_id)
        if conn and conn.connected:
            conn.last_synced_at = self._clock.utcnow()
            logger.info("calendar_synced", connection_id=connection_id)
        return conn
