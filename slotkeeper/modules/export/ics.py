"""iCalendar (RFC 5545) export of a single booking.

Output uses CRLF line endings, folds content lines at 75 octets and ends
with a trailing CRLF. Only SUMMARY, DESCRIPTION and LOCATION carry free
text and are escaped.
"""

from __future__ import annotations

import datetime as dt
from typing import Optional

from slotkeeper.config import get_settings
from slotkeeper.modules.bookings.models import Booking, EventConfiguration
from slotkeeper.modules.calendar.times import parse_time

CRLF = "\r\n"
MAX_LINE_OCTETS = 75


def escape_text(value: str) -> str:
    """Escape a TEXT value: backslash, semicolon, comma and newlines."""
    return (
        value.replace("\\", "\\\\")
        .replace(";", "\\;")
        .replace(",", "\\,")
        .replace("\r\n", "\\n")
        .replace("\r", "\\n")
        .replace("\n", "\\n")
    )


def fold_line(line: str) -> list[str]:
    """Split a content line into physical lines of at most 75 octets.

    Continuation lines start with a single space, which counts towards
    their 75 octets. Multi-byte characters are never split.
    """
    parts: list[str] = []
    current = ""
    current_len = 0
    for char in line:
        size = len(char.encode("utf-8"))
        if current_len + size > MAX_LINE_OCTETS:
            parts.append(current)
            current, current_len = " ", 1
        current += char
        current_len += size
    parts.append(current)
    return parts


def _local_stamp(day: dt.date, time: str) -> str:
    minutes = parse_time(time)
    return f"{day:%Y%m%d}T{minutes // 60:02d}{minutes % 60:02d}00"


def _utc_stamp(moment: dt.datetime) -> str:
    if moment.tzinfo is not None:
        moment = moment.astimezone(dt.UTC)
    return moment.strftime("%Y%m%dT%H%M%SZ")


def _description(booking: Booking, event: EventConfiguration) -> str:
    parts = []
    if event.description:
        parts.append(event.description)
    if booking.notes:
        parts.append(f"Notes: {booking.notes}")
    parts.append(f"Duration: {event.duration_minutes} minutes")
    parts.append("Attendees:")
    parts.extend(f"{a.name} <{a.email}>" for a in booking.attendees)
    return "\n".join(parts)


def generate_ics(
    booking: Booking,
    event: EventConfiguration,
    *,
    product: Optional[str] = None,
    domain: Optional[str] = None,
    now: Optional[dt.datetime] = None,
) -> str:
    """Encode ``booking`` as a one-event VCALENDAR document."""
    settings = get_settings()
    product = product or settings.ics_product_name
    domain = domain or settings.ics_uid_domain
    now = now or dt.datetime.now(dt.UTC)

    lines = [
        "BEGIN:VCALENDAR",
        "VERSION:2.0",
        f"PRODID:-//{product}//Scheduling//EN",
        "CALSCALE:GREGORIAN",
        "METHOD:PUBLISH",
        "BEGIN:VEVENT",
        f"UID:{booking.id}@{domain}",
        f"DTSTAMP:{_utc_stamp(now)}",
        f"DTSTART;TZID={booking.timezone}:{_local_stamp(booking.date, booking.start_time)}",
        f"DTEND;TZID={booking.timezone}:{_local_stamp(booking.date, booking.end_time)}",
        f"SUMMARY:{escape_text(event.name)}",
        f"DESCRIPTION:{escape_text(_description(booking, event))}",
        f"LOCATION:{escape_text(event.location_label)}",
        "STATUS:CONFIRMED",
        "END:VEVENT",
        "END:VCALENDAR",
    ]
    physical = [part for line in lines for part in fold_line(line)]
    return CRLF.join(physical) + CRLF
