"""Calendar Export — iCalendar encoding of bookings."""

from slotkeeper.modules.export.ics import escape_text, fold_line, generate_ics

__all__ = ["generate_ics", "escape_text", "fold_line"]
