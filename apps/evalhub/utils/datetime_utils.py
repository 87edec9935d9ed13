"""
Datetime utility functions.
"""

from datetime import date, datetime, time
from typing import Union
import pytz


def utcnow() -> datetime:
    """
    Get current UTC datetime using pytz.UTC.

    Returns:
        Current UTC datetime with pytz timezone information
    """
    return datetime.now(pytz.UTC)


def format_session_slot(scheduled_date: Union[str, date], scheduled_time: Union[str, time, None] = None) -> str:
    """
    Format a session's slot as M/D/YYYY h:MM AM/PM (no leading zeros).

    Accepts date/time objects or the ISO strings sessions are serialized
    with ("2026-11-01", "09:00:00"). The time part is omitted when missing.

    Examples:
        format_session_slot("2026-11-01", "09:00:00") -> "11/1/2026 9:00 AM"
        format_session_slot(date(2026, 11, 1)) -> "11/1/2026"
    """
    if isinstance(scheduled_date, str):
        scheduled_date = date.fromisoformat(scheduled_date)
    label = f"{scheduled_date.month}/{scheduled_date.day}/{scheduled_date.year}"

    if scheduled_time is None:
        return label
    if isinstance(scheduled_time, str):
        scheduled_time = time.fromisoformat(scheduled_time)
    hour = scheduled_time.hour % 12 or 12
    suffix = "AM" if scheduled_time.hour < 12 else "PM"
    return f"{label} {hour}:{scheduled_time.minute:02d} {suffix}"
