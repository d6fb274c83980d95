"""
Utility functions for health-export.

Includes id/time helpers, date-key helpers, remote query escaping and
spreadsheet column addressing.
"""

import uuid
from datetime import date, datetime, timedelta, timezone
from typing import Union

DAY_NAMES = ("Monday", "Tuesday", "Wednesday", "Thursday", "Friday", "Saturday", "Sunday")


def generate_id() -> str:
    """Generate a random (version 4) UUID string for queue entries."""
    return str(uuid.uuid4())


def utc_now() -> datetime:
    """Get current UTC datetime."""
    return datetime.now(timezone.utc)


def parse_datetime(dt: Union[str, datetime]) -> datetime:
    """Parse datetime from string or return datetime object."""
    if isinstance(dt, str):
        return datetime.fromisoformat(dt.replace("Z", "+00:00"))
    return dt


def day_of_week(date_key: str) -> str:
    """English weekday name for a YYYY-MM-DD key, independent of locale."""
    return DAY_NAMES[date.fromisoformat(date_key).weekday()]


def date_range_keys(start: date, end: date) -> list[str]:
    """Inclusive list of YYYY-MM-DD keys from start to end."""
    keys = []
    current = start
    while current <= end:
        keys.append(current.isoformat())
        current += timedelta(days=1)
    return keys


def escape_query(value: str) -> str:
    """Escape backslashes, then single quotes, for a Drive search query literal."""
    return value.replace("\\", "\\\\").replace("'", "\\'")


def column_to_letter(column: int) -> str:
    """Convert a 1-based column number to letters (1 -> A, 27 -> AA)."""
    letters = ""
    while column > 0:
        column, rem = divmod(column - 1, 26)
        letters = chr(65 + rem) + letters
    return letters
