"""
Date handling utilities for plan date ranges.

Plan start and end bounds arrive from the view layer and from the backend in
several shapes (ISO strings, dates, datetimes, epoch milliseconds). This
module normalizes them to ISO strings so that a reset can compare and
restore the initial range exactly.
"""

from datetime import date, datetime, timezone
from typing import Optional, Union

DateLike = Union[str, int, float, date, datetime, None]


def to_date_string(value: DateLike) -> Optional[str]:
    """
    Normalize a date-like value to an ISO string.

    Args:
        value: ISO string, date, datetime, epoch milliseconds or None

    Returns:
        ``YYYY-MM-DD`` for dates, full ISO format for datetimes, None for
        missing or empty values

    Raises:
        ValueError: If a string is not a valid ISO date or datetime
    """
    if value is None:
        return None

    if isinstance(value, bool):
        raise ValueError(f"Invalid date value: {value!r}")

    if isinstance(value, datetime):
        if value.tzinfo is None:
            value = value.replace(tzinfo=timezone.utc)
        return value.isoformat()

    if isinstance(value, date):
        return value.isoformat()

    if isinstance(value, (int, float)):
        return from_epoch_ms(value).isoformat()

    text = str(value).strip()
    if not text:
        return None

    # Plain dates stay plain
    try:
        return date.fromisoformat(text).isoformat()
    except ValueError:
        pass

    return to_date_string(datetime.fromisoformat(text))


def from_epoch_ms(value: Union[int, float]) -> datetime:
    """Convert epoch milliseconds to a UTC datetime."""
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)
