"""Datetime utilities for timezone-aware UTC timestamps.

Usage:
    from recipebox.utils.datetime_utils import utc_now

    # For SQLAlchemy Column defaults
    date_added = Column(DateTime, default=utc_now)
"""

from datetime import date, datetime, timezone
from typing import Union


def utc_now() -> datetime:
    """Return current UTC time as timezone-aware datetime.

    Returns:
        Current UTC datetime with timezone info
    """
    return datetime.now(timezone.utc)


def to_date(value: Union[date, datetime, str]) -> date:
    """
    Reduce a date-like value to its calendar date.

    Args:
        value: A date, a datetime (time-of-day is dropped) or an ISO
            string such as "2024-03-01" or "2024-03-01 12:30:00"

    Returns:
        The date portion of the value

    Raises:
        ValueError: If a string cannot be parsed as an ISO date
        TypeError: If the value is not date-like
    """
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str):
        text = value.strip()
        try:
            return date.fromisoformat(text[:10])
        except ValueError:
            raise ValueError(f"Invalid date: '{value}'") from None
    raise TypeError(f"Expected a date, datetime or ISO string, got {type(value).__name__}")
