"""
Date and Time utilities

This module handles date parsing, date ranges and epoch/UTC conversions.
Centralizes all date parsing logic to maintain consistency across the application.
"""
from datetime import date, datetime, timedelta, timezone
import logging
import re

logger = logging.getLogger(__name__)

SCHEDULE_DATE_FORMAT = "%Y-%m-%d"
_SCHEDULE_DATE_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}$")


class DateFormatError(ValueError):
    """Raised when date format is invalid"""
    pass


def parse_schedule_date(date_str: str) -> date:
    """
    Parse a strict yyyy-MM-dd date string

    This is the single source of truth for date parsing across the application.

    Args:
        date_str: Date string (e.g., '2024-01-10')

    Returns:
        Calendar date

    Raises:
        DateFormatError: If the string is not a valid yyyy-MM-dd date
    """
    if not isinstance(date_str, str) or not _SCHEDULE_DATE_PATTERN.match(date_str):
        raise DateFormatError(f"Invalid date format: '{date_str}' (expected yyyy-MM-dd)")
    try:
        return datetime.strptime(date_str, SCHEDULE_DATE_FORMAT).date()
    except ValueError as e:
        raise DateFormatError(f"Invalid date: '{date_str}'") from e


def format_schedule_date(day: date) -> str:
    """Format a date the way the schedule endpoint expects it"""
    return day.strftime(SCHEDULE_DATE_FORMAT)


def date_range(start: date, end: date) -> list[date]:
    """
    Build the inclusive list of days between start and end

    Returns an empty list when start is after end.
    """
    days = (end - start).days
    return [start + timedelta(days=offset) for offset in range(days + 1)]


def epoch_to_utc(seconds: int) -> datetime:
    """Convert epoch seconds to a timezone-aware UTC datetime"""
    return datetime.fromtimestamp(seconds, tz=timezone.utc)


def format_utc_timestamp(dt: datetime) -> str:
    """
    Format a datetime as a sortable ISO8601 string without offset

    Args:
        dt: Timezone-aware datetime (naive values are treated as UTC)

    Returns:
        String like '2024-01-10T06:30:00'
    """
    if dt.tzinfo is not None:
        dt = dt.astimezone(timezone.utc)
    return dt.strftime("%Y-%m-%dT%H:%M:%S")
