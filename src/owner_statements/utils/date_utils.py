"""Date parsing and normalization utilities."""

import re
from datetime import date, datetime, timezone
from typing import Optional

from owner_statements.errors import InvalidDateError

# Formats accepted from booking-source and expense records.
#
# Slash-separated dates are always read as US (MM/DD/YYYY); this matches the
# booking-channel exports and the expense upload files.
DATE_PATTERNS = [
    (r"^(\d{4})-(\d{1,2})-(\d{1,2})$", "%Y-%m-%d"),
    (r"^(\d{1,2})/(\d{1,2})/(\d{4})$", "%m/%d/%Y"),
    (r"^(\d{1,2})/(\d{1,2})/(\d{2})$", "%m/%d/%y"),
    (r"^(\d{1,2})-(\w{3})-(\d{4})$", "%d-%b-%Y"),
    (r"^(\w{3})\s+(\d{1,2}),?\s+(\d{4})$", "%b %d, %Y"),
    (r"^(\w+)\s+(\d{1,2}),?\s+(\d{4})$", "%B %d, %Y"),
    (r"^(\d{4})(\d{2})(\d{2})$", "%Y%m%d"),
]

COMPILED_PATTERNS = [(re.compile(pattern), fmt) for pattern, fmt in DATE_PATTERNS]


def parse_date(raw_date: object) -> date:
    """Parse a raw date value into a date object.

    Accepts date and datetime objects, ISO strings (with or without a time
    component), US slash dates, and textual month formats.

    Args:
        raw_date: The value to parse.

    Returns:
        Parsed date object.

    Raises:
        InvalidDateError: If the value cannot be parsed.
    """
    if isinstance(raw_date, datetime):
        return raw_date.date()
    if isinstance(raw_date, date):
        return raw_date

    date_str = str(raw_date).strip() if raw_date is not None else ""
    if not date_str:
        raise InvalidDateError("Empty date string", value=raw_date)

    # Timestamps such as "2024-06-10T15:00:00Z" carry a calendar date prefix
    if "T" in date_str and date_str[:4].isdigit():
        date_str = date_str.split("T", 1)[0]

    for pattern, fmt in COMPILED_PATTERNS:
        if pattern.match(date_str):
            try:
                return datetime.strptime(date_str, fmt).date()
            except ValueError:
                continue

    raise InvalidDateError(f"Cannot parse date: '{raw_date}'", value=raw_date)


def parse_iso_date(raw_date: object, field_name: str = "date") -> date:
    """Parse a strict ISO calendar date (YYYY-MM-DD).

    Args:
        raw_date: A date object or ISO string.
        field_name: Name used in the error message.

    Returns:
        Parsed date.

    Raises:
        InvalidDateError: If the value is not a valid ISO date.
    """
    if isinstance(raw_date, datetime):
        return raw_date.date()
    if isinstance(raw_date, date):
        return raw_date
    try:
        return date.fromisoformat(str(raw_date).strip())
    except ValueError:
        raise InvalidDateError(
            f"Invalid {field_name}: '{raw_date}' is not an ISO date (YYYY-MM-DD)",
            value=raw_date,
        ) from None


def parse_datetime(raw_value: object) -> Optional[datetime]:
    """Parse an ISO timestamp, returning None for empty values.

    A trailing ``Z`` is accepted. Offset-aware values are converted to UTC
    and returned naive so that timestamps compare against plain calendar
    dates by their actual instant.
    """
    if raw_value is None or raw_value == "":
        return None
    if isinstance(raw_value, datetime):
        return _naive_utc(raw_value)
    if isinstance(raw_value, date):
        return datetime(raw_value.year, raw_value.month, raw_value.day)

    value = str(raw_value).strip()
    if value.endswith("Z"):
        value = value[:-1] + "+00:00"
    try:
        return _naive_utc(datetime.fromisoformat(value))
    except ValueError:
        raise InvalidDateError(f"Cannot parse timestamp: '{raw_value}'", value=raw_value) from None


def _naive_utc(value: datetime) -> datetime:
    if value.tzinfo is None:
        return value
    return value.astimezone(timezone.utc).replace(tzinfo=None)


def is_date_in_range(
    d: date,
    start_date: Optional[date] = None,
    end_date: Optional[date] = None,
) -> bool:
    """Check if a date is within a range.

    Args:
        d: Date to check.
        start_date: Start of range (inclusive). None means no lower bound.
        end_date: End of range (inclusive). None means no upper bound.

    Returns:
        True if date is within range.
    """
    if start_date is not None and d < start_date:
        return False
    if end_date is not None and d > end_date:
        return False
    return True


def days_between(start: date, end: date) -> int:
    """Number of days from start to end (negative if end precedes start)."""
    return (end - start).days
