"""Date handling for map query parameters.

Dates travel on the wire as ``DD/MM/YYYY``.
"""

from __future__ import annotations

from datetime import date, datetime, time, timezone

from plotted.errors import InvalidDateError

DATE_FORMAT = "%d/%m/%Y"


def parse_date(value: str | None, field_name: str = "date") -> date:
    """Parse a ``DD/MM/YYYY`` string.

    Args:
        value: String to parse.
        field_name: Name reported in the error message.

    Returns:
        Parsed date.

    Raises:
        InvalidDateError: If the value is missing or malformed.
    """
    if not value:
        raise InvalidDateError(f"Missing {field_name} (expected DD/MM/YYYY)")
    try:
        return datetime.strptime(value.strip(), DATE_FORMAT).date()
    except ValueError as e:
        raise InvalidDateError(f"Invalid {field_name} {value!r} (expected DD/MM/YYYY)") from e


def format_date(value: date) -> str:
    """Format a date as ``DD/MM/YYYY``."""
    return value.strftime(DATE_FORMAT)


def to_epoch(value: date) -> int:
    """Seconds since the epoch at UTC midnight of ``value``."""
    return int(datetime.combine(value, time.min, tzinfo=timezone.utc).timestamp())
