"""
UTC Time Helpers
================

Every instant handled by the dashboard is a timezone-aware UTC datetime.

Timestamps arriving from the backend are ISO 8601 strings that may or may
not carry an explicit offset. A string with no offset is UTC, never local
time.

Example:
    from crowd_dashboard.timeutils import parse_utc, to_iso_z

    instant = parse_utc("2024-01-01T10:00:00")
    to_iso_z(instant)  # "2024-01-01T10:00:00Z"
"""

from datetime import datetime, timezone
from typing import Union


def parse_utc(value: Union[str, datetime]) -> datetime:
    """
    Parse a timestamp as a UTC instant.

    Args:
        value: ISO 8601 string (with "Z", an explicit offset, or none)
            or a datetime (naive datetimes are taken as UTC)

    Returns:
        Timezone-aware datetime in UTC

    Raises:
        ValueError: If the string is not a valid ISO 8601 timestamp
    """
    if isinstance(value, datetime):
        parsed = value
    elif not isinstance(value, str):
        raise ValueError(f"Invalid timestamp: {value!r}")
    else:
        text = value.strip()
        if text.endswith(("Z", "z")):
            text = text[:-1] + "+00:00"
        try:
            parsed = datetime.fromisoformat(text)
        except ValueError:
            raise ValueError(f"Invalid timestamp: {value!r}") from None

    if parsed.tzinfo is None:
        return parsed.replace(tzinfo=timezone.utc)
    return parsed.astimezone(timezone.utc)


def to_iso_z(instant: datetime) -> str:
    """Format an instant as a second-precision UTC ISO string ending in 'Z'."""
    return parse_utc(instant).strftime("%Y-%m-%dT%H:%M:%SZ")


def utc_now() -> datetime:
    """Current wall-clock time as an aware UTC datetime."""
    return datetime.now(timezone.utc)
