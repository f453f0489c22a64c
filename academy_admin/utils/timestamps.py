"""Conversion of the timestamp shapes found in stored documents."""

from datetime import date, datetime, timezone

# Epoch values above this are milliseconds
_MILLIS_THRESHOLD = 1e12


def to_datetime(value) -> datetime | None:
    """Convert a timestamp-like value to an aware UTC datetime.

    Accepts datetimes, dates, ISO strings, epoch seconds or milliseconds and
    ``{"seconds": ...}`` / ``{"_seconds": ...}`` mappings. Anything else is
    treated as missing.
    """
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return value if value.tzinfo else value.replace(tzinfo=timezone.utc)
    if isinstance(value, date):
        return datetime(value.year, value.month, value.day, tzinfo=timezone.utc)
    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        seconds = value / 1000 if value > _MILLIS_THRESHOLD else value
        return datetime.fromtimestamp(seconds, tz=timezone.utc)
    if isinstance(value, dict):
        seconds = value.get("seconds", value.get("_seconds"))
        if seconds is None:
            return None
        nanos = value.get("nanoseconds", value.get("_nanoseconds", 0)) or 0
        return datetime.fromtimestamp(seconds + nanos / 1e9, tz=timezone.utc)
    if isinstance(value, str):
        try:
            parsed = datetime.fromisoformat(value.strip().replace("Z", "+00:00"))
        except ValueError:
            return None
        return parsed if parsed.tzinfo else parsed.replace(tzinfo=timezone.utc)
    return None


def to_millis(value) -> int:
    """Epoch milliseconds for a timestamp-like value, 0 when missing."""
    parsed = to_datetime(value)
    if parsed is None:
        return 0
    return int(parsed.timestamp() * 1000)
