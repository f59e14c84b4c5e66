"""UTC datetime utilities.

This module provides utility functions for parsing and formatting datetime values.
All timestamps leave the process as ISO-8601 strings in UTC.
"""

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current time as a timezone-aware UTC datetime."""
    return datetime.now(timezone.utc)


def utc_now_iso() -> str:
    """Return the current time as an ISO-8601 UTC string."""
    return utc_now().isoformat()


def timestamp_to_iso(timestamp: float | None) -> str | None:
    """Convert a POSIX timestamp (e.g. ``st_mtime``) to ISO-8601 UTC.

    Args:
        timestamp: Seconds since the epoch, or None.

    Returns:
        ISO-8601 string, or None if the timestamp is missing or out of range
        for the platform.
    """
    if timestamp is None:
        return None
    try:
        return datetime.fromtimestamp(timestamp, tz=timezone.utc).isoformat()
    except (OverflowError, OSError, ValueError):
        return None


def parse_iso_timestamp(timestamp: str) -> datetime:
    """Parse ISO-8601 timestamp, handling both Z and +00:00 suffixes.

    Args:
        timestamp: ISO-8601 timestamp string (e.g., "2024-01-15T10:30:00Z").

    Returns:
        Timezone-aware datetime object (always UTC if no offset specified).
    """
    normalized = timestamp.replace("Z", "+00:00")
    dt = datetime.fromisoformat(normalized)
    # Ensure timezone awareness - assume UTC for naive timestamps
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    return dt


def elapsed_ms(start: datetime, end: datetime | None = None) -> int:
    """Milliseconds between two datetimes, clamped at zero.

    Args:
        start: Start of the interval.
        end: End of the interval (defaults to now).

    Returns:
        Non-negative whole milliseconds.
    """
    end = end if end is not None else utc_now()
    return max(int((end - start).total_seconds() * 1000), 0)
