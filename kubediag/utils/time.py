"""
Datetime utilities for timezone handling.

Rule: ALL internal datetimes must be timezone-aware (UTC).
Pod log timestamps carry nanoseconds; Python keeps microseconds, so the
extra digits are truncated after validation.
"""

import re
from datetime import datetime, timezone
from typing import Union

# Reference layout: 2006-01-02T15:04:05.000000000Z (exactly nine fractional digits)
NANO_TIMESTAMP_LAYOUT = "%Y-%m-%dT%H:%M:%S"
_NANO_TIMESTAMP_RE = re.compile(r"^(\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2})\.(\d{9})Z$")


def ensure_aware(dt: Union[datetime, str, None]) -> datetime:
    """
    Ensure a datetime is timezone-aware (UTC).

    - naive datetime → assume UTC, add tzinfo
    - aware datetime → return as-is
    - ISO string → parse and ensure aware
    - None → return current UTC time
    """
    if dt is None:
        return datetime.now(timezone.utc)

    if isinstance(dt, str):
        dt = dt.replace("Z", "+00:00")
        dt = datetime.fromisoformat(dt)

    if dt.tzinfo is None:
        return dt.replace(tzinfo=timezone.utc)

    return dt


def utcnow() -> datetime:
    """Return current UTC time as timezone-aware datetime."""
    return datetime.now(timezone.utc)


def parse_nano_timestamp(value: str) -> datetime:
    """
    Parse a ``2006-01-02T15:04:05.000000000Z`` style timestamp.

    Raises:
        ValueError: if the value does not follow the layout exactly

    Examples:
        >>> parse_nano_timestamp("2026-01-01T00:00:00.123456789Z")
        datetime.datetime(2026, 1, 1, 0, 0, 0, 123456, tzinfo=datetime.timezone.utc)
    """
    match = _NANO_TIMESTAMP_RE.match(value)
    if not match:
        raise ValueError(f"timestamp {value!r} does not match layout 2006-01-02T15:04:05.000000000Z")

    stamp = datetime.strptime(match.group(1), NANO_TIMESTAMP_LAYOUT)
    nanos = int(match.group(2))
    return stamp.replace(microsecond=nanos // 1000, tzinfo=timezone.utc)
