"""Datetime helpers - millisecond-resolution UTC clock."""

from datetime import datetime, timedelta, timezone

_ONE_MS = timedelta(milliseconds=1)


def utc_now() -> datetime:
    """Return the current UTC time truncated to whole milliseconds."""
    now = datetime.now(timezone.utc)
    return now.replace(microsecond=now.microsecond - now.microsecond % 1000)


def elapsed_ms(started_at: datetime, finished_at: datetime) -> int:
    """Milliseconds between two timestamps."""
    return (finished_at - started_at) // _ONE_MS


def to_iso(value: datetime) -> str:
    """Format a UTC timestamp as ISO-8601 with milliseconds and a Z suffix."""
    return value.astimezone(timezone.utc).isoformat(timespec="milliseconds").replace(
        "+00:00", "Z"
    )
