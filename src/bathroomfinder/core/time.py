"""
Timestamp helpers.

The feed stores timestamps as ISO-8601 strings (`lastReviewed`) or, when the value
was filled in by the datastore itself, as epoch milliseconds (`createdAt`). We
normalize both to timezone-aware UTC ISO strings at the model boundary.
"""

from __future__ import annotations

from datetime import datetime, timezone


def utc_now() -> datetime:
    """Return the current time as an aware UTC datetime."""
    return datetime.now(timezone.utc)


def to_iso(dt: datetime) -> str:
    """Render `dt` as ISO-8601 with millisecond precision and a trailing `Z`."""
    if dt.tzinfo is None:
        dt = dt.replace(tzinfo=timezone.utc)
    dt = dt.astimezone(timezone.utc)
    return dt.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def epoch_ms_to_iso(value: int | float) -> str:
    """Convert epoch milliseconds (datastore server timestamps) to an ISO string."""
    return to_iso(datetime.fromtimestamp(float(value) / 1000.0, tz=timezone.utc))


def epoch_ms(dt: datetime | None = None) -> int:
    """Return epoch milliseconds for `dt` (default: now)."""
    dt = dt or utc_now()
    return int(dt.timestamp() * 1000)
