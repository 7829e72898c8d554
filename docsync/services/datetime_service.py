"""Datetime helpers: timezone-aware timestamps for sync state."""

from __future__ import annotations

from datetime import datetime, timezone

import pendulum


def ensure_aware(value: datetime, default_tz: str = "UTC") -> datetime:
    """Return *value* with a timezone.

    Naive datetimes (SQLite drops the offset on round-trip) are interpreted
    in *default_tz*.
    """
    if value.tzinfo is None:
        tz = pendulum.timezone(default_tz)
        value = value.replace(tzinfo=tz)  # type: ignore[arg-type]
    return value


def now_utc() -> datetime:
    """Return the current UTC datetime."""
    return datetime.now(timezone.utc)


def seconds_since(dt: datetime) -> float:
    """Return the number of seconds elapsed since *dt*."""
    return (now_utc() - ensure_aware(dt)).total_seconds()
