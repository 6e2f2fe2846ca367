"""Date/time and duration helpers shared by every layer."""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Return a timezone-aware datetime in UTC."""
    return datetime.now(UTC)


def format_duration(seconds: int | None) -> str:
    """Format a duration as M:SS or H:MM:SS, or "Unknown" when absent."""
    if seconds is None:
        return "Unknown"

    hours, remainder = divmod(int(seconds), 3600)
    minutes, secs = divmod(remainder, 60)

    if hours > 0:
        return f"{hours}:{minutes:02d}:{secs:02d}"
    return f"{minutes}:{secs:02d}"


def coerce_duration_seconds(value: object, *, millis: bool = False) -> int | None:
    """Normalise a duration from an external payload to whole seconds.

    Accepts ints, floats, and numeric strings. Garbage and negative values
    map to None rather than raising.
    """
    if value is None or isinstance(value, bool):
        return None
    try:
        number = float(value)  # type: ignore[arg-type]
    except (TypeError, ValueError):
        return None
    if number < 0:
        return None
    if millis:
        number /= 1000
    return int(number)
