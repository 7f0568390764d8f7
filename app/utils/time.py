"""Time utility helpers."""

from __future__ import annotations

from datetime import UTC, datetime


def now_utc() -> datetime:
    """Return current timezone-aware UTC datetime."""
    return datetime.now(tz=UTC)


def parse_timestamp(value: str | datetime) -> datetime:
    """Parse a stored ISO timestamp (``Z`` suffix allowed) into an aware datetime."""
    if isinstance(value, datetime):
        parsed = value
    else:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=UTC)
    return parsed
