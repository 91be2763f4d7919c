"""Timestamp helpers shared across the package."""

from __future__ import annotations

from datetime import UTC, datetime


def utcnow() -> datetime:
    """Current time as a naive UTC datetime."""
    return datetime.now(UTC).replace(tzinfo=None)


def utcnow_iso() -> str:
    """Current time as an ISO-8601 string."""
    return utcnow().isoformat()


def parse_timestamp(value: str | None) -> datetime | None:
    """Parse an ISO-8601 timestamp into a naive UTC datetime.

    Returns None for missing or unparseable values. Offset-aware inputs
    are converted to UTC so they compare cleanly with naive ones.
    """
    if not value:
        return None
    try:
        parsed = datetime.fromisoformat(value)
    except (TypeError, ValueError):
        return None
    if parsed.tzinfo is not None:
        parsed = parsed.astimezone(UTC).replace(tzinfo=None)
    return parsed
