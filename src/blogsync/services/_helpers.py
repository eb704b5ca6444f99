"""Shared service-layer helper functions."""

from __future__ import annotations

from datetime import UTC, datetime, timedelta


def utc_now() -> datetime:
    return datetime.now(UTC)


def now_iso() -> str:
    """Current UTC time as ISO 8601 text (association ``created_at``)."""
    return utc_now().isoformat()


def as_utc(value: datetime | None) -> datetime | None:
    """Attach UTC to naive timestamps so stored and parsed values compare."""
    if value is None or value.tzinfo is not None:
        return value
    return value.replace(tzinfo=UTC)


def advance_timestamp(previous: datetime | None, now: datetime | None = None) -> datetime:
    """A timestamp strictly later than *previous*.

    Two syncs within the same clock tick would otherwise record the same
    ``last_synced_at``.
    """
    current = now or utc_now()
    if previous is None:
        return current
    if previous.tzinfo is None:
        previous = previous.replace(tzinfo=UTC)
    if current <= previous:
        return previous + timedelta(microseconds=1)
    return current

