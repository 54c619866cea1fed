"""Time helpers shared by the scheduler and queue pipeline."""

from __future__ import annotations

import math
from collections.abc import Callable
from datetime import UTC, datetime, timedelta

SECONDS_PER_DAY = 86400.0

Clock = Callable[[], datetime]


def utc_now() -> datetime:
    """Default clock."""
    return datetime.now(UTC)


def ensure_aware(moment: datetime) -> datetime:
    """Treat naive datetimes as UTC."""
    if moment.tzinfo is None:
        return moment.replace(tzinfo=UTC)
    return moment


def days_between(later: datetime, earlier: datetime) -> float:
    """
    Fractional days from ``earlier`` to ``later``.

    Negative when ``later`` is before ``earlier``.
    """
    delta = ensure_aware(later) - ensure_aware(earlier)
    return delta.total_seconds() / SECONDS_PER_DAY


def whole_days_until(target: datetime, now: datetime) -> int:
    """Floor of the days from ``now`` until ``target`` (negative if overdue)."""
    return math.floor(days_between(target, now))


def add_days(moment: datetime, days: float) -> datetime:
    return ensure_aware(moment) + timedelta(days=days)


def parse_timestamp(value: str | datetime | None) -> datetime | None:
    """Parse an ISO-8601 string (``Z`` suffix allowed) into an aware datetime."""
    if value is None or value == "":
        return None
    if isinstance(value, datetime):
        return ensure_aware(value)
    text = value.strip()
    if text.endswith("Z"):
        text = text[:-1] + "+00:00"
    return ensure_aware(datetime.fromisoformat(text))
