"""The single authoritative source of "now".

All instants in the system are timezone-aware UTC. Anything coming from outside
(request bodies, client timestamps, rows read back from the store) goes through
`to_utc` before it is compared with anything else.
"""
from datetime import datetime, timedelta, timezone
from typing import Protocol


def to_utc(value: datetime) -> datetime:
    """Normalize a datetime to aware UTC. Naive values are taken to be UTC already."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


class Clock(Protocol):
    """Anything that can tell the current UTC instant."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock of the application process."""

    def now(self) -> datetime:
        return datetime.now(timezone.utc)


class ManualClock:
    """Clock that only moves when told to. Used by tests and simulations."""

    def __init__(self, start: datetime | None = None) -> None:
        self._now = to_utc(start) if start is not None else datetime.now(timezone.utc)

    def now(self) -> datetime:
        return self._now

    def set(self, value: datetime) -> None:
        self._now = to_utc(value)

    def advance(self, seconds: float = 0.0, **kwargs: float) -> datetime:
        """Move forward by `seconds` (plus any timedelta keyword, e.g. minutes=2)."""
        self._now = self._now + timedelta(seconds=seconds, **kwargs)
        return self._now
