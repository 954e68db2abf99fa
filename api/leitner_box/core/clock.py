"""
Clock capability injected into scheduling code.

All instants are naive UTC datetimes, matching how the models store them.
"""
from datetime import datetime, timedelta, timezone
from typing import Protocol

from fastapi import Depends


def utc_now() -> datetime:
    """Current instant as a naive UTC datetime."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class Clock(Protocol):
    """Protocol for anything that can tell the current instant."""

    def now(self) -> datetime:
        ...


class SystemClock:
    """Clock backed by the system time."""

    def now(self) -> datetime:
        return utc_now()


class FixedClock:
    """Clock pinned to a given instant; used by tests and replays."""

    def __init__(self, current: datetime):
        self.current = current

    def now(self) -> datetime:
        return self.current

    def advance(self, **kwargs) -> datetime:
        """Move the clock forward by a timedelta built from kwargs."""
        self.current = self.current + timedelta(**kwargs)
        return self.current


system_clock = SystemClock()


def get_clock() -> Clock:
    """Dependency for getting the clock."""
    return system_clock


def get_request_clock(clock: Clock = Depends(get_clock)) -> Clock:
    """
    Dependency pinning the clock to a single instant for one request.

    Everything computed while serving the request (schedules, due flags,
    summaries) sees the same `now`.
    """
    return FixedClock(clock.now())
