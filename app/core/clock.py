"""
Injectable clock for time-dependent business rules.

Services that stamp times (rental start/end, hold release) or compare
against them (settlement delay, cancellation windows, expiry sweeps)
take a Clock in their constructor instead of calling timezone.now()
directly, so tests can pin time without patching globals.

Usage:
    from core.clock import FixedClock, SystemClock

    service = BookingService(clock=SystemClock())

    # In tests
    clock = FixedClock(datetime(2026, 1, 10, 12, tzinfo=timezone.utc))
    service = BookingService(clock=clock)
    clock.advance(hours=49)
"""

from __future__ import annotations

from datetime import datetime, timedelta
from typing import Protocol, runtime_checkable

from django.utils import timezone


@runtime_checkable
class Clock(Protocol):
    """Source of the current, timezone-aware datetime."""

    def now(self) -> datetime: ...


class SystemClock:
    """Wall clock backed by django.utils.timezone."""

    def now(self) -> datetime:
        return timezone.now()


class FixedClock:
    """
    Clock frozen at a given instant until moved explicitly.

    Naive datetimes are rejected so comparisons against database
    values (always aware with USE_TZ=True) never blow up.
    """

    def __init__(self, at: datetime) -> None:
        self.set(at)

    def now(self) -> datetime:
        return self._now

    def set(self, at: datetime) -> None:
        if timezone.is_naive(at):
            raise ValueError("FixedClock requires a timezone-aware datetime")
        self._now = at

    def advance(self, **delta: float) -> datetime:
        """Move forward by timedelta keyword arguments and return the new time."""
        self._now = self._now + timedelta(**delta)
        return self._now
