"""
Cancellation policies: how much of a paid booking is refunded.

The active policy is configured by dotted path:

    BOOKINGS_CANCELLATION_POLICY = "bookings.policies.StandardCancellationPolicy"

A policy is any object with ``refund_fraction(booking, cancelled_at)``
returning a Decimal in [0, 1].
"""

from __future__ import annotations

from datetime import datetime, time, timedelta
from decimal import Decimal
from typing import Protocol

from django.conf import settings
from django.utils import timezone
from django.utils.module_loading import import_string


class CancellationPolicy(Protocol):
    def refund_fraction(self, booking, cancelled_at: datetime) -> Decimal: ...


class StandardCancellationPolicy:
    """
    Refund by notice given before check-in.

    Check-in is midnight at the start of start_date in the current
    timezone.

        >= 48h notice: full refund
        >= 24h notice: half refund
        otherwise: no refund
    """

    FULL_REFUND_NOTICE = timedelta(hours=48)
    HALF_REFUND_NOTICE = timedelta(hours=24)

    def refund_fraction(self, booking, cancelled_at: datetime) -> Decimal:
        check_in = timezone.make_aware(
            datetime.combine(booking.start_date, time.min),
            timezone.get_current_timezone(),
        )
        notice = check_in - cancelled_at
        if notice >= self.FULL_REFUND_NOTICE:
            return Decimal("1")
        if notice >= self.HALF_REFUND_NOTICE:
            return Decimal("0.5")
        return Decimal("0")


class FullRefundPolicy:
    """Always refund everything."""

    def refund_fraction(self, booking, cancelled_at: datetime) -> Decimal:
        return Decimal("1")


def get_cancellation_policy() -> CancellationPolicy:
    return import_string(settings.BOOKINGS_CANCELLATION_POLICY)()
