"""
Booking status-change notifications.

booking_status_changed is sent once per applied transition (creation
included), after the surrounding transaction commits. Receivers run
outside the financial transaction: a slow or failing receiver can
neither block nor roll back a transition. Receiver exceptions are
logged and dropped.

Signal kwargs:
    booking_id: UUID of the booking
    from_status: Previous status (None on creation)
    to_status: New status
    trigger: Trigger that was applied
    actor_id: UUID of the actor (None for system triggers)

Usage:
    from django.dispatch import receiver

    from bookings.signals import booking_status_changed

    @receiver(booking_status_changed)
    def notify_owner(sender, booking_id, to_status, **kwargs):
        ...
"""

from __future__ import annotations

import logging

from django.db import transaction
from django.dispatch import Signal

logger = logging.getLogger(__name__)

booking_status_changed = Signal()


def send_status_changed_on_commit(
    sender,
    booking_id,
    from_status,
    to_status,
    trigger,
    actor_id=None,
) -> None:
    """Schedule booking_status_changed for after the current transaction commits."""

    def _send():
        responses = booking_status_changed.send_robust(
            sender=sender,
            booking_id=booking_id,
            from_status=from_status,
            to_status=to_status,
            trigger=trigger,
            actor_id=actor_id,
        )
        for receiver, response in responses:
            if isinstance(response, Exception):
                logger.error(
                    "booking_status_changed receiver failed",
                    extra={
                        "booking_id": str(booking_id),
                        "receiver": getattr(receiver, "__qualname__", repr(receiver)),
                        "error": str(response),
                    },
                )

    transaction.on_commit(_send)
