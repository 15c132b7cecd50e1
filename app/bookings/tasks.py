"""
Scheduled booking maintenance.

Tasks:
- expire_unpaid_bookings: Cancel bookings left in PENDING_PAYMENT too long
- auto_approve_overdue_returns: Complete returns the owner never inspected

Both run from celery-beat (schedules installed by migration) and apply
system triggers through BookingService, so they get the same ledger,
deposit and history handling as user-driven transitions.

Usage:
    from bookings.tasks import expire_unpaid_bookings

    expire_unpaid_bookings.delay()
"""

from __future__ import annotations

import logging
from datetime import datetime, time, timedelta

from celery import shared_task
from django.conf import settings
from django.db.models import Exists, OuterRef
from django.utils import timezone

from core.exceptions import BaseApplicationError

from bookings.exceptions import AlreadyInState, InvalidState
from bookings.models import Booking, BookingStateHistory
from bookings.services import BookingService
from bookings.states import BookingStatus, Trigger

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Maximum bookings to process per run
BATCH_SIZE = 100


# =============================================================================
# Tasks
# =============================================================================


@shared_task(bind=True)
def expire_unpaid_bookings(self, batch_size: int = BATCH_SIZE) -> dict:
    """
    Cancel bookings that have waited for payment longer than
    BOOKINGS_PENDING_PAYMENT_TTL_HOURS.

    The wait is measured from when the booking entered PENDING_PAYMENT
    (creation for instant-book, owner approval otherwise).

    Returns:
        Dict with expired, skipped and failed counts
    """
    cutoff = timezone.now() - timedelta(hours=settings.BOOKINGS_PENDING_PAYMENT_TTL_HOURS)
    entered_payment_before_cutoff = BookingStateHistory.objects.filter(
        booking_id=OuterRef("pk"),
        to_status=BookingStatus.PENDING_PAYMENT,
        trigger__in=[Trigger.CREATE, Trigger.APPROVE],
        created_at__lt=cutoff,
    )
    booking_ids = list(
        Booking.objects.filter(status=BookingStatus.PENDING_PAYMENT)
        .filter(Exists(entered_payment_before_cutoff))
        .order_by("created_at")
        .values_list("id", flat=True)[:batch_size]
    )

    summary = _apply_system_trigger(booking_ids, Trigger.EXPIRE)
    logger.info(
        f"Unpaid booking expiry complete: expired {summary['processed']}",
        extra={**summary, "cutoff": cutoff.isoformat()},
    )
    return {
        "expired": summary["processed"],
        "skipped": summary["skipped"],
        "failed": summary["failed"],
    }


@shared_task(bind=True)
def auto_approve_overdue_returns(self, batch_size: int = BATCH_SIZE) -> dict:
    """
    Complete bookings stuck in PENDING_RETURN_INSPECTION more than
    BOOKINGS_RETURN_AUTO_APPROVE_HOURS past their end date.

    Deposits are released (a frozen hold stays held), exactly as an
    owner approval without a damage claim.

    Returns:
        Dict with completed, skipped and failed counts
    """
    now = timezone.now()
    overdue_before = now - timedelta(hours=settings.BOOKINGS_RETURN_AUTO_APPROVE_HOURS)
    # end_date is a checkout day; it ends at its start in the current timezone
    last_end_date = overdue_before.astimezone(timezone.get_current_timezone()).date()
    if timezone.make_aware(datetime.combine(last_end_date, time.min)) >= overdue_before:
        last_end_date -= timedelta(days=1)

    booking_ids = list(
        Booking.objects.filter(
            status=BookingStatus.PENDING_RETURN_INSPECTION,
            end_date__lte=last_end_date,
        )
        .order_by("end_date")
        .values_list("id", flat=True)[:batch_size]
    )

    summary = _apply_system_trigger(booking_ids, Trigger.AUTO_APPROVE_RETURN)
    logger.info(
        f"Overdue return approval complete: completed {summary['processed']}",
        extra=summary,
    )
    return {
        "completed": summary["processed"],
        "skipped": summary["skipped"],
        "failed": summary["failed"],
    }


# =============================================================================
# Helpers
# =============================================================================


def _apply_system_trigger(booking_ids, trigger: str) -> dict:
    """Apply a system trigger to each booking, isolating per-booking failures."""
    service = BookingService()
    processed = skipped = failed = 0

    for booking_id in booking_ids:
        try:
            service.transition(booking_id, trigger)
            processed += 1
        except (AlreadyInState, InvalidState):
            # Moved on since the scan, e.g. paid in the meantime
            skipped += 1
        except BaseApplicationError as e:
            failed += 1
            logger.error(
                f"Failed to apply {trigger}: {e}",
                extra={"booking_id": str(booking_id), "error_code": e.error_code},
            )

    return {"processed": processed, "skipped": skipped, "failed": failed}
