"""
Celery tasks for payment processing.

This module provides async tasks for:
- Sweeping owner earnings into payouts

Usage:
    # Typically called via celery-beat (schedule installed by migration)
    from payments.tasks import sweep_payouts

    sweep_payouts.delay()
    sweep_payouts.delay(currency="eur")
"""

from __future__ import annotations

import logging

from celery import shared_task

from payments.exceptions import LockAcquisitionError, NothingToPay
from payments.locks import DistributedLock
from payments.services import PayoutAggregator

logger = logging.getLogger(__name__)


# =============================================================================
# Constants
# =============================================================================

# Distributed lock TTL for one owner's payout request (seconds)
PAYOUT_LOCK_TTL = 60


# =============================================================================
# Payout Tasks
# =============================================================================


@shared_task(bind=True)
def sweep_payouts(self, currency: str = "usd") -> dict:
    """
    Request a payout for every owner with eligible credits.

    Each owner is handled under a non-blocking DistributedLock keyed by
    owner and currency, so overlapping sweeps (or an on-demand request)
    never work on the same owner at once. Owners below the minimum
    payout are skipped until more credits settle.

    Returns:
        Dict with requested, skipped and locked counts
    """
    aggregator = PayoutAggregator()
    owner_ids = aggregator.owners_with_eligible_credits(currency)

    logger.info(
        "Starting payout sweep",
        extra={"currency": currency, "owner_count": len(owner_ids)},
    )

    requested = skipped = locked = 0
    for owner_id in owner_ids:
        try:
            with DistributedLock(
                f"payout:{owner_id}:{currency}",
                ttl=PAYOUT_LOCK_TTL,
                blocking=False,
            ):
                aggregator.request_payout(owner_id, currency)
            requested += 1
        except NothingToPay as e:
            skipped += 1
            logger.info(
                "Skipping owner with nothing to pay",
                extra={"owner_id": str(owner_id), "details": e.details},
            )
        except LockAcquisitionError:
            locked += 1
            logger.warning(
                "Payout already in progress for owner, skipping",
                extra={"owner_id": str(owner_id), "currency": currency},
            )

    logger.info(
        f"Payout sweep complete: requested {requested}",
        extra={"requested": requested, "skipped": skipped, "locked": locked},
    )
    return {"requested": requested, "skipped": skipped, "locked": locked}
