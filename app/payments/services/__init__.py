"""
Payment services for deposits, disputes and payouts.

This module provides:
- DepositHoldManager: Places, releases and captures security deposits
- DisputeFreezeService: Freezes booking money while a dispute is open
- PayoutAggregator: Pays settled owner earnings out

Ledger writes go through payments.ledger; these services only decide
which balanced batch to append.

Usage:
    from payments.services import DepositHoldManager, PayoutAggregator

    hold = DepositHoldManager(clock=clock).hold(booking.id, 5000, "usd")

    payout = PayoutAggregator().request_payout(owner_id, "usd")
"""

from payments.services.deposits import DepositHoldManager
from payments.services.disputes import DisputeFreezeService
from payments.services.payouts import EligibleCredits, PayoutAggregator

__all__ = [
    "DepositHoldManager",
    "DisputeFreezeService",
    "EligibleCredits",
    "PayoutAggregator",
]
