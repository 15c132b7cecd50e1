"""
Payment domain models.

This module contains all payment-related models:
- LedgerAccount / LedgerBatch / LedgerEntry: Double-entry ledger (see payments.ledger)
- DepositHold: Security deposits reserved during a rental
- Payout / PayoutItem: Owner payouts and the entries they settle
- FundFreeze: Dispute freezes on entries, holds, or whole bookings
"""

from payments.ledger.models import LedgerAccount, LedgerBatch, LedgerEntry
from payments.models.deposit_hold import DepositHold
from payments.models.fund_freeze import FreezeScope, FundFreeze
from payments.models.payout import Payout, PayoutItem

__all__ = [
    "DepositHold",
    "FreezeScope",
    "FundFreeze",
    "LedgerAccount",
    "LedgerBatch",
    "LedgerEntry",
    "Payout",
    "PayoutItem",
]
