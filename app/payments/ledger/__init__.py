"""
Ledger - Append-only double-entry bookkeeping for marketplace money.

Every financial consequence of a booking (payment, refund, deposit hold,
release or capture, payout) is recorded as one balanced batch of entries.
Balances are always derived from entries, never stored.

Public API:
    Models:
        LedgerAccount - Balance holder (user, revenue, escrow, processor)
        LedgerBatch - One appended batch; its id orders history
        LedgerEntry - One debit or credit against one account
        AccountType, EntrySide, TransactionType - Enums

    Service:
        ledger - Singleton instance of LedgerService
        LedgerService - append(), balance_of(), entries_for()

    Types:
        Money - Monetary amount in cents
        EntryLine - One line of a batch

    Exceptions:
        LedgerError - Base exception for ledger operations
        AccountNotFound - Account lookup failures
        InactiveAccount - Posting to an inactive account
        UnbalancedBatch - Batch rejected before any write

Usage:
    from payments.ledger import EntryLine, EntrySide, TransactionType, ledger

    entries = ledger.append(lines, batch_key=f"booking:{booking.id}:payment")
    history = ledger.entries_for(booking.id)
"""

from .exceptions import (
    AccountNotFound,
    InactiveAccount,
    LedgerError,
    UnbalancedBatch,
)
from .models import (
    AccountType,
    EntrySide,
    LedgerAccount,
    LedgerBatch,
    LedgerEntry,
    TransactionType,
)
from .services import LedgerService, ledger
from .types import EntryLine, Money

__all__ = [
    # Models
    "LedgerAccount",
    "LedgerBatch",
    "LedgerEntry",
    "AccountType",
    "EntrySide",
    "TransactionType",
    # Service
    "ledger",
    "LedgerService",
    # Types
    "EntryLine",
    "Money",
    # Exceptions
    "LedgerError",
    "AccountNotFound",
    "InactiveAccount",
    "UnbalancedBatch",
]
