"""
Ledger-specific exceptions for financial operations.

Exception Hierarchy:
    LedgerError (base)
    ├── AccountNotFound - Account lookup failures
    ├── InactiveAccount - Posting to a deactivated account
    └── UnbalancedBatch - Batch whose debits and credits don't match

UnbalancedBatch always indicates a programming defect in the caller
that built the batch. It must propagate, never be caught and corrected.
"""

from __future__ import annotations

from core.exceptions import BaseApplicationError


class LedgerError(BaseApplicationError):
    """
    Base exception for all ledger operations.

    Example:
        try:
            ledger.append(lines, batch_key=key)
        except LedgerError as e:
            logger.error(f"Ledger operation failed: {e}")
            raise
    """

    default_error_code: str = "LEDGER_ERROR"


class AccountNotFound(LedgerError):
    """
    Raised when a ledger account cannot be found.

    Example:
        raise AccountNotFound(
            f"Account {account_id} not found",
            details={"account_id": str(account_id)}
        )
    """

    default_error_code: str = "ACCOUNT_NOT_FOUND"


class InactiveAccount(LedgerError):
    """Raised when a batch posts to an inactive account."""

    default_error_code: str = "INACTIVE_ACCOUNT"


class UnbalancedBatch(LedgerError):
    """
    Raised when a batch is rejected before any entry is written.

    Covers an empty batch, mixed currencies, and debit/credit totals
    that differ.

    Attributes:
        details: Contains batch_key, debit_cents, credit_cents, currencies
    """

    default_error_code: str = "UNBALANCED_BATCH"
