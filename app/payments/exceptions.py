"""
Payment-specific exceptions for deposit, payout and concurrency control.

Exception Hierarchy:
    InvalidAmount - Non-positive or out-of-range amount (ValidationError)

    DepositHoldNotFound - Hold lookup failures (NotFoundError)
    PayoutNotFound - Payout lookup failures (NotFoundError)

    DuplicateHold - A HELD hold already exists for the booking (ConflictError)
    AlreadyCaptured - Release requested on a captured hold (ConflictError)
    HoldFrozen - Hold is frozen by a dispute (ConflictError)
    NothingToPay - No eligible credits, or below the minimum (ConflictError)
    InvalidStateTransitionError - FSM transition not allowed (ConflictError)

    StaleRecordError - Optimistic locking conflict (ConflictError)
    LockAcquisitionError - Distributed lock timeout (ConflictError)

Usage:
    from payments.exceptions import DuplicateHold, StaleRecordError

    raise DuplicateHold(
        f"Booking {booking_id} already has a held deposit",
        details={"booking_id": str(booking_id), "hold_id": str(hold.id)},
    )
"""

from __future__ import annotations

from core.exceptions import ConflictError, NotFoundError, ValidationError


class InvalidAmount(ValidationError):
    """
    Raised when a monetary amount is zero, negative, or exceeds a limit.

    Example:
        if amount_cents <= 0:
            raise InvalidAmount(
                "Deposit amount must be positive",
                details={"amount_cents": amount_cents},
            )
    """

    default_error_code: str = "INVALID_AMOUNT"


class DepositHoldNotFound(NotFoundError):
    """Raised when a deposit hold cannot be found."""

    default_error_code: str = "DEPOSIT_HOLD_NOT_FOUND"


class PayoutNotFound(NotFoundError):
    """Raised when a payout cannot be found."""

    default_error_code: str = "PAYOUT_NOT_FOUND"


class DuplicateHold(ConflictError):
    """
    Raised when a booking already has an active (HELD) deposit hold.

    A booking may have at most one HELD hold at a time. Released or
    captured holds do not count.
    """

    default_error_code: str = "DUPLICATE_HOLD"


class AlreadyCaptured(ConflictError):
    """
    Raised when releasing or re-capturing a hold that was captured.

    Hold status is monotonic: once CAPTURED it never changes again.
    """

    default_error_code: str = "ALREADY_CAPTURED"


class HoldFrozen(ConflictError):
    """
    Raised when a frozen deposit hold is asked to release or capture.

    The dispute collaborator freezes holds pending resolution; the
    freeze must be lifted first.
    """

    default_error_code: str = "HOLD_FROZEN"


class NothingToPay(ConflictError):
    """
    Raised when a payout request finds no payable credits.

    Covers both an empty eligible set and an eligible total below the
    configured minimum payout.

    Attributes:
        details: Contains owner_id, currency, eligible_cents, minimum_cents
    """

    default_error_code: str = "NOTHING_TO_PAY"


class InvalidStateTransitionError(ConflictError):
    """
    Raised when a deposit hold or payout state transition is not allowed.

    Wraps django-fsm's TransitionNotAllowed to provide our standard
    error format with additional context.

    Example:
        try:
            payout.mark_paid(at=now)
        except TransitionNotAllowed:
            raise InvalidStateTransitionError(
                f"Cannot mark payout paid from '{payout.status}'",
                details={"current_state": payout.status, "target_state": "paid"},
            )
    """

    default_error_code: str = "INVALID_STATE_TRANSITION"


class StaleRecordError(ConflictError):
    """
    Raised when optimistic locking detects concurrent modification.

    The record was modified by another process between the caller's read
    and this write. The caller should refetch and decide again.

    Attributes:
        details: Contains pk, expected_version, and current_version
    """

    default_error_code: str = "STALE_RECORD"


class LockAcquisitionError(ConflictError):
    """
    Raised when a distributed lock cannot be acquired.

    Another process holds the lock and it couldn't be acquired within
    the timeout period.

    Attributes:
        details: Contains key and timeout information
    """

    default_error_code: str = "LOCK_ACQUISITION_FAILED"
