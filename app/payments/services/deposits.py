"""
Deposit hold manager: security deposits reserved during a rental.

Every hold operation writes its ledger batch in the same transaction
as the hold row:

    hold:     DEBIT renter            / CREDIT deposit escrow   (DEPOSIT_HOLD)
    release:  DEBIT deposit escrow    / CREDIT renter           (DEPOSIT_RELEASE)
    capture:  DEBIT deposit escrow (full amount)
              CREDIT owner (captured amount)                    (DEPOSIT_CAPTURE)
              CREDIT renter (remainder, if any)                 (DEPOSIT_RELEASE)

Concurrency:
    hold() locks the booking row, and a conditional unique constraint
    allows one HELD hold per booking, so a double-hold race ends in
    DuplicateHold. release() and capture() lock the hold row and
    accept an expected_version for optimistic checks.

Usage:
    from payments.services import DepositHoldManager

    manager = DepositHoldManager(clock=clock)
    hold = manager.hold(booking.id, 5000, "usd")
    manager.capture(hold.id, 2000)  # 3000 goes back to the renter
"""

from __future__ import annotations

import uuid

from django.db import IntegrityError, transaction

from core.clock import Clock, SystemClock
from core.services import BaseService

from bookings.exceptions import BookingNotFound
from bookings.models import Booking
from payments.exceptions import (
    AlreadyCaptured,
    DepositHoldNotFound,
    DuplicateHold,
    HoldFrozen,
    InvalidAmount,
    InvalidStateTransitionError,
)
from payments.ledger import AccountType, EntryLine, EntrySide, TransactionType
from payments.ledger.services import LedgerService, ledger as default_ledger
from payments.locks import check_version
from payments.models import DepositHold
from payments.services.disputes import DisputeFreezeService
from payments.state_machines import DepositHoldStatus

CREATED_BY = "deposit_hold_manager"


class DepositHoldManager(BaseService):
    """
    Places, releases and captures security deposit holds.

    Args:
        clock: Source of held_at/released_at/captured_at and ledger times
        ledger: Ledger service the batches are appended to
    """

    def __init__(
        self,
        clock: Clock | None = None,
        ledger: LedgerService | None = None,
    ) -> None:
        self.clock = clock or SystemClock()
        self.ledger = ledger or default_ledger

    # ------------------------------------------------------------------
    # Operations
    # ------------------------------------------------------------------

    def hold(
        self,
        booking_id: uuid.UUID,
        amount_cents: int,
        currency: str = "usd",
    ) -> DepositHold:
        """
        Reserve a deposit for a booking.

        Raises:
            InvalidAmount: If amount_cents is not a positive integer
            BookingNotFound: If the booking doesn't exist
            DuplicateHold: If the booking already has a HELD hold
        """
        _require_positive(amount_cents)

        with transaction.atomic():
            booking = (
                Booking.objects.select_for_update(of=("self",))
                .select_related("listing")
                .filter(id=booking_id)
                .first()
            )
            if booking is None:
                raise BookingNotFound(
                    f"Booking {booking_id} not found",
                    details={"booking_id": str(booking_id)},
                )

            existing = DepositHold.objects.filter(
                booking_id=booking_id, status=DepositHoldStatus.HELD
            ).first()
            if existing is not None:
                raise DuplicateHold(
                    f"Booking {booking_id} already has a held deposit",
                    details={"booking_id": str(booking_id), "hold_id": str(existing.id)},
                )

            now = self.clock.now()
            try:
                with transaction.atomic():
                    hold = DepositHold.objects.create(
                        booking=booking,
                        amount_cents=amount_cents,
                        currency=currency,
                        held_at=now,
                    )
            except IntegrityError:
                raise DuplicateHold(
                    f"Booking {booking_id} already has a held deposit",
                    details={"booking_id": str(booking_id)},
                )

            renter = self.ledger.user_account(booking.renter_id, currency)
            escrow = self.ledger.system_account(AccountType.DEPOSIT_ESCROW, currency)
            self.ledger.append(
                [
                    EntryLine(
                        renter.id,
                        EntrySide.DEBIT,
                        amount_cents,
                        TransactionType.DEPOSIT_HOLD,
                        booking_id=booking.id,
                        description="Security deposit held",
                    ),
                    EntryLine(
                        escrow.id,
                        EntrySide.CREDIT,
                        amount_cents,
                        TransactionType.DEPOSIT_HOLD,
                        booking_id=booking.id,
                        description="Security deposit held",
                    ),
                ],
                batch_key=f"deposit:{hold.id}:hold",
                created_by=CREATED_BY,
                created_at=now,
            )

        self.get_logger().info(
            "Deposit held",
            extra={
                "hold_id": str(hold.id),
                "booking_id": str(booking_id),
                "amount_cents": amount_cents,
            },
        )
        return hold

    def release(
        self,
        hold_id: uuid.UUID,
        expected_version: int | None = None,
    ) -> DepositHold:
        """
        Return the full deposit to the renter.

        Idempotent: releasing a RELEASED hold returns it unchanged.

        Raises:
            DepositHoldNotFound: If the hold doesn't exist
            StaleRecordError: If expected_version is stale
            AlreadyCaptured: If the hold was captured
            HoldFrozen: If a dispute froze the hold
        """
        with transaction.atomic():
            hold = self._lock_hold(hold_id, expected_version)

            if hold.status == DepositHoldStatus.RELEASED:
                self.get_logger().info(
                    "Deposit already released, skipping",
                    extra={"hold_id": str(hold.id)},
                )
                return hold
            if hold.status == DepositHoldStatus.CAPTURED:
                raise AlreadyCaptured(
                    f"Deposit hold {hold.id} was already captured",
                    details={"hold_id": str(hold.id)},
                )
            self._ensure_not_frozen(hold)

            now = self.clock.now()
            hold.release(at=now)
            hold.save()

            renter = self.ledger.user_account(hold.booking.renter_id, hold.currency)
            escrow = self.ledger.system_account(
                AccountType.DEPOSIT_ESCROW, hold.currency
            )
            self.ledger.append(
                [
                    EntryLine(
                        escrow.id,
                        EntrySide.DEBIT,
                        hold.amount_cents,
                        TransactionType.DEPOSIT_RELEASE,
                        booking_id=hold.booking_id,
                        description="Security deposit released",
                    ),
                    EntryLine(
                        renter.id,
                        EntrySide.CREDIT,
                        hold.amount_cents,
                        TransactionType.DEPOSIT_RELEASE,
                        booking_id=hold.booking_id,
                        description="Security deposit released",
                    ),
                ],
                batch_key=f"deposit:{hold.id}:release",
                created_by=CREATED_BY,
                created_at=now,
            )

        self.get_logger().info(
            "Deposit released",
            extra={"hold_id": str(hold.id), "booking_id": str(hold.booking_id)},
        )
        return hold

    def capture(
        self,
        hold_id: uuid.UUID,
        amount_cents: int,
        expected_version: int | None = None,
    ) -> DepositHold:
        """
        Keep ``amount_cents`` of the deposit for a damage claim.

        The owner is credited the captured amount; any remainder is
        released to the renter in the same batch.

        Raises:
            InvalidAmount: If amount_cents <= 0 or exceeds the held amount
            DepositHoldNotFound: If the hold doesn't exist
            StaleRecordError: If expected_version is stale
            AlreadyCaptured: If the hold was captured
            InvalidStateTransitionError: If the hold was released
            HoldFrozen: If a dispute froze the hold
        """
        _require_positive(amount_cents)

        with transaction.atomic():
            hold = self._lock_hold(hold_id, expected_version)

            if hold.status == DepositHoldStatus.CAPTURED:
                raise AlreadyCaptured(
                    f"Deposit hold {hold.id} was already captured",
                    details={"hold_id": str(hold.id)},
                )
            if hold.status != DepositHoldStatus.HELD:
                raise InvalidStateTransitionError(
                    f"Cannot capture deposit hold in state '{hold.status}'",
                    details={"hold_id": str(hold.id), "status": hold.status},
                )
            if amount_cents > hold.amount_cents:
                raise InvalidAmount(
                    "Capture amount exceeds the held deposit",
                    details={
                        "hold_id": str(hold.id),
                        "amount_cents": amount_cents,
                        "held_cents": hold.amount_cents,
                    },
                )
            self._ensure_not_frozen(hold)

            now = self.clock.now()
            hold.capture(amount_cents, at=now)
            hold.save()

            booking = hold.booking
            escrow = self.ledger.system_account(
                AccountType.DEPOSIT_ESCROW, hold.currency
            )
            owner = self.ledger.user_account(booking.listing.owner_id, hold.currency)
            lines = [
                EntryLine(
                    escrow.id,
                    EntrySide.DEBIT,
                    hold.amount_cents,
                    TransactionType.DEPOSIT_CAPTURE,
                    booking_id=booking.id,
                    description="Security deposit settled",
                ),
                EntryLine(
                    owner.id,
                    EntrySide.CREDIT,
                    amount_cents,
                    TransactionType.DEPOSIT_CAPTURE,
                    booking_id=booking.id,
                    description="Damage claim",
                ),
            ]
            remainder = hold.amount_cents - amount_cents
            if remainder:
                renter = self.ledger.user_account(booking.renter_id, hold.currency)
                lines.append(
                    EntryLine(
                        renter.id,
                        EntrySide.CREDIT,
                        remainder,
                        TransactionType.DEPOSIT_RELEASE,
                        booking_id=booking.id,
                        description="Security deposit remainder released",
                    )
                )
            self.ledger.append(
                lines,
                batch_key=f"deposit:{hold.id}:capture",
                created_by=CREATED_BY,
                created_at=now,
            )

        self.get_logger().info(
            "Deposit captured",
            extra={
                "hold_id": str(hold.id),
                "booking_id": str(hold.booking_id),
                "captured_cents": amount_cents,
                "released_cents": remainder,
            },
        )
        return hold

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def active_hold_for(booking_id: uuid.UUID) -> DepositHold | None:
        """The booking's HELD hold, if any."""
        return DepositHold.objects.filter(
            booking_id=booking_id, status=DepositHoldStatus.HELD
        ).first()

    @staticmethod
    def is_frozen(hold: DepositHold) -> bool:
        return DisputeFreezeService.is_hold_frozen(hold)

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    @staticmethod
    def _lock_hold(hold_id: uuid.UUID, expected_version: int | None) -> DepositHold:
        if expected_version is not None:
            exists = DepositHold.objects.filter(id=hold_id).exists()
            if not exists:
                raise DepositHoldNotFound(
                    f"Deposit hold {hold_id} not found",
                    details={"hold_id": str(hold_id)},
                )
            # Re-fetch: the FSM status field is protected against refresh
            locked = check_version(DepositHold, hold_id, expected_version)
            return DepositHold.objects.select_related("booking__listing").get(
                id=locked.id
            )

        hold = (
            DepositHold.objects.select_for_update(of=("self",))
            .select_related("booking__listing")
            .filter(id=hold_id)
            .first()
        )
        if hold is None:
            raise DepositHoldNotFound(
                f"Deposit hold {hold_id} not found",
                details={"hold_id": str(hold_id)},
            )
        return hold

    def _ensure_not_frozen(self, hold: DepositHold) -> None:
        if self.is_frozen(hold):
            self.get_logger().warning(
                "Deposit hold is frozen by a dispute",
                extra={"hold_id": str(hold.id), "booking_id": str(hold.booking_id)},
            )
            raise HoldFrozen(
                f"Deposit hold {hold.id} is frozen by a dispute",
                details={"hold_id": str(hold.id), "booking_id": str(hold.booking_id)},
            )


def _require_positive(amount_cents) -> None:
    if (
        isinstance(amount_cents, bool)
        or not isinstance(amount_cents, int)
        or amount_cents <= 0
    ):
        raise InvalidAmount(
            "Deposit amounts must be positive integers (cents)",
            details={"amount_cents": amount_cents},
        )
