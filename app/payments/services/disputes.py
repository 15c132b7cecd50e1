"""
Dispute freeze service: the dispute collaborator's way in.

While a dispute is open the dispute system freezes booking money:
- freeze_booking: every ledger entry and deposit hold of the booking
- freeze_entry: a single ledger entry
- freeze_hold: a single deposit hold

Frozen entries are skipped by payout eligibility. Frozen holds cannot
be released or captured. lift() ends a freeze; the row is kept.

Usage:
    from payments.services import DisputeFreezeService

    freeze = DisputeFreezeService().freeze_booking(booking.id, reason="Damage dispute #12")
    ...
    DisputeFreezeService().lift(freeze.id)
"""

from __future__ import annotations

import uuid

from django.db.models import Exists, OuterRef, Q

from core.clock import Clock, SystemClock
from core.exceptions import NotFoundError
from core.services import BaseService

from payments.exceptions import DepositHoldNotFound
from payments.ledger.models import LedgerEntry
from payments.models import DepositHold, FreezeScope, FundFreeze


class DisputeFreezeService(BaseService):
    """Create, lift and query dispute freezes."""

    def __init__(self, clock: Clock | None = None) -> None:
        self.clock = clock or SystemClock()

    # ------------------------------------------------------------------
    # Freezing
    # ------------------------------------------------------------------

    def freeze_booking(
        self,
        booking_id: uuid.UUID,
        reason: str = "",
        created_by: str | None = None,
    ) -> FundFreeze:
        freeze = FundFreeze.objects.create(
            scope=FreezeScope.BOOKING,
            booking_id=booking_id,
            reason=reason,
            created_by=created_by,
        )
        self._log_frozen(freeze)
        return freeze

    def freeze_entry(
        self,
        entry_id: uuid.UUID,
        reason: str = "",
        created_by: str | None = None,
    ) -> FundFreeze:
        """
        Freeze one ledger entry.

        Raises:
            NotFoundError: If the entry doesn't exist or isn't tied to a booking
        """
        entry = LedgerEntry.objects.filter(id=entry_id).first()
        if entry is None or entry.booking_id is None:
            raise NotFoundError(
                f"Ledger entry {entry_id} not found for a booking",
                error_code="LEDGER_ENTRY_NOT_FOUND",
                details={"entry_id": str(entry_id)},
            )
        freeze = FundFreeze.objects.create(
            scope=FreezeScope.ENTRY,
            booking_id=entry.booking_id,
            ledger_entry=entry,
            reason=reason,
            created_by=created_by,
        )
        self._log_frozen(freeze)
        return freeze

    def freeze_hold(
        self,
        hold_id: uuid.UUID,
        reason: str = "",
        created_by: str | None = None,
    ) -> FundFreeze:
        """
        Freeze one deposit hold.

        Raises:
            DepositHoldNotFound: If the hold doesn't exist
        """
        hold = DepositHold.objects.filter(id=hold_id).first()
        if hold is None:
            raise DepositHoldNotFound(
                f"Deposit hold {hold_id} not found",
                details={"hold_id": str(hold_id)},
            )
        freeze = FundFreeze.objects.create(
            scope=FreezeScope.HOLD,
            booking_id=hold.booking_id,
            deposit_hold=hold,
            reason=reason,
            created_by=created_by,
        )
        self._log_frozen(freeze)
        return freeze

    def lift(self, freeze_id: uuid.UUID) -> FundFreeze:
        """
        End a freeze. Lifting an already-lifted freeze is a no-op.

        Raises:
            NotFoundError: If the freeze doesn't exist
        """
        with self.atomic():
            freeze = FundFreeze.objects.select_for_update().filter(id=freeze_id).first()
            if freeze is None:
                raise NotFoundError(
                    f"Freeze {freeze_id} not found",
                    error_code="FREEZE_NOT_FOUND",
                    details={"freeze_id": str(freeze_id)},
                )
            if freeze.lifted_at is None:
                freeze.lifted_at = self.clock.now()
                freeze.save(update_fields=["lifted_at", "updated_at"])
                self.get_logger().info(
                    "Freeze lifted",
                    extra={
                        "freeze_id": str(freeze.id),
                        "booking_id": str(freeze.booking_id),
                    },
                )
        return freeze

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @staticmethod
    def is_hold_frozen(hold: DepositHold) -> bool:
        return (
            FundFreeze.objects.active()
            .filter(
                Q(scope=FreezeScope.HOLD, deposit_hold_id=hold.id)
                | Q(scope=FreezeScope.BOOKING, booking_id=hold.booking_id)
            )
            .exists()
        )

    @staticmethod
    def entry_frozen_subquery() -> Exists:
        """
        Exists() over active freezes covering the outer LedgerEntry,
        directly or through its booking. For use in annotate/filter.
        """
        return Exists(
            FundFreeze.objects.active().filter(
                Q(scope=FreezeScope.ENTRY, ledger_entry_id=OuterRef("pk"))
                | Q(scope=FreezeScope.BOOKING, booking_id=OuterRef("booking_id"))
            )
        )

    def _log_frozen(self, freeze: FundFreeze) -> None:
        self.get_logger().info(
            "Funds frozen",
            extra={
                "freeze_id": str(freeze.id),
                "scope": freeze.scope,
                "booking_id": str(freeze.booking_id),
            },
        )
