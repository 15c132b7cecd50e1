"""
Payout aggregator: turns settled owner earnings into payouts.

An owner's ledger credit is eligible for payout when it is:
- a CREDIT on the owner's USER_BALANCE account in the payout currency
- owner income (EARNINGS or DEPOSIT_CAPTURE)
- older than the settlement delay (PAYOUT_SETTLEMENT_DELAY_DAYS)
- from a COMPLETED booking (or from no booking at all)
- not frozen by a dispute, directly or through its booking
- not covered by an active item of a REQUESTED or PAID payout

Flow:
    request_payout()  -> Payout REQUESTED, one PayoutItem per entry
    mark_paid()       -> PAID, PAYOUT batch (DEBIT owner / CREDIT processor)
    mark_failed()     -> FAILED, items deactivated so entries are eligible again

The ledger is never touched on failure; only the payout record rolls back.

Usage:
    from payments.services import PayoutAggregator

    aggregator = PayoutAggregator()
    eligible = aggregator.compute_eligible(owner_id, "usd")
    payout = aggregator.request_payout(owner_id, "usd")
    aggregator.mark_paid(payout.id)
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from datetime import timedelta

from django.conf import settings
from django.db import IntegrityError, transaction
from django.db.models import Exists, OuterRef, Q

from core.clock import Clock, SystemClock
from core.services import BaseService

from bookings.models import Booking
from bookings.states import BookingStatus
from payments.exceptions import (
    InvalidStateTransitionError,
    NothingToPay,
    PayoutNotFound,
)
from payments.ledger import AccountType, EntryLine, EntrySide, TransactionType
from payments.ledger.models import LedgerAccount, LedgerEntry
from payments.ledger.services import LedgerService, ledger as default_ledger
from payments.locks import check_version
from payments.models import Payout, PayoutItem
from payments.services.disputes import DisputeFreezeService
from payments.state_machines import PayoutStatus

CREATED_BY = "payout_aggregator"

# Transaction types that make up an owner's income
PAYABLE_TRANSACTION_TYPES = (
    TransactionType.EARNINGS,
    TransactionType.DEPOSIT_CAPTURE,
)


@dataclass(frozen=True)
class EligibleCredits:
    """Credits an owner could be paid out right now."""

    owner_id: uuid.UUID
    currency: str
    amount_cents: int = 0
    entry_ids: list[uuid.UUID] = field(default_factory=list)


class PayoutAggregator(BaseService):
    """
    Computes payout eligibility and manages the payout lifecycle.

    Args:
        clock: Source of the settlement cutoff and transition times
        ledger: Ledger service PAYOUT batches are appended to
        settlement_delay_days: Minimum age of an eligible credit
            (default settings.PAYOUT_SETTLEMENT_DELAY_DAYS)
        minimum_cents: Smallest payout requested
            (default settings.PAYOUT_MINIMUM_CENTS)
    """

    def __init__(
        self,
        clock: Clock | None = None,
        ledger: LedgerService | None = None,
        settlement_delay_days: int | None = None,
        minimum_cents: int | None = None,
    ) -> None:
        self.clock = clock or SystemClock()
        self.ledger = ledger or default_ledger
        self.settlement_delay_days = (
            settings.PAYOUT_SETTLEMENT_DELAY_DAYS
            if settlement_delay_days is None
            else settlement_delay_days
        )
        self.minimum_cents = (
            settings.PAYOUT_MINIMUM_CENTS if minimum_cents is None else minimum_cents
        )

    # ------------------------------------------------------------------
    # Eligibility
    # ------------------------------------------------------------------

    def eligible_entries(self, currency: str = "usd", owner_id: uuid.UUID | None = None):
        """
        QuerySet of payout-eligible credits, oldest first.

        Without owner_id, covers every owner (used by the payout sweep).
        """
        cutoff = self.clock.now() - timedelta(days=self.settlement_delay_days)
        completed_booking = Booking.objects.filter(
            id=OuterRef("booking_id"), status=BookingStatus.COMPLETED
        )
        active_item = PayoutItem.objects.filter(
            ledger_entry_id=OuterRef("pk"), is_active=True
        )

        queryset = LedgerEntry.objects.filter(
            account__type=AccountType.USER_BALANCE,
            account__currency=currency,
            side=EntrySide.CREDIT,
            transaction_type__in=PAYABLE_TRANSACTION_TYPES,
            created_at__lte=cutoff,
        )
        if owner_id is not None:
            queryset = queryset.filter(account__owner_id=owner_id)

        return (
            queryset.filter(Q(booking_id__isnull=True) | Exists(completed_booking))
            .exclude(Exists(active_item))
            .exclude(DisputeFreezeService.entry_frozen_subquery())
            .order_by("created_at", "batch_id", "sequence")
        )

    def compute_eligible(
        self, owner_id: uuid.UUID, currency: str = "usd"
    ) -> EligibleCredits:
        """Sum and ids of the owner's eligible credits."""
        rows = list(
            self.eligible_entries(currency, owner_id=owner_id).values_list(
                "id", "amount_cents"
            )
        )
        return EligibleCredits(
            owner_id=owner_id,
            currency=currency,
            amount_cents=sum(amount for _, amount in rows),
            entry_ids=[entry_id for entry_id, _ in rows],
        )

    def owners_with_eligible_credits(self, currency: str = "usd") -> list[uuid.UUID]:
        return list(
            self.eligible_entries(currency)
            .order_by()
            .values_list("account__owner_id", flat=True)
            .distinct()
        )

    # ------------------------------------------------------------------
    # Lifecycle
    # ------------------------------------------------------------------

    def request_payout(self, owner_id: uuid.UUID, currency: str = "usd") -> Payout:
        """
        Create a REQUESTED payout covering exactly the eligible credits.

        The owner's account row is locked for the duration, so two
        concurrent requests for the same owner cannot claim the same
        entries.

        Raises:
            NothingToPay: If nothing is eligible or the total is below
                the minimum payout
        """
        with transaction.atomic():
            account = self.ledger.user_account(owner_id, currency)
            LedgerAccount.objects.select_for_update().filter(id=account.id).first()

            eligible = self.compute_eligible(owner_id, currency)
            if eligible.amount_cents == 0 or eligible.amount_cents < self.minimum_cents:
                raise NothingToPay(
                    f"Nothing to pay out for owner {owner_id}",
                    details={
                        "owner_id": str(owner_id),
                        "currency": currency,
                        "eligible_cents": eligible.amount_cents,
                        "minimum_cents": self.minimum_cents,
                    },
                )

            amounts = dict(
                LedgerEntry.objects.filter(id__in=eligible.entry_ids).values_list(
                    "id", "amount_cents"
                )
            )
            try:
                with transaction.atomic():
                    payout = Payout.objects.create(
                        owner_id=owner_id,
                        amount_cents=eligible.amount_cents,
                        currency=currency,
                    )
                    PayoutItem.objects.bulk_create(
                        [
                            PayoutItem(
                                payout=payout,
                                ledger_entry_id=entry_id,
                                amount_cents=amounts[entry_id],
                            )
                            for entry_id in eligible.entry_ids
                        ]
                    )
            except IntegrityError:
                raise NothingToPay(
                    "Eligible credits were claimed by a concurrent payout",
                    details={"owner_id": str(owner_id), "currency": currency},
                )

        self.get_logger().info(
            "Payout requested",
            extra={
                "payout_id": str(payout.id),
                "owner_id": str(owner_id),
                "amount_cents": payout.amount_cents,
                "entry_count": len(eligible.entry_ids),
            },
        )
        return payout

    def mark_paid(
        self,
        payout_id: uuid.UUID,
        expected_version: int | None = None,
    ) -> Payout:
        """
        Record the processor's confirmation and move the money out.

        Idempotent: a PAID payout is returned unchanged.

        Raises:
            PayoutNotFound: If the payout doesn't exist
            StaleRecordError: If expected_version is stale
            InvalidStateTransitionError: If the payout already FAILED
        """
        with transaction.atomic():
            payout = self._lock_payout(payout_id, expected_version)
            if payout.status == PayoutStatus.PAID:
                return payout
            if payout.status != PayoutStatus.REQUESTED:
                raise InvalidStateTransitionError(
                    f"Cannot mark payout in state '{payout.status}' as paid",
                    details={"payout_id": str(payout.id), "status": payout.status},
                )

            now = self.clock.now()
            payout.complete(at=now)
            payout.save()

            owner = self.ledger.user_account(payout.owner_id, payout.currency)
            processor = self.ledger.system_account(
                AccountType.EXTERNAL_PROCESSOR, payout.currency
            )
            self.ledger.append(
                [
                    EntryLine(
                        owner.id,
                        EntrySide.DEBIT,
                        payout.amount_cents,
                        TransactionType.PAYOUT,
                        description="Payout to owner",
                        metadata={"payout_id": str(payout.id)},
                    ),
                    EntryLine(
                        processor.id,
                        EntrySide.CREDIT,
                        payout.amount_cents,
                        TransactionType.PAYOUT,
                        description="Payout to owner",
                        metadata={"payout_id": str(payout.id)},
                    ),
                ],
                batch_key=f"payout:{payout.id}:paid",
                created_by=CREATED_BY,
                created_at=now,
            )

        self.get_logger().info(
            "Payout paid",
            extra={"payout_id": str(payout.id), "amount_cents": payout.amount_cents},
        )
        return payout

    def mark_failed(
        self,
        payout_id: uuid.UUID,
        reason: str | None = None,
        expected_version: int | None = None,
    ) -> Payout:
        """
        Record a processor failure; the covered entries become eligible again.

        Idempotent: a FAILED payout is returned unchanged.

        Raises:
            PayoutNotFound: If the payout doesn't exist
            StaleRecordError: If expected_version is stale
            InvalidStateTransitionError: If the payout was already PAID
        """
        with transaction.atomic():
            payout = self._lock_payout(payout_id, expected_version)
            if payout.status == PayoutStatus.FAILED:
                return payout
            if payout.status != PayoutStatus.REQUESTED:
                raise InvalidStateTransitionError(
                    f"Cannot mark payout in state '{payout.status}' as failed",
                    details={"payout_id": str(payout.id), "status": payout.status},
                )

            now = self.clock.now()
            payout.fail(at=now, reason=reason)
            payout.save()
            payout.items.filter(is_active=True).update(is_active=False, updated_at=now)

        self.get_logger().warning(
            "Payout failed",
            extra={"payout_id": str(payout.id), "reason": reason},
        )
        return payout

    @staticmethod
    def get_payout(payout_id: uuid.UUID) -> Payout:
        try:
            return Payout.objects.get(id=payout_id)
        except Payout.DoesNotExist:
            raise PayoutNotFound(
                f"Payout {payout_id} not found",
                details={"payout_id": str(payout_id)},
            )

    # ------------------------------------------------------------------
    # Internals
    # ------------------------------------------------------------------

    def _lock_payout(self, payout_id: uuid.UUID, expected_version: int | None) -> Payout:
        if expected_version is not None:
            self.get_payout(payout_id)
            locked = check_version(Payout, payout_id, expected_version)
            # Re-fetch: the FSM status field is protected against refresh
            return Payout.objects.get(id=locked.id)

        payout = Payout.objects.select_for_update().filter(id=payout_id).first()
        if payout is None:
            raise PayoutNotFound(
                f"Payout {payout_id} not found",
                details={"payout_id": str(payout_id)},
            )
        return payout
