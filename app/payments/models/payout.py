"""
Payout models for settling owner earnings.

A Payout bundles an owner's eligible ledger credits into one transfer.
PayoutItem rows link the payout to exactly the entries it settles.

Usage:
    from payments.models import Payout

    payout = aggregator.request_payout(owner_id, "usd")
    payout.covered_entry_ids  # [UUID(...), UUID(...)]

    # After the processor confirms
    aggregator.mark_paid(payout.id)
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedModelMixin
from core.models import BaseModel

from payments.state_machines import PayoutStatus


class Payout(UUIDPrimaryKeyMixin, VersionedModelMixin, BaseModel):
    """
    Represents an owner payout covering a fixed set of ledger credits.

    State Flow:
        REQUESTED -> PAID
        REQUESTED -> FAILED

    Fields:
        owner_id: Owner whose USER_BALANCE credits are paid out
        amount_cents: Sum of the covered entries' amounts
        currency: ISO 4217 currency code
        status: Current FSM state
        paid_at: When the processor confirmed the transfer
        failed_at: When the processor reported failure
        failure_reason: Error details if failed
        version: Optimistic locking version
        metadata: Flexible JSON storage

    Note:
        A FAILED payout keeps its items for audit, but they are
        deactivated so the entries become eligible again.
    """

    owner_id = models.UUIDField(
        db_index=True,
        help_text="Owner receiving the payout",
    )

    amount_cents = models.PositiveBigIntegerField(
        help_text="Payout amount in smallest currency unit (e.g., cents)",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    status = FSMField(
        default=PayoutStatus.REQUESTED,
        choices=PayoutStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the payout (managed by FSM)",
    )

    paid_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When payout was completed",
    )
    failed_at = models.DateTimeField(
        null=True,
        blank=True,
        help_text="When payout failed",
    )
    failure_reason = models.TextField(
        null=True,
        blank=True,
        help_text="Detailed reason if payout failed",
    )

    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON metadata for extensibility",
    )

    class Meta:
        ordering = ["-created_at"]
        verbose_name = "Payout"
        verbose_name_plural = "Payouts"
        indexes = [
            models.Index(fields=["owner_id", "status"], name="payments_pa_owner_i_6c2a9e_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="payout_amount_positive",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation with ID, status, and amount."""
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"Payout({self.id}, {self.status}, {amount_display})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=PayoutStatus.REQUESTED,
        target=PayoutStatus.PAID,
    )
    def complete(self, at):
        """
        Mark payout as paid.

        Transition: REQUESTED -> PAID
        """
        self.paid_at = at

    @transition(
        field=status,
        source=PayoutStatus.REQUESTED,
        target=PayoutStatus.FAILED,
    )
    def fail(self, at, reason: str | None = None):
        """
        Mark payout as failed.

        Transition: REQUESTED -> FAILED

        Args:
            at: Failure time
            reason: Optional failure reason for debugging
        """
        self.failed_at = at
        if reason:
            self.failure_reason = reason

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def covered_entry_ids(self) -> list:
        """Ledger entry ids settled by this payout, in posting order."""
        return list(
            self.items.order_by(
                "ledger_entry__created_at", "ledger_entry__sequence"
            ).values_list("ledger_entry_id", flat=True)
        )

    @property
    def is_complete(self) -> bool:
        return self.status == PayoutStatus.PAID


class PayoutItem(UUIDPrimaryKeyMixin, BaseModel):
    """
    One ledger credit covered by a payout.

    Constraints:
        - An entry is covered by at most one active item, so the same
          earnings are never paid twice
    """

    payout = models.ForeignKey(
        Payout,
        on_delete=models.PROTECT,
        related_name="items",
    )
    ledger_entry = models.ForeignKey(
        "payments.LedgerEntry",
        on_delete=models.PROTECT,
        related_name="payout_items",
    )
    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount of the covered entry",
    )
    is_active = models.BooleanField(
        default=True,
        help_text="False once the payout failed and the entry is eligible again",
    )

    class Meta:
        ordering = ["created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["ledger_entry"],
                condition=Q(is_active=True),
                name="unique_active_payout_per_entry",
            ),
        ]

    def __str__(self) -> str:
        return f"PayoutItem({self.payout_id} -> {self.ledger_entry_id})"
