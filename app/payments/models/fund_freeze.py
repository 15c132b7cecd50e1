"""
FundFreeze model: the dispute system's hold on money.

While a dispute is open, the dispute collaborator freezes a booking,
a single ledger entry, or a deposit hold. Frozen entries are skipped by
payout eligibility; frozen holds cannot be released or captured.
Lifting a freeze stamps lifted_at; rows are kept for audit.
"""

from __future__ import annotations

from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class FreezeScope(models.TextChoices):
    """What a freeze applies to."""

    BOOKING = "booking", "Booking"
    ENTRY = "entry", "Ledger Entry"
    HOLD = "hold", "Deposit Hold"


class ActiveFreezeQuerySet(models.QuerySet):
    def active(self):
        return self.filter(lifted_at__isnull=True)


class FundFreeze(UUIDPrimaryKeyMixin, BaseModel):
    """
    A dispute freeze on booking money.

    Fields:
        scope: BOOKING (all entries and holds of the booking), ENTRY, or HOLD
        booking_id: Booking the frozen money belongs to
        ledger_entry: Frozen entry (ENTRY scope)
        deposit_hold: Frozen hold (HOLD scope)
        reason: Free text from the dispute system
        created_by: Identifier of the caller that froze the money
        lifted_at: Set when the dispute is resolved
    """

    scope = models.CharField(max_length=10, choices=FreezeScope.choices)
    booking_id = models.UUIDField(db_index=True)
    ledger_entry = models.ForeignKey(
        "payments.LedgerEntry",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="freezes",
    )
    deposit_hold = models.ForeignKey(
        "payments.DepositHold",
        on_delete=models.PROTECT,
        null=True,
        blank=True,
        related_name="freezes",
    )
    reason = models.TextField(blank=True, default="")
    created_by = models.CharField(max_length=255, null=True, blank=True)
    lifted_at = models.DateTimeField(null=True, blank=True, db_index=True)

    objects = ActiveFreezeQuerySet.as_manager()

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=(
                    Q(
                        scope=FreezeScope.BOOKING,
                        ledger_entry__isnull=True,
                        deposit_hold__isnull=True,
                    )
                    | Q(
                        scope=FreezeScope.ENTRY,
                        ledger_entry__isnull=False,
                        deposit_hold__isnull=True,
                    )
                    | Q(
                        scope=FreezeScope.HOLD,
                        ledger_entry__isnull=True,
                        deposit_hold__isnull=False,
                    )
                ),
                name="fund_freeze_target_matches_scope",
            ),
        ]

    def __str__(self) -> str:
        state = "lifted" if self.lifted_at else "active"
        return f"FundFreeze({self.scope}, {self.booking_id}, {state})"

    @property
    def is_active(self) -> bool:
        return self.lifted_at is None
