"""
DepositHold model for security deposits reserved during a rental.

A hold is placed when the owner starts the rental and settled when the
return is approved: released back to the renter, or captured (fully or
partially) for a damage claim.

Usage:
    from payments.models import DepositHold

    hold = DepositHold.objects.create(
        booking=booking,
        amount_cents=5000,
        currency="usd",
        held_at=now,
    )

    hold.release(at=now)
    hold.save()
"""

from __future__ import annotations

from django.db import models
from django.db.models import F, Q

from django_fsm import FSMField, transition

from core.model_mixins import UUIDPrimaryKeyMixin, VersionedModelMixin
from core.models import BaseModel

from payments.state_machines import DepositHoldStatus


class DepositHold(UUIDPrimaryKeyMixin, VersionedModelMixin, BaseModel):
    """
    Security deposit reserved for one booking.

    State Flow:
        HELD -> RELEASED
        HELD -> CAPTURED

    Fields:
        booking: Booking the deposit secures
        amount_cents: Amount reserved
        currency: ISO 4217 currency code
        status: Current FSM state
        captured_amount_cents: Amount kept for a damage claim (CAPTURED only)
        held_at / released_at / captured_at: Transition times (injected clock)
        version: Optimistic locking version

    Constraints:
        - At most one HELD hold per booking
        - 0 < captured_amount_cents <= amount_cents when set
    """

    booking = models.ForeignKey(
        "bookings.Booking",
        on_delete=models.PROTECT,
        related_name="deposit_holds",
        help_text="Booking this deposit secures",
    )

    amount_cents = models.PositiveBigIntegerField(
        help_text="Deposit amount in smallest currency unit",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    status = FSMField(
        default=DepositHoldStatus.HELD,
        choices=DepositHoldStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the hold (managed by FSM)",
    )

    captured_amount_cents = models.PositiveBigIntegerField(
        null=True,
        blank=True,
        help_text="Amount captured for a damage claim",
    )

    held_at = models.DateTimeField(help_text="When the deposit was reserved")
    released_at = models.DateTimeField(null=True, blank=True)
    captured_at = models.DateTimeField(null=True, blank=True)

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.UniqueConstraint(
                fields=["booking"],
                condition=Q(status=DepositHoldStatus.HELD),
                name="unique_held_deposit_per_booking",
            ),
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="deposit_hold_amount_positive",
            ),
            models.CheckConstraint(
                condition=Q(captured_amount_cents__isnull=True)
                | Q(
                    captured_amount_cents__gt=0,
                    captured_amount_cents__lte=F("amount_cents"),
                ),
                name="deposit_hold_capture_within_amount",
            ),
        ]

    def __str__(self) -> str:
        amount_display = f"{self.amount_cents / 100:.2f} {self.currency.upper()}"
        return f"DepositHold({self.id}, {self.status}, {amount_display})"

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source=DepositHoldStatus.HELD,
        target=DepositHoldStatus.RELEASED,
    )
    def release(self, at):
        """
        Return the full deposit to the renter.

        Transition: HELD -> RELEASED
        """
        self.released_at = at

    @transition(
        field=status,
        source=DepositHoldStatus.HELD,
        target=DepositHoldStatus.CAPTURED,
    )
    def capture(self, amount_cents: int, at):
        """
        Keep part or all of the deposit for a damage claim.

        Transition: HELD -> CAPTURED

        The caller validates the amount; the remainder is released in
        the same ledger batch.
        """
        self.captured_amount_cents = amount_cents
        self.captured_at = at

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def is_held(self) -> bool:
        return self.status == DepositHoldStatus.HELD

    @property
    def remainder_cents(self) -> int:
        """Amount returned to the renter once the hold is settled."""
        if self.status == DepositHoldStatus.CAPTURED:
            return self.amount_cents - (self.captured_amount_cents or 0)
        if self.status == DepositHoldStatus.RELEASED:
            return self.amount_cents
        return 0
