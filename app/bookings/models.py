"""
Booking models: the booking itself and its audit trail.

Booking status is a protected FSMField. It changes only through
Booking.apply_transition(), which BookingService calls with a rule from
bookings.state_machine.TRANSITIONS; direct assignment raises.

Usage:
    from bookings.models import Booking
    from bookings.states import BookingStatus

    upcoming = Booking.objects.filter(
        listing_id=listing_id,
        status=BookingStatus.CONFIRMED,
    )

    for row in booking.state_history.all():
        print(row.from_status, "->", row.to_status, row.trigger)
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from django_fsm import RETURN_VALUE, FSMField, TransitionNotAllowed, transition

from core.exceptions import ValidationError
from core.model_mixins import UUIDPrimaryKeyMixin, VersionedModelMixin
from core.models import BaseModel

from bookings.states import PENDING_STATUSES, ActorRole, BookingStatus, Trigger

if TYPE_CHECKING:
    from bookings.state_machine import TransitionRule

MONEY_FIELDS = (
    "base_price_cents",
    "platform_fee_cents",
    "service_fee_cents",
    "deposit_cents",
    "total_cents",
    "currency",
)


class Booking(UUIDPrimaryKeyMixin, VersionedModelMixin, BaseModel):
    """
    A renter's reservation of a listing for a date range.

    State Flow:
        See bookings.states for the diagram and
        bookings.state_machine.TRANSITIONS for the rules.

    Fields:
        listing: Booked listing (owner is derived through it)
        renter_id: UUID of the renter
        start_date / end_date: Requested half-open range [start, end)
        actual_start_at / actual_end_at: When the rental physically began/ended
        guest_count: Number of guests
        base_price_cents: Nights x daily price, less duration discount
        platform_fee_cents: Platform's cut, taken from the owner's share
        service_fee_cents: Renter-side service fee
        deposit_cents: Security deposit, held separately from the total
        total_cents: base + platform fee + service fee
        currency: ISO 4217 currency code
        status: Current FSM state
        paid_at: When the payment callback confirmed the booking
        cancelled_at: When the booking was cancelled or expired
        payment_attempts: Number of payment callbacks received
        last_payment_error: Reason from the latest PAYMENT_FAILED callback
        idempotency_key: Optional client key making creation retry-safe
        version: Optimistic locking version

    Constraints:
        - start_date < end_date
        - total_cents == base_price_cents + platform_fee_cents + service_fee_cents
        - Monetary fields are frozen once status leaves PENDING_*
    """

    listing = models.ForeignKey(
        "listings.Listing",
        on_delete=models.PROTECT,
        related_name="bookings",
    )
    renter_id = models.UUIDField(
        db_index=True,
        help_text="UUID of the renting user",
    )

    start_date = models.DateField()
    end_date = models.DateField(help_text="Exclusive: the checkout day")
    actual_start_at = models.DateTimeField(null=True, blank=True)
    actual_end_at = models.DateTimeField(null=True, blank=True)

    guest_count = models.PositiveSmallIntegerField(default=1)

    base_price_cents = models.PositiveBigIntegerField()
    platform_fee_cents = models.PositiveBigIntegerField(default=0)
    service_fee_cents = models.PositiveBigIntegerField(default=0)
    deposit_cents = models.PositiveBigIntegerField(
        default=0,
        help_text="Security deposit; not part of total_cents",
    )
    total_cents = models.PositiveBigIntegerField()
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )

    status = FSMField(
        default=BookingStatus.PENDING_OWNER_APPROVAL,
        choices=BookingStatus.choices,
        db_index=True,
        protected=True,
        help_text="Current state of the booking (managed by FSM)",
    )

    paid_at = models.DateTimeField(null=True, blank=True)
    cancelled_at = models.DateTimeField(null=True, blank=True)
    payment_attempts = models.PositiveSmallIntegerField(default=0)
    last_payment_error = models.TextField(blank=True, default="")

    idempotency_key = models.CharField(
        max_length=255,
        unique=True,
        null=True,
        blank=True,
        help_text="Client-supplied key; repeating it returns the same booking",
    )

    class Meta:
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["listing", "status"], name="bookings_bo_listing_4c1f0a_idx"),
            models.Index(
                fields=["listing", "start_date", "end_date"],
                name="bookings_bo_listing_9b2e7d_idx",
            ),
            models.Index(fields=["status", "created_at"], name="bookings_bo_status_5d8a3c_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(start_date__lt=F("end_date")),
                name="booking_start_before_end",
            ),
            models.CheckConstraint(
                condition=Q(
                    total_cents=F("base_price_cents")
                    + F("platform_fee_cents")
                    + F("service_fee_cents")
                ),
                name="booking_total_matches_components",
            ),
            models.CheckConstraint(
                condition=Q(guest_count__gte=1),
                name="booking_guest_count_positive",
            ),
        ]

    def __str__(self) -> str:
        return f"Booking({self.id}, {self.status}, {self.start_date}..{self.end_date})"

    @classmethod
    def from_db(cls, db, field_names, values):
        instance = super().from_db(db, field_names, values)
        instance._snapshot_money()
        return instance

    def _snapshot_money(self) -> None:
        self._persisted_status = self.__dict__.get("status")
        self._persisted_money = {
            name: self.__dict__[name] for name in MONEY_FIELDS if name in self.__dict__
        }

    def save(self, *args, **kwargs):
        """
        Save, refusing to change monetary fields of a non-pending booking.

        Raises:
            ValidationError: If a monetary field differs from its stored
                value while the stored status is past PENDING_*
        """
        persisted_status = getattr(self, "_persisted_status", None)
        if (
            not self._state.adding
            and persisted_status is not None
            and persisted_status not in PENDING_STATUSES
        ):
            changed = [
                name
                for name, value in self._persisted_money.items()
                if getattr(self, name) != value
            ]
            if changed:
                raise ValidationError(
                    "Booking amounts are frozen once the booking leaves pending states",
                    error_code="BOOKING_AMOUNTS_FROZEN",
                    details={"booking_id": str(self.id), "fields": changed},
                )
        super().save(*args, **kwargs)
        self._snapshot_money()

    # ==========================================================================
    # State Transitions (django-fsm)
    # ==========================================================================

    @transition(
        field=status,
        source="*",
        target=RETURN_VALUE(*BookingStatus.values),
    )
    def apply_transition(self, rule: TransitionRule) -> str:
        """
        Move to the rule's target state.

        Every booking transition goes through here, so the transition
        table stays the single source of allowed moves.

        Raises:
            TransitionNotAllowed: If the current status is not a source of
                the rule
        """
        if self.status not in rule.sources:
            raise TransitionNotAllowed(
                f"Can't {rule.trigger} from state '{self.status}'",
                object=self,
                method=self.apply_transition,
            )
        return rule.target

    # ==========================================================================
    # Properties
    # ==========================================================================

    @property
    def owner_id(self):
        return self.listing.owner_id

    @property
    def nights(self) -> int:
        return (self.end_date - self.start_date).days

    @property
    def is_pending(self) -> bool:
        return self.status in PENDING_STATUSES

    @property
    def is_paid(self) -> bool:
        return self.paid_at is not None


class BookingStateHistory(models.Model):
    """
    One applied transition of a booking (creation included).

    Rows are written in the same transaction as the status change and
    never updated. Auto-increment ids give insertion order.
    """

    booking = models.ForeignKey(
        Booking,
        on_delete=models.PROTECT,
        related_name="state_history",
    )
    from_status = models.CharField(
        max_length=32,
        choices=BookingStatus.choices,
        null=True,
        blank=True,
        help_text="Null for the creation row",
    )
    to_status = models.CharField(max_length=32, choices=BookingStatus.choices)
    trigger = models.CharField(max_length=32, choices=Trigger.choices)
    actor_id = models.UUIDField(null=True, blank=True)
    actor_role = models.CharField(max_length=10, choices=ActorRole.choices)
    metadata = models.JSONField(default=dict, blank=True)
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    class Meta:
        ordering = ["id"]
        verbose_name_plural = "booking state history"

    def __str__(self) -> str:
        return f"{self.booking_id}: {self.from_status} -> {self.to_status} ({self.trigger})"
