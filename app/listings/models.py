"""
Listing model: the item or property a renter books.

Usage:
    from listings.models import BookingMode, Listing, ListingStatus

    listing = Listing.objects.create(
        owner_id=owner_id,
        title="Canoe, 2 seats",
        status=ListingStatus.ACTIVE,
        booking_mode=BookingMode.INSTANT,
        daily_price_cents=6000,
    )
"""

from __future__ import annotations

from decimal import ROUND_HALF_UP, Decimal

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.db.models import Q

from core.model_mixins import UUIDPrimaryKeyMixin
from core.models import BaseModel


class ListingStatus(models.TextChoices):
    """
    Publication status of a listing.

    Only ACTIVE listings accept new bookings. Existing bookings are not
    affected when a listing is paused or archived.
    """

    DRAFT = "draft", "Draft"
    ACTIVE = "active", "Active"
    PAUSED = "paused", "Paused"
    ARCHIVED = "archived", "Archived"


class BookingMode(models.TextChoices):
    """
    How new bookings enter the state machine.

    Values:
        REQUEST: Owner must approve (PENDING_OWNER_APPROVAL)
        INSTANT: Straight to payment (PENDING_PAYMENT)
    """

    REQUEST = "request", "Request to Book"
    INSTANT = "instant", "Instant Book"


class DepositType(models.TextChoices):
    """How the security deposit is derived from deposit_value."""

    NONE = "none", "No Deposit"
    FIXED = "fixed", "Fixed Amount"
    PERCENTAGE = "percentage", "Percentage of Rental"


class Listing(UUIDPrimaryKeyMixin, BaseModel):
    """
    A rentable item or property.

    Fields:
        owner_id: UUID of the owning user
        title: Display title
        status: Publication status
        booking_mode: REQUEST or INSTANT
        daily_price_cents: Price per night in cents
        deposit_type: NONE, FIXED or PERCENTAGE
        deposit_value: Cents for FIXED, whole percent for PERCENTAGE
        currency: ISO 4217 currency code (lowercase)
        max_guests: Upper bound for a booking's guest count
    """

    owner_id = models.UUIDField(
        db_index=True,
        help_text="UUID of the user who owns this listing",
    )
    title = models.CharField(max_length=200)
    status = models.CharField(
        max_length=20,
        choices=ListingStatus.choices,
        default=ListingStatus.DRAFT,
        db_index=True,
    )
    booking_mode = models.CharField(
        max_length=20,
        choices=BookingMode.choices,
        default=BookingMode.REQUEST,
    )
    daily_price_cents = models.PositiveBigIntegerField(
        help_text="Price per night in smallest currency unit",
    )
    deposit_type = models.CharField(
        max_length=20,
        choices=DepositType.choices,
        default=DepositType.NONE,
    )
    deposit_value = models.PositiveBigIntegerField(
        default=0,
        help_text="Cents for a fixed deposit, whole percent for a percentage deposit",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code (lowercase)",
    )
    max_guests = models.PositiveSmallIntegerField(
        default=1,
        validators=[MinValueValidator(1), MaxValueValidator(100)],
    )

    class Meta:
        ordering = ["-created_at"]
        constraints = [
            models.CheckConstraint(
                condition=Q(daily_price_cents__gt=0),
                name="listing_daily_price_positive",
            ),
            models.CheckConstraint(
                condition=~Q(deposit_type=DepositType.PERCENTAGE)
                | Q(deposit_value__lte=100),
                name="listing_deposit_percentage_max_100",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.title} ({self.status})"

    @property
    def is_bookable(self) -> bool:
        return self.status == ListingStatus.ACTIVE

    def deposit_for(self, base_price_cents: int) -> int:
        """Security deposit in cents for a rental with the given base price."""
        if self.deposit_type == DepositType.FIXED:
            return self.deposit_value
        if self.deposit_type == DepositType.PERCENTAGE:
            amount = Decimal(base_price_cents) * Decimal(self.deposit_value) / 100
            return int(amount.quantize(Decimal("1"), rounding=ROUND_HALF_UP))
        return 0
