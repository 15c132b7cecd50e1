"""
Ledger models for double-entry bookkeeping.

This module defines the core models for the marketplace ledger:
- LedgerAccount: A balance holder (a user, platform revenue, deposit escrow,
  the outside world)
- LedgerEntry: One signed monetary fact against one account

Entries are written in balanced batches: within a batch the DEBIT amounts
sum to the CREDIT amounts. Entries are append-only; corrections are new
batches (a refund reverses a payment, it never edits it).

Usage:
    from payments.ledger.models import AccountType, LedgerAccount, LedgerEntry

    owner_account = LedgerAccount.objects.get(
        type=AccountType.USER_BALANCE, owner_id=owner_id, currency="usd"
    )
    balance = owner_account.get_balance()  # credits - debits, in cents
"""

from __future__ import annotations

from django.db import models
from django.db.models import Case, Q, Sum, Value, When
from django.db.models.functions import Coalesce
from django.utils import timezone

from core.model_mixins import UUIDPrimaryKeyMixin


class AccountType(models.TextChoices):
    """
    Types of ledger accounts.

    Values:
        USER_BALANCE: A marketplace user's balance (renter or owner, by owner_id)
        PLATFORM_REVENUE: Platform's earned fees
        DEPOSIT_ESCROW: Security deposits held for in-progress rentals
        EXTERNAL_PROCESSOR: Money in/out of the payment processor
    """

    USER_BALANCE = "user_balance", "User Balance"
    PLATFORM_REVENUE = "platform_revenue", "Platform Revenue"
    DEPOSIT_ESCROW = "deposit_escrow", "Deposit Escrow"
    EXTERNAL_PROCESSOR = "external_processor", "External Processor"


class EntrySide(models.TextChoices):
    """Side of a ledger entry. The amount is always positive."""

    DEBIT = "debit", "Debit"
    CREDIT = "credit", "Credit"


class TransactionType(models.TextChoices):
    """
    Financial event an entry belongs to.

    Values:
        PAYMENT: Renter charged for a booking
        EARNINGS: Owner's share of a booking payment
        REFUND: Money returned to the renter on cancellation
        DEPOSIT_HOLD: Security deposit moved into escrow
        DEPOSIT_RELEASE: Security deposit returned to the renter
        DEPOSIT_CAPTURE: Security deposit kept for a damage claim
        PLATFORM_FEE: Platform's share of a booking payment
        PAYOUT: Owner balance paid out of the platform
    """

    PAYMENT = "payment", "Payment"
    EARNINGS = "earnings", "Earnings"
    REFUND = "refund", "Refund"
    DEPOSIT_HOLD = "deposit_hold", "Deposit Hold"
    DEPOSIT_RELEASE = "deposit_release", "Deposit Release"
    DEPOSIT_CAPTURE = "deposit_capture", "Deposit Capture"
    PLATFORM_FEE = "platform_fee", "Platform Fee"
    PAYOUT = "payout", "Payout"


class LedgerAccount(UUIDPrimaryKeyMixin, models.Model):
    """
    A ledger account that holds monetary value.

    Balance is computed from entries (credits minus debits); there is
    no stored balance column to drift out of sync.

    Fields:
        type: Account category
        owner_id: UUID of the user owning a USER_BALANCE account
        currency: ISO 4217 currency code (lowercase)
        allow_negative: Informational; renter balances and the external
            processor account go negative by design of the flows
        is_active: Inactive accounts reject new entries
        created_at: Timestamp when account was created

    Constraints:
        - Unique combination of (type, owner_id, currency)
    """

    type = models.CharField(
        max_length=50,
        choices=AccountType.choices,
        help_text="Category of this account",
    )
    owner_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="UUID of the user that owns this account",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code",
    )
    allow_negative = models.BooleanField(
        default=False,
        help_text="Whether this account is expected to carry a negative balance",
    )
    is_active = models.BooleanField(
        default=True,
        db_index=True,
        help_text="Whether this account accepts new entries",
    )
    created_at = models.DateTimeField(
        auto_now_add=True,
        db_index=True,
        help_text="Timestamp when this account was created",
    )

    class Meta:
        constraints = [
            models.UniqueConstraint(
                fields=["type", "owner_id", "currency"],
                name="unique_account_per_owner",
            ),
            # NULL owner_id never collides in a plain unique constraint
            models.UniqueConstraint(
                fields=["type", "currency"],
                condition=Q(owner_id__isnull=True),
                name="unique_platform_account_per_currency",
            ),
        ]
        indexes = [
            models.Index(fields=["type", "currency"], name="payments_le_type_3a1b2c_idx"),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        if self.owner_id:
            return f"{self.get_type_display()} ({self.owner_id})"
        return self.get_type_display()

    def get_balance(self) -> int:
        """
        Compute current balance from entries.

        Returns:
            Credits minus debits, in cents
        """
        result = self.entries.aggregate(
            credits=Coalesce(
                Sum(
                    Case(
                        When(side=EntrySide.CREDIT, then="amount_cents"),
                        default=Value(0),
                        output_field=models.BigIntegerField(),
                    )
                ),
                Value(0),
                output_field=models.BigIntegerField(),
            ),
            debits=Coalesce(
                Sum(
                    Case(
                        When(side=EntrySide.DEBIT, then="amount_cents"),
                        default=Value(0),
                        output_field=models.BigIntegerField(),
                    )
                ),
                Value(0),
                output_field=models.BigIntegerField(),
            ),
        )
        return result["credits"] - result["debits"]


class LedgerBatch(models.Model):
    """
    One balanced batch, as appended.

    The auto-increment id records the order batches were written in,
    which created_at alone can't (two batches may share a timestamp).

    Fields:
        key: Idempotency key of the batch (unique)
        created_by: Identifier of service/user that appended the batch
        created_at: Posting time shared by the batch's entries
    """

    id = models.BigAutoField(primary_key=True)
    key = models.CharField(
        max_length=255,
        unique=True,
        help_text="Idempotency key of this batch",
    )
    created_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Identifier of service/user that appended this batch",
    )
    created_at = models.DateTimeField(
        default=timezone.now,
        help_text="Posting time of this batch",
    )

    class Meta:
        ordering = ["id"]
        verbose_name_plural = "ledger batches"

    def __str__(self) -> str:
        return f"#{self.id} {self.key}"


class LedgerEntry(UUIDPrimaryKeyMixin, models.Model):
    """
    One debit or credit against one account.

    Entries are immutable once created. They are written only by
    LedgerService.append(), which rejects unbalanced batches before
    any row is persisted.

    Fields:
        account: Account the amount is posted to
        account_type: Copy of account.type, for filtering without a join
        side: DEBIT or CREDIT
        transaction_type: Financial event this entry belongs to
        booking_id: Booking the event belongs to (null for platform-level)
        amount_cents: Amount in cents (always positive)
        currency: ISO 4217 currency code
        description: Human-readable description
        metadata: Arbitrary JSON data
        created_by: Identifier of service/user that created this
        batch: Batch this entry was appended in; orders history
        batch_key: Idempotency key shared by every entry of one batch
        sequence: Position of the entry within its batch
        created_at: Timestamp when entry was recorded

    Constraints:
        - amount_cents must be positive
        - (batch_key, sequence) is unique
    """

    account = models.ForeignKey(
        LedgerAccount,
        on_delete=models.PROTECT,
        related_name="entries",
        help_text="Account this entry is posted to",
    )
    account_type = models.CharField(
        max_length=50,
        choices=AccountType.choices,
        help_text="Type of the account at posting time",
    )
    side = models.CharField(
        max_length=6,
        choices=EntrySide.choices,
        help_text="Debit or credit",
    )
    transaction_type = models.CharField(
        max_length=50,
        choices=TransactionType.choices,
        help_text="Financial event this entry belongs to",
    )
    booking_id = models.UUIDField(
        null=True,
        blank=True,
        db_index=True,
        help_text="Booking this entry belongs to",
    )
    amount_cents = models.PositiveBigIntegerField(
        help_text="Amount in cents (always positive)",
    )
    currency = models.CharField(
        max_length=3,
        default="usd",
        help_text="ISO 4217 currency code",
    )

    description = models.TextField(
        blank=True,
        default="",
        help_text="Human-readable description of this entry",
    )
    metadata = models.JSONField(
        default=dict,
        blank=True,
        help_text="Arbitrary JSON data for extensibility",
    )
    created_by = models.CharField(
        max_length=255,
        null=True,
        blank=True,
        help_text="Identifier of service/user that created this entry",
    )

    batch = models.ForeignKey(
        LedgerBatch,
        on_delete=models.PROTECT,
        related_name="entries",
        help_text="Batch this entry was appended in",
    )
    batch_key = models.CharField(
        max_length=255,
        db_index=True,
        help_text="Idempotency key of the batch this entry was appended in",
    )
    sequence = models.PositiveSmallIntegerField(
        help_text="Position of this entry within its batch",
    )
    created_at = models.DateTimeField(
        default=timezone.now,
        db_index=True,
        help_text="Timestamp when this entry was recorded",
    )

    class Meta:
        ordering = ["batch_id", "sequence"]
        verbose_name_plural = "ledger entries"
        indexes = [
            models.Index(
                fields=["booking_id", "created_at"],
                name="payments_le_booking_7e4d1a_idx",
            ),
            models.Index(fields=["account", "side"], name="payments_le_account_2f9c6b_idx"),
            models.Index(
                fields=["transaction_type"],
                name="payments_le_transac_8d3e5f_idx",
            ),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(amount_cents__gt=0),
                name="ledger_entry_amount_cents_positive",
            ),
            models.UniqueConstraint(
                fields=["batch_key", "sequence"],
                name="unique_ledger_entry_batch_position",
            ),
        ]

    def __str__(self) -> str:
        """Return string representation."""
        return (
            f"{self.get_side_display()} {self.get_transaction_type_display()}: "
            f"{self.amount_cents} cents"
        )

    def save(self, *args, **kwargs):
        """Allow inserts only; entries are never updated."""
        if not self._state.adding:
            raise ValueError("Ledger entries are append-only")
        super().save(*args, **kwargs)

    def delete(self, *args, **kwargs):
        raise ValueError("Ledger entries are append-only")
