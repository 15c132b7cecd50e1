"""
Data types for ledger operations.

Types:
    Money: A monetary amount in cents with currency
    EntryLine: One line of a batch passed to LedgerService.append()

Usage:
    from payments.ledger.types import EntryLine, Money

    lines = [
        EntryLine(
            account_id=renter_account.id,
            side=EntrySide.DEBIT,
            amount_cents=33000,
            transaction_type=TransactionType.PAYMENT,
            booking_id=booking.id,
        ),
        ...
    ]
"""

from __future__ import annotations

import uuid
from dataclasses import dataclass, field
from typing import Any


@dataclass(frozen=True)
class Money:
    """
    Represents a monetary amount.

    All amounts are stored in cents (smallest currency unit) to avoid
    floating-point precision issues.

    Example:
        amount = Money(cents=5000, currency="usd")
        print(amount)  # "$50.00 USD"
    """

    cents: int
    currency: str = "usd"

    def __str__(self) -> str:
        """Format as currency string (e.g., '$50.00 USD')."""
        dollars = self.cents / 100
        return f"${dollars:.2f} {self.currency.upper()}"

    def __add__(self, other: Money) -> Money:
        """Add two Money objects (must have same currency)."""
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot add Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return Money(cents=self.cents + other.cents, currency=self.currency)

    def __sub__(self, other: Money) -> Money:
        """Subtract two Money objects (must have same currency)."""
        if not isinstance(other, Money):
            return NotImplemented
        if self.currency != other.currency:
            raise ValueError(
                f"Cannot subtract Money with different currencies: "
                f"{self.currency} and {other.currency}"
            )
        return Money(cents=self.cents - other.cents, currency=self.currency)


@dataclass
class EntryLine:
    """
    One debit or credit in a batch.

    Amount validation happens in LedgerService.append() so a bad line
    surfaces as a domain error (InvalidAmount) rather than a ValueError.

    Required Attributes:
        account_id: UUID of the account to post to
        side: EntrySide.DEBIT or EntrySide.CREDIT
        amount_cents: Amount in cents (must be positive)
        transaction_type: TransactionType of the event

    Optional Attributes:
        booking_id: Booking the event belongs to
        description: Human-readable description
        metadata: Arbitrary JSON-serializable data
    """

    account_id: uuid.UUID
    side: str
    amount_cents: int
    transaction_type: str

    booking_id: uuid.UUID | None = None
    description: str = ""
    metadata: dict[str, Any] = field(default_factory=dict)
