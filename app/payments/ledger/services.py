"""
Ledger service layer for financial operations.

This module provides the LedgerService class which encapsulates all
business logic for ledger operations. All ledger writes go through
append(), which accepts only balanced batches.

Usage:
    from payments.ledger.services import ledger
    from payments.ledger.models import EntrySide, TransactionType
    from payments.ledger.types import EntryLine

    renter = ledger.user_account(renter_id, "usd")
    escrow = ledger.system_account(AccountType.DEPOSIT_ESCROW, "usd")

    ledger.append(
        [
            EntryLine(renter.id, EntrySide.DEBIT, 5000, TransactionType.DEPOSIT_HOLD),
            EntryLine(escrow.id, EntrySide.CREDIT, 5000, TransactionType.DEPOSIT_HOLD),
        ],
        batch_key=f"deposit:{hold_id}:hold",
    )

    ledger.balance_of(renter_id, "usd")  # -5000
"""

from __future__ import annotations

import logging
import uuid
from typing import TYPE_CHECKING

from django.db import IntegrityError, transaction
from django.db.models import BigIntegerField, Case, Sum, Value, When
from django.db.models.functions import Coalesce
from django.utils import timezone

from payments.exceptions import InvalidAmount

from .exceptions import AccountNotFound, InactiveAccount, UnbalancedBatch
from .models import AccountType, EntrySide, LedgerAccount, LedgerBatch, LedgerEntry
from .types import EntryLine, Money

if TYPE_CHECKING:
    from datetime import datetime

logger = logging.getLogger(__name__)


class LedgerService:
    """
    Service class for ledger operations.

    Key features:
    - Balanced batches only (sum of debits == sum of credits, one currency)
    - All-or-nothing writes: validation runs before any row is persisted
    - Idempotency via batch_key (safe to retry)
    - Account row locks taken in id order to prevent deadlocks

    All methods are static - no instance state is maintained.
    """

    # ------------------------------------------------------------------
    # Accounts
    # ------------------------------------------------------------------

    @staticmethod
    def get_or_create_account(
        account_type: AccountType | str,
        owner_id: uuid.UUID | None = None,
        currency: str = "usd",
        allow_negative: bool = False,
    ) -> LedgerAccount:
        """
        Get existing account or create new one.

        Looks up an account by (type, owner_id, currency). If not found,
        creates a new account with the specified parameters.
        """
        account, _ = LedgerAccount.objects.get_or_create(
            type=account_type,
            owner_id=owner_id,
            currency=currency,
            defaults={"allow_negative": allow_negative},
        )
        return account

    @staticmethod
    def user_account(owner_id: uuid.UUID, currency: str = "usd") -> LedgerAccount:
        """Balance account of a marketplace user (renter or owner)."""
        return LedgerService.get_or_create_account(
            AccountType.USER_BALANCE,
            owner_id=owner_id,
            currency=currency,
            allow_negative=True,
        )

    @staticmethod
    def system_account(
        account_type: AccountType | str, currency: str = "usd"
    ) -> LedgerAccount:
        """Platform-level account (revenue, deposit escrow, external processor)."""
        return LedgerService.get_or_create_account(
            account_type,
            owner_id=None,
            currency=currency,
            allow_negative=account_type == AccountType.EXTERNAL_PROCESSOR,
        )

    @staticmethod
    def get_account(account_id: uuid.UUID) -> LedgerAccount:
        """
        Get account by ID.

        Raises:
            AccountNotFound: If account doesn't exist
        """
        try:
            return LedgerAccount.objects.get(id=account_id)
        except LedgerAccount.DoesNotExist:
            raise AccountNotFound(
                f"Account {account_id} not found",
                details={"account_id": str(account_id)},
            )

    # ------------------------------------------------------------------
    # Writes
    # ------------------------------------------------------------------

    @staticmethod
    def _validate_lines(lines: list[EntryLine], batch_key: str) -> None:
        """
        Reject a malformed or unbalanced batch before touching the database.

        Raises:
            InvalidAmount: If a line amount is not a positive integer
            UnbalancedBatch: If the batch is empty, has an unknown side,
                or its debits and credits differ
        """
        if not lines:
            raise UnbalancedBatch(
                "Cannot append an empty batch",
                details={"batch_key": batch_key},
            )

        debit_total = 0
        credit_total = 0
        for line in lines:
            if (
                isinstance(line.amount_cents, bool)
                or not isinstance(line.amount_cents, int)
                or line.amount_cents <= 0
            ):
                raise InvalidAmount(
                    "Ledger amounts must be positive integers (cents)",
                    details={"batch_key": batch_key, "amount_cents": line.amount_cents},
                )
            if line.side == EntrySide.DEBIT:
                debit_total += line.amount_cents
            elif line.side == EntrySide.CREDIT:
                credit_total += line.amount_cents
            else:
                raise UnbalancedBatch(
                    f"Unknown entry side {line.side!r}",
                    details={"batch_key": batch_key, "side": line.side},
                )

        if debit_total != credit_total:
            raise UnbalancedBatch(
                f"Batch {batch_key} is unbalanced: "
                f"debits {debit_total} != credits {credit_total}",
                details={
                    "batch_key": batch_key,
                    "debit_cents": debit_total,
                    "credit_cents": credit_total,
                },
            )

    @staticmethod
    def append(
        lines: list[EntryLine],
        batch_key: str,
        created_by: str | None = None,
        created_at: datetime | None = None,
    ) -> list[LedgerEntry]:
        """
        Append a balanced batch of entries atomically.

        Idempotent - if entries with this batch_key already exist they are
        returned unchanged and nothing is written.

        Args:
            lines: Entry lines; debits must equal credits
            batch_key: Deterministic key for this financial event
                (e.g., "booking:<id>:payment")
            created_by: Identifier of the service writing the batch
            created_at: Posting time (defaults to now); services pass
                their injected clock's time

        Returns:
            The entries of the batch, in sequence order

        Raises:
            InvalidAmount: If any amount is not positive
            UnbalancedBatch: If the batch is empty, unbalanced, or spans
                more than one currency
            AccountNotFound: If any account doesn't exist
            InactiveAccount: If any account is inactive
        """
        LedgerService._validate_lines(lines, batch_key)
        posted_at = created_at or timezone.now()

        with transaction.atomic():
            account_ids = {line.account_id for line in lines}

            # Lock accounts in consistent order to prevent deadlocks
            accounts = {
                acc.id: acc
                for acc in LedgerAccount.objects.filter(id__in=account_ids)
                .select_for_update()
                .order_by("id")
            }

            existing = list(
                LedgerEntry.objects.filter(batch_key=batch_key).order_by("sequence")
            )
            if existing:
                logger.info(
                    "Ledger batch already recorded, skipping",
                    extra={"batch_key": batch_key, "entry_count": len(existing)},
                )
                return existing

            for account_id in account_ids:
                if account_id not in accounts:
                    raise AccountNotFound(
                        f"Account {account_id} not found",
                        details={"account_id": str(account_id)},
                    )
                if not accounts[account_id].is_active:
                    raise InactiveAccount(
                        f"Account {account_id} is inactive",
                        details={"account_id": str(account_id)},
                    )

            currencies = {acc.currency for acc in accounts.values()}
            if len(currencies) != 1:
                raise UnbalancedBatch(
                    f"Batch {batch_key} spans several currencies",
                    details={"batch_key": batch_key, "currencies": sorted(currencies)},
                )
            currency = currencies.pop()

            entries = [
                LedgerEntry(
                    account=accounts[line.account_id],
                    account_type=accounts[line.account_id].type,
                    side=line.side,
                    transaction_type=line.transaction_type,
                    booking_id=line.booking_id,
                    amount_cents=line.amount_cents,
                    currency=currency,
                    description=line.description,
                    metadata=line.metadata or {},
                    created_by=created_by,
                    batch_key=batch_key,
                    sequence=sequence,
                    created_at=posted_at,
                )
                for sequence, line in enumerate(lines)
            ]

            try:
                with transaction.atomic():
                    batch = LedgerBatch.objects.create(
                        key=batch_key, created_by=created_by, created_at=posted_at
                    )
                    for entry in entries:
                        entry.batch = batch
                    LedgerEntry.objects.bulk_create(entries)
            except IntegrityError:
                # Another process recorded the same batch between our
                # check and insert; the batch key is unique
                return list(
                    LedgerEntry.objects.filter(batch_key=batch_key).order_by(
                        "sequence"
                    )
                )

        logger.info(
            "Ledger batch appended",
            extra={
                "batch_key": batch_key,
                "entry_count": len(entries),
                "currency": currency,
                "amount_cents": sum(
                    e.amount_cents for e in entries if e.side == EntrySide.DEBIT
                ),
            },
        )
        return entries

    # ------------------------------------------------------------------
    # Reads
    # ------------------------------------------------------------------

    @staticmethod
    def balance_of(
        owner_id: uuid.UUID | None,
        currency: str = "usd",
        account_type: AccountType | str = AccountType.USER_BALANCE,
    ) -> int:
        """
        Credits minus debits for an account, over all of its entries.

        Args:
            owner_id: Owner of the account (None for platform accounts)
            currency: ISO 4217 currency code
            account_type: Account category (default USER_BALANCE)

        Returns:
            Balance in cents; 0 for an account that doesn't exist yet
        """
        totals = LedgerEntry.objects.filter(
            account__type=account_type,
            account__owner_id=owner_id,
            account__currency=currency,
        ).aggregate(
            credits=_side_total(EntrySide.CREDIT),
            debits=_side_total(EntrySide.DEBIT),
        )
        return totals["credits"] - totals["debits"]

    @staticmethod
    def get_balance(account_id: uuid.UUID) -> Money:
        """
        Get current balance for an account.

        Raises:
            AccountNotFound: If account doesn't exist
        """
        account = LedgerService.get_account(account_id)
        return Money(cents=account.get_balance(), currency=account.currency)

    @staticmethod
    def entries_for(booking_id: uuid.UUID) -> list[LedgerEntry]:
        """
        Get all entries for a booking in the order they were appended.

        Batches are ordered by their auto-increment id, entries within a
        batch by sequence.
        """
        return list(
            LedgerEntry.objects.filter(booking_id=booking_id)
            .select_related("account")
            .order_by("batch_id", "sequence")
        )


def _side_total(side: str) -> Coalesce:
    """Aggregate of amount_cents over entries on one side."""
    return Coalesce(
        Sum(
            Case(
                When(side=side, then="amount_cents"),
                default=Value(0),
                output_field=BigIntegerField(),
            )
        ),
        Value(0),
        output_field=BigIntegerField(),
    )


# Singleton instance for convenience
# Usage: from payments.ledger.services import ledger
ledger = LedgerService()
