"""
Tests for LedgerService.

Covers balanced appends, all-or-nothing rejection, batch idempotency
and the balance/entry reads.
"""

import uuid
from datetime import datetime, timezone

import pytest

from payments.exceptions import InvalidAmount
from payments.ledger import (
    AccountNotFound,
    AccountType,
    EntryLine,
    EntrySide,
    InactiveAccount,
    LedgerBatch,
    LedgerEntry,
    Money,
    TransactionType,
    UnbalancedBatch,
)
from payments.ledger.services import LedgerService
from payments.ledger.tests.factories import LedgerAccountFactory


class TestAppend:
    """Tests for LedgerService.append()."""

    def test_balanced_batch_is_written_in_order(
        self, renter_account, owner_account, platform_account
    ):
        """Should persist every line with its batch position."""
        lines = [
            EntryLine(renter_account.id, EntrySide.DEBIT, 33000, TransactionType.PAYMENT),
            EntryLine(owner_account.id, EntrySide.CREDIT, 31000, TransactionType.EARNINGS),
            EntryLine(
                platform_account.id, EntrySide.CREDIT, 2000, TransactionType.PLATFORM_FEE
            ),
        ]

        entries = LedgerService.append(
            lines, batch_key="booking:1:payment", created_by="test"
        )

        assert [(e.sequence, e.amount_cents) for e in entries] == [
            (0, 33000),
            (1, 31000),
            (2, 2000),
        ]
        assert {e.batch_key for e in entries} == {"booking:1:payment"}
        assert {e.created_by for e in entries} == {"test"}
        assert entries[2].account_type == AccountType.PLATFORM_REVENUE
        assert entries[0].currency == "usd"
        assert LedgerEntry.objects.count() == 3

    def test_posting_time_can_be_injected(self, renter_account, owner_account, transfer):
        at = datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc)

        entries = LedgerService.append(
            transfer(renter_account, owner_account, 100), batch_key="k", created_at=at
        )

        assert {e.created_at for e in entries} == {at}

    def test_unbalanced_batch_writes_nothing(self, renter_account, owner_account):
        """Should reject the whole batch when debits and credits differ."""
        lines = [
            EntryLine(renter_account.id, EntrySide.DEBIT, 1000, TransactionType.PAYMENT),
            EntryLine(owner_account.id, EntrySide.CREDIT, 999, TransactionType.EARNINGS),
        ]

        with pytest.raises(UnbalancedBatch) as exc_info:
            LedgerService.append(lines, batch_key="k")

        assert exc_info.value.details["debit_cents"] == 1000
        assert exc_info.value.details["credit_cents"] == 999
        assert not LedgerEntry.objects.exists()

    def test_empty_batch_is_rejected(self, db):
        with pytest.raises(UnbalancedBatch):
            LedgerService.append([], batch_key="k")

    def test_unknown_side_is_rejected(self, renter_account, owner_account):
        lines = [
            EntryLine(renter_account.id, "sideways", 100, TransactionType.PAYMENT),
            EntryLine(owner_account.id, EntrySide.CREDIT, 100, TransactionType.PAYMENT),
        ]

        with pytest.raises(UnbalancedBatch):
            LedgerService.append(lines, batch_key="k")

    def test_mixed_currencies_are_rejected(self, renter_account, eur_account, transfer):
        with pytest.raises(UnbalancedBatch) as exc_info:
            LedgerService.append(transfer(renter_account, eur_account, 100), batch_key="k")

        assert exc_info.value.details["currencies"] == ["eur", "usd"]
        assert not LedgerEntry.objects.exists()

    @pytest.mark.parametrize("amount", [0, -100, 10.5, True])
    def test_amounts_must_be_positive_integers(
        self, renter_account, owner_account, transfer, amount
    ):
        with pytest.raises(InvalidAmount):
            LedgerService.append(transfer(renter_account, owner_account, amount), batch_key="k")

        assert not LedgerEntry.objects.exists()

    def test_same_batch_key_is_idempotent(self, renter_account, owner_account, transfer):
        """Should return the recorded batch instead of writing it twice."""
        first = LedgerService.append(transfer(renter_account, owner_account, 500), batch_key="k")
        again = LedgerService.append(transfer(renter_account, owner_account, 500), batch_key="k")

        assert [e.id for e in again] == [e.id for e in first]
        assert LedgerEntry.objects.count() == 2

    def test_unknown_account(self, renter_account):
        lines = [
            EntryLine(renter_account.id, EntrySide.DEBIT, 100, TransactionType.PAYMENT),
            EntryLine(uuid.uuid4(), EntrySide.CREDIT, 100, TransactionType.PAYMENT),
        ]

        with pytest.raises(AccountNotFound):
            LedgerService.append(lines, batch_key="k")

        assert not LedgerEntry.objects.exists()

    def test_inactive_account(self, renter_account, transfer, db):
        closed = LedgerAccountFactory(is_active=False)

        with pytest.raises(InactiveAccount):
            LedgerService.append(transfer(renter_account, closed, 100), batch_key="k")


class TestAccounts:
    """Tests for account lookup helpers."""

    def test_user_account_is_created_once(self, db):
        owner_id = uuid.uuid4()

        account = LedgerService.user_account(owner_id, "usd")

        assert account.type == AccountType.USER_BALANCE
        assert account.allow_negative is True
        assert LedgerService.user_account(owner_id, "usd") == account

    def test_system_accounts_are_per_currency(self, db):
        usd = LedgerService.system_account(AccountType.DEPOSIT_ESCROW, "usd")
        eur = LedgerService.system_account(AccountType.DEPOSIT_ESCROW, "eur")

        assert usd != eur
        assert usd.owner_id is None
        assert LedgerService.system_account(AccountType.DEPOSIT_ESCROW, "usd") == usd

    def test_only_processor_account_may_go_negative(self, db):
        processor = LedgerService.system_account(AccountType.EXTERNAL_PROCESSOR)
        revenue = LedgerService.system_account(AccountType.PLATFORM_REVENUE)

        assert processor.allow_negative is True
        assert revenue.allow_negative is False

    def test_get_account_missing(self, db):
        with pytest.raises(AccountNotFound):
            LedgerService.get_account(uuid.uuid4())


class TestReads:
    """Tests for balance_of(), get_balance() and entries_for()."""

    def test_balance_is_credits_minus_debits(self, renter_account, owner_account, transfer):
        LedgerService.append(transfer(renter_account, owner_account, 700), batch_key="a")
        LedgerService.append(transfer(owner_account, renter_account, 200), batch_key="b")

        assert LedgerService.balance_of(owner_account.owner_id) == 500
        assert LedgerService.balance_of(renter_account.owner_id) == -500

    def test_balance_of_unknown_owner_is_zero(self, db):
        assert LedgerService.balance_of(uuid.uuid4()) == 0

    def test_balance_of_platform_account(self, renter_account, platform_account, transfer):
        LedgerService.append(transfer(renter_account, platform_account, 150), batch_key="a")

        assert LedgerService.balance_of(None, "usd", AccountType.PLATFORM_REVENUE) == 150

    def test_get_balance_returns_money(self, renter_account, owner_account, transfer):
        LedgerService.append(transfer(renter_account, owner_account, 4200), batch_key="a")

        assert LedgerService.get_balance(owner_account.id) == Money(4200, "usd")

    def test_entries_for_booking_in_append_order(
        self, renter_account, owner_account, transfer
    ):
        """Should list batches posted at one instant in the order they were written."""
        booking_id = uuid.uuid4()
        at = datetime(2030, 6, 1, tzinfo=timezone.utc)
        for key, transaction_type in [
            ("deposit:1:hold", TransactionType.DEPOSIT_HOLD),
            ("deposit:1:capture", TransactionType.DEPOSIT_CAPTURE),
        ]:
            LedgerService.append(
                transfer(renter_account, owner_account, 10, transaction_type, booking_id),
                batch_key=key,
                created_at=at,
            )
        LedgerService.append(transfer(renter_account, owner_account, 99), batch_key="other")

        entries = LedgerService.entries_for(booking_id)

        assert [(e.batch_key, e.sequence) for e in entries] == [
            ("deposit:1:hold", 0),
            ("deposit:1:hold", 1),
            ("deposit:1:capture", 0),
            ("deposit:1:capture", 1),
        ]

    def test_each_batch_is_recorded_once(self, renter_account, owner_account, transfer):
        LedgerService.append(transfer(renter_account, owner_account, 500), batch_key="k")
        LedgerService.append(transfer(renter_account, owner_account, 500), batch_key="k")

        batch = LedgerBatch.objects.get()
        assert batch.key == "k"
        assert batch.entries.count() == 2
