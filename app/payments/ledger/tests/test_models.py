"""
Tests for ledger models and value types.
"""

import pytest
from django.db import IntegrityError, transaction

from payments.ledger.models import AccountType, LedgerAccount
from payments.ledger.services import LedgerService
from payments.ledger.tests.factories import LedgerAccountFactory
from payments.ledger.types import Money


class TestLedgerEntryAppendOnly:
    """Entries can be inserted, never changed or removed."""

    def test_update_is_refused(self, renter_account, owner_account, transfer):
        entry = LedgerService.append(
            transfer(renter_account, owner_account, 100), batch_key="k"
        )[0]

        entry.amount_cents = 1
        with pytest.raises(ValueError, match="append-only"):
            entry.save()

    def test_delete_is_refused(self, renter_account, owner_account, transfer):
        entry = LedgerService.append(
            transfer(renter_account, owner_account, 100), batch_key="k"
        )[0]

        with pytest.raises(ValueError, match="append-only"):
            entry.delete()


class TestLedgerAccount:
    def test_get_balance_from_entries(self, renter_account, owner_account, transfer):
        LedgerService.append(transfer(renter_account, owner_account, 300), batch_key="k")

        assert owner_account.get_balance() == 300
        assert renter_account.get_balance() == -300

    def test_new_account_has_zero_balance(self, db):
        assert LedgerAccountFactory().get_balance() == 0

    def test_one_platform_account_per_type_and_currency(self, db):
        """Should not allow a second owner-less account of the same kind."""
        LedgerAccountFactory(type=AccountType.PLATFORM_REVENUE, owner_id=None)

        with pytest.raises(IntegrityError), transaction.atomic():
            LedgerAccount.objects.create(type=AccountType.PLATFORM_REVENUE, owner_id=None)

    def test_str(self, db):
        platform = LedgerAccountFactory(type=AccountType.DEPOSIT_ESCROW, owner_id=None)

        assert str(platform) == "Deposit Escrow"


class TestMoney:
    def test_str(self):
        assert str(Money(cents=5000, currency="usd")) == "$50.00 USD"

    def test_add_and_subtract(self):
        assert Money(500) + Money(250) == Money(750)
        assert Money(500) - Money(750) == Money(-250)

    def test_currency_mismatch(self):
        with pytest.raises(ValueError):
            Money(500, "usd") + Money(500, "eur")
