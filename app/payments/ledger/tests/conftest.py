"""
Pytest fixtures for ledger tests.

Sections:
    - Account Fixtures: A user pair, the platform and escrow accounts
    - Line Helpers: Balanced two-line batches
"""

import pytest

from payments.ledger.models import AccountType, EntrySide, TransactionType
from payments.ledger.services import LedgerService
from payments.ledger.tests.factories import LedgerAccountFactory
from payments.ledger.types import EntryLine


# =============================================================================
# Account Fixtures
# =============================================================================


@pytest.fixture
def renter_account(db):
    return LedgerAccountFactory()


@pytest.fixture
def owner_account(db):
    return LedgerAccountFactory()


@pytest.fixture
def platform_account(db):
    return LedgerService.system_account(AccountType.PLATFORM_REVENUE, "usd")


@pytest.fixture
def eur_account(db):
    return LedgerAccountFactory(currency="eur")


# =============================================================================
# Line Helpers
# =============================================================================


@pytest.fixture
def transfer():
    """Build a balanced DEBIT/CREDIT pair between two accounts."""

    def _transfer(
        debit_account,
        credit_account,
        amount_cents,
        transaction_type=TransactionType.PAYMENT,
        booking_id=None,
    ):
        return [
            EntryLine(
                debit_account.id,
                EntrySide.DEBIT,
                amount_cents,
                transaction_type,
                booking_id=booking_id,
            ),
            EntryLine(
                credit_account.id,
                EntrySide.CREDIT,
                amount_cents,
                transaction_type,
                booking_id=booking_id,
            ),
        ]

    return _transfer
