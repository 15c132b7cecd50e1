"""
Tests for DepositHoldManager.
"""

import uuid

import pytest

from bookings.exceptions import BookingNotFound
from bookings.states import BookingStatus
from bookings.tests.factories import BookingFactory
from payments.exceptions import (
    AlreadyCaptured,
    DepositHoldNotFound,
    DuplicateHold,
    HoldFrozen,
    InvalidAmount,
    InvalidStateTransitionError,
    StaleRecordError,
)
from payments.ledger import AccountType, LedgerEntry, TransactionType
from payments.ledger.services import LedgerService
from payments.models import DepositHold
from payments.state_machines import DepositHoldStatus


@pytest.fixture
def booking(db):
    return BookingFactory(status=BookingStatus.IN_PROGRESS, deposit_cents=5000)


@pytest.fixture
def hold(deposits, booking):
    return deposits.hold(booking.id, 5000, "usd")


def _escrow_balance():
    return LedgerService.balance_of(None, "usd", AccountType.DEPOSIT_ESCROW)


class TestHold:
    """Tests for DepositHoldManager.hold()."""

    def test_hold_moves_deposit_into_escrow(self, hold, booking, clock):
        assert hold.status == DepositHoldStatus.HELD
        assert hold.amount_cents == 5000
        assert hold.held_at == clock.now()
        assert _escrow_balance() == 5000
        assert LedgerService.balance_of(booking.renter_id) == -5000
        batch = LedgerEntry.objects.filter(batch_key=f"deposit:{hold.id}:hold")
        assert {e.transaction_type for e in batch} == {TransactionType.DEPOSIT_HOLD}

    def test_second_hold_is_refused(self, deposits, hold, booking):
        """Should allow one HELD hold per booking."""
        with pytest.raises(DuplicateHold):
            deposits.hold(booking.id, 5000, "usd")

        assert DepositHold.objects.count() == 1

    def test_new_hold_after_release(self, deposits, hold, booking):
        deposits.release(hold.id)

        again = deposits.hold(booking.id, 3000, "usd")

        assert again.status == DepositHoldStatus.HELD

    @pytest.mark.parametrize("amount", [0, -1, 12.5, False])
    def test_amount_must_be_positive_cents(self, deposits, booking, amount):
        with pytest.raises(InvalidAmount):
            deposits.hold(booking.id, amount, "usd")

    def test_unknown_booking(self, deposits, db):
        with pytest.raises(BookingNotFound):
            deposits.hold(uuid.uuid4(), 5000, "usd")


class TestRelease:
    """Tests for DepositHoldManager.release()."""

    def test_release_returns_deposit(self, deposits, hold, booking, clock):
        clock.advance(days=6)

        released = deposits.release(hold.id)

        assert released.status == DepositHoldStatus.RELEASED
        assert released.released_at == clock.now()
        assert released.remainder_cents == 5000
        assert _escrow_balance() == 0
        assert LedgerService.balance_of(booking.renter_id) == 0

    def test_release_is_idempotent(self, deposits, hold):
        deposits.release(hold.id)
        deposits.release(hold.id)

        assert LedgerEntry.objects.filter(
            transaction_type=TransactionType.DEPOSIT_RELEASE
        ).count() == 2

    def test_release_after_capture(self, deposits, hold):
        deposits.capture(hold.id, 1000)

        with pytest.raises(AlreadyCaptured):
            deposits.release(hold.id)

    def test_release_frozen_hold(self, deposits, disputes, hold):
        """Should refuse to move a deposit under dispute."""
        disputes.freeze_hold(hold.id, reason="damage")

        with pytest.raises(HoldFrozen):
            deposits.release(hold.id)

        assert DepositHold.objects.get(id=hold.id).status == DepositHoldStatus.HELD

    def test_stale_version(self, deposits, hold):
        with pytest.raises(StaleRecordError):
            deposits.release(hold.id, expected_version=hold.version + 1)

    def test_release_with_current_version(self, deposits, hold):
        released = deposits.release(hold.id, expected_version=hold.version)

        assert released.status == DepositHoldStatus.RELEASED

    def test_unknown_hold(self, deposits, db):
        with pytest.raises(DepositHoldNotFound):
            deposits.release(uuid.uuid4())


class TestCapture:
    """Tests for DepositHoldManager.capture()."""

    def test_partial_capture_splits_deposit(self, deposits, hold, booking):
        """Should pay the claim to the owner and the rest back to the renter."""
        captured = deposits.capture(hold.id, 2000)

        assert captured.status == DepositHoldStatus.CAPTURED
        assert captured.captured_amount_cents == 2000
        assert captured.remainder_cents == 3000
        assert LedgerService.balance_of(booking.listing.owner_id) == 2000
        assert LedgerService.balance_of(booking.renter_id) == -2000
        assert _escrow_balance() == 0

    def test_full_capture_has_no_remainder_line(self, deposits, hold):
        deposits.capture(hold.id, 5000)

        batch = LedgerEntry.objects.filter(batch_key=f"deposit:{hold.id}:capture")
        assert batch.count() == 2
        assert {e.transaction_type for e in batch} == {TransactionType.DEPOSIT_CAPTURE}

    def test_capture_more_than_held(self, deposits, hold):
        with pytest.raises(InvalidAmount) as exc_info:
            deposits.capture(hold.id, 5001)

        assert exc_info.value.details["held_cents"] == 5000

    def test_capture_twice(self, deposits, hold):
        deposits.capture(hold.id, 1000)

        with pytest.raises(AlreadyCaptured):
            deposits.capture(hold.id, 1000)

    def test_capture_released_hold(self, deposits, hold):
        deposits.release(hold.id)

        with pytest.raises(InvalidStateTransitionError):
            deposits.capture(hold.id, 1000)

    def test_capture_frozen_hold(self, deposits, disputes, hold, booking):
        disputes.freeze_booking(booking.id)

        with pytest.raises(HoldFrozen):
            deposits.capture(hold.id, 1000)


class TestQueries:
    def test_active_hold_for(self, deposits, hold, booking):
        assert deposits.active_hold_for(booking.id) == hold

        deposits.release(hold.id)

        assert deposits.active_hold_for(booking.id) is None

    def test_is_frozen_until_lifted(self, deposits, disputes, hold):
        freeze = disputes.freeze_hold(hold.id)
        assert deposits.is_frozen(hold) is True

        disputes.lift(freeze.id)

        assert deposits.is_frozen(hold) is False
