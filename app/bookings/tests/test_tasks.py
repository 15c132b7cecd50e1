"""
Tests for scheduled booking tasks.

Tasks use the system clock, so time is moved with freezegun. Fixture
bookings are created on the shared FixedClock at 2030-06-01 12:00 UTC.
"""

import uuid

import pytest
from freezegun import freeze_time

from bookings.models import Booking
from bookings.states import BookingStatus, Trigger
from bookings.tasks import (
    _apply_system_trigger,
    auto_approve_overdue_returns,
    expire_unpaid_bookings,
)
from payments.models import DepositHold
from payments.state_machines import DepositHoldStatus


def _status(booking):
    return Booking.objects.get(id=booking.id).status


# =============================================================================
# expire_unpaid_bookings
# =============================================================================


class TestExpireUnpaidBookings:
    """Tests for expire_unpaid_bookings task."""

    def test_expires_after_ttl(self, pending_payment_booking):
        """Should cancel a booking unpaid for more than 24 hours."""
        with freeze_time("2030-06-02 12:00:01"):
            result = expire_unpaid_bookings()

        assert result == {"expired": 1, "skipped": 0, "failed": 0}
        assert _status(pending_payment_booking) == BookingStatus.CANCELLED

    def test_does_not_expire_before_ttl(self, pending_payment_booking):
        with freeze_time("2030-06-02 11:59:00"):
            result = expire_unpaid_bookings()

        assert result["expired"] == 0
        assert _status(pending_payment_booking) == BookingStatus.PENDING_PAYMENT

    def test_ttl_counts_from_owner_approval(self, service, clock, requested_booking):
        """Should measure the wait from entering PENDING_PAYMENT, not from creation."""
        clock.advance(hours=20)
        service.transition(
            requested_booking.id, Trigger.APPROVE, actor_id=requested_booking.owner_id
        )

        with freeze_time("2030-06-02 13:00:00"):
            expire_unpaid_bookings()
        assert _status(requested_booking) == BookingStatus.PENDING_PAYMENT

        with freeze_time("2030-06-03 08:00:01"):
            expire_unpaid_bookings()
        assert _status(requested_booking) == BookingStatus.CANCELLED

    def test_ignores_other_states(self, requested_booking, confirmed_booking):
        with freeze_time("2030-06-10 00:00:00"):
            result = expire_unpaid_bookings()

        assert result["expired"] == 0
        assert _status(requested_booking) == BookingStatus.PENDING_OWNER_APPROVAL
        assert _status(confirmed_booking) == BookingStatus.CONFIRMED

    def test_expiry_is_recorded_as_system_trigger(self, service, pending_payment_booking):
        with freeze_time("2030-06-03 00:00:00"):
            expire_unpaid_bookings()

        row = service.get_state_history(pending_payment_booking.id)[-1]
        assert row.trigger == Trigger.EXPIRE
        assert row.actor_id is None

    def test_respects_ttl_setting(self, settings, pending_payment_booking):
        settings.BOOKINGS_PENDING_PAYMENT_TTL_HOURS = 1

        with freeze_time("2030-06-01 13:00:01"):
            result = expire_unpaid_bookings()

        assert result["expired"] == 1


# =============================================================================
# auto_approve_overdue_returns
# =============================================================================


class TestAutoApproveOverdueReturns:
    """Tests for auto_approve_overdue_returns task."""

    def test_completes_return_48h_after_end_date(self, returned_booking):
        """Should complete the booking and release the deposit."""
        with freeze_time("2030-07-17 00:00:01"):
            result = auto_approve_overdue_returns()

        assert result == {"completed": 1, "skipped": 0, "failed": 0}
        assert _status(returned_booking) == BookingStatus.COMPLETED
        hold = DepositHold.objects.get(booking_id=returned_booking.id)
        assert hold.status == DepositHoldStatus.RELEASED

    @pytest.mark.parametrize("now", ["2030-07-16 23:00:00", "2030-07-17 00:00:00"])
    def test_waits_until_overdue(self, returned_booking, now):
        with freeze_time(now):
            result = auto_approve_overdue_returns()

        assert result["completed"] == 0
        assert _status(returned_booking) == BookingStatus.PENDING_RETURN_INSPECTION

    def test_ignores_rentals_still_in_progress(self, in_progress_booking):
        with freeze_time("2030-08-01 00:00:00"):
            result = auto_approve_overdue_returns()

        assert result["completed"] == 0
        assert _status(in_progress_booking) == BookingStatus.IN_PROGRESS

    def test_auto_approval_is_a_system_trigger(self, service, returned_booking):
        with freeze_time("2030-07-20 00:00:00"):
            auto_approve_overdue_returns()

        row = service.get_state_history(returned_booking.id)[-1]
        assert row.trigger == Trigger.AUTO_APPROVE_RETURN
        assert row.actor_id is None


# =============================================================================
# Helpers
# =============================================================================


class TestApplySystemTrigger:
    """Per-booking failures are counted, never raised."""

    def test_moved_on_bookings_are_skipped(self, confirmed_booking):
        result = _apply_system_trigger([confirmed_booking.id], Trigger.EXPIRE)

        assert result == {"processed": 0, "skipped": 1, "failed": 0}

    def test_errors_are_counted_as_failures(self, db, pending_payment_booking):
        result = _apply_system_trigger(
            [uuid.uuid4(), pending_payment_booking.id], Trigger.EXPIRE
        )

        assert result == {"processed": 1, "skipped": 0, "failed": 1}
