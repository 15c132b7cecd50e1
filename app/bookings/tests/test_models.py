"""
Tests for the Booking and BookingStateHistory models.
"""

from datetime import date

import pytest
from django.db import IntegrityError, transaction

from django_fsm import TransitionNotAllowed

from core.exceptions import ValidationError
from bookings.models import Booking
from bookings.state_machine import find_rule
from bookings.states import BookingStatus, Trigger
from bookings.tests.factories import BookingFactory, BookingStateHistoryFactory


class TestBookingStatusField:
    """Tests for the protected FSM status field."""

    def test_direct_assignment_is_refused(self, db):
        """Should only change status through apply_transition()."""
        booking = BookingFactory()

        with pytest.raises(AttributeError):
            booking.status = BookingStatus.CONFIRMED

    def test_apply_transition_moves_to_rule_target(self, db):
        booking = BookingFactory(status=BookingStatus.PENDING_PAYMENT)
        rule = find_rule(BookingStatus.PENDING_PAYMENT, Trigger.PAYMENT_SUCCEEDED)

        booking.apply_transition(rule)

        assert booking.status == BookingStatus.CONFIRMED

    def test_apply_transition_from_wrong_state_raises(self, db):
        """Should refuse a rule whose sources don't include the current status."""
        booking = BookingFactory(status=BookingStatus.CONFIRMED)
        rule = find_rule(BookingStatus.PENDING_OWNER_APPROVAL, Trigger.APPROVE)

        with pytest.raises(TransitionNotAllowed):
            booking.apply_transition(rule)

        assert booking.status == BookingStatus.CONFIRMED


class TestMoneyFreeze:
    """Monetary fields are frozen once a booking leaves PENDING_*."""

    def test_amounts_editable_while_pending(self, db):
        booking = BookingFactory(status=BookingStatus.PENDING_PAYMENT)
        booking = Booking.objects.get(id=booking.id)

        booking.base_price_cents = 40000
        booking.total_cents = 50000
        booking.save()

        assert Booking.objects.get(id=booking.id).total_cents == 50000

    @pytest.mark.parametrize(
        "status",
        [
            BookingStatus.CONFIRMED,
            BookingStatus.IN_PROGRESS,
            BookingStatus.COMPLETED,
            BookingStatus.CANCELLED,
        ],
    )
    def test_amounts_frozen_after_pending(self, db, status):
        """Should refuse to save changed amounts of a non-pending booking."""
        booking = Booking.objects.get(id=BookingFactory(status=status).id)

        booking.platform_fee_cents = 1
        with pytest.raises(ValidationError) as exc_info:
            booking.save()

        assert exc_info.value.error_code == "BOOKING_AMOUNTS_FROZEN"
        assert "platform_fee_cents" in exc_info.value.details["fields"]
        assert Booking.objects.get(id=booking.id).platform_fee_cents == 7500

    def test_other_fields_still_editable(self, db):
        """Should let non-monetary fields change after confirmation."""
        booking = Booking.objects.get(
            id=BookingFactory(status=BookingStatus.CONFIRMED).id
        )

        booking.last_payment_error = "card expired"
        booking.save()

        assert Booking.objects.get(id=booking.id).last_payment_error == "card expired"

    def test_freeze_applies_to_the_instance_that_left_pending(self, db):
        """Should freeze amounts on the same instance once it is saved confirmed."""
        booking = Booking.objects.get(id=BookingFactory().id)
        booking.apply_transition(
            find_rule(BookingStatus.PENDING_PAYMENT, Trigger.PAYMENT_SUCCEEDED)
        )
        booking.save()

        booking.total_cents += 100
        with pytest.raises(ValidationError):
            booking.save()


class TestBookingConstraints:
    """Database constraints on Booking."""

    def test_start_must_precede_end(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            BookingFactory(start_date=date(2030, 7, 15), end_date=date(2030, 7, 15))

    def test_total_must_match_components(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            BookingFactory(total_cents=1)

    def test_guest_count_must_be_positive(self, db):
        with pytest.raises(IntegrityError), transaction.atomic():
            BookingFactory(guest_count=0)


class TestBookingVersion:
    def test_version_increments_on_save(self, db):
        """Should bump version on every update."""
        booking = BookingFactory()
        assert booking.version == 1

        booking.save()
        booking.save()

        assert booking.version == 3
        assert Booking.objects.get(id=booking.id).version == 3


class TestBookingProperties:
    def test_nights_and_owner(self, db):
        booking = BookingFactory()

        assert booking.nights == 5
        assert booking.owner_id == booking.listing.owner_id

    def test_is_pending_and_is_paid(self, db):
        booking = BookingFactory(status=BookingStatus.PENDING_OWNER_APPROVAL)

        assert booking.is_pending is True
        assert booking.is_paid is False


class TestBookingStateHistory:
    def test_history_ordered_by_insertion(self, db):
        booking = BookingFactory()
        first = BookingStateHistoryFactory(booking=booking)
        second = BookingStateHistoryFactory(
            booking=booking,
            from_status=BookingStatus.PENDING_PAYMENT,
            trigger=Trigger.PAYMENT_FAILED,
        )

        assert list(booking.state_history.all()) == [first, second]
