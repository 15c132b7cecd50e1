"""
Factory Boy factories for booking test data.

BookingFactory writes rows directly, bypassing BookingService: no
history, ledger or deposit side effects. Use it for state set-up; drive
the service when a test needs the side effects.

Usage:
    from bookings.tests.factories import BookingFactory

    booking = BookingFactory()  # PENDING_PAYMENT, 5 nights, total 60000
    done = BookingFactory(status=BookingStatus.COMPLETED, listing=listing)
"""

import uuid
from datetime import date

import factory
from django.utils import timezone

from bookings.models import Booking, BookingStateHistory
from bookings.states import ActorRole, BookingStatus, Trigger
from listings.tests.factories import ListingFactory


class BookingFactory(factory.django.DjangoModelFactory):
    """
    Factory for creating Booking instances.

    Amounts default to a 5-night stay at 10000/night with a 15%
    platform fee and 5% service fee.
    """

    class Meta:
        model = Booking
        skip_postgeneration_save = True

    listing = factory.SubFactory(ListingFactory)
    renter_id = factory.LazyFunction(uuid.uuid4)
    start_date = date(2030, 7, 10)
    end_date = date(2030, 7, 15)
    guest_count = 1
    base_price_cents = 50000
    platform_fee_cents = 7500
    service_fee_cents = 2500
    deposit_cents = 0
    total_cents = factory.LazyAttribute(
        lambda o: o.base_price_cents + o.platform_fee_cents + o.service_fee_cents
    )
    currency = "usd"
    status = BookingStatus.PENDING_PAYMENT


class BookingStateHistoryFactory(factory.django.DjangoModelFactory):
    """Factory for BookingStateHistory rows (defaults to a creation row)."""

    class Meta:
        model = BookingStateHistory
        skip_postgeneration_save = True

    booking = factory.SubFactory(BookingFactory)
    from_status = None
    to_status = factory.LazyAttribute(lambda o: o.booking.status)
    trigger = Trigger.CREATE
    actor_id = factory.LazyAttribute(lambda o: o.booking.renter_id)
    actor_role = ActorRole.RENTER
    created_at = factory.LazyFunction(timezone.now)
