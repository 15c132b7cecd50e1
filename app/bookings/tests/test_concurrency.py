"""
Tests for concurrent booking creation.

Each thread runs on its own database connection, so these tests need
real transactions and a file-backed test database.
"""

import threading
from concurrent.futures import ThreadPoolExecutor
from datetime import date

import pytest
from django.db import connection

from bookings.exceptions import Unavailable
from bookings.models import Booking
from bookings.states import BookingStatus


@pytest.mark.django_db(transaction=True)
class TestConcurrentCreation:
    """Simultaneous requests for one listing and overlapping dates."""

    def _race(self, service, listing, renter_ids, ranges):
        barrier = threading.Barrier(len(renter_ids))

        def create(renter_id, stay):
            connection.close()  # Force new connection for thread
            try:
                barrier.wait(timeout=10)
                service.create_booking(listing.id, renter_id, *stay)
                return "ok"
            except Unavailable:
                return "unavailable"
            finally:
                connection.close()

        with ThreadPoolExecutor(max_workers=len(renter_ids)) as executor:
            futures = [
                executor.submit(create, renter_id, stay)
                for renter_id, stay in zip(renter_ids, ranges)
            ]
            return sorted(future.result() for future in futures)

    def test_overlapping_requests_yield_one_booking(
        self, service, instant_listing, renter_id, other_renter_id, stay
    ):
        """Exactly one request wins the dates; the other is Unavailable."""
        outcomes = self._race(
            service, instant_listing, [renter_id, other_renter_id], [stay, stay]
        )

        assert outcomes == ["ok", "unavailable"]
        (booking,) = Booking.objects.filter(listing=instant_listing)
        assert booking.status == BookingStatus.PENDING_PAYMENT
        assert booking.renter_id in {renter_id, other_renter_id}

    def test_disjoint_requests_both_succeed(
        self, service, instant_listing, renter_id, other_renter_id
    ):
        ranges = [
            (date(2030, 7, 10), date(2030, 7, 15)),
            (date(2030, 7, 15), date(2030, 7, 18)),
        ]

        outcomes = self._race(
            service, instant_listing, [renter_id, other_renter_id], ranges
        )

        assert outcomes == ["ok", "ok"]
        assert Booking.objects.filter(listing=instant_listing).count() == 2
