"""
Pytest fixtures for booking tests.

Bookings are created and moved through BookingService so every fixture
comes with its history rows, ledger batches and deposit holds.

Sections:
    - Actor Fixtures: Renter ids
    - Listing Fixtures: Request, instant-book and deposit listings
    - Service Fixtures: BookingService on the shared FixedClock
    - Booking State Fixtures: Bookings in each reachable state
"""

import uuid
from datetime import date

import pytest

from bookings.services import BookingService
from bookings.states import Trigger
from listings.models import BookingMode, DepositType
from listings.tests.factories import ListingFactory

# 5 nights at 10000: base 50000, platform fee 7500, service fee 2500
STAY_START = date(2030, 7, 10)
STAY_END = date(2030, 7, 15)


# =============================================================================
# Actor Fixtures
# =============================================================================


@pytest.fixture
def renter_id():
    return uuid.uuid4()


@pytest.fixture
def other_renter_id():
    return uuid.uuid4()


# =============================================================================
# Listing Fixtures
# =============================================================================


@pytest.fixture
def listing(db):
    """ACTIVE request-to-book listing: bookings wait for owner approval."""
    return ListingFactory(booking_mode=BookingMode.REQUEST)


@pytest.fixture
def instant_listing(db):
    """ACTIVE instant-book listing: bookings go straight to payment."""
    return ListingFactory(booking_mode=BookingMode.INSTANT)


@pytest.fixture
def deposit_listing(db):
    """Instant-book listing with a fixed 5000 cent security deposit."""
    return ListingFactory(
        booking_mode=BookingMode.INSTANT,
        deposit_type=DepositType.FIXED,
        deposit_value=5000,
    )


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def service(clock):
    return BookingService(clock=clock)


@pytest.fixture
def stay():
    """(start_date, end_date) five weeks after the clock's now."""
    return STAY_START, STAY_END


# =============================================================================
# Booking State Fixtures
# =============================================================================


@pytest.fixture
def requested_booking(service, listing, renter_id, stay):
    """Booking in PENDING_OWNER_APPROVAL."""
    return service.create_booking(listing.id, renter_id, *stay)


@pytest.fixture
def pending_payment_booking(service, instant_listing, renter_id, stay):
    """Booking in PENDING_PAYMENT on an instant-book listing."""
    return service.create_booking(instant_listing.id, renter_id, *stay)


@pytest.fixture
def confirmed_booking(service, pending_payment_booking):
    """Paid booking in CONFIRMED."""
    return service.transition(
        pending_payment_booking.id,
        Trigger.PAYMENT_SUCCEEDED,
        payload={"amount_cents": pending_payment_booking.total_cents},
    )


@pytest.fixture
def in_progress_booking(service, deposit_listing, renter_id, stay):
    """Paid booking on the deposit listing, started: deposit is HELD."""
    booking = service.create_booking(deposit_listing.id, renter_id, *stay)
    service.transition(
        booking.id,
        Trigger.PAYMENT_SUCCEEDED,
        payload={"amount_cents": booking.total_cents},
    )
    return service.transition(
        booking.id, Trigger.START, actor_id=deposit_listing.owner_id
    )


@pytest.fixture
def returned_booking(service, in_progress_booking):
    """Booking in PENDING_RETURN_INSPECTION with its deposit still HELD."""
    return service.transition(
        in_progress_booking.id,
        Trigger.REQUEST_RETURN,
        actor_id=in_progress_booking.renter_id,
    )
