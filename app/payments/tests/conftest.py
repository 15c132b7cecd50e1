"""
Pytest fixtures for payment tests.

Sections:
    - Infrastructure Fixtures: Mocked Redis for distributed locks
    - Service Fixtures: Deposit, dispute and payout services on the shared clock
    - Owner Fixtures: An owner with completed bookings and settled earnings
"""

import uuid
from datetime import timedelta

import pytest

from bookings.states import BookingStatus
from bookings.tests.factories import BookingFactory
from payments.services import DepositHoldManager, DisputeFreezeService, PayoutAggregator


# =============================================================================
# Infrastructure Fixtures
# =============================================================================


@pytest.fixture
def mock_redis(mocker):
    """
    Mock Redis client for distributed lock tests.

    Returns a MagicMock configured for basic lock operations.
    """
    mock_client = mocker.MagicMock()
    mock_client.set.return_value = True
    mock_client.get.return_value = None
    mock_client.eval.return_value = 1

    mocker.patch("payments.locks.get_redis_connection", return_value=mock_client)
    return mock_client


# =============================================================================
# Service Fixtures
# =============================================================================


@pytest.fixture
def deposits(clock):
    return DepositHoldManager(clock=clock)


@pytest.fixture
def disputes(clock):
    return DisputeFreezeService(clock=clock)


@pytest.fixture
def aggregator(clock):
    """PayoutAggregator with a 7 day settlement delay and 5000 cent minimum."""
    return PayoutAggregator(clock=clock)


# =============================================================================
# Owner Fixtures
# =============================================================================


@pytest.fixture
def owner_id():
    return uuid.uuid4()


@pytest.fixture
def completed_booking(db, owner_id):
    """Build COMPLETED bookings on listings of ``owner_id``."""

    def _completed_booking(**kwargs):
        kwargs.setdefault("status", BookingStatus.COMPLETED)
        return BookingFactory(listing__owner_id=owner_id, **kwargs)

    return _completed_booking


@pytest.fixture
def settled_at(clock):
    """A posting time already past the settlement delay."""
    return clock.now() - timedelta(days=8)
