"""
Tests for the Listing model.
"""

import pytest

from listings.models import DepositType, ListingStatus
from listings.tests.factories import ListingFactory


class TestDepositFor:
    """Tests for Listing.deposit_for()."""

    def test_no_deposit(self):
        """Should be zero when the listing takes no deposit."""
        listing = ListingFactory.build(deposit_type=DepositType.NONE, deposit_value=999)

        assert listing.deposit_for(50000) == 0

    def test_fixed_deposit_ignores_price(self):
        """Should return the fixed amount whatever the rental costs."""
        listing = ListingFactory.build(deposit_type=DepositType.FIXED, deposit_value=5000)

        assert listing.deposit_for(50000) == 5000
        assert listing.deposit_for(100) == 5000

    def test_percentage_deposit_rounds_half_up(self):
        """Should take the percentage of the base price, rounded half-up."""
        listing = ListingFactory.build(
            deposit_type=DepositType.PERCENTAGE, deposit_value=15
        )

        assert listing.deposit_for(10000) == 1500
        # 15% of 4999 = 749.85
        assert listing.deposit_for(4999) == 750
        # 15% of 4990 = 748.5
        assert listing.deposit_for(4990) == 749


class TestIsBookable:
    """Tests for Listing.is_bookable."""

    @pytest.mark.parametrize(
        "status,expected",
        [
            (ListingStatus.ACTIVE, True),
            (ListingStatus.DRAFT, False),
            (ListingStatus.PAUSED, False),
            (ListingStatus.ARCHIVED, False),
        ],
    )
    def test_only_active_listings_are_bookable(self, status, expected):
        """Should accept bookings only while ACTIVE."""
        assert ListingFactory.build(status=status).is_bookable is expected
