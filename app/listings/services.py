"""
Listing lookups used by the booking subsystem.

Usage:
    from listings.services import ListingService

    with transaction.atomic():
        listing = ListingService.get_bookable(listing_id, lock=True)
        # No other booking for this listing can be created until commit
"""

from __future__ import annotations

import uuid

from core.services import BaseService

from listings.exceptions import InvalidListing
from listings.models import Listing


class ListingService(BaseService):
    """Read access to listings for other apps."""

    @classmethod
    def get_bookable(cls, listing_id: uuid.UUID, lock: bool = False) -> Listing:
        """
        Fetch a listing that accepts new bookings.

        Args:
            listing_id: UUID of the listing
            lock: Take a row lock (SELECT ... FOR UPDATE). The lock is the
                per-listing mutual exclusion around availability check and
                booking insert, so it must be requested inside the caller's
                transaction.

        Raises:
            InvalidListing: If the listing doesn't exist or isn't ACTIVE
        """
        queryset = Listing.objects.all()
        if lock:
            queryset = queryset.select_for_update()

        listing = queryset.filter(id=listing_id).first()
        if listing is None:
            raise InvalidListing(
                f"Listing {listing_id} not found",
                details={"listing_id": str(listing_id)},
            )
        if not listing.is_bookable:
            raise InvalidListing(
                f"Listing {listing_id} is not accepting bookings",
                details={"listing_id": str(listing_id), "status": listing.status},
            )
        return listing

