"""
Listing-specific exceptions.

Exception Hierarchy:
    InvalidListing - Listing missing or not accepting bookings (NotFoundError)
"""

from __future__ import annotations

from core.exceptions import NotFoundError


class InvalidListing(NotFoundError):
    """
    Raised when a listing does not exist or cannot be booked.

    Only ACTIVE listings accept new bookings; drafts, paused and archived
    listings are reported the same way as missing ones.

    Attributes:
        details: Contains listing_id and, when it exists, its status
    """

    default_error_code: str = "INVALID_LISTING"
