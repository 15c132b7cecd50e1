"""
Availability check for a listing's calendar.

Ranges are half-open [start, end): a checkout on day N and a check-in
on day N do not conflict.

The check is only race-free inside the caller's transaction, after the
listing row has been locked (ListingService.get_bookable(lock=True)).
Checking and then inserting in separate transactions is exactly the
race that double-books a listing.
"""

from __future__ import annotations

import uuid
from datetime import date

from bookings.models import Booking
from bookings.states import BLOCKING_STATUSES


def overlapping_bookings(
    listing_id: uuid.UUID,
    start_date: date,
    end_date: date,
    excluding_booking_id: uuid.UUID | None = None,
):
    """Bookings that occupy any night of [start_date, end_date)."""
    queryset = Booking.objects.filter(
        listing_id=listing_id,
        status__in=BLOCKING_STATUSES,
        start_date__lt=end_date,
        end_date__gt=start_date,
    )
    if excluding_booking_id is not None:
        queryset = queryset.exclude(id=excluding_booking_id)
    return queryset


def is_available(
    listing_id: uuid.UUID,
    start_date: date,
    end_date: date,
    excluding_booking_id: uuid.UUID | None = None,
) -> bool:
    """
    Whether no blocking booking overlaps the requested range.

    Args:
        listing_id: Listing to check
        start_date: First night
        end_date: Checkout day (exclusive)
        excluding_booking_id: Booking to ignore, for re-checking an
            existing booking against everyone else
    """
    return not overlapping_bookings(
        listing_id, start_date, end_date, excluding_booking_id
    ).exists()
