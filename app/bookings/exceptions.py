"""
Booking-specific exceptions.

Exception Hierarchy:
    InvalidDateRange - start_date >= end_date, or start in the past (ValidationError)
    InvalidGuestCount - Guest count outside 1..listing.max_guests (ValidationError)
    PaymentAmountMismatch - Callback amount differs from total (ValidationError)

    BookingNotFound - Booking lookup failures (NotFoundError)
    InvalidListing - Listing missing or inactive (NotFoundError, from listings)

    SelfBooking - Renter is the listing owner (PermissionDeniedError)
    ForbiddenTransition - Actor's role may not issue the trigger (PermissionDeniedError)

    Unavailable - Dates overlap a blocking booking (ConflictError)
    InvalidState - Trigger not defined for the current state (ConflictError)
    AlreadyInState - Trigger already applied (ConflictError)

Usage:
    from bookings.exceptions import Unavailable

    try:
        booking = service.create_booking(listing_id, renter_id, start, end)
    except Unavailable as e:
        return Response(e.to_dict(), status=409)
"""

from __future__ import annotations

from core.exceptions import (
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from listings.exceptions import InvalidListing

__all__ = [
    "AlreadyInState",
    "BookingNotFound",
    "ForbiddenTransition",
    "InvalidDateRange",
    "InvalidGuestCount",
    "InvalidListing",
    "InvalidState",
    "PaymentAmountMismatch",
    "SelfBooking",
    "Unavailable",
]


class InvalidDateRange(ValidationError):
    """Raised when start_date is not strictly before end_date, or lies in the past."""

    default_error_code: str = "INVALID_DATE_RANGE"


class InvalidGuestCount(ValidationError):
    default_error_code: str = "INVALID_GUEST_COUNT"


class PaymentAmountMismatch(ValidationError):
    """
    Raised when a payment callback does not match the booking total.

    Nothing is written: the booking stays in PENDING_PAYMENT.
    """

    default_error_code: str = "PAYMENT_AMOUNT_MISMATCH"


class BookingNotFound(NotFoundError):
    default_error_code: str = "BOOKING_NOT_FOUND"


class SelfBooking(PermissionDeniedError):
    """Raised when a renter tries to book their own listing."""

    default_error_code: str = "SELF_BOOKING"


class ForbiddenTransition(PermissionDeniedError):
    """
    Raised when the actor's role may not issue the trigger.

    Attributes:
        details: Contains trigger, actor_id, actor_role and allowed_roles
    """

    default_error_code: str = "FORBIDDEN_TRANSITION"


class Unavailable(ConflictError):
    """
    Raised when the requested dates overlap a booking that occupies
    the listing's calendar.
    """

    default_error_code: str = "UNAVAILABLE"


class InvalidState(ConflictError):
    """
    Raised when the trigger is not defined for the booking's current state.

    Attributes:
        details: Contains booking_id, status and trigger
    """

    default_error_code: str = "INVALID_STATE"


class AlreadyInState(ConflictError):
    """
    Raised when a trigger is repeated after it was already applied,
    e.g. approving an already-approved booking.

    Surfaces client-side races instead of silently succeeding.
    """

    default_error_code: str = "ALREADY_IN_STATE"
