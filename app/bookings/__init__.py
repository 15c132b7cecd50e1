"""
Bookings app: the booking lifecycle state machine.

This app handles:
- Booking creation behind the per-listing availability check
- Status transitions driven by a single transition table
- Ledger and deposit side effects, atomic with the status change
- State history and post-commit status-change signals

Related apps:
    - listings: Listing status, booking mode, pricing inputs, owner id
    - payments: Ledger, deposit holds, payouts

Usage:
    from bookings.services import BookingService
    from bookings.states import Trigger

    service = BookingService()
    booking = service.create_booking(listing_id, renter_id, start, end)
    booking = service.transition(booking.id, Trigger.APPROVE, actor_id=owner_id)
"""
