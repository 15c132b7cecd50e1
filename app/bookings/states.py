"""
State, trigger and role enums for the booking lifecycle.

State Machine Overview:

    (create) → pending_owner_approval   (request-to-book listings)
    (create) → pending_payment          (instant-book listings)

    pending_owner_approval → pending_payment   (approve, owner)
    pending_owner_approval → rejected          (reject, owner)
    pending_payment → confirmed                (payment_succeeded, system)
    pending_payment → pending_payment          (payment_failed, system)
    pending_payment → cancelled                (cancel, renter/owner; expire, system)
    confirmed → cancelled                      (cancel, renter/owner)
    confirmed → in_progress                    (start, owner)
    in_progress → pending_return_inspection    (request_return, renter)
    pending_return_inspection → completed      (approve_return, owner;
                                                auto_approve_return, system)

The full table, with side effects, is bookings.state_machine.TRANSITIONS.
"""

from django.db import models


class BookingStatus(models.TextChoices):
    """
    States for the Booking model lifecycle.

    Terminal states: COMPLETED, REJECTED, CANCELLED
    """

    PENDING_OWNER_APPROVAL = "pending_owner_approval", "Pending Owner Approval"
    PENDING_PAYMENT = "pending_payment", "Pending Payment"
    CONFIRMED = "confirmed", "Confirmed"
    IN_PROGRESS = "in_progress", "In Progress"
    PENDING_RETURN_INSPECTION = "pending_return_inspection", "Pending Return Inspection"
    COMPLETED = "completed", "Completed"
    REJECTED = "rejected", "Rejected"
    CANCELLED = "cancelled", "Cancelled"


# Monetary fields may only change while a booking is in one of these
PENDING_STATUSES = frozenset(
    {BookingStatus.PENDING_OWNER_APPROVAL, BookingStatus.PENDING_PAYMENT}
)

# Bookings in these states occupy the listing's calendar
BLOCKING_STATUSES = frozenset(
    {
        BookingStatus.PENDING_PAYMENT,
        BookingStatus.CONFIRMED,
        BookingStatus.IN_PROGRESS,
        BookingStatus.PENDING_RETURN_INSPECTION,
    }
)

TERMINAL_STATUSES = frozenset(
    {BookingStatus.COMPLETED, BookingStatus.REJECTED, BookingStatus.CANCELLED}
)


class Trigger(models.TextChoices):
    """
    Events that drive booking transitions.

    CREATE is only ever recorded in the state history; it is not
    accepted by BookingService.transition().
    """

    CREATE = "create", "Create"
    APPROVE = "approve", "Approve"
    REJECT = "reject", "Reject"
    PAYMENT_SUCCEEDED = "payment_succeeded", "Payment Succeeded"
    PAYMENT_FAILED = "payment_failed", "Payment Failed"
    CANCEL = "cancel", "Cancel"
    START = "start", "Start Rental"
    REQUEST_RETURN = "request_return", "Request Return"
    APPROVE_RETURN = "approve_return", "Approve Return"
    EXPIRE = "expire", "Expire"
    AUTO_APPROVE_RETURN = "auto_approve_return", "Auto-approve Return"


class ActorRole(models.TextChoices):
    """
    Who issued a trigger, relative to the booking.

    SYSTEM is used when no actor id is given: payment-processor
    callbacks and scheduled tasks.
    """

    RENTER = "renter", "Renter"
    OWNER = "owner", "Owner"
    SYSTEM = "system", "System"
