"""
Booking service: creation and every status transition.

All writes of a transition happen in one transaction:
status change + ledger batch + deposit hold update + history row.
The status-change signal is sent only after commit.

Ledger batches written here:

    payment (PAYMENT_SUCCEEDED):
        DEBIT renter            total              (PAYMENT)
        CREDIT owner            total - platform   (EARNINGS)
        CREDIT platform revenue platform fee       (PLATFORM_FEE)

    refund (CANCEL of a paid booking, fraction p from the policy):
        CREDIT renter           round(total * p)
        DEBIT platform revenue  round(platform fee * p)
        DEBIT owner             the rest           (all REFUND)

Deposit holds go through payments.services.DepositHoldManager.

Usage:
    from bookings.services import BookingService
    from bookings.states import Trigger

    service = BookingService(clock=clock)
    booking = service.create_booking(listing.id, renter_id, start, end, guest_count=2)
    booking = service.transition(booking.id, Trigger.APPROVE, actor_id=owner_id)
    booking = service.transition(
        booking.id,
        Trigger.PAYMENT_SUCCEEDED,
        payload={"amount_cents": booking.total_cents},
    )
"""

from __future__ import annotations

import uuid
from datetime import date, datetime
from typing import Any

from django.db import IntegrityError, transaction
from django.utils import timezone

from django_fsm import TransitionNotAllowed

from core.clock import Clock, SystemClock
from core.exceptions import ConflictError
from core.services import BaseService

from bookings import availability, pricing
from bookings.exceptions import (
    AlreadyInState,
    BookingNotFound,
    ForbiddenTransition,
    InvalidDateRange,
    InvalidGuestCount,
    InvalidState,
    PaymentAmountMismatch,
    SelfBooking,
    Unavailable,
)
from bookings.models import Booking, BookingStateHistory
from bookings.policies import CancellationPolicy, get_cancellation_policy
from bookings.signals import send_status_changed_on_commit
from bookings.state_machine import (
    TRANSITIONS,
    Effect,
    TransitionRule,
    find_rule,
    resolve_role,
    roles_for,
    targets_of,
)
from bookings.states import BLOCKING_STATUSES, ActorRole, BookingStatus, Trigger
from listings.models import BookingMode, Listing
from listings.services import ListingService
from payments.exceptions import InvalidAmount
from payments.ledger import AccountType, EntryLine, EntrySide, TransactionType
from payments.ledger.services import LedgerService, ledger as default_ledger
from payments.locks import check_version
from payments.services import DepositHoldManager

CREATED_BY = "booking_service"


class BookingService(BaseService):
    """
    Creates bookings and applies transitions from the transition table.

    Args:
        clock: Source of timestamps (history, ledger, actual start/end)
        ledger: Ledger service the payment and refund batches go to
        deposits: Deposit hold manager (defaults to one sharing clock and ledger)
        cancellation_policy: Refund policy for cancellations (defaults to
            settings.BOOKINGS_CANCELLATION_POLICY)
    """

    def __init__(
        self,
        clock: Clock | None = None,
        ledger: LedgerService | None = None,
        deposits: DepositHoldManager | None = None,
        cancellation_policy: CancellationPolicy | None = None,
    ) -> None:
        self.clock = clock or SystemClock()
        self.ledger = ledger or default_ledger
        self.deposits = deposits or DepositHoldManager(
            clock=self.clock, ledger=self.ledger
        )
        self.cancellation_policy = cancellation_policy or get_cancellation_policy()

    # ==========================================================================
    # Creation
    # ==========================================================================

    def create_booking(
        self,
        listing_id: uuid.UUID,
        renter_id: uuid.UUID,
        start_date: date,
        end_date: date,
        guest_count: int = 1,
        idempotency_key: str | None = None,
    ) -> Booking:
        """
        Create a booking in PENDING_OWNER_APPROVAL or PENDING_PAYMENT.

        The listing row is locked for the availability check and the
        insert, so two overlapping requests for one listing serialize:
        exactly one succeeds, the other gets Unavailable.

        Args:
            listing_id: Listing to book
            renter_id: Renting user
            start_date: First night
            end_date: Checkout day (exclusive)
            guest_count: Number of guests (1..listing.max_guests)
            idempotency_key: Optional client key; a repeat call with the
                same key returns the booking created by the first call

        Raises:
            InvalidDateRange: If start_date >= end_date or start is in the past
            InvalidGuestCount: If guest_count is out of range
            InvalidListing: If the listing is missing or not ACTIVE
            SelfBooking: If the renter owns the listing
            Unavailable: If the dates overlap a blocking booking
        """
        listing_id = _as_uuid(listing_id)
        renter_id = _as_uuid(renter_id)
        self._validate_dates(start_date, end_date)
        if isinstance(guest_count, bool) or not isinstance(guest_count, int) or guest_count < 1:
            raise InvalidGuestCount(
                "Guest count must be at least 1",
                details={"guest_count": guest_count},
            )

        if idempotency_key:
            existing = self._find_by_idempotency_key(
                idempotency_key, listing_id, renter_id, start_date, end_date
            )
            if existing is not None:
                return existing

        with self.atomic():
            listing = ListingService.get_bookable(listing_id, lock=True)

            if listing.owner_id == renter_id:
                raise SelfBooking(
                    "Owners cannot book their own listing",
                    details={"listing_id": str(listing_id), "renter_id": str(renter_id)},
                )
            if guest_count > listing.max_guests:
                raise InvalidGuestCount(
                    f"Listing accepts at most {listing.max_guests} guests",
                    details={"guest_count": guest_count, "max_guests": listing.max_guests},
                )
            if not availability.is_available(listing.id, start_date, end_date):
                raise Unavailable(
                    "Listing is not available for the requested dates",
                    details={
                        "listing_id": str(listing_id),
                        "start_date": start_date.isoformat(),
                        "end_date": end_date.isoformat(),
                    },
                )

            quote = pricing.quote(listing, start_date, end_date)
            status = (
                BookingStatus.PENDING_PAYMENT
                if listing.booking_mode == BookingMode.INSTANT
                else BookingStatus.PENDING_OWNER_APPROVAL
            )

            try:
                with transaction.atomic():
                    booking = Booking.objects.create(
                        listing=listing,
                        renter_id=renter_id,
                        start_date=start_date,
                        end_date=end_date,
                        guest_count=guest_count,
                        base_price_cents=quote.base_price_cents,
                        platform_fee_cents=quote.platform_fee_cents,
                        service_fee_cents=quote.service_fee_cents,
                        deposit_cents=quote.deposit_cents,
                        total_cents=quote.total_cents,
                        currency=quote.currency,
                        status=status,
                        idempotency_key=idempotency_key or None,
                    )
            except IntegrityError:
                if not idempotency_key:
                    raise
                # Concurrent retry with the same key won the insert
                existing = self._find_by_idempotency_key(
                    idempotency_key, listing_id, renter_id, start_date, end_date
                )
                if existing is None:
                    raise
                return existing

            self._record_history(
                booking,
                from_status=None,
                trigger=Trigger.CREATE,
                actor_id=renter_id,
                actor_role=ActorRole.RENTER,
                metadata={"nights": quote.nights, "discount_cents": quote.discount_cents},
            )
            send_status_changed_on_commit(
                sender=Booking,
                booking_id=booking.id,
                from_status=None,
                to_status=booking.status,
                trigger=Trigger.CREATE,
                actor_id=renter_id,
            )

        self.get_logger().info(
            "Booking created",
            extra={
                "booking_id": str(booking.id),
                "listing_id": str(listing_id),
                "status": booking.status,
                "total_cents": booking.total_cents,
            },
        )
        return booking

    # ==========================================================================
    # Transitions
    # ==========================================================================

    def transition(
        self,
        booking_id: uuid.UUID,
        trigger: str,
        actor_id: uuid.UUID | None = None,
        payload: dict[str, Any] | None = None,
        expected_version: int | None = None,
    ) -> Booking:
        """
        Apply ``trigger`` to a booking.

        Args:
            booking_id: Booking to transition
            trigger: One of bookings.states.Trigger
            actor_id: Acting user; None for system triggers (payment
                callbacks, scheduled tasks)
            payload: Trigger data:
                PAYMENT_SUCCEEDED: {"amount_cents": int} (must equal total)
                PAYMENT_FAILED: {"reason": str}
                APPROVE_RETURN: {"damage_claim_cents": int} (optional)
            expected_version: Fail with StaleRecordError if the booking
                was modified since the caller read this version

        Returns:
            The booking after the transition

        Raises:
            BookingNotFound: If the booking doesn't exist
            StaleRecordError: If expected_version is stale
            ForbiddenTransition: If the actor's role may not issue the trigger
            AlreadyInState: If the trigger was already applied
            InvalidState: If the trigger isn't defined for the current state
            PaymentAmountMismatch: If a payment amount differs from the total
            InvalidAmount: If a damage claim is invalid
            Unavailable: If approving would overlap a booking that took
                the dates first
        """
        payload = payload or {}
        actor_id = _as_uuid(actor_id)

        with self.atomic():
            booking = self._lock_booking(booking_id, expected_version)
            from_status = booking.status

            # Role is checked before state
            actor_role = resolve_role(actor_id, booking.renter_id, booking.owner_id)
            trigger_roles = roles_for(trigger)
            if trigger_roles:
                self._check_role(booking, trigger, trigger_roles, actor_id, actor_role)

            rule = self._resolve_rule(booking, trigger)
            self._check_role(booking, trigger, rule.roles, actor_id, actor_role)

            self._validate_payload(booking, rule, payload)
            if rule.target in BLOCKING_STATUSES and from_status not in BLOCKING_STATUSES:
                self._ensure_still_available(booking)

            now = self.clock.now()
            try:
                booking.apply_transition(rule)
            except TransitionNotAllowed as e:
                raise InvalidState(
                    str(e),
                    details={"booking_id": str(booking.id), "status": from_status},
                )
            self._stamp(booking, rule, payload, now)
            booking.save()

            metadata = self._run_effect(booking, rule, payload, now)
            self._record_history(
                booking,
                from_status=from_status,
                trigger=rule.trigger,
                actor_id=actor_id,
                actor_role=actor_role,
                metadata=metadata,
                at=now,
            )
            send_status_changed_on_commit(
                sender=Booking,
                booking_id=booking.id,
                from_status=from_status,
                to_status=booking.status,
                trigger=rule.trigger,
                actor_id=actor_id,
            )

        self.get_logger().info(
            "Booking transitioned",
            extra={
                "booking_id": str(booking.id),
                "trigger": str(rule.trigger),
                "from_status": from_status,
                "to_status": booking.status,
                "actor_role": actor_role,
            },
        )
        return booking

    def available_triggers(
        self, booking: Booking, actor_id: uuid.UUID | None = None
    ) -> list[str]:
        """Triggers the actor may apply to the booking in its current state."""
        role = resolve_role(_as_uuid(actor_id), booking.renter_id, booking.owner_id)
        return [
            rule.trigger
            for rule in TRANSITIONS
            if booking.status in rule.sources and role in rule.roles
        ]

    def can_transition(
        self,
        booking: Booking,
        trigger: str,
        actor_id: uuid.UUID | None = None,
    ) -> bool:
        return trigger in self.available_triggers(booking, actor_id)

    # ==========================================================================
    # Reads
    # ==========================================================================

    @staticmethod
    def get_booking(booking_id: uuid.UUID) -> Booking:
        booking = Booking.objects.select_related("listing").filter(id=booking_id).first()
        if booking is None:
            raise BookingNotFound(
                f"Booking {booking_id} not found",
                details={"booking_id": str(booking_id)},
            )
        return booking

    def get_ledger(self, booking_id: uuid.UUID) -> list:
        """Ledger entries of the booking, oldest first."""
        self.get_booking(booking_id)
        return self.ledger.entries_for(booking_id)

    def get_balance(self, account_id: uuid.UUID, currency: str = "usd") -> int:
        """Balance (credits - debits, in cents) of a user's account."""
        return self.ledger.balance_of(account_id, currency)

    @staticmethod
    def get_state_history(booking_id: uuid.UUID) -> list[BookingStateHistory]:
        return list(BookingStateHistory.objects.filter(booking_id=booking_id).order_by("id"))

    # ==========================================================================
    # Internals: validation
    # ==========================================================================

    def _validate_dates(self, start_date: date, end_date: date) -> None:
        if (
            not isinstance(start_date, date)
            or not isinstance(end_date, date)
            or isinstance(start_date, datetime)
            or isinstance(end_date, datetime)
        ):
            raise InvalidDateRange(
                "start_date and end_date must be dates",
                details={"start_date": str(start_date), "end_date": str(end_date)},
            )
        if start_date >= end_date:
            raise InvalidDateRange(
                "start_date must be before end_date",
                details={
                    "start_date": start_date.isoformat(),
                    "end_date": end_date.isoformat(),
                },
            )
        today = timezone.localdate(self.clock.now())
        if start_date < today:
            raise InvalidDateRange(
                "start_date cannot be in the past",
                details={"start_date": start_date.isoformat(), "today": today.isoformat()},
            )

    @staticmethod
    def _find_by_idempotency_key(
        idempotency_key: str,
        listing_id: uuid.UUID,
        renter_id: uuid.UUID,
        start_date: date,
        end_date: date,
    ) -> Booking | None:
        existing = Booking.objects.filter(idempotency_key=idempotency_key).first()
        if existing is None:
            return None
        requested = (listing_id, renter_id, start_date, end_date)
        recorded = (
            existing.listing_id,
            existing.renter_id,
            existing.start_date,
            existing.end_date,
        )
        if recorded != requested:
            raise ConflictError(
                "Idempotency key was already used for a different booking request",
                error_code="IDEMPOTENCY_KEY_REUSED",
                details={"idempotency_key": idempotency_key},
            )
        return existing

    @staticmethod
    def _lock_booking(booking_id: uuid.UUID, expected_version: int | None) -> Booking:
        booking = (
            Booking.objects.select_for_update(of=("self",))
            .select_related("listing")
            .filter(id=booking_id)
            .first()
        )
        if booking is None:
            raise BookingNotFound(
                f"Booking {booking_id} not found",
                details={"booking_id": str(booking_id)},
            )
        if expected_version is not None:
            check_version(Booking, booking.id, expected_version)
        return booking

    @staticmethod
    def _ensure_still_available(booking: Booking) -> None:
        """
        Re-check the calendar for a booking about to start blocking it.

        Pending-approval bookings don't block, so two of them may overlap;
        only the first one approved keeps the dates.
        """
        Listing.objects.select_for_update().filter(id=booking.listing_id).first()
        if not availability.is_available(
            booking.listing_id,
            booking.start_date,
            booking.end_date,
            excluding_booking_id=booking.id,
        ):
            raise Unavailable(
                "Listing was booked for these dates in the meantime",
                details={
                    "booking_id": str(booking.id),
                    "listing_id": str(booking.listing_id),
                    "start_date": booking.start_date.isoformat(),
                    "end_date": booking.end_date.isoformat(),
                },
            )

    @staticmethod
    def _check_role(
        booking: Booking,
        trigger: str,
        allowed_roles: frozenset[str],
        actor_id: uuid.UUID | None,
        actor_role: str | None,
    ) -> None:
        if actor_role in allowed_roles:
            return
        raise ForbiddenTransition(
            f"Actor may not {trigger} this booking",
            details={
                "booking_id": str(booking.id),
                "trigger": str(trigger),
                "actor_id": str(actor_id) if actor_id else None,
                "actor_role": actor_role,
                "allowed_roles": sorted(allowed_roles),
            },
        )

    @staticmethod
    def _resolve_rule(booking: Booking, trigger: str) -> TransitionRule:
        rule = find_rule(booking.status, trigger)
        if rule is not None:
            return rule
        if booking.status in targets_of(trigger):
            raise AlreadyInState(
                f"Booking is already {booking.status}",
                details={
                    "booking_id": str(booking.id),
                    "status": booking.status,
                    "trigger": str(trigger),
                },
            )
        raise InvalidState(
            f"Can't {trigger} a booking in state '{booking.status}'",
            details={
                "booking_id": str(booking.id),
                "status": booking.status,
                "trigger": str(trigger),
            },
        )

    def _validate_payload(
        self, booking: Booking, rule: TransitionRule, payload: dict[str, Any]
    ) -> None:
        if rule.trigger == Trigger.PAYMENT_SUCCEEDED:
            amount = payload.get("amount_cents")
            if amount != booking.total_cents or isinstance(amount, bool):
                raise PaymentAmountMismatch(
                    "Payment amount does not match the booking total",
                    details={
                        "booking_id": str(booking.id),
                        "amount_cents": amount,
                        "total_cents": booking.total_cents,
                    },
                )

        elif rule.trigger == Trigger.APPROVE_RETURN:
            claim = payload.get("damage_claim_cents", 0) or 0
            if isinstance(claim, bool) or not isinstance(claim, int) or claim < 0:
                raise InvalidAmount(
                    "Damage claim must be a non-negative integer (cents)",
                    details={"damage_claim_cents": claim},
                )
            if claim:
                hold = self.deposits.active_hold_for(booking.id)
                if hold is None or claim > hold.amount_cents:
                    raise InvalidAmount(
                        "Damage claim exceeds the held deposit",
                        details={
                            "booking_id": str(booking.id),
                            "damage_claim_cents": claim,
                            "held_cents": hold.amount_cents if hold else 0,
                        },
                    )

    # ==========================================================================
    # Internals: effects
    # ==========================================================================

    @staticmethod
    def _stamp(
        booking: Booking, rule: TransitionRule, payload: dict[str, Any], now
    ) -> None:
        if rule.trigger == Trigger.PAYMENT_SUCCEEDED:
            booking.paid_at = now
            booking.payment_attempts += 1
        elif rule.trigger == Trigger.PAYMENT_FAILED:
            booking.payment_attempts += 1
            booking.last_payment_error = str(payload.get("reason") or "")
        elif rule.trigger in (Trigger.CANCEL, Trigger.EXPIRE):
            booking.cancelled_at = now
        elif rule.trigger == Trigger.START:
            booking.actual_start_at = now
        elif rule.trigger in (Trigger.APPROVE_RETURN, Trigger.AUTO_APPROVE_RETURN):
            booking.actual_end_at = now

    def _run_effect(
        self, booking: Booking, rule: TransitionRule, payload: dict[str, Any], now
    ) -> dict[str, Any]:
        """Run the rule's side effect; returns metadata for the history row."""
        if rule.effect == Effect.RECORD_PAYMENT:
            return self._record_payment(booking, now)
        if rule.effect == Effect.RECORD_PAYMENT_FAILURE:
            return {"reason": str(payload.get("reason") or "")}
        if rule.effect == Effect.REFUND_PAYMENT:
            return self._refund_payment(booking, now)
        if rule.effect == Effect.PLACE_DEPOSIT_HOLD:
            return self._place_deposit_hold(booking)
        if rule.effect == Effect.SETTLE_DEPOSIT:
            claim = 0
            if rule.trigger == Trigger.APPROVE_RETURN:
                claim = payload.get("damage_claim_cents", 0) or 0
            return self._settle_deposit(booking, claim)
        return {}

    def _record_payment(self, booking: Booking, now) -> dict[str, Any]:
        currency = booking.currency
        renter = self.ledger.user_account(booking.renter_id, currency)
        owner = self.ledger.user_account(booking.owner_id, currency)
        owner_share = booking.total_cents - booking.platform_fee_cents

        lines = [
            EntryLine(
                renter.id,
                EntrySide.DEBIT,
                booking.total_cents,
                TransactionType.PAYMENT,
                booking_id=booking.id,
                description="Booking payment",
            ),
        ]
        if owner_share:
            lines.append(
                EntryLine(
                    owner.id,
                    EntrySide.CREDIT,
                    owner_share,
                    TransactionType.EARNINGS,
                    booking_id=booking.id,
                    description="Booking earnings",
                )
            )
        if booking.platform_fee_cents:
            platform = self.ledger.system_account(AccountType.PLATFORM_REVENUE, currency)
            lines.append(
                EntryLine(
                    platform.id,
                    EntrySide.CREDIT,
                    booking.platform_fee_cents,
                    TransactionType.PLATFORM_FEE,
                    booking_id=booking.id,
                    description="Platform fee",
                )
            )

        batch_key = f"booking:{booking.id}:payment"
        self.ledger.append(lines, batch_key=batch_key, created_by=CREATED_BY, created_at=now)
        return {"batch_key": batch_key, "amount_cents": booking.total_cents}

    def _refund_payment(self, booking: Booking, now) -> dict[str, Any]:
        if not booking.is_paid:
            return {}

        fraction = self.cancellation_policy.refund_fraction(booking, now)
        refund = pricing.fraction_of(booking.total_cents, fraction)
        platform_part = pricing.fraction_of(booking.platform_fee_cents, fraction)
        owner_part = refund - platform_part
        metadata = {"refund_fraction": str(fraction), "refund_cents": refund}
        if not refund:
            return metadata

        currency = booking.currency
        renter = self.ledger.user_account(booking.renter_id, currency)
        lines = [
            EntryLine(
                renter.id,
                EntrySide.CREDIT,
                refund,
                TransactionType.REFUND,
                booking_id=booking.id,
                description="Cancellation refund",
                metadata={"refund_fraction": str(fraction)},
            ),
        ]
        if owner_part:
            owner = self.ledger.user_account(booking.owner_id, currency)
            lines.append(
                EntryLine(
                    owner.id,
                    EntrySide.DEBIT,
                    owner_part,
                    TransactionType.REFUND,
                    booking_id=booking.id,
                    description="Cancellation refund",
                )
            )
        if platform_part:
            platform = self.ledger.system_account(AccountType.PLATFORM_REVENUE, currency)
            lines.append(
                EntryLine(
                    platform.id,
                    EntrySide.DEBIT,
                    platform_part,
                    TransactionType.REFUND,
                    booking_id=booking.id,
                    description="Cancellation refund",
                )
            )

        batch_key = f"booking:{booking.id}:refund"
        self.ledger.append(lines, batch_key=batch_key, created_by=CREATED_BY, created_at=now)
        metadata["batch_key"] = batch_key
        return metadata

    def _place_deposit_hold(self, booking: Booking) -> dict[str, Any]:
        if not booking.deposit_cents:
            return {}
        hold = self.deposits.hold(booking.id, booking.deposit_cents, booking.currency)
        return {"deposit_hold_id": str(hold.id)}

    def _settle_deposit(self, booking: Booking, claim_cents: int) -> dict[str, Any]:
        hold = self.deposits.active_hold_for(booking.id)
        if hold is None:
            return {}

        metadata: dict[str, Any] = {"deposit_hold_id": str(hold.id)}
        if claim_cents:
            metadata["damage_claim_cents"] = claim_cents

        if self.deposits.is_frozen(hold):
            # Dispute resolution settles the hold later, using the recorded claim
            self.get_logger().warning(
                "Deposit hold frozen, left held on return approval",
                extra={
                    "booking_id": str(booking.id),
                    "hold_id": str(hold.id),
                    "damage_claim_cents": claim_cents,
                },
            )
            metadata["deposit_frozen"] = True
            return metadata

        if claim_cents:
            self.deposits.capture(hold.id, claim_cents)
        else:
            self.deposits.release(hold.id)
        return metadata

    def _record_history(
        self,
        booking: Booking,
        from_status: str | None,
        trigger: str,
        actor_id: uuid.UUID | None,
        actor_role: str,
        metadata: dict[str, Any] | None = None,
        at=None,
    ) -> BookingStateHistory:
        return BookingStateHistory.objects.create(
            booking=booking,
            from_status=from_status,
            to_status=booking.status,
            trigger=trigger,
            actor_id=actor_id,
            actor_role=actor_role,
            metadata=metadata or {},
            created_at=at or self.clock.now(),
        )


def _as_uuid(value) -> uuid.UUID | None:
    if value is None or isinstance(value, uuid.UUID):
        return value
    return uuid.UUID(str(value))
