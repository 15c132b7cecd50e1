"""
The booking transition table.

Each rule pairs a trigger and its source states with the target state,
the actor roles allowed to issue it, and a typed side effect that
BookingService runs in the same transaction as the status change.

Keeping the table as data makes every (state, trigger) pair enumerable:

    for status in BookingStatus:
        for trigger in Trigger:
            rule = find_rule(status, trigger)
"""

from __future__ import annotations

import enum
import uuid
from dataclasses import dataclass

from bookings.states import ActorRole, BookingStatus, Trigger


class Effect(enum.Enum):
    """Side effect of an applied transition."""

    NONE = "none"
    RECORD_PAYMENT = "record_payment"
    RECORD_PAYMENT_FAILURE = "record_payment_failure"
    REFUND_PAYMENT = "refund_payment"
    PLACE_DEPOSIT_HOLD = "place_deposit_hold"
    SETTLE_DEPOSIT = "settle_deposit"


@dataclass(frozen=True)
class TransitionRule:
    trigger: str
    sources: frozenset[str]
    target: str
    roles: frozenset[str]
    effect: Effect = Effect.NONE


_OWNER = frozenset({ActorRole.OWNER})
_RENTER = frozenset({ActorRole.RENTER})
_SYSTEM = frozenset({ActorRole.SYSTEM})

TRANSITIONS: tuple[TransitionRule, ...] = (
    TransitionRule(
        trigger=Trigger.APPROVE,
        sources=frozenset({BookingStatus.PENDING_OWNER_APPROVAL}),
        target=BookingStatus.PENDING_PAYMENT,
        roles=_OWNER,
    ),
    TransitionRule(
        trigger=Trigger.REJECT,
        sources=frozenset({BookingStatus.PENDING_OWNER_APPROVAL}),
        target=BookingStatus.REJECTED,
        roles=_OWNER,
    ),
    TransitionRule(
        trigger=Trigger.PAYMENT_SUCCEEDED,
        sources=frozenset({BookingStatus.PENDING_PAYMENT}),
        target=BookingStatus.CONFIRMED,
        roles=_SYSTEM,
        effect=Effect.RECORD_PAYMENT,
    ),
    TransitionRule(
        trigger=Trigger.PAYMENT_FAILED,
        sources=frozenset({BookingStatus.PENDING_PAYMENT}),
        target=BookingStatus.PENDING_PAYMENT,
        roles=_SYSTEM,
        effect=Effect.RECORD_PAYMENT_FAILURE,
    ),
    TransitionRule(
        trigger=Trigger.CANCEL,
        sources=frozenset({BookingStatus.PENDING_PAYMENT, BookingStatus.CONFIRMED}),
        target=BookingStatus.CANCELLED,
        roles=frozenset({ActorRole.RENTER, ActorRole.OWNER}),
        effect=Effect.REFUND_PAYMENT,
    ),
    TransitionRule(
        trigger=Trigger.EXPIRE,
        sources=frozenset({BookingStatus.PENDING_PAYMENT}),
        target=BookingStatus.CANCELLED,
        roles=_SYSTEM,
    ),
    TransitionRule(
        trigger=Trigger.START,
        sources=frozenset({BookingStatus.CONFIRMED}),
        target=BookingStatus.IN_PROGRESS,
        roles=_OWNER,
        effect=Effect.PLACE_DEPOSIT_HOLD,
    ),
    TransitionRule(
        trigger=Trigger.REQUEST_RETURN,
        sources=frozenset({BookingStatus.IN_PROGRESS}),
        target=BookingStatus.PENDING_RETURN_INSPECTION,
        roles=_RENTER,
    ),
    TransitionRule(
        trigger=Trigger.APPROVE_RETURN,
        sources=frozenset({BookingStatus.PENDING_RETURN_INSPECTION}),
        target=BookingStatus.COMPLETED,
        roles=_OWNER,
        effect=Effect.SETTLE_DEPOSIT,
    ),
    TransitionRule(
        trigger=Trigger.AUTO_APPROVE_RETURN,
        sources=frozenset({BookingStatus.PENDING_RETURN_INSPECTION}),
        target=BookingStatus.COMPLETED,
        roles=_SYSTEM,
        effect=Effect.SETTLE_DEPOSIT,
    ),
)


def find_rule(status: str, trigger: str) -> TransitionRule | None:
    """The rule for ``trigger`` applicable in ``status``, if any."""
    for rule in TRANSITIONS:
        if rule.trigger == trigger and status in rule.sources:
            return rule
    return None


def targets_of(trigger: str) -> frozenset[str]:
    """Every state ``trigger`` can lead to."""
    return frozenset(rule.target for rule in TRANSITIONS if rule.trigger == trigger)


def roles_for(trigger: str) -> frozenset[str]:
    """Every role that may issue ``trigger`` in some state."""
    return frozenset(
        role for rule in TRANSITIONS if rule.trigger == trigger for role in rule.roles
    )


def resolve_role(
    actor_id: uuid.UUID | None,
    renter_id: uuid.UUID,
    owner_id: uuid.UUID,
) -> str | None:
    """
    The actor's role on a booking.

    Returns:
        SYSTEM when actor_id is None, RENTER or OWNER by id, otherwise
        None (a stranger to the booking)
    """
    if actor_id is None:
        return ActorRole.SYSTEM
    if actor_id == renter_id:
        return ActorRole.RENTER
    if actor_id == owner_id:
        return ActorRole.OWNER
    return None
