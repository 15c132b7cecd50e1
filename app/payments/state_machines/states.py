"""
State enums for payment models.

This module defines the state enums used by payment models with django-fsm.
These are Django TextChoices for database storage and admin integration.

State Machines Overview:

DepositHold States:
    held → released
    held → captured

Payout States:
    requested → paid
    requested → failed
"""

from django.db import models


class DepositHoldStatus(models.TextChoices):
    """
    States for the DepositHold model lifecycle.

    Terminal states: RELEASED, CAPTURED

    State Flow:
        HELD → RELEASED (rental ended without a damage claim)
        HELD → CAPTURED (damage claim; any remainder goes back to the renter)

    Status is monotonic: a hold never returns to HELD.
    """

    HELD = "held", "Held"
    RELEASED = "released", "Released"
    CAPTURED = "captured", "Captured"


class PayoutStatus(models.TextChoices):
    """
    States for the Payout model lifecycle.

    Terminal states: PAID, FAILED

    State Flow:
        REQUESTED → PAID (processor confirmed the transfer)
        REQUESTED → FAILED (covered entries become eligible again)
    """

    REQUESTED = "requested", "Requested"
    PAID = "paid", "Paid"
    FAILED = "failed", "Failed"
