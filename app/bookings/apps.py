"""
Bookings app configuration.

The bookings app owns the booking lifecycle: creation with the
availability check, the transition table, and the ledger and deposit
side effects of each transition.
"""

from django.apps import AppConfig


class BookingsConfig(AppConfig):
    """Configuration for the bookings application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "bookings"
    verbose_name = "Bookings"
