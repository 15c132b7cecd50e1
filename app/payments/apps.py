"""
Payments app configuration.

This app provides the money side of the marketplace:
- Double-entry bookkeeping ledger
- Security deposit holds and dispute freezes
- Owner payouts
"""

from django.apps import AppConfig


class PaymentsConfig(AppConfig):
    """Configuration for the payments application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "payments"
    verbose_name = "Payments"
