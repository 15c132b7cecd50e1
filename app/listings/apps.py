"""
Listings app configuration.

The listings app is the listing collaborator of the booking subsystem:
it supplies listing status, booking mode, pricing inputs and owner id.
Catalog features (categories, search, media) live elsewhere.
"""

from django.apps import AppConfig


class ListingsConfig(AppConfig):
    """Configuration for the listings application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "listings"
    verbose_name = "Listings"
