"""
Base service layer patterns for business logic encapsulation.

Services encapsulate business logic separate from models and from the
(out of scope) HTTP layer. Models hold data and enforce row-level
invariants; services own units of work that span several rows.

Error Handling:
    Services raise the domain exceptions from core.exceptions (or an
    app's subclass of them). Expected business outcomes that are not
    errors are returned as values instead.

Usage:
    from core.services import BaseService

    class ListingService(BaseService):
        @classmethod
        def archive(cls, listing_id):
            with cls.atomic():
                listing = Listing.objects.select_for_update().get(id=listing_id)
                listing.status = ListingStatus.ARCHIVED
                listing.save(update_fields=["status", "updated_at"])

            cls.get_logger().info(
                "Listing archived", extra={"listing_id": str(listing_id)}
            )
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from typing import TYPE_CHECKING

from django.db import transaction

if TYPE_CHECKING:
    from collections.abc import Generator


class BaseService:
    """
    Base class for service layer classes.

    Provides common utilities for services:
    - Logging setup per service
    - Database transaction management

    Design Notes:
        - Stateless services use @classmethod / @staticmethod
        - Services with collaborators (clock, ledger, policy) take them
          in __init__ and keep no other state
        - Raise exceptions for failures; never return error sentinels
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """
        Get logger for this service.

        Returns a logger named after the service class for
        easy filtering in logs.
        """
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Execute operations in a database transaction.

        All database operations within this context manager are
        wrapped in a transaction. If any operation fails, all
        changes are rolled back. Nested use creates a savepoint.

        Example:
            with cls.atomic():
                booking.save()
                ledger.append(entries, batch_key=key)
                # If the ledger append fails, the booking save is rolled back
        """
        with transaction.atomic():
            yield
