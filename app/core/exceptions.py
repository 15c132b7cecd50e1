"""
Base exception classes for application-wide error handling.

This module provides the exception hierarchy every domain error in the
marketplace derives from, so callers (HTTP layer, admin tooling, celery
tasks) can map errors to responses without knowing each app's types.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Bad input, rejected before any write
    ├── NotFoundError - Resource not found
    ├── PermissionDeniedError - Actor is not allowed to do this
    └── ConflictError - Races and stale client views (refetch, don't retry)

Usage:
    from core.exceptions import ValidationError, ConflictError

    raise ValidationError("start_date must be before end_date")

    raise ConflictError(
        "Listing is already booked for these dates",
        error_code="UNAVAILABLE",
        details={"listing_id": str(listing_id)},
    )

    try:
        ...
    except BaseApplicationError as e:
        payload = e.to_dict()
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception for all application-specific errors.

    Attributes:
        message: Human-readable error description
        error_code: Machine-readable code for client-side handling
        details: Additional error context (ids, amounts, states)
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def to_dict(self) -> dict[str, Any]:
        """
        Convert exception to dictionary for an API response.

        Example:
            {
                "error": "Booking not found",
                "error_code": "BOOKING_NOT_FOUND",
                "details": {"booking_id": "..."}
            }
        """
        result: dict[str, Any] = {
            "error": self.message,
            "error_code": self.error_code,
        }
        if self.details:
            result["details"] = self.details
        return result

    def __str__(self) -> str:
        """Return string representation with error code."""
        return f"[{self.error_code}] {self.message}"

    def __repr__(self) -> str:
        """Return detailed representation for debugging."""
        return (
            f"{self.__class__.__name__}("
            f"message={self.message!r}, "
            f"error_code={self.error_code!r}, "
            f"details={self.details!r})"
        )


class ValidationError(BaseApplicationError):
    """
    Raised when input validation fails.

    Validation errors are raised before anything is written, so the
    caller can always retry after correcting the input.
    """

    default_error_code: str = "VALIDATION_ERROR"


class NotFoundError(BaseApplicationError):
    """Raised when a requested resource is not found."""

    default_error_code: str = "NOT_FOUND"


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the actor lacks permission for an operation.

    Authentication happens upstream; this covers role checks such as
    "only the listing owner may approve a booking".
    """

    default_error_code: str = "PERMISSION_DENIED"


class ConflictError(BaseApplicationError):
    """
    Raised when an operation conflicts with current resource state.

    Use for:
    - Double-booking races
    - Re-entrant transitions on a stale client view
    - Optimistic locking failures

    Note:
        HTTP 409 Conflict is the appropriate status for these errors.
        Callers should refetch state rather than retry blindly.
    """

    default_error_code: str = "CONFLICT"
