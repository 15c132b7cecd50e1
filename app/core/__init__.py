"""
Core Application - Infrastructure & Base Classes

Generic building blocks shared by the marketplace apps (listings,
bookings, payments). No domain logic lives here.

Models (import from core.models):
    - BaseModel: Abstract model with timestamps (created_at, updated_at)

Model Mixins (import from core.model_mixins):
    - UUIDPrimaryKeyMixin: UUID as primary key
    - VersionedModelMixin: Optimistic locking version counter

Services (import from core.services):
    - BaseService: Base class for service layer

Clock (import from core.clock):
    - Clock, SystemClock, FixedClock: Injectable source of "now"

Exceptions (import from core.exceptions):
    - BaseApplicationError: Base exception with error codes
    - ValidationError: Input validation failures
    - NotFoundError: Resource not found
    - PermissionDeniedError: Authorization failures
    - ConflictError: State conflicts (races, stale views)

Note:
    Django models and model mixins are NOT imported here to avoid
    AppRegistryNotReady errors. Import them directly from their modules.
"""

from .clock import Clock, FixedClock, SystemClock
from .exceptions import (
    BaseApplicationError,
    ConflictError,
    NotFoundError,
    PermissionDeniedError,
    ValidationError,
)
from .services import BaseService

__all__ = [
    # Services
    "BaseService",
    # Clock
    "Clock",
    "FixedClock",
    "SystemClock",
    # Exceptions
    "BaseApplicationError",
    "ValidationError",
    "NotFoundError",
    "PermissionDeniedError",
    "ConflictError",
]
