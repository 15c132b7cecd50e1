"""
Concurrency control utilities for money-moving operations.

This module provides two complementary concurrency mechanisms:

1. **Distributed Locks** (DistributedLock)
   - Redis-based mutual exclusion across worker processes
   - TTL prevents deadlocks from crashed workers
   - Use for: sweeps that must not run twice for the same owner

2. **Optimistic Locking** (check_version)
   - Version-based conflict detection on a single row
   - Use for: deposit hold updates, booking transitions issued
     against a version the client last saw

Usage:

    from payments.locks import DistributedLock, check_version

    with DistributedLock(f"payout:{owner_id}:usd", ttl=120):
        aggregator.request_payout(owner_id, "usd")

    with transaction.atomic():
        hold = check_version(DepositHold, hold_id, expected_version=2)
        hold.release(at=now)
        hold.save()  # Version auto-increments
"""

from __future__ import annotations

import time
import uuid as uuid_module
from typing import TYPE_CHECKING, TypeVar

from django.db import models, transaction

from django_redis import get_redis_connection

from core.exceptions import NotFoundError
from payments.exceptions import LockAcquisitionError, StaleRecordError

if TYPE_CHECKING:
    from typing import Any

    from redis import Redis

# Type variable for model classes
T = TypeVar("T", bound=models.Model)


# =============================================================================
# Distributed Locks
# =============================================================================


class DistributedLock:
    """
    Redis-based distributed lock with TTL.

    The lock value is a random token, so only the holder can release it.

    Example:
        lock = DistributedLock("payout:owner-1:usd", ttl=60, blocking=False)
        try:
            with lock:
                aggregator.request_payout(owner_id, "usd")
        except LockAcquisitionError:
            # Another worker is paying this owner out right now
            pass

    Args:
        key: Lock identifier (will be prefixed with "lock:")
        ttl: Lock TTL in seconds (auto-releases after this time)
        blocking: If True, acquire() waits until lock is available
        timeout: Maximum wait time in seconds (only if blocking=True)
    """

    # Lua script for atomic check-and-delete (release)
    RELEASE_SCRIPT = """
    if redis.call("get", KEYS[1]) == ARGV[1] then
        return redis.call("del", KEYS[1])
    else
        return 0
    end
    """

    def __init__(
        self,
        key: str,
        ttl: int = 30,
        blocking: bool = True,
        timeout: float = 10.0,
    ) -> None:
        self.key = f"lock:{key}"
        self.ttl = ttl
        self.blocking = blocking
        self.timeout = timeout
        self._token: str | None = None
        self._redis: Redis | None = None

    def _get_redis(self) -> Redis:
        """Get Redis connection (lazy initialization)."""
        if self._redis is None:
            self._redis = get_redis_connection("default")
        return self._redis

    def acquire(self) -> bool:
        """
        Attempt to acquire the lock.

        Returns:
            True if lock was acquired

        Raises:
            LockAcquisitionError: If lock couldn't be acquired
        """
        token = str(uuid_module.uuid4())
        redis = self._get_redis()

        if self.blocking:
            end_time = time.monotonic() + self.timeout
            while time.monotonic() < end_time:
                if self._try_acquire(redis, token):
                    return True
                time.sleep(0.05)

            raise LockAcquisitionError(
                f"Failed to acquire lock '{self.key}' within {self.timeout}s",
                details={"key": self.key, "timeout": self.timeout},
            )

        if not self._try_acquire(redis, token):
            raise LockAcquisitionError(
                f"Lock '{self.key}' is already held",
                details={"key": self.key},
            )
        return True

    def _try_acquire(self, redis: Redis, token: str) -> bool:
        """Try once to acquire the lock; remember the token on success."""
        if redis.set(self.key, token, nx=True, ex=self.ttl):
            self._token = token
            return True
        return False

    def release(self) -> bool:
        """
        Release the lock if we hold it.

        Returns:
            True if lock was released, False if we didn't hold it
        """
        if self._token is None:
            return False

        redis = self._get_redis()
        result = redis.eval(self.RELEASE_SCRIPT, 1, self.key, self._token)
        self._token = None
        return bool(result)

    @property
    def is_held(self) -> bool:
        """Check if we currently hold the lock."""
        return self._token is not None

    def __enter__(self) -> DistributedLock:
        self.acquire()
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc_val: BaseException | None,
        exc_tb: Any,
    ) -> bool:
        self.release()
        return False


# =============================================================================
# Optimistic Locking
# =============================================================================


def check_version(
    model_class: type[T],
    pk: Any,
    expected_version: int,
) -> T:
    """
    Lock a row for update, asserting it is still at the expected version.

    Args:
        model_class: Django model class (must have a 'version' field)
        pk: Primary key of the record
        expected_version: Version the caller last read

    Returns:
        The locked model instance

    Raises:
        StaleRecordError: If the version moved on (concurrent modification)
        NotFoundError: If the record doesn't exist

    Note:
        Call inside the caller's transaction; the row lock is held until
        that transaction commits or rolls back.
    """
    with transaction.atomic():
        instance = (
            model_class.objects.select_for_update()
            .filter(pk=pk, version=expected_version)
            .first()
        )

        if instance is None:
            model_name = model_class.__name__
            current = model_class.objects.filter(pk=pk).values("version").first()
            if current is None:
                raise NotFoundError(
                    f"{model_name} {pk} not found",
                    error_code=f"{model_name.upper()}_NOT_FOUND",
                    details={"pk": str(pk)},
                )

            raise StaleRecordError(
                f"{model_name} {pk} has been modified "
                f"(expected version {expected_version}, current {current['version']})",
                details={
                    "pk": str(pk),
                    "expected_version": expected_version,
                    "current_version": current["version"],
                },
            )

        return instance


__all__ = [
    "DistributedLock",
    "check_version",
]
