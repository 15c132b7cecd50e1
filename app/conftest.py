"""
Root pytest configuration for the Django project.

pytest-django reads DJANGO_SETTINGS_MODULE from pyproject.toml.
App-specific fixtures are defined in each app's tests/conftest.py.
"""

import pytest

from core.clock import FixedClock


def pytest_configure():
    """Pin business settings so tests don't depend on the local environment."""
    from django.conf import settings

    settings.PLATFORM_FEE_PERCENT = 15
    settings.SERVICE_FEE_PERCENT = 5
    settings.PAYOUT_MINIMUM_CENTS = 5000
    settings.PAYOUT_SETTLEMENT_DELAY_DAYS = 7
    settings.BOOKINGS_PENDING_PAYMENT_TTL_HOURS = 24
    settings.BOOKINGS_RETURN_AUTO_APPROVE_HOURS = 48
    settings.BOOKINGS_CANCELLATION_POLICY = (
        "bookings.policies.StandardCancellationPolicy"
    )
    # Cache is never read in tests; keep redis out of the picture
    settings.CACHES = {
        "default": {"BACKEND": "django.core.cache.backends.locmem.LocMemCache"}
    }


def pytest_collection_modifyitems(items):
    """
    Auto-mark tests based on filename patterns.

    Mapping:
    - test_integration.py → e2e (full booking journeys)
    - test_services.py, test_tasks.py, etc. → integration
    - test_models.py, test_pricing.py, test_state_machine.py, etc. → unit
    - Unmatched files → integration (safe default for Django)

    Explicit markers on test functions/classes take precedence.
    """
    e2e_patterns = ["test_integration.py"]

    integration_patterns = [
        "test_services.py",
        "test_tasks.py",
        "test_availability.py",
        "test_deposits.py",
        "test_disputes.py",
        "test_payouts.py",
        "test_signals.py",
        "test_concurrency.py",
    ]

    unit_patterns = [
        "test_models.py",
        "test_pricing.py",
        "test_policies.py",
        "test_state_machine.py",
        "test_clock.py",
        "test_exceptions.py",
        "test_locks.py",
        "test_model_mixins.py",
    ]

    for item in items:
        existing_markers = {m.name for m in item.iter_markers()}
        if existing_markers & {"unit", "integration", "e2e"}:
            continue

        filename = str(item.fspath).split("/")[-1]

        if any(pattern in filename for pattern in e2e_patterns):
            item.add_marker(pytest.mark.e2e)
        elif any(pattern in filename for pattern in integration_patterns):
            item.add_marker(pytest.mark.integration)
        elif any(pattern in filename for pattern in unit_patterns):
            item.add_marker(pytest.mark.unit)
        else:
            item.add_marker(pytest.mark.integration)


# =============================================================================
# Shared Fixtures
# =============================================================================


@pytest.fixture
def clock():
    """A FixedClock at 2030-06-01 12:00 UTC; advance() it to move time."""
    from datetime import datetime, timezone

    return FixedClock(datetime(2030, 6, 1, 12, 0, tzinfo=timezone.utc))
