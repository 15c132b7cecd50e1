"""
Celery configuration for the rental marketplace backend.

Celery runs the scheduled maintenance jobs:
- bookings.tasks.expire_unpaid_bookings (hourly)
- bookings.tasks.auto_approve_overdue_returns (hourly)
- payments.tasks.sweep_payouts (daily)

Schedules live in the database (django-celery-beat) and are installed by
data migrations in the owning apps. Redis is both broker and result backend.

Usage:
    celery -A config worker -l info
    celery -A config beat -l info
"""

import os

from celery import Celery

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("config")

# All Celery settings are prefixed with CELERY_ in settings.py
app.config_from_object("django.conf:settings", namespace="CELERY")

# Picks up tasks.py from bookings and payments
app.autodiscover_tasks()
