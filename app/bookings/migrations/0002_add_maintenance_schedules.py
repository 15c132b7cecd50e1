"""
Add celery-beat schedules for booking maintenance.

- expire_unpaid_bookings: hourly, cancels bookings left unpaid
- auto_approve_overdue_returns: hourly, completes uninspected returns
"""

from django.db import migrations

TASKS = [
    {
        "name": "Expire Unpaid Bookings",
        "task": "bookings.tasks.expire_unpaid_bookings",
        "description": (
            "Cancels bookings that stayed in PENDING_PAYMENT longer than "
            "BOOKINGS_PENDING_PAYMENT_TTL_HOURS."
        ),
    },
    {
        "name": "Auto-approve Overdue Returns",
        "task": "bookings.tasks.auto_approve_overdue_returns",
        "description": (
            "Completes bookings left in PENDING_RETURN_INSPECTION past "
            "BOOKINGS_RETURN_AUTO_APPROVE_HOURS and releases their deposits."
        ),
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for booking maintenance."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Create interval schedule: every hour
    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="hours",
    )

    for entry in TASKS:
        PeriodicTask.objects.get_or_create(
            name=entry["name"],
            defaults={
                "task": entry["task"],
                "interval": schedule,
                "enabled": True,
                "description": entry["description"],
            },
        )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the periodic tasks on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name__in=[entry["name"] for entry in TASKS]).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("bookings", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
