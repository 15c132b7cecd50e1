"""
Add celery-beat schedule for the daily payout sweep.

This migration creates the periodic task schedule for the
sweep_payouts task, which runs once a day and requests payouts for
owners whose earnings have settled.
"""

from django.db import migrations


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for sweeping payouts."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Create interval schedule: every day
    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=1,
        period="days",
    )

    PeriodicTask.objects.get_or_create(
        name="Sweep Owner Payouts",
        defaults={
            "task": "payments.tasks.sweep_payouts",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Requests a payout for every owner whose settled earnings "
                "reach PAYOUT_MINIMUM_CENTS."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(
        name="Sweep Owner Payouts",
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
