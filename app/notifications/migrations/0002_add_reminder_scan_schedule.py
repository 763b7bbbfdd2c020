"""
Add celery-beat schedule for the notification cycle.

This migration creates the periodic task schedule for the
process_notifications task, which runs every 10 minutes to create ride
reminders that became due and mark pending notifications as sent.
"""

from django.db import migrations

TASK_NAME = "Process Ride Notifications"


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for the notification cycle."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    # Create interval schedule: every 10 minutes
    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=10,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "notifications.tasks.process_notifications",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Creates 24h reminders for upcoming rides that are due and "
                "marks due, still-pending notifications as sent."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("notifications", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
