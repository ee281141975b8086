"""
Register the celery beat schedule for the expired-pin sweep.

Runs chat.tasks.remove_expired_pins every PIN_SWEEP_INTERVAL_SECONDS
(default 300). The beat process also triggers one sweep on startup, see
chat.tasks.sweep_expired_pins_on_beat_start.
"""

from django.conf import settings
from django.db import migrations

TASK_NAME = "Chat: Remove Expired Pins"


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic task for the expired-pin sweep."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    interval, _ = IntervalSchedule.objects.get_or_create(
        every=settings.PIN_SWEEP_INTERVAL_SECONDS,
        period="seconds",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "chat.tasks.remove_expired_pins",
            "interval": interval,
            "enabled": True,
            "description": (
                "Deletes pinned messages whose pinned_until has passed. "
                "Active-pin queries already filter expired rows; this only "
                "reclaims storage."
            ),
        },
    )


def remove_periodic_tasks(apps, schema_editor):
    """Remove the sweep schedule on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")
    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("chat", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
