"""
Add celery-beat schedule for resetting stuck webhook events.

This migration creates the periodic task schedule for the
cleanup_stuck_webhooks task, which runs every 15 minutes and moves
WebhookEvents left in PROCESSING by a crashed worker back to FAILED,
where retry_failed_webhook_events re-drives them.
"""

from django.db import migrations

TASK_NAME = "Reset Stuck Stripe Webhooks"


def create_periodic_task(apps, schema_editor):
    """Create the periodic task for resetting stuck webhooks."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=15,
        period="minutes",
    )

    PeriodicTask.objects.get_or_create(
        name=TASK_NAME,
        defaults={
            "task": "payments.tasks.cleanup_stuck_webhooks",
            "interval": schedule,
            "enabled": True,
            "description": (
                "Resets webhook events stuck in PROCESSING to FAILED so the "
                "retry task picks them up."
            ),
        },
    )


def remove_periodic_task(apps, schema_editor):
    """Remove the periodic task on migration rollback."""
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    PeriodicTask.objects.filter(name=TASK_NAME).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0002_add_reconciliation_schedule"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_task, remove_periodic_task),
    ]
