"""
Add celery-beat schedules for escrow housekeeping.

Creates two periodic tasks on a 15 minute interval:
- reconcile_stale_payments: polls Stripe for payments stuck in PENDING
- retry_failed_webhook_events: re-drives failed webhook deliveries
"""

from django.db import migrations

PERIODIC_TASKS = [
    {
        "name": "Reconcile Stale Escrow Payments",
        "task": "payments.tasks.reconcile_stale_payments",
        "description": (
            "Polls Stripe for payments that stayed PENDING past the "
            "reconciliation threshold and applies what Stripe reports."
        ),
    },
    {
        "name": "Retry Failed Stripe Webhooks",
        "task": "payments.tasks.retry_failed_webhook_events",
        "description": "Re-queues FAILED webhook events below the retry limit.",
    },
]


def create_periodic_tasks(apps, schema_editor):
    """Create the periodic tasks for escrow housekeeping."""
    IntervalSchedule = apps.get_model("django_celery_beat", "IntervalSchedule")
    PeriodicTask = apps.get_model("django_celery_beat", "PeriodicTask")

    schedule, _ = IntervalSchedule.objects.get_or_create(
        every=15,
        period="minutes",
    )

    for entry in PERIODIC_TASKS:
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

    PeriodicTask.objects.filter(
        name__in=[entry["name"] for entry in PERIODIC_TASKS],
    ).delete()


class Migration(migrations.Migration):
    dependencies = [
        ("payments", "0001_initial"),
        ("django_celery_beat", "0019_alter_periodictasks_options"),
    ]

    operations = [
        migrations.RunPython(create_periodic_tasks, remove_periodic_tasks),
    ]
