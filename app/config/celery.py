"""
Celery application for background work.

Used for:
- Re-processing failed Stripe webhook events
- Reconciling payments whose webhooks never arrived

Periodic schedules are stored in the database by django-celery-beat and
created by payments/migrations/0002_add_reconciliation_schedule.py.
Tasks are auto-discovered from each installed app's tasks.py.

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

app.autodiscover_tasks()
