"""
Celery configuration for the FriChat backend.

The worker runs background jobs and celery beat drives the periodic ones.
Periodic schedules are stored in the database by django-celery-beat; the
expired-pin sweep is registered by a chat data migration.

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

# Picks up chat/tasks.py (and its beat_init hook)
app.autodiscover_tasks()
