"""
Celery configuration for the Sitemap Indexer service.

Configures Celery with a default queue for the periodic due-site check and
a submission queue for single-site runs.
"""

import os
from celery import Celery
from celery.schedules import crontab

# Set the default Django settings module for the 'celery' program.
os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

app = Celery("sitemap_indexer")

# - namespace='CELERY' means all celery-related configuration keys
#   should have a `CELERY_` prefix.
app.config_from_object("django.conf:settings", namespace="CELERY")

# Load task modules from all registered Django apps.
app.autodiscover_tasks()

app.conf.task_queues = {
    "submission": {
        "exchange": "submission",
        "routing_key": "submission",
    },
    "default": {
        "exchange": "default",
        "routing_key": "default",
    },
}

# Default task routing
app.conf.task_default_queue = "default"
app.conf.task_default_exchange = "default"
app.conf.task_default_routing_key = "default"

app.conf.task_routes = {
    "indexer.tasks.check_due_sites": {"queue": "default"},
    "indexer.tasks.run_site_submission": {"queue": "submission"},
}

# Configure Celery Beat schedule for periodic tasks
app.conf.beat_schedule = {
    "check-due-sites-every-15-minutes": {
        "task": "indexer.tasks.check_due_sites",
        "schedule": crontab(minute="*/15"),  # Every 15 minutes
    },
}
