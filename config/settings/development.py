"""
Development settings for the Sitemap Indexer service.

Uses SQLite, the database cache and relaxed security settings for development.
"""

import os
from .base import *

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = True

ALLOWED_HOSTS = ["localhost", "127.0.0.1"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": BASE_DIR / "db.sqlite3",
    }
}

# Development Cache - use database cache (no Redis needed for local dev)
# Run `python manage.py createcachetable` once.
# TIMEOUT None: the database backend's incr rewrites the entry with the
# default timeout, which would otherwise cut quota counters to 5 minutes.
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.db.DatabaseCache",
        "LOCATION": "cache_table",
        "TIMEOUT": None,
    }
}

# Development Celery
CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")

# Development logging - verbose output
LOGGING["loggers"]["django"]["level"] = "DEBUG"
LOGGING["loggers"]["indexer"]["level"] = "DEBUG"

INTERNAL_IPS = ["127.0.0.1"]

# Less strict password validators for development
AUTH_PASSWORD_VALIDATORS = []

# Relaxed indexer settings for development
INDEXER_REQUEST_TIMEOUT = 60  # More time for debugging
