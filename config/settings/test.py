"""
Test settings for the Sitemap Indexer service.

Uses in-memory SQLite, the local memory cache and eager Celery for fast
test execution.
"""

import os
from .base import *

# Test mode
DEBUG = False

ALLOWED_HOSTS = ["localhost", "127.0.0.1", "testserver"]

DATABASES = {
    "default": {
        "ENGINE": "django.db.backends.sqlite3",
        "NAME": ":memory:",
    }
}

# Test Cache - use local memory cache
CACHES = {
    "default": {
        "BACKEND": "django.core.cache.backends.locmem.LocMemCache",
        "LOCATION": "indexer-tests",
    }
}

# Test Celery - run tasks synchronously
CELERY_TASK_ALWAYS_EAGER = True
CELERY_TASK_EAGER_PROPAGATES = True

# Test logging - minimal output
LOGGING["loggers"]["django"]["level"] = "WARNING"
LOGGING["loggers"]["indexer"]["level"] = "WARNING"

AUTH_PASSWORD_VALIDATORS = []

# Use faster password hasher for tests
PASSWORD_HASHERS = [
    "django.contrib.auth.hashers.MD5PasswordHasher",
]

# Disable Sentry in tests
SENTRY_DSN = ""

# Legacy single-site configuration used by tests
INDEXNOW_SITEMAP_URL = "https://example.com/sitemap.xml"
INDEXNOW_SITE_HOST = "example.com"
INDEXNOW_API_KEY = "0123456789abcdef0123456789abcdef"
INDEXNOW_KEY_LOCATION = ""
INDEXNOW_SEARCH_ENGINES = ["api.indexnow.org"]
BING_API_KEY = ""

# Test indexer settings - fail fast
INDEXER_REQUEST_TIMEOUT = 5
