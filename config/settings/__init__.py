"""
Settings loader for the Sitemap Indexer service.

DJANGO_ENV picks the module: "production", "test", or development otherwise.
Celery workers and manage.py both go through here unless
DJANGO_SETTINGS_MODULE names a module directly.
"""

import os

env = os.getenv("DJANGO_ENV", "development")

if env == "production":
    from .production import *
elif env == "test":
    from .test import *
else:
    from .development import *
