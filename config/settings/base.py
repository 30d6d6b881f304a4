"""
Django base settings for the Sitemap Indexer service.

This module contains settings common to all environments.
For more information on this file, see
https://docs.djangoproject.com/en/4.2/topics/settings/
"""

import os
from pathlib import Path
from dotenv import load_dotenv

# Load environment variables from .env file
load_dotenv()

# Build paths inside the project like this: BASE_DIR / 'subdir'.
BASE_DIR = Path(__file__).resolve().parent.parent.parent


# SECURITY WARNING: keep the secret key used in production secret!
SECRET_KEY = os.getenv(
    "SECRET_KEY",
    "django-insecure-indexer-dev-key-change-in-production"
)

# SECURITY WARNING: don't run with debug turned on in production!
DEBUG = os.getenv("DEBUG", "True") == "True"

ALLOWED_HOSTS = os.getenv("ALLOWED_HOSTS", "localhost,127.0.0.1").split(",")


# Application definition

INSTALLED_APPS = [
    "django.contrib.admin",
    "django.contrib.auth",
    "django.contrib.contenttypes",
    "django.contrib.sessions",
    "django.contrib.messages",
    "django.contrib.staticfiles",
    # Third-party apps
    "rest_framework",
    "drf_spectacular",
    # Local apps
    "indexer",
]

MIDDLEWARE = [
    "django.middleware.security.SecurityMiddleware",
    "django.contrib.sessions.middleware.SessionMiddleware",
    "django.middleware.common.CommonMiddleware",
    "django.middleware.csrf.CsrfViewMiddleware",
    "django.contrib.auth.middleware.AuthenticationMiddleware",
    "django.contrib.messages.middleware.MessageMiddleware",
    "django.middleware.clickjacking.XFrameOptionsMiddleware",
]

ROOT_URLCONF = "config.urls"

TEMPLATES = [
    {
        "BACKEND": "django.template.backends.django.DjangoTemplates",
        "DIRS": [],
        "APP_DIRS": True,
        "OPTIONS": {
            "context_processors": [
                "django.template.context_processors.debug",
                "django.template.context_processors.request",
                "django.contrib.auth.context_processors.auth",
                "django.contrib.messages.context_processors.messages",
            ],
        },
    },
]

WSGI_APPLICATION = "config.wsgi.application"


# Database
# Configured in environment-specific settings (development.py, production.py, test.py)

DATABASES = {
    # Override in environment-specific settings
}


# Password validation
# https://docs.djangoproject.com/en/4.2/ref/settings/#auth-password-validators

AUTH_PASSWORD_VALIDATORS = [
    {
        "NAME": "django.contrib.auth.password_validation.UserAttributeSimilarityValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.MinimumLengthValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.CommonPasswordValidator",
    },
    {
        "NAME": "django.contrib.auth.password_validation.NumericPasswordValidator",
    },
]


# Internationalization

LANGUAGE_CODE = "en-us"

TIME_ZONE = "UTC"

USE_I18N = True

USE_TZ = True


# Static files (CSS, JavaScript, Images)

STATIC_URL = "static/"
STATIC_ROOT = BASE_DIR / "staticfiles"

DEFAULT_AUTO_FIELD = "django.db.models.BigAutoField"


# Cache Configuration
# The cache is the indexer's key-value store: dedup records, Bing quota
# counters and execution history all live here.
# Configured in environment-specific settings

CACHES = {
    # Override in environment-specific settings
}


# Celery Configuration
# https://docs.celeryproject.org/en/stable/django/first-steps-with-django.html

CELERY_BROKER_URL = os.getenv("CELERY_BROKER_URL", "redis://localhost:6379/1")
CELERY_RESULT_BACKEND = os.getenv("CELERY_RESULT_BACKEND", "redis://localhost:6379/1")
CELERY_ACCEPT_CONTENT = ["json"]
CELERY_TASK_SERIALIZER = "json"
CELERY_RESULT_SERIALIZER = "json"
CELERY_TIMEZONE = TIME_ZONE
CELERY_TASK_TRACK_STARTED = True
CELERY_TASK_TIME_LIMIT = 60 * 60  # 1 hour max, large sitemaps with retries and cooldowns

CELERY_TASK_ROUTES = {
    "indexer.tasks.check_due_sites": {"queue": "default"},
    "indexer.tasks.run_site_submission": {"queue": "submission"},
}


# Django REST Framework Configuration
# https://www.django-rest-framework.org/

REST_FRAMEWORK = {
    "DEFAULT_AUTHENTICATION_CLASSES": [
        "rest_framework.authentication.SessionAuthentication",
    ],
    "DEFAULT_PERMISSION_CLASSES": [
        "rest_framework.permissions.IsAuthenticated",
    ],
    "DEFAULT_SCHEMA_CLASS": "drf_spectacular.openapi.AutoSchema",
}


# DRF Spectacular (OpenAPI/Swagger) Configuration
# https://drf-spectacular.readthedocs.io/

SPECTACULAR_SETTINGS = {
    "TITLE": "Sitemap Indexer API",
    "DESCRIPTION": "Pushes new sitemap URLs to IndexNow and Bing Webmaster",
    "VERSION": "1.0.0",
    "SERVE_INCLUDE_SCHEMA": False,
}


# Logging Configuration
# https://docs.djangoproject.com/en/4.2/topics/logging/

LOGGING = {
    "version": 1,
    "disable_existing_loggers": False,
    "formatters": {
        "verbose": {
            "format": "{levelname} {asctime} {module} {message}",
            "style": "{",
        },
    },
    "handlers": {
        "console": {
            "class": "logging.StreamHandler",
            "formatter": "verbose",
        },
    },
    "loggers": {
        "django": {
            "handlers": ["console"],
            "level": os.getenv("LOG_LEVEL", "INFO"),
        },
        "indexer": {
            "handlers": ["console"],
            "level": os.getenv("LOG_LEVEL", "INFO"),
        },
    },
}


# Sentry Configuration
# https://docs.sentry.io/platforms/python/guides/django/

SENTRY_DSN = os.getenv("SENTRY_DSN", "")
SENTRY_ENVIRONMENT = os.getenv("SENTRY_ENVIRONMENT", "development")
SENTRY_TRACES_SAMPLE_RATE = float(os.getenv("SENTRY_TRACES_SAMPLE_RATE", "0.1"))

# Initialize Sentry
import sentry_sdk

sentry_sdk.init(
    dsn=SENTRY_DSN or None,
    send_default_pii=False,
    traces_sample_rate=SENTRY_TRACES_SAMPLE_RATE,
    environment=SENTRY_ENVIRONMENT,
)


# Legacy single-site configuration (site id "default")

INDEXNOW_SITEMAP_URL = os.getenv("INDEXNOW_SITEMAP_URL", "")
INDEXNOW_SITE_HOST = os.getenv("INDEXNOW_SITE_HOST", "")
INDEXNOW_API_KEY = os.getenv("INDEXNOW_API_KEY", "")
INDEXNOW_KEY_LOCATION = os.getenv("INDEXNOW_KEY_LOCATION", "")
INDEXNOW_SEARCH_ENGINES = os.getenv("INDEXNOW_SEARCH_ENGINES", "api.indexnow.org").split(",")
INDEXNOW_MAX_CONCURRENT_REQUESTS = int(os.getenv("INDEXNOW_MAX_CONCURRENT_REQUESTS", "3"))
INDEXNOW_REQUEST_INTERVAL_MS = int(os.getenv("INDEXNOW_REQUEST_INTERVAL_MS", "100"))
INDEXNOW_CACHE_TTL_DAYS = int(os.getenv("INDEXNOW_CACHE_TTL_DAYS", "30"))
INDEXNOW_MAX_RETRIES = int(os.getenv("INDEXNOW_MAX_RETRIES", "3"))

BING_API_KEY = os.getenv("BING_API_KEY", "")
BING_DAILY_QUOTA = int(os.getenv("BING_DAILY_QUOTA", "100"))
BING_PRIORITY = os.getenv("BING_PRIORITY", "newest")


# Indexer Configuration

# Timeout for sitemap and submission HTTP requests (seconds)
INDEXER_REQUEST_TIMEOUT = int(os.getenv("INDEXER_REQUEST_TIMEOUT", "30"))

INDEXER_USER_AGENT = os.getenv("INDEXER_USER_AGENT", "SitemapIndexer/1.0")

# Maximum sitemap index nesting followed by the crawler
INDEXER_SITEMAP_MAX_DEPTH = int(os.getenv("INDEXER_SITEMAP_MAX_DEPTH", "5"))

# Sites run concurrently per window during scheduled runs
INDEXER_SITE_CONCURRENCY = int(os.getenv("INDEXER_SITE_CONCURRENCY", "3"))

# Execution history retention (both bounds apply)
INDEXER_HISTORY_MAX_RECORDS = int(os.getenv("INDEXER_HISTORY_MAX_RECORDS", "100"))
INDEXER_HISTORY_MAX_AGE_DAYS = int(os.getenv("INDEXER_HISTORY_MAX_AGE_DAYS", "365"))
