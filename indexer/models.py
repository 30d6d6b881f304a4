"""
Django models for the Sitemap Indexer.

Models: SubmissionSite

A SubmissionSite is the per-site configuration record: which sitemap to
harvest, which credentials to submit with, and how often to run. Submission
state itself (dedup records, quota counters, execution history) lives in the
Django cache, not in the database.
"""

import re
from urllib.parse import urlparse

from django.core.validators import MaxValueValidator, MinValueValidator
from django.db import models
from django.utils import timezone

from indexer.submitters.bing import is_valid_bing_api_key
from indexer.utils.scheduling import next_run_at


DEFAULT_SEARCH_ENGINES = ["api.indexnow.org"]

_SITE_API_KEY_RE = re.compile(r"^[a-f0-9]{32}$")


def default_search_engines():
    return list(DEFAULT_SEARCH_ENGINES)


def _is_http_url(value) -> bool:
    if not value:
        return False
    try:
        parsed = urlparse(value)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


class BingPriorityChoices(models.TextChoices):
    """How URLs are chosen when the Bing quota is smaller than the backlog."""

    NEWEST = "newest", "Newest first (by lastmod)"
    RANDOM = "random", "Random"


class SubmissionSite(models.Model):
    """
    Configuration for one site whose sitemap is pushed to indexing APIs.

    Managed via Django Admin or the import_sites command.
    """

    # Identity
    site_id = models.CharField(
        max_length=255, unique=True, help_text="Site identifier, defaults to the sitemap host"
    )
    name = models.CharField(max_length=100, help_text="Human-readable name")
    sitemap_url = models.URLField(max_length=500, help_text="Sitemap or sitemap index URL")

    # IndexNow
    api_key = models.CharField(max_length=64, help_text="IndexNow key (32 hex chars)")
    key_location = models.URLField(
        max_length=500, help_text="Public URL of the key file, e.g. https://host/{key}.txt"
    )
    search_engines = models.JSONField(
        default=default_search_engines,
        help_text="IndexNow engine hosts: ['api.indexnow.org', 'www.bing.com']",
    )

    # Bing Webmaster
    bing_enabled = models.BooleanField(default=False, help_text="Also submit to Bing Webmaster")
    bing_api_key = models.CharField(max_length=128, blank=True, help_text="Bing Webmaster API key")
    bing_daily_quota = models.IntegerField(
        default=100,
        validators=[MinValueValidator(0)],
        help_text="Max URLs submitted to Bing per day",
    )
    bing_priority = models.CharField(
        max_length=10,
        choices=BingPriorityChoices.choices,
        default=BingPriorityChoices.NEWEST,
        help_text="Which URLs to submit when the quota is short",
    )

    # Scheduling
    enabled = models.BooleanField(default=True, help_text="Enable/disable scheduled runs")
    interval_hours = models.IntegerField(
        default=6, validators=[MinValueValidator(1)], help_text="How often to run (hours)"
    )
    last_run_at = models.DateTimeField(
        null=True, blank=True, help_text="Last successful run, empty if never run"
    )

    # Performance
    max_concurrent_requests = models.IntegerField(
        default=3, validators=[MinValueValidator(1), MaxValueValidator(10)]
    )
    request_interval_ms = models.IntegerField(
        default=100,
        validators=[MinValueValidator(0)],
        help_text="Delay between IndexNow batches (milliseconds)",
    )
    max_retries = models.IntegerField(
        default=3, validators=[MinValueValidator(0), MaxValueValidator(10)]
    )
    cache_ttl_days = models.IntegerField(
        default=30,
        validators=[MinValueValidator(1)],
        help_text="Days before a submitted URL may be submitted again",
    )

    # Metadata
    created_at = models.DateTimeField(default=timezone.now)
    updated_at = models.DateTimeField(default=timezone.now)

    def save(self, *args, **kwargs):
        self.updated_at = timezone.now()
        super().save(*args, **kwargs)

    class Meta:
        db_table = "indexer_submission_sites"
        ordering = ["site_id"]
        indexes = [
            models.Index(fields=["enabled", "last_run_at"], name="indexer_sub_enabled_5b1c2e_idx"),
        ]

    def __str__(self):
        return f"{self.name} ({self.site_id})"

    @property
    def host(self) -> str:
        return urlparse(self.sitemap_url).hostname or ""

    @classmethod
    def build(cls, **data) -> "SubmissionSite":
        """
        Build an unsaved site from minimal input, filling in defaults.

        Only sitemap_url and api_key are required:
        - site_id defaults to the sitemap host
        - name defaults to the capitalised first host label (www. stripped)
        - key_location defaults to https://{host}/{api_key}.txt
        - search_engines defaults to ["api.indexnow.org"]

        Raises:
            ValueError: If sitemap_url is not a parseable absolute URL
        """
        sitemap_url = data.get("sitemap_url") or ""
        domain = urlparse(sitemap_url).hostname
        if not domain:
            raise ValueError(f"Invalid sitemap URL: {sitemap_url!r}")

        main_part = re.sub(r"^www\.", "", domain).split(".")[0]
        api_key = data.get("api_key") or ""

        data["site_id"] = data.get("site_id") or domain
        data["name"] = data.get("name") or main_part[:1].upper() + main_part[1:]
        data["key_location"] = data.get("key_location") or f"https://{domain}/{api_key}.txt"
        data["search_engines"] = data.get("search_engines") or default_search_engines()
        data["api_key"] = api_key

        for field_name in (
            "interval_hours",
            "max_concurrent_requests",
            "request_interval_ms",
            "max_retries",
            "cache_ttl_days",
        ):
            # Missing or zero falls back to the field default
            if not data.get(field_name):
                data.pop(field_name, None)

        return cls(**data)

    def validation_errors(self) -> list:
        """Return every problem with this configuration (empty if valid)."""
        errors = []

        if not self.site_id or not self.site_id.strip():
            errors.append("Site ID is required")
        if not self.name or not self.name.strip():
            errors.append("Site name is required")
        if not _is_http_url(self.sitemap_url):
            errors.append("Invalid sitemap URL")
        if not self.api_key or not _SITE_API_KEY_RE.match(self.api_key):
            errors.append("Invalid API key format (expected 32 hex chars)")
        if not _is_http_url(self.key_location):
            errors.append("Invalid key location URL")

        if self.interval_hours is None or self.interval_hours <= 0:
            errors.append("Interval must be positive")
        if not 1 <= (self.max_concurrent_requests or 0) <= 10:
            errors.append("Max concurrent requests must be between 1-10")
        if self.request_interval_ms is None or self.request_interval_ms < 0:
            errors.append("Request interval must be non-negative")
        if self.max_retries is None or not 0 <= self.max_retries <= 10:
            errors.append("Max retries must be between 0-10")
        if self.cache_ttl_days is None or self.cache_ttl_days <= 0:
            errors.append("Cache TTL must be positive")
        if not self.search_engines:
            errors.append("At least one search engine is required")

        if self.bing_enabled and not self.bing_api_key:
            errors.append("Bing API key is required when Bing is enabled")
        elif self.bing_api_key and not is_valid_bing_api_key(self.bing_api_key):
            errors.append("Invalid Bing API key format (expected at least 32 hex chars)")
        if self.bing_daily_quota is None or self.bing_daily_quota < 0:
            errors.append("Bing daily quota must be non-negative")
        if self.bing_priority not in BingPriorityChoices.values:
            errors.append("Bing priority must be 'newest' or 'random'")

        return errors

    def is_due(self, now=None) -> bool:
        """Check if the site should run: enabled and never run or interval elapsed."""
        if not self.enabled:
            return False
        due_at = next_run_at(self)
        if due_at is None:
            return True
        return (now or timezone.now()) >= due_at

    def mark_run(self, when=None):
        """Record a successful run."""
        self.last_run_at = when or timezone.now()
        self.save(update_fields=["last_run_at", "updated_at"])
