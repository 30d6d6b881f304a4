"""
Migration: Create the SubmissionSite model.
"""

import django.core.validators
import django.utils.timezone
from django.db import migrations, models

import indexer.models


class Migration(migrations.Migration):

    initial = True

    dependencies = []

    operations = [
        migrations.CreateModel(
            name="SubmissionSite",
            fields=[
                (
                    "id",
                    models.BigAutoField(
                        auto_created=True,
                        primary_key=True,
                        serialize=False,
                        verbose_name="ID",
                    ),
                ),
                (
                    "site_id",
                    models.CharField(
                        help_text="Site identifier, defaults to the sitemap host",
                        max_length=255,
                        unique=True,
                    ),
                ),
                ("name", models.CharField(help_text="Human-readable name", max_length=100)),
                (
                    "sitemap_url",
                    models.URLField(help_text="Sitemap or sitemap index URL", max_length=500),
                ),
                (
                    "api_key",
                    models.CharField(help_text="IndexNow key (32 hex chars)", max_length=64),
                ),
                (
                    "key_location",
                    models.URLField(
                        help_text="Public URL of the key file, e.g. https://host/{key}.txt",
                        max_length=500,
                    ),
                ),
                (
                    "search_engines",
                    models.JSONField(
                        default=indexer.models.default_search_engines,
                        help_text="IndexNow engine hosts: ['api.indexnow.org', 'www.bing.com']",
                    ),
                ),
                (
                    "bing_enabled",
                    models.BooleanField(default=False, help_text="Also submit to Bing Webmaster"),
                ),
                (
                    "bing_api_key",
                    models.CharField(blank=True, help_text="Bing Webmaster API key", max_length=128),
                ),
                (
                    "bing_daily_quota",
                    models.IntegerField(
                        default=100,
                        help_text="Max URLs submitted to Bing per day",
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    "bing_priority",
                    models.CharField(
                        choices=[
                            ("newest", "Newest first (by lastmod)"),
                            ("random", "Random"),
                        ],
                        default="newest",
                        help_text="Which URLs to submit when the quota is short",
                        max_length=10,
                    ),
                ),
                (
                    "enabled",
                    models.BooleanField(default=True, help_text="Enable/disable scheduled runs"),
                ),
                (
                    "interval_hours",
                    models.IntegerField(
                        default=6,
                        help_text="How often to run (hours)",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                (
                    "last_run_at",
                    models.DateTimeField(
                        blank=True,
                        help_text="Last successful run, empty if never run",
                        null=True,
                    ),
                ),
                (
                    "max_concurrent_requests",
                    models.IntegerField(
                        default=3,
                        validators=[
                            django.core.validators.MinValueValidator(1),
                            django.core.validators.MaxValueValidator(10),
                        ],
                    ),
                ),
                (
                    "request_interval_ms",
                    models.IntegerField(
                        default=100,
                        help_text="Delay between IndexNow batches (milliseconds)",
                        validators=[django.core.validators.MinValueValidator(0)],
                    ),
                ),
                (
                    "max_retries",
                    models.IntegerField(
                        default=3,
                        validators=[
                            django.core.validators.MinValueValidator(0),
                            django.core.validators.MaxValueValidator(10),
                        ],
                    ),
                ),
                (
                    "cache_ttl_days",
                    models.IntegerField(
                        default=30,
                        help_text="Days before a submitted URL may be submitted again",
                        validators=[django.core.validators.MinValueValidator(1)],
                    ),
                ),
                ("created_at", models.DateTimeField(default=django.utils.timezone.now)),
                ("updated_at", models.DateTimeField(default=django.utils.timezone.now)),
            ],
            options={
                "db_table": "indexer_submission_sites",
                "ordering": ["site_id"],
                "indexes": [
                    models.Index(
                        fields=["enabled", "last_run_at"],
                        name="indexer_sub_enabled_5b1c2e_idx",
                    ),
                ],
            },
        ),
    ]
