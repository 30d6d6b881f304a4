"""
Tests for the SubmissionSite model.
"""

from datetime import timedelta

import pytest
from django.db import IntegrityError
from django.utils import timezone

from indexer.models import BingPriorityChoices, SubmissionSite
from tests.helpers import BING_API_KEY, SITE_API_KEY


def build_site(**overrides):
    data = {"sitemap_url": "https://www.example.org/sitemap.xml", "api_key": SITE_API_KEY}
    data.update(overrides)
    return SubmissionSite.build(**data)


class TestBuild:
    """Tests for SubmissionSite.build defaults."""

    def test_defaults_from_sitemap_url(self):
        site = build_site()

        assert site.site_id == "www.example.org"
        assert site.name == "Example"
        assert site.key_location == f"https://www.example.org/{SITE_API_KEY}.txt"
        assert site.search_engines == ["api.indexnow.org"]
        assert site.enabled is True
        assert site.interval_hours == 6
        assert site.max_retries == 3
        assert site.cache_ttl_days == 30
        assert site.bing_enabled is False
        assert site.bing_daily_quota == 100
        assert site.bing_priority == BingPriorityChoices.NEWEST

    def test_explicit_values_kept(self):
        site = build_site(
            site_id="blog",
            name="The Blog",
            key_location="https://cdn.example.org/key.txt",
            search_engines=["www.bing.com"],
            interval_hours=12,
        )

        assert site.site_id == "blog"
        assert site.name == "The Blog"
        assert site.key_location == "https://cdn.example.org/key.txt"
        assert site.search_engines == ["www.bing.com"]
        assert site.interval_hours == 12

    def test_zero_numeric_falls_back_to_default(self):
        site = build_site(interval_hours=0, cache_ttl_days=None)

        assert site.interval_hours == 6
        assert site.cache_ttl_days == 30

    def test_invalid_sitemap_url(self):
        with pytest.raises(ValueError):
            build_site(sitemap_url="not a url")

    def test_host(self):
        assert build_site().host == "www.example.org"


class TestValidationErrors:

    def test_valid_site(self):
        assert build_site().validation_errors() == []

    def test_bad_api_key(self):
        errors = build_site(api_key="ABC").validation_errors()

        assert any("API key" in error for error in errors)

    def test_out_of_range_values(self):
        site = build_site()
        site.max_concurrent_requests = 11
        site.max_retries = 11
        site.request_interval_ms = -5
        site.search_engines = []

        assert len(site.validation_errors()) == 4

    def test_bing_requires_key(self):
        errors = build_site(bing_enabled=True).validation_errors()

        assert errors == ["Bing API key is required when Bing is enabled"]

    def test_bing_configured(self):
        site = build_site(bing_enabled=True, bing_api_key=BING_API_KEY, bing_priority="random")

        assert site.validation_errors() == []

    def test_bing_key_format(self):
        errors = build_site(bing_enabled=True, bing_api_key="not-a-key").validation_errors()

        assert errors == ["Invalid Bing API key format (expected at least 32 hex chars)"]

    def test_unknown_priority(self):
        assert build_site(bing_priority="oldest").validation_errors() == [
            "Bing priority must be 'newest' or 'random'"
        ]


class TestScheduling:

    def test_never_run_is_due(self):
        assert build_site().is_due() is True

    def test_disabled_is_never_due(self):
        assert build_site(enabled=False).is_due() is False

    def test_interval(self):
        now = timezone.now()
        site = build_site(interval_hours=6)
        site.last_run_at = now - timedelta(hours=5)

        assert site.is_due(now) is False
        assert site.is_due(now + timedelta(hours=1)) is True


@pytest.mark.django_db
class TestPersistence:

    def test_save_and_mark_run(self, submission_site):
        before = submission_site.updated_at

        submission_site.mark_run()
        submission_site.refresh_from_db()

        assert submission_site.last_run_at is not None
        assert submission_site.updated_at >= before

    def test_site_id_unique(self, submission_site):
        with pytest.raises(IntegrityError):
            build_site().save()

    def test_str(self, submission_site):
        assert str(submission_site) == "Example (www.example.org)"
