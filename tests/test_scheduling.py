"""
Tests for due-site selection.
"""

from datetime import timedelta

import pytest
from django.utils import timezone

from indexer.models import SubmissionSite
from indexer.utils.scheduling import get_due_sites, next_run_at
from tests.helpers import SITE_API_KEY


def create_site(site_id, last_run_hours_ago=None, enabled=True, interval_hours=6):
    site = SubmissionSite.build(
        site_id=site_id,
        sitemap_url=f"https://{site_id}/sitemap.xml",
        api_key=SITE_API_KEY,
        interval_hours=interval_hours,
        enabled=enabled,
    )
    if last_run_hours_ago is not None:
        site.last_run_at = timezone.now() - timedelta(hours=last_run_hours_ago)
    site.save()
    return site


class TestNextRunAt:

    def test_never_run(self):
        site = SubmissionSite.build(sitemap_url="https://a.example/sitemap.xml", api_key=SITE_API_KEY)

        assert next_run_at(site) is None
        assert site.is_due() is True

    def test_after_run(self):
        site = SubmissionSite.build(
            sitemap_url="https://a.example/sitemap.xml", api_key=SITE_API_KEY, interval_hours=4
        )
        site.last_run_at = timezone.now()

        assert next_run_at(site) == site.last_run_at + timedelta(hours=4)
        assert site.is_due() is False


@pytest.mark.django_db
class TestGetDueSites:

    def test_selects_due_enabled_sites(self):
        create_site("never.example")
        create_site("stale.example", last_run_hours_ago=10)
        create_site("fresh.example", last_run_hours_ago=1)
        create_site("off.example", enabled=False)

        due = [site.site_id for site in get_due_sites()]

        assert due == ["never.example", "stale.example"]

    def test_longest_waiting_first(self):
        create_site("b.example", last_run_hours_ago=7)
        create_site("a.example", last_run_hours_ago=30)

        due = [site.site_id for site in get_due_sites()]

        assert due == ["a.example", "b.example"]

    def test_reference_time(self):
        create_site("fresh.example", last_run_hours_ago=1)

        assert get_due_sites(now=timezone.now() + timedelta(hours=6)) != []
