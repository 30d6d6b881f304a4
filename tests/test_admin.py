"""
Tests for the SubmissionSite admin.
"""

from unittest.mock import patch

import pytest
from django.contrib.admin.sites import AdminSite
from django.test import RequestFactory

from indexer.admin import SubmissionSiteAdmin, SubmissionSiteForm
from indexer.models import SubmissionSite
from tests.helpers import SITE_API_KEY


def form_data(**overrides):
    data = {
        "site_id": "shop.example.com",
        "name": "Shop",
        "sitemap_url": "https://shop.example.com/sitemap.xml",
        "api_key": SITE_API_KEY,
        "key_location": f"https://shop.example.com/{SITE_API_KEY}.txt",
        "search_engines": '["api.indexnow.org"]',
        "bing_daily_quota": 100,
        "bing_priority": "newest",
        "enabled": True,
        "interval_hours": 6,
        "max_concurrent_requests": 3,
        "request_interval_ms": 100,
        "max_retries": 3,
        "cache_ttl_days": 30,
        "created_at": "2025-01-01 00:00:00",
        "updated_at": "2025-01-01 00:00:00",
    }
    data.update(overrides)
    return data


@pytest.mark.django_db
class TestSubmissionSiteForm:

    def test_valid(self):
        assert SubmissionSiteForm(data=form_data()).is_valid()

    def test_bing_without_key_rejected(self):
        form = SubmissionSiteForm(data=form_data(bing_enabled=True))

        assert not form.is_valid()
        assert "Bing API key is required when Bing is enabled" in form.non_field_errors()

    def test_bad_api_key_rejected(self):
        assert not SubmissionSiteForm(data=form_data(api_key="0" * 31)).is_valid()


@pytest.mark.django_db
class TestSubmissionSiteAdmin:

    def test_run_now_queues_enabled_sites(self, submission_site):
        SubmissionSite.build(
            sitemap_url="https://off.example.com/sitemap.xml", api_key=SITE_API_KEY, enabled=False
        ).save()
        model_admin = SubmissionSiteAdmin(SubmissionSite, AdminSite())
        request = RequestFactory().post("/admin/")

        with patch("indexer.admin.run_site_submission") as task, \
                patch.object(model_admin, "message_user"):
            model_admin.run_now(request, SubmissionSite.objects.all())

        task.apply_async.assert_called_once_with(args=[submission_site.site_id])

    def test_reset_schedule(self, submission_site):
        submission_site.mark_run()
        model_admin = SubmissionSiteAdmin(SubmissionSite, AdminSite())

        with patch.object(model_admin, "message_user"):
            model_admin.reset_schedule(None, SubmissionSite.objects.all())

        submission_site.refresh_from_db()
        assert submission_site.last_run_at is None

    def test_masked_api_key(self, submission_site):
        model_admin = SubmissionSiteAdmin(SubmissionSite, AdminSite())

        assert model_admin.masked_api_key(submission_site) == "0123****"


@pytest.mark.django_db
class TestDeleteSignal:

    def test_delete_purges_execution_records(self, submission_site):
        with patch("indexer.signals.ExecutionStore") as store:
            submission_site.delete()

        store.return_value.purge.assert_called_once_with("www.example.org")
