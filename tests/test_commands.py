"""
Tests for the management commands.
"""

import json
from io import StringIO
from unittest.mock import patch

import pytest
from django.core.management import call_command
from django.core.management.base import CommandError

from indexer.exceptions import FetchError
from indexer.models import SubmissionSite
from indexer.services.scheduler import SubmissionStats
from tests.helpers import BING_API_KEY, SITE_API_KEY


class StubScheduler:

    def __init__(self, site_id):
        self.site_id = site_id

    async def run(self, channels="all"):
        if self.site_id == "down.example":
            raise FetchError("HTTP 503: Service Unavailable")
        return SubmissionStats(total=3, successful=3)


@pytest.mark.django_db
class TestImportSites:

    def write_sites(self, tmp_path, sites):
        path = tmp_path / "sites.json"
        path.write_text(json.dumps(sites), encoding="utf-8")
        return str(path)

    def test_imports_with_defaults(self, tmp_path):
        path = self.write_sites(tmp_path, [
            {"sitemap_url": "https://shop.example.com/sitemap.xml", "api_key": SITE_API_KEY},
            {
                "sitemap_url": "https://blog.example.com/sitemap.xml",
                "api_key": SITE_API_KEY,
                "bing_enabled": True,
                "bing_api_key": BING_API_KEY,
            },
        ])
        out = StringIO()

        call_command("import_sites", path, stdout=out)

        assert SubmissionSite.objects.count() == 2
        blog = SubmissionSite.objects.get(site_id="blog.example.com")
        assert blog.name == "Blog"
        assert blog.bing_enabled is True
        assert "Created: 2" in out.getvalue()

    def test_invalid_entries_reported(self, tmp_path):
        path = self.write_sites(tmp_path, [
            {"sitemap_url": "https://ok.example.com/sitemap.xml", "api_key": SITE_API_KEY},
            {"sitemap_url": "https://bad.example.com/sitemap.xml", "api_key": "nothex"},
            {"sitemap_url": "nope", "api_key": SITE_API_KEY},
            "not an object",
        ])
        out = StringIO()

        call_command("import_sites", path, stdout=out)

        assert list(SubmissionSite.objects.values_list("site_id", flat=True)) == ["ok.example.com"]
        assert "Failed: 3" in out.getvalue()

    def test_existing_sites_skipped_or_updated(self, tmp_path, submission_site):
        path = self.write_sites(tmp_path, [{
            "sitemap_url": "https://www.example.org/sitemap.xml",
            "api_key": SITE_API_KEY,
            "interval_hours": 24,
        }])

        call_command("import_sites", path, stdout=StringIO())
        submission_site.refresh_from_db()
        assert submission_site.interval_hours == 6

        call_command("import_sites", path, "--update", stdout=StringIO())
        submission_site.refresh_from_db()
        assert submission_site.interval_hours == 24
        assert SubmissionSite.objects.count() == 1

    def test_dry_run(self, tmp_path):
        path = self.write_sites(tmp_path, [
            {"sitemap_url": "https://shop.example.com/sitemap.xml", "api_key": SITE_API_KEY},
        ])

        call_command("import_sites", path, "--dry-run", stdout=StringIO())

        assert SubmissionSite.objects.count() == 0

    def test_missing_file(self, tmp_path):
        with pytest.raises(CommandError):
            call_command("import_sites", str(tmp_path / "missing.json"), stdout=StringIO())


@pytest.mark.django_db
class TestRunSubmission:

    def test_prints_report(self, submission_site):
        out = StringIO()

        with patch(
            "indexer.management.commands.run_submission.SiteScheduler", StubScheduler
        ):
            call_command("run_submission", "--site", submission_site.site_id, stdout=out)

        assert "=== Submission Report ===" in out.getvalue()
        submission_site.refresh_from_db()
        assert submission_site.last_run_at is not None

    def test_failure_raises_command_error(self):
        with patch(
            "indexer.management.commands.run_submission.SiteScheduler", StubScheduler
        ):
            with pytest.raises(CommandError, match="HTTP 503"):
                call_command("run_submission", "--site", "down.example", stdout=StringIO())
