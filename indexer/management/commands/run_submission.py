"""
Management command to run the submission pipeline from the shell.

Usage:
    python manage.py run_submission                          # Legacy settings site
    python manage.py run_submission --site=example.com       # One configured site
    python manage.py run_submission --site=example.com --channels=bing
    python manage.py run_submission --due                    # Every due site
"""

from django.core.management.base import BaseCommand, CommandError

from indexer.exceptions import IndexerError
from indexer.services.scheduler import (
    CHANNEL_SELECTIONS,
    CHANNELS_ALL,
    SiteScheduler,
    format_stats_report,
    mark_site_run,
    run_due_sites,
)
from indexer.services.site_config import LEGACY_SITE_ID
from indexer.utils.async_runner import run_async


class Command(BaseCommand):
    help = "Submit new sitemap URLs to IndexNow and Bing Webmaster"

    def add_arguments(self, parser):
        parser.add_argument(
            "--site",
            type=str,
            default=LEGACY_SITE_ID,
            help='Site ID to run (default: "default", the settings-based site)',
        )
        parser.add_argument(
            "--channels",
            type=str,
            default=CHANNELS_ALL,
            choices=list(CHANNEL_SELECTIONS),
            help="Channels to submit to: all, indexnow or bing (default: all)",
        )
        parser.add_argument(
            "--due",
            action="store_true",
            help="Run every enabled site whose interval has elapsed",
        )

    def handle(self, *args, **options):
        channels = options["channels"]

        if options["due"]:
            self._run_due(channels)
            return

        site_id = options["site"]
        self.stdout.write(f"Running submission for {site_id} (channels: {channels})")

        try:
            stats = run_async(SiteScheduler(site_id).run(channels=channels))
        except IndexerError as e:
            raise CommandError(f"Submission failed for {site_id}: {e}")

        if site_id != LEGACY_SITE_ID:
            mark_site_run(site_id)

        self.stdout.write("")
        self.stdout.write(format_stats_report(stats))
        if stats.failed:
            self.stdout.write(self.style.WARNING(f"\n{stats.failed} URLs failed"))
        else:
            self.stdout.write(self.style.SUCCESS("\nSubmission complete!"))

    def _run_due(self, channels):
        summary = run_async(run_due_sites(channels=channels))
        if not summary["total"]:
            self.stdout.write("No sites due for submission")
            return

        for result in summary["results"]:
            if result["success"]:
                stats = result["stats"]
                self.stdout.write(self.style.SUCCESS(
                    f"  {result['site_id']}: {stats['successful']}/{stats['total']} URLs submitted"
                ))
            else:
                self.stdout.write(self.style.ERROR(f"  {result['site_id']}: {result['error']}"))

        self.stdout.write(
            f"\nSites - Succeeded: {summary['successful']}, Failed: {summary['failed']}"
        )
