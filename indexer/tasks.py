"""
Celery tasks for the sitemap indexer.

- check_due_sites: Periodic task running every due SubmissionSite
- run_site_submission: Worker task running one site on demand
"""

import logging
from typing import Any, Dict

from celery import shared_task
from django.utils import timezone

from indexer.exceptions import IndexerError
from indexer.services.scheduler import (
    CHANNELS_ALL,
    SiteScheduler,
    format_stats_report,
    mark_site_run,
    run_due_sites,
)
from indexer.services.site_config import LEGACY_SITE_ID
from indexer.utils.async_runner import run_async

logger = logging.getLogger(__name__)


@shared_task(name="indexer.tasks.check_due_sites")
def check_due_sites(channels: str = CHANNELS_ALL) -> Dict[str, Any]:
    """
    Periodic task to run every site due for submission.

    Runs every 15 minutes via Celery Beat. Sites run in windows of
    INDEXER_SITE_CONCURRENCY; a failing site never stops the others.

    Returns:
        Run summary with total, successful, failed and per-site results
    """
    logger.info("Checking for due sites...")

    summary = run_async(run_due_sites(channels=channels))
    summary["timestamp"] = timezone.now().isoformat()

    logger.info(
        f"Due site check complete: {summary['successful']}/{summary['total']} sites succeeded"
    )
    return summary


@shared_task(name="indexer.tasks.run_site_submission", bind=True)
def run_site_submission(self, site_id: str, channels: str = CHANNELS_ALL) -> Dict[str, Any]:
    """
    Run the submission pipeline for one site.

    Args:
        site_id: SubmissionSite id, or "default" for the settings-based site
        channels: "all", "indexnow" or "bing"

    Returns:
        Dict with status, stats and the text report
    """
    logger.info(f"Starting submission for site {site_id} (channels: {channels})")

    scheduler = SiteScheduler(site_id)
    try:
        stats = run_async(scheduler.run(channels=channels))
    except IndexerError as e:
        logger.error(f"Submission failed for site {site_id}: {e}")
        return {"site_id": site_id, "status": "failed", "error": str(e)}

    if site_id != LEGACY_SITE_ID:
        mark_site_run(site_id)

    return {
        "site_id": site_id,
        "status": "completed",
        "stats": stats.to_dict(),
        "report": format_stats_report(stats),
    }
