"""
Scheduling utilities for SubmissionSite runs.

A site is due when it is enabled and has either never run or its
interval_hours have elapsed since last_run_at.
"""

from datetime import timedelta

from django.db.models import F
from django.utils import timezone


def next_run_at(site):
    """
    Calculate when a site becomes due.

    Returns:
        datetime, or None for a site that has never run (due immediately)
    """
    if site.last_run_at is None:
        return None
    return site.last_run_at + timedelta(hours=site.interval_hours)


def get_due_sites(now=None):
    """
    List enabled sites due for submission.

    Never-run sites come first, then the longest-waiting ones.

    Args:
        now: Reference time (defaults to now)

    Returns:
        List of SubmissionSite instances
    """
    from indexer.models import SubmissionSite

    if now is None:
        now = timezone.now()

    sites = SubmissionSite.objects.filter(enabled=True).order_by(
        F("last_run_at").asc(nulls_first=True), "site_id"
    )
    return [site for site in sites if site.is_due(now)]
