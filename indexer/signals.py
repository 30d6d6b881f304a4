"""
Django signals for the indexer application.

Active Signals:
- SubmissionSite delete -> purge the site's execution records from the cache
"""

import logging

from django.db.models.signals import post_delete
from django.dispatch import receiver

from indexer.models import SubmissionSite
from indexer.services.execution_store import ExecutionStore

logger = logging.getLogger(__name__)


@receiver(post_delete, sender=SubmissionSite)
def purge_site_executions(sender, instance, **kwargs):
    """Drop last-execution and history entries for a deleted site."""
    try:
        ExecutionStore().purge(instance.site_id)
    except Exception as e:
        logger.error(f"Failed to purge execution records for {instance.site_id}: {e}")
