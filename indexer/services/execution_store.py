"""
Execution records for site runs.

Each run produces an execution record. Two views are kept in the Django cache:

    indexer:last_execution:{site_id}  -> latest record, always overwritten
    indexer:history:{site_id}         -> newest-first list of records

History is bounded twice: at most INDEXER_HISTORY_MAX_RECORDS entries, and
only entries younger than INDEXER_HISTORY_MAX_AGE_DAYS. Saving is best
effort; a store failure is logged and never changes the run outcome.
"""

import logging
from datetime import datetime, timedelta, timezone as dt_timezone
from typing import Any, Dict, List, Optional

from django.conf import settings
from django.core.cache import cache
from django.utils import timezone

logger = logging.getLogger(__name__)


LAST_EXECUTION_PREFIX = "indexer:last_execution"
HISTORY_PREFIX = "indexer:history"

DEFAULT_MAX_RECORDS = 100
DEFAULT_MAX_AGE_DAYS = 365


def _parse_timestamp(value) -> Optional[datetime]:
    if not isinstance(value, str):
        return None
    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed


def trim_history(
    records: List[Dict[str, Any]],
    max_records: int,
    max_age_days: int,
    now: Optional[datetime] = None,
) -> List[Dict[str, Any]]:
    """
    Apply both retention bounds to a newest-first history list.

    Keeps the first max_records entries, then drops any of those older than
    max_age_days (or without a readable timestamp).
    """
    now = now or timezone.now()
    cutoff = now - timedelta(days=max_age_days)

    kept = []
    for record in records[:max_records]:
        timestamp = _parse_timestamp(record.get("timestamp"))
        if timestamp is not None and timestamp >= cutoff:
            kept.append(record)
    return kept


class ExecutionStore:
    """
    Persists execution records per site.

    Usage:
        store = ExecutionStore()
        await store.save(record)
        last = await store.get_last_execution("example.com")
    """

    def __init__(
        self,
        max_records: Optional[int] = None,
        max_age_days: Optional[int] = None,
        logger: Optional[logging.Logger] = None,
    ):
        self.max_records = max_records if max_records is not None else getattr(
            settings, "INDEXER_HISTORY_MAX_RECORDS", DEFAULT_MAX_RECORDS
        )
        self.max_age_days = max_age_days if max_age_days is not None else getattr(
            settings, "INDEXER_HISTORY_MAX_AGE_DAYS", DEFAULT_MAX_AGE_DAYS
        )
        self.logger = logger or logging.getLogger(__name__)

    @staticmethod
    def _last_key(site_id: str) -> str:
        return f"{LAST_EXECUTION_PREFIX}:{site_id}"

    @staticmethod
    def _history_key(site_id: str) -> str:
        return f"{HISTORY_PREFIX}:{site_id}"

    async def save(self, record: Dict[str, Any]) -> bool:
        """
        Overwrite the last-execution pointer and prepend to history.

        Returns:
            True if both views were written
        """
        site_id = record["site_id"]
        try:
            await cache.aset(self._last_key(site_id), record, None)
        except Exception as e:
            self.logger.error(f"Failed to save last execution for {site_id}: {e}")
            return False

        saved = await self.append_history(site_id, record)
        if saved:
            self.logger.info(f"Execution record saved for site: {site_id}")
        return saved

    async def append_history(self, site_id: str, record: Dict[str, Any]) -> bool:
        """
        Prepend a record to a site's history and apply retention.

        The read-prepend-write is not atomic; concurrent runs for the same
        site can drop a record.
        """
        key = self._history_key(site_id)
        try:
            history = await cache.aget(key) or []
            history.insert(0, record)
            history = trim_history(history, self.max_records, self.max_age_days)
            await cache.aset(key, history, None)
        except Exception as e:
            self.logger.error(f"Failed to save execution history for {site_id}: {e}")
            return False
        return True

    async def get_last_execution(self, site_id: str) -> Optional[Dict[str, Any]]:
        return await cache.aget(self._last_key(site_id))

    async def get_history(self, site_id: str, limit: Optional[int] = None) -> List[Dict[str, Any]]:
        """Newest-first history, retention re-applied on read."""
        history = await cache.aget(self._history_key(site_id)) or []
        history = trim_history(history, self.max_records, self.max_age_days)
        return history[:limit] if limit else history

    def purge(self, site_id: str) -> None:
        """Delete both views for a site (used when the site is deleted)."""
        cache.delete_many([self._last_key(site_id), self._history_key(site_id)])
        self.logger.info(f"Execution records purged for site: {site_id}")
