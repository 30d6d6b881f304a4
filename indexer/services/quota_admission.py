"""
Quota Admission - soft daily quota for the Bing Webmaster channel.

Tracks how many URLs each site submitted to Bing today and gates the next
submission on the remaining allowance. Counters live in the Django cache,
keyed per site and calendar date, so a new day starts from zero without any
reset job:

    indexer:quota:{site_id}:{YYYY-MM-DD}          -> used count
    indexer:quota:{site_id}:{YYYY-MM-DD}:updated  -> ISO timestamp of last increment

Keys expire after 48 hours so late readers of yesterday's counter still
see it.
"""

import logging
import random
from datetime import date
from typing import Dict, List, Optional

from django.core.cache import cache
from django.utils import timezone

from indexer.exceptions import StoreError
from indexer.services.sitemap_crawler import SitemapEntry, parse_lastmod

logger = logging.getLogger(__name__)


QUOTA_PREFIX = "indexer:quota"
QUOTA_TTL_SECONDS = 48 * 60 * 60

STRATEGY_NEWEST = "newest"
STRATEGY_RANDOM = "random"
SELECTION_STRATEGIES = (STRATEGY_NEWEST, STRATEGY_RANDOM)


class QuotaAdmission:
    """
    Per-site, per-day submission counter for a quota-limited API.

    Usage:
        quota = QuotaAdmission()
        remaining = await quota.get_remaining_today(site_id, limit=100)
        # ... submit up to `remaining` URLs ...
        await quota.increment_used(site_id, submitted, limit=100)
    """

    def __init__(self, logger: Optional[logging.Logger] = None):
        self.logger = logger or logging.getLogger(__name__)

    def _quota_key(self, site_id: str, day: Optional[date] = None) -> str:
        """
        Generate cache key for a site's daily counter.

        Returns:
            Cache key string like "indexer:quota:example.com:2025-01-15"
        """
        day = day or timezone.localdate()
        return f"{QUOTA_PREFIX}:{site_id}:{day.isoformat()}"

    async def get_used_today(self, site_id: str) -> int:
        """
        Get the number of URLs submitted today.

        A store read failure is logged and reported as zero used.
        """
        try:
            used = await cache.aget(self._quota_key(site_id), 0)
        except Exception as e:
            self.logger.error(f"Failed to get used quota for {site_id}: {e}")
            return 0
        return int(used or 0)

    async def get_remaining_today(self, site_id: str, limit: int) -> int:
        """Remaining allowance for today, never negative."""
        used = await self.get_used_today(site_id)
        return max(0, limit - used)

    async def has_quota(self, site_id: str, count: int, limit: int) -> bool:
        """Check whether `count` more URLs fit in today's allowance."""
        remaining = await self.get_remaining_today(site_id, limit)
        return remaining >= count

    async def increment_used(self, site_id: str, count: int, limit: int) -> int:
        """
        Add `count` to today's counter.

        The counter is read, added to and written back with an explicit
        48 hour timeout. Concurrent writers for the same site can lose an
        update; the limit is soft.

        Returns:
            The new used count

        Raises:
            StoreError: If the counter cannot be read or written
        """
        if count <= 0:
            return await self.get_used_today(site_id)

        key = self._quota_key(site_id)
        try:
            current = int(await cache.aget(key, 0) or 0)
            new_used = current + count
            await cache.aset(key, new_used, QUOTA_TTL_SECONDS)
            await cache.aset(
                f"{key}:updated", timezone.now().isoformat(), QUOTA_TTL_SECONDS
            )
        except Exception as e:
            self.logger.error(f"Failed to increment quota for {site_id}: {e}")
            raise StoreError(f"Failed to increment quota for {site_id}: {e}") from e

        remaining = max(0, limit - new_used)
        self.logger.info(
            f"Quota updated for {site_id}: {current} -> {new_used} "
            f"({remaining} remaining)"
        )
        return new_used

    async def get_quota_status(self, site_id: str, limit: int) -> Dict:
        """
        Get today's quota status for API responses.

        Returns:
            Dict with date, used, limit, remaining, last_update
        """
        key = self._quota_key(site_id)
        used = await self.get_used_today(site_id)
        try:
            last_update = await cache.aget(f"{key}:updated")
        except Exception as e:
            self.logger.warning(f"Failed to read quota timestamp for {site_id}: {e}")
            last_update = None

        return {
            "date": timezone.localdate().isoformat(),
            "used": used,
            "limit": limit,
            "remaining": max(0, limit - used),
            "last_update": last_update,
        }

    async def reset_today(self, site_id: str) -> None:
        """Clear today's counter. Operator use only."""
        key = self._quota_key(site_id)
        try:
            await cache.adelete_many([key, f"{key}:updated"])
        except Exception as e:
            raise StoreError(f"Failed to reset quota for {site_id}: {e}") from e
        self.logger.warning(f"Quota reset for {site_id}")


def select_candidates(
    entries: List[SitemapEntry],
    remaining: int,
    strategy: str = STRATEGY_NEWEST,
    rng: Optional[random.Random] = None,
) -> List[SitemapEntry]:
    """
    Choose at most `remaining` entries for a quota-limited submission.

    Strategies:
    - newest: lastmod descending, entries without a usable lastmod last
    - random: uniform shuffle

    Args:
        entries: Validated sitemap entries
        remaining: Today's remaining quota
        strategy: "newest" or "random"
        rng: Random source for the random strategy (tests pass a seeded one)

    Returns:
        Candidate entries, to be deduplicated before submission
    """
    if remaining <= 0 or not entries:
        return []

    if strategy == STRATEGY_RANDOM:
        shuffled = list(entries)
        (rng or random).shuffle(shuffled)
        return shuffled[:remaining]

    if strategy != STRATEGY_NEWEST:
        logger.warning(f"Unknown selection strategy '{strategy}', using newest")

    parsed = [(entry, parse_lastmod(entry.lastmod)) for entry in entries]
    dated = sorted(
        (pair for pair in parsed if pair[1] is not None),
        key=lambda pair: pair[1],
        reverse=True,
    )
    undated = [entry for entry, lastmod in parsed if lastmod is None]
    return ([entry for entry, _ in dated] + undated)[:remaining]
