"""
URL deduplication cache.

Remembers which URLs were already submitted to a channel so they are not
resubmitted until the record expires. Uses the Django cache (Redis in
production) so state is shared across Celery workers.

Keys are namespaced by channel and site:
    indexer:url_cache:{channel}:{site_id}:{url_hash}

The URL hash is a 32-bit rolling hash rendered in base 36. Collisions are
possible and are treated as "already submitted".
"""

import asyncio
import logging
from typing import Iterable, List, Optional

from django.core.cache import cache
from django.utils import timezone

from indexer.exceptions import StoreError

logger = logging.getLogger(__name__)


CACHE_PREFIX = "indexer:url_cache"
CONNECTION_PROBE_KEY = "indexer:connection_probe"
SECONDS_PER_DAY = 24 * 60 * 60

_BASE36 = "0123456789abcdefghijklmnopqrstuvwxyz"


def hash_url(url: str) -> str:
    """
    Hash a URL with a 32-bit rolling hash (h * 31 + c) folded to base 36.

    Returns:
        Short lowercase base-36 string, e.g. "1b4k9x"
    """
    h = 0
    for char in url:
        h = (h * 31 + ord(char)) & 0xFFFFFFFF

    # Interpret as signed 32-bit, then take the magnitude
    if h >= 0x80000000:
        h -= 0x100000000
    h = abs(h)

    if h == 0:
        return "0"

    digits = []
    while h:
        h, rem = divmod(h, 36)
        digits.append(_BASE36[rem])
    return "".join(reversed(digits))


class DedupCache:
    """
    TTL-bound membership store for submitted URLs, per site and channel.

    Usage:
        url_cache = DedupCache(site_id="example.com", ttl_days=30)
        new_urls = await url_cache.filter_new_urls(urls, "indexnow")
        # ... submit ...
        await url_cache.add_batch(submitted, "indexnow")
    """

    def __init__(
        self,
        site_id: str,
        ttl_days: int = 30,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the cache for one site.

        Args:
            site_id: Site identifier used to namespace keys
            ttl_days: Lifetime of a cache record in days
            logger: Logger to report to (defaults to module logger)
        """
        self.site_id = site_id
        self.ttl_seconds = ttl_days * SECONDS_PER_DAY
        self.logger = logger or logging.getLogger(__name__)

    def _cache_key(self, url: str, channel: str) -> str:
        return f"{CACHE_PREFIX}:{channel}:{self.site_id}:{hash_url(url)}"

    async def is_cached(self, url: str, channel: str) -> bool:
        """
        Check whether a URL was already submitted to a channel.

        A store read failure is logged and reported as "not cached", so the
        URL is resubmitted rather than silently dropped.
        """
        try:
            value = await cache.aget(self._cache_key(url, channel))
        except Exception as e:
            self.logger.warning(f"Cache read failed for {url} ({channel}): {e}")
            return False
        return value is not None

    async def add(self, url: str, channel: str) -> None:
        """
        Record a URL as submitted to a channel.

        Raises:
            StoreError: If the cache write fails
        """
        record = {
            "url": url,
            "channel": channel,
            "inserted_at": timezone.now().isoformat(),
        }
        try:
            await cache.aset(self._cache_key(url, channel), record, self.ttl_seconds)
        except Exception as e:
            raise StoreError(f"Cache write failed for {url} ({channel}): {e}") from e

    async def add_batch(self, urls: Iterable[str], channel: str) -> int:
        """
        Record many URLs as submitted. Failed writes are logged, not raised.

        Returns:
            Number of URLs successfully recorded
        """
        urls = list(urls)
        if not urls:
            return 0

        self.logger.info(f"Adding {len(urls)} URLs to {channel} cache...")

        outcomes = await asyncio.gather(
            *(self.add(url, channel) for url in urls), return_exceptions=True
        )
        failures = [outcome for outcome in outcomes if isinstance(outcome, Exception)]
        if failures:
            self.logger.error(
                f"Failed to cache {len(failures)}/{len(urls)} URLs for {channel}: {failures[0]}"
            )

        cached = len(urls) - len(failures)
        self.logger.info(f"Cached {cached} URLs for {channel}")
        return cached

    async def filter_new_urls(self, urls: List[str], channel: str) -> List[str]:
        """
        Return the URLs not yet submitted to a channel.

        All membership checks run concurrently. The returned list keeps the
        input order; duplicates in the input are checked independently.
        """
        self.logger.info(f"Checking {len(urls)} URLs against {channel} cache...")

        cached_flags = await asyncio.gather(
            *(self.is_cached(url, channel) for url in urls)
        )
        new_urls = [url for url, cached in zip(urls, cached_flags) if not cached]

        self.logger.info(
            f"Found {len(new_urls)} new URLs ({len(urls) - len(new_urls)} cached)"
        )
        return new_urls

    async def test_connection(self) -> bool:
        """Round-trip a probe key through the cache."""
        try:
            probe_key = f"{CONNECTION_PROBE_KEY}:{self.site_id}"
            await cache.aset(probe_key, "ok", 60)
            value = await cache.aget(probe_key)
            await cache.adelete(probe_key)
        except Exception as e:
            self.logger.error(f"Cache connection test failed: {e}")
            return False
        return value == "ok"
