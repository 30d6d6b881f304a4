"""
Submission scheduler.

Runs the per-site pipeline:

    resolve config -> verify store -> crawl sitemap -> validate URLs
    -> per channel: dedup -> (quota gate for Bing) -> submit -> cache successes
    -> aggregate stats -> persist execution record

and fans out across many sites in windows of bounded concurrency.

Channels run one after another within a site, and a failing channel never
prevents the other from running. Configuration, store and root sitemap
failures end the run: a failed execution record is saved and the error is
re-raised to the caller.
"""

import asyncio
import logging
import time
from dataclasses import dataclass, field
from typing import Any, Dict, Iterable, List, Optional, Set, Tuple

from asgiref.sync import sync_to_async
from django.conf import settings
from django.utils import timezone

from indexer.exceptions import ConfigurationError, FetchError, IndexerError, StoreError
from indexer.monitoring import add_submission_breadcrumb, capture_submission_error
from indexer.services.execution_store import ExecutionStore
from indexer.services.quota_admission import QuotaAdmission, select_candidates
from indexer.services.site_config import LEGACY_SITE_ID, ResolvedConfig, resolve_config
from indexer.services.sitemap_crawler import SitemapCrawler, SitemapEntry
from indexer.services.url_cache import DedupCache
from indexer.submitters import (
    CHANNEL_BING,
    CHANNEL_INDEXNOW,
    BingSubmitter,
    IndexNowSubmitter,
    SubmissionResult,
)

logger = logging.getLogger(__name__)


CHANNELS_ALL = "all"
CHANNEL_SELECTIONS = (CHANNELS_ALL, CHANNEL_INDEXNOW, CHANNEL_BING)

MAX_REPORTED_ERRORS = 10
DEFAULT_SITE_CONCURRENCY = 3

STATUS_COMPLETED = "completed"
STATUS_FAILED = "failed"


@dataclass
class ChannelStats:
    """Outcome of one channel within a site run."""

    enabled: bool = True
    submitted: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    quota_used: Optional[int] = None
    quota_remaining: Optional[int] = None
    error: Optional[str] = None

    def to_dict(self) -> Dict[str, Any]:
        data = {
            "enabled": self.enabled,
            "submitted": self.submitted,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "error": self.error,
        }
        if self.quota_used is not None:
            data["quota_used"] = self.quota_used
            data["quota_remaining"] = self.quota_remaining
        return data


@dataclass
class SubmissionStats:
    """
    Aggregate outcome of a site run.

    Attributes:
        total: URLs attempted after deduplication, across channels
        successful: URLs accepted by their channel
        failed: URLs whose batch failed
        skipped: URLs held back by the Bing daily quota
        duration: Run time in seconds
        errors: First errors encountered (at most 10)
        channels: Per-channel breakdown
    """

    total: int = 0
    successful: int = 0
    failed: int = 0
    skipped: int = 0
    duration: float = 0.0
    errors: List[str] = field(default_factory=list)
    channels: Dict[str, ChannelStats] = field(default_factory=dict)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "total": self.total,
            "successful": self.successful,
            "failed": self.failed,
            "skipped": self.skipped,
            "duration": round(self.duration, 3),
            "errors": list(self.errors),
        }


def format_stats_report(stats: SubmissionStats) -> str:
    """Render stats as the plain-text report returned by manual triggers."""
    lines = [
        "=== Submission Report ===",
        f"Total URLs: {stats.total}",
        f"✓ Successful: {stats.successful}",
        f"✗ Failed: {stats.failed}",
        f"○ Skipped: {stats.skipped}",
        f"Duration: {stats.duration:.2f}s",
    ]

    if stats.channels:
        lines.append("\nChannels:")
        for name, channel in stats.channels.items():
            if not channel.enabled:
                lines.append(f"  {name}: disabled")
                continue
            line = (
                f"  {name}: {channel.submitted} submitted, {channel.successful} successful, "
                f"{channel.failed} failed, {channel.skipped} skipped"
            )
            if channel.quota_remaining is not None:
                line += f" (quota remaining: {channel.quota_remaining})"
            lines.append(line)

    if stats.errors:
        lines.append("\nErrors:")
        for i, error in enumerate(stats.errors[:MAX_REPORTED_ERRORS], 1):
            lines.append(f"  {i}. {error}")

    return "\n".join(lines)


def successful_urls(
    urls: List[str], results: Iterable[SubmissionResult], batch_size: int
) -> List[str]:
    """
    URLs whose batch was accepted by at least one endpoint.

    Batches are the consecutive batch_size slices of urls, matched to results
    by batch_index.
    """
    accepted: Set[int] = {result.batch_index for result in results if result.success}
    selected = []
    for index in sorted(accepted):
        selected.extend(urls[index * batch_size:(index + 1) * batch_size])
    return selected


def _unique_entries(entries: List[SitemapEntry]) -> List[SitemapEntry]:
    seen = set()
    unique = []
    for entry in entries:
        if entry.loc in seen:
            continue
        seen.add(entry.loc)
        unique.append(entry)
    return unique


class SiteScheduler:
    """
    Runs the submission pipeline for one site.

    Usage:
        scheduler = SiteScheduler("example.com")
        stats = await scheduler.run(channels="all")
        print(format_stats_report(stats))
    """

    def __init__(
        self,
        site_id: str = LEGACY_SITE_ID,
        crawler: Optional[SitemapCrawler] = None,
        indexnow: Optional[IndexNowSubmitter] = None,
        bing: Optional[BingSubmitter] = None,
        quota: Optional[QuotaAdmission] = None,
        execution_store: Optional[ExecutionStore] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            site_id: "default" for the legacy settings source, else a SubmissionSite id
            crawler, indexnow, bing, quota, execution_store: Collaborators
                (built with the shared logger when omitted)
            logger: Logger to report to (defaults to module logger)
        """
        self.site_id = site_id or LEGACY_SITE_ID
        self.logger = logger or logging.getLogger(__name__)
        self.crawler = crawler or SitemapCrawler(logger=self.logger)
        self.indexnow = indexnow or IndexNowSubmitter(logger=self.logger)
        self.bing = bing or BingSubmitter(logger=self.logger)
        self.quota = quota or QuotaAdmission(logger=self.logger)
        self.execution_store = execution_store or ExecutionStore(logger=self.logger)
        self.last_record: Optional[Dict[str, Any]] = None

    async def run(self, channels: str = CHANNELS_ALL) -> SubmissionStats:
        """
        Execute the full pipeline once.

        Args:
            channels: "all", "indexnow" or "bing"

        Returns:
            SubmissionStats for the run (all zero if nothing was new)

        Raises:
            ConfigurationError: Invalid, missing or disabled site configuration
            StoreError: The cache store is unreachable
            FetchError: The root sitemap could not be retrieved
        """
        started = time.monotonic()

        if channels not in CHANNEL_SELECTIONS:
            raise ConfigurationError(
                f"Unknown channel selection '{channels}', expected one of {', '.join(CHANNEL_SELECTIONS)}"
            )

        self.logger.info("=== Indexer Scheduler Started ===")
        self.logger.info(f"Site ID: {self.site_id}, channels: {channels}")

        try:
            config = await resolve_config(self.site_id)
            self.logger.info(f"Config loaded: sitemap={config.sitemap_url}, host={config.site_host}")

            url_cache = DedupCache(config.site_id, config.cache_ttl_days, logger=self.logger)
            if not await url_cache.test_connection():
                raise StoreError("Failed to connect to cache store")

            add_submission_breadcrumb(self.site_id, message="Fetching sitemap")
            entries = await self.crawler.fetch_urls(config.sitemap_url)
            self.logger.info(f"Found {len(entries)} URLs in sitemap")
        except (ConfigurationError, StoreError, FetchError) as e:
            self.logger.error(f"Scheduler execution failed for {self.site_id}: {e}")
            capture_submission_error(e, self.site_id)
            await self._save_failure(e, started)
            raise

        valid_entries = _unique_entries(self.crawler.filter_valid_urls(entries))
        self.logger.info(f"{len(valid_entries)} valid URLs")

        stats = SubmissionStats()
        results: List[SubmissionResult] = []

        if not valid_entries:
            self.logger.warning("No URLs found in sitemap")
        else:
            if channels in (CHANNELS_ALL, CHANNEL_INDEXNOW):
                channel_stats, channel_results = await self._run_isolated(
                    CHANNEL_INDEXNOW, self._run_indexnow(config, url_cache, valid_entries)
                )
                stats.channels[CHANNEL_INDEXNOW] = channel_stats
                results.extend(channel_results)

            if channels in (CHANNELS_ALL, CHANNEL_BING):
                if config.bing_active:
                    channel_stats, channel_results = await self._run_isolated(
                        CHANNEL_BING, self._run_bing(config, url_cache, valid_entries)
                    )
                    stats.channels[CHANNEL_BING] = channel_stats
                    results.extend(channel_results)
                else:
                    self.logger.info("Bing submission not enabled for this site, skipping")
                    stats.channels[CHANNEL_BING] = ChannelStats(enabled=False)

        self._aggregate(stats, results, started)
        self.logger.info(
            f"=== Execution Complete === total={stats.total} successful={stats.successful} "
            f"failed={stats.failed} skipped={stats.skipped} duration={stats.duration:.2f}s"
        )

        await self._save_record(STATUS_COMPLETED, stats, results)
        return stats

    async def _run_isolated(self, channel: str, pipeline) -> Tuple[ChannelStats, List[SubmissionResult]]:
        """Await a channel pipeline, turning any failure into channel stats."""
        add_submission_breadcrumb(self.site_id, channel=channel, message="Channel started")
        try:
            return await pipeline
        except Exception as e:
            self.logger.error(f"{channel} channel failed for {self.site_id}: {e}")
            capture_submission_error(e, self.site_id, channel=channel)
            return ChannelStats(enabled=True, error=str(e)), []

    async def _run_indexnow(
        self,
        config: ResolvedConfig,
        url_cache: DedupCache,
        entries: List[SitemapEntry],
    ) -> Tuple[ChannelStats, List[SubmissionResult]]:
        urls = [entry.loc for entry in entries]
        new_urls = await url_cache.filter_new_urls(urls, CHANNEL_INDEXNOW)
        self.logger.info(f"{len(new_urls)} new URLs to submit to IndexNow")

        if not new_urls:
            return ChannelStats(enabled=True), []

        results = await self.indexnow.submit(new_urls, config.indexnow_channel_config())

        accepted = successful_urls(new_urls, results, self.indexnow.max_batch_size)
        if len(accepted) == len(new_urls):
            self.logger.info("All batches successful, caching all URLs...")
        elif accepted:
            self.logger.warning("Some batches failed, caching only successful URLs")
        if accepted:
            await url_cache.add_batch(accepted, CHANNEL_INDEXNOW)

        return (
            ChannelStats(
                enabled=True,
                submitted=len(new_urls),
                successful=len(accepted),
                failed=len(new_urls) - len(accepted),
            ),
            results,
        )

    async def _run_bing(
        self,
        config: ResolvedConfig,
        url_cache: DedupCache,
        entries: List[SitemapEntry],
    ) -> Tuple[ChannelStats, List[SubmissionResult]]:
        limit = config.bing_daily_quota
        used = await self.quota.get_used_today(config.site_id)
        remaining = max(0, limit - used)
        self.logger.info(f"Bing quota for {config.site_id}: {remaining}/{limit} remaining today")

        candidates = select_candidates(entries, remaining, config.bing_priority)
        skipped = len(entries) - len(candidates)

        if not candidates:
            self.logger.warning(f"Bing daily quota exhausted for {config.site_id}, skipping")
            return (
                ChannelStats(
                    enabled=True,
                    skipped=skipped,
                    quota_used=used,
                    quota_remaining=remaining,
                ),
                [],
            )

        new_urls = await url_cache.filter_new_urls(
            [entry.loc for entry in candidates], CHANNEL_BING
        )
        self.logger.info(
            f"{len(new_urls)} new URLs to submit to Bing "
            f"({len(candidates)} selected by {config.bing_priority}, {skipped} held back by quota)"
        )

        if not new_urls:
            return (
                ChannelStats(
                    enabled=True,
                    skipped=skipped,
                    quota_used=used,
                    quota_remaining=remaining,
                ),
                [],
            )

        results = await self.bing.submit(new_urls, config.bing_channel_config())

        accepted = successful_urls(new_urls, results, self.bing.max_batch_size)
        if accepted:
            await url_cache.add_batch(accepted, CHANNEL_BING)
            try:
                used = await self.quota.increment_used(config.site_id, len(accepted), limit)
            except StoreError as e:
                self.logger.error(f"Bing quota not recorded for {config.site_id}: {e}")
                capture_submission_error(e, self.site_id, channel=CHANNEL_BING)
                used += len(accepted)

        return (
            ChannelStats(
                enabled=True,
                submitted=len(new_urls),
                successful=len(accepted),
                failed=len(new_urls) - len(accepted),
                skipped=skipped,
                quota_used=used,
                quota_remaining=max(0, limit - used),
            ),
            results,
        )

    def _aggregate(
        self, stats: SubmissionStats, results: List[SubmissionResult], started: float
    ) -> None:
        errors = [result.error for result in results if not result.success]
        for name, channel in stats.channels.items():
            stats.total += channel.submitted
            stats.successful += channel.successful
            stats.failed += channel.failed
            stats.skipped += channel.skipped
            if channel.error:
                errors.append(f"[{name}] {channel.error}")

        stats.errors = errors[:MAX_REPORTED_ERRORS]
        stats.duration = time.monotonic() - started

    async def _save_failure(self, error: IndexerError, started: float) -> None:
        stats = SubmissionStats(
            duration=time.monotonic() - started,
            errors=[f"{type(error).__name__}: {error}"],
        )
        await self._save_record(STATUS_FAILED, stats, [], error=str(error))

    async def _save_record(
        self,
        status: str,
        stats: SubmissionStats,
        results: List[SubmissionResult],
        error: Optional[str] = None,
    ) -> None:
        record = {
            "site_id": self.site_id,
            "timestamp": timezone.now().isoformat(),
            "status": status,
            "stats": stats.to_dict(),
            "batches": [result.to_dict() for result in results],
            "channel_stats": {
                name: channel.to_dict() for name, channel in stats.channels.items()
            },
            "error": error,
        }
        self.last_record = record
        await self.execution_store.save(record)


def mark_site_run(site_id: str) -> None:
    """Stamp last_run_at on a site after a successful run."""
    from indexer.models import SubmissionSite

    site = SubmissionSite.objects.filter(site_id=site_id).first()
    if site is not None:
        site.mark_run()


async def run_sites(
    site_ids: List[str],
    channels: str = CHANNELS_ALL,
    concurrency: Optional[int] = None,
) -> Dict[str, Any]:
    """
    Run many sites, a window at a time.

    Sites within a window run concurrently; the next window starts once every
    site in the current one has finished. A failing site is reported and
    never cancels its siblings. Successful sites get last_run_at stamped.

    Returns:
        {"total", "successful", "failed", "results": [per-site dicts]}
    """
    window = concurrency or getattr(settings, "INDEXER_SITE_CONCURRENCY", DEFAULT_SITE_CONCURRENCY)
    summary = {"total": len(site_ids), "successful": 0, "failed": 0, "results": []}

    logger.info(f"Running {len(site_ids)} sites, {window} at a time")

    for start in range(0, len(site_ids), window):
        chunk = site_ids[start:start + window]
        outcomes = await asyncio.gather(
            *(SiteScheduler(site_id).run(channels) for site_id in chunk),
            return_exceptions=True,
        )

        for site_id, outcome in zip(chunk, outcomes):
            if isinstance(outcome, BaseException):
                summary["failed"] += 1
                summary["results"].append(
                    {"site_id": site_id, "success": False, "error": str(outcome)}
                )
                logger.error(f"Site {site_id} failed: {outcome}")
                if not isinstance(outcome, IndexerError):
                    capture_submission_error(outcome, site_id)
                continue

            summary["successful"] += 1
            summary["results"].append(
                {"site_id": site_id, "success": True, "stats": outcome.to_dict()}
            )
            if site_id != LEGACY_SITE_ID:
                try:
                    await sync_to_async(mark_site_run, thread_sensitive=True)(site_id)
                except Exception as e:
                    logger.error(f"Failed to record last run for {site_id}: {e}")
                    capture_submission_error(e, site_id)

    logger.info(
        f"Run complete: {summary['successful']} succeeded, {summary['failed']} failed "
        f"of {summary['total']} sites"
    )
    return summary


async def run_due_sites(channels: str = CHANNELS_ALL) -> Dict[str, Any]:
    """Run every enabled site whose interval has elapsed."""
    from indexer.utils.scheduling import get_due_sites

    sites = await sync_to_async(get_due_sites, thread_sensitive=True)()
    if not sites:
        logger.info("No sites due for submission")
        return {"total": 0, "successful": 0, "failed": 0, "results": []}

    return await run_sites([site.site_id for site in sites], channels=channels)
