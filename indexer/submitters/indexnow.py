"""
IndexNow submitter.

Pushes URL lists to IndexNow-compatible search engines with batch POSTs
(up to 10,000 URLs per request). Every batch is sent to every configured
engine independently; there is no cross-engine fallback.

Request:
    POST https://{engine}/indexnow
    {"host": ..., "key": ..., "keyLocation": ..., "urlList": [...]}
"""

import asyncio
import logging
from dataclasses import dataclass, field
from typing import List, Optional

import httpx

from indexer.submitters.base import (
    SubmissionChannel,
    SubmissionResult,
    classify_status,
    split_into_batches,
)

logger = logging.getLogger(__name__)


DEFAULT_SEARCH_ENGINE = "api.indexnow.org"


@dataclass
class IndexNowChannelConfig:
    """Per-site parameters for the IndexNow channel."""

    host: str
    key: str
    key_location: Optional[str] = None
    search_engines: List[str] = field(default_factory=lambda: [DEFAULT_SEARCH_ENGINE])
    request_interval_ms: int = 100
    max_retries: int = 3

    def __post_init__(self):
        if not self.key_location:
            self.key_location = f"https://{self.host}/{self.key}.txt"


class IndexNowSubmitter(SubmissionChannel):
    """
    IndexNow batch submitter.

    Usage:
        submitter = IndexNowSubmitter()
        results = await submitter.submit(urls, IndexNowChannelConfig(host=..., key=...))
    """

    name = "indexnow"
    max_batch_size = 10000
    backoff_base_seconds = 1.0
    rate_limit_cooldown_seconds = 60.0

    async def submit(
        self, urls: List[str], channel_config: IndexNowChannelConfig
    ) -> List[SubmissionResult]:
        """
        Submit URLs to every configured engine.

        Returns:
            One SubmissionResult per (engine, batch), engine-major order
        """
        if not urls:
            return []

        batches = split_into_batches(urls, self.max_batch_size)
        engines = channel_config.search_engines or [DEFAULT_SEARCH_ENGINE]
        interval = max(0, channel_config.request_interval_ms) / 1000

        self.logger.info(
            f"Submitting {len(urls)} URLs to IndexNow in {len(batches)} batches "
            f"across {len(engines)} engines (key location {channel_config.key_location})"
        )

        results: List[SubmissionResult] = []
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for engine in engines:
                for index, batch in enumerate(batches):
                    self.logger.info(
                        f"Submitting batch {index + 1}/{len(batches)} "
                        f"({len(batch)} URLs) to {engine}"
                    )
                    result = await self._submit_with_retry(
                        client,
                        batch,
                        index,
                        engine,
                        channel_config,
                        channel_config.max_retries,
                    )
                    results.append(result)

                    if index < len(batches) - 1 and interval:
                        self.logger.debug(f"Waiting {interval * 1000:.0f}ms before next batch...")
                        await asyncio.sleep(interval)

        succeeded = sum(1 for result in results if result.success)
        self.logger.info(
            f"IndexNow submission complete: {succeeded}/{len(results)} batches succeeded"
        )
        return results

    async def _send_batch(
        self,
        client: httpx.AsyncClient,
        batch: List[str],
        endpoint: str,
        channel_config: IndexNowChannelConfig,
    ) -> int:
        payload = {
            "host": channel_config.host,
            "key": channel_config.key,
            "keyLocation": channel_config.key_location,
            "urlList": batch,
        }
        response = await self._post_json(client, f"https://{endpoint}/indexnow", payload)

        error = classify_status(response.status_code, response.reason_phrase)
        if error is not None:
            raise error
        return response.status_code
