"""
Bing Webmaster submitter.

Submits URLs through the Bing Webmaster SubmitUrlbatch API. Batches hold at
most 100 URLs and are sent one per second. The API reports failures as
{"ErrorCode": int, "Message": str}; the code refines the HTTP status based
classification (throttling reported as 400 is retried, an exhausted daily
quota is terminal).

Request:
    POST https://ssl.bing.com/webmaster/api.svc/json/SubmitUrlbatch?apikey=...
    {"siteUrl": ..., "urlList": [...]}
"""

import asyncio
import logging
import re
from dataclasses import dataclass
from typing import List, Optional, Tuple

import httpx

from indexer.exceptions import ClientError, RateLimitedError, ServerError, SubmissionError
from indexer.submitters.base import (
    SubmissionChannel,
    SubmissionResult,
    classify_status,
    split_into_batches,
)

logger = logging.getLogger(__name__)


BING_ENDPOINT = "https://ssl.bing.com/webmaster/api.svc/json/SubmitUrlbatch"
BATCH_DELAY_SECONDS = 1.0

# Bing Webmaster API ErrorCode values
BING_ERROR_INTERNAL = 1
BING_ERROR_INVALID_API_KEY = 3
BING_THROTTLE_CODES = (4, 5)  # ThrottleUser, ThrottleHost

_API_KEY_RE = re.compile(r"^[a-f0-9]{32,}$", re.IGNORECASE)


def is_valid_bing_api_key(api_key: Optional[str]) -> bool:
    """Bing Webmaster keys are hex strings of at least 32 characters."""
    return bool(api_key) and bool(_API_KEY_RE.match(api_key))


@dataclass
class BingChannelConfig:
    """Per-site parameters for the Bing channel."""

    api_key: str
    site_url: str
    max_retries: int = 3


def _parse_error_body(response: httpx.Response) -> Tuple[Optional[int], str]:
    """Extract (ErrorCode, Message) from a Bing error response."""
    try:
        data = response.json()
    except ValueError:
        return None, (response.text or "").strip()

    if not isinstance(data, dict):
        return None, str(data)

    error_code = data.get("ErrorCode")
    message = str(data.get("Message") or "")
    return (error_code if isinstance(error_code, int) else None), message


def classify_bing_response(response: httpx.Response) -> Optional[SubmissionError]:
    """
    Classify a Bing API response.

    Returns:
        None for 2xx, otherwise the SubmissionError for this attempt
    """
    status_code = response.status_code
    if 200 <= status_code < 300:
        return None

    bing_code, message = _parse_error_body(response)

    if bing_code in BING_THROTTLE_CODES:
        return RateLimitedError(
            f"Throttled by Bing: {message or 'rate limit exceeded'}",
            status_code=status_code,
        )
    if bing_code == BING_ERROR_INVALID_API_KEY:
        return ClientError(
            "Unauthorized: Invalid API key", status_code=status_code, error_code="UNAUTHORIZED"
        )
    if "quota" in message.lower() and status_code < 500:
        return ClientError(
            f"Daily quota exhausted: {message}",
            status_code=status_code,
            error_code="QUOTA_EXCEEDED",
        )
    if bing_code == BING_ERROR_INTERNAL and status_code < 500:
        return ServerError(f"Bing internal error: {message}", status_code=status_code)

    error = classify_status(status_code, message)
    if bing_code is not None and error.error_code.startswith("HTTP_"):
        error.error_code = f"BING_{bing_code}"
    return error


class BingSubmitter(SubmissionChannel):
    """
    Bing Webmaster batch submitter.

    Usage:
        submitter = BingSubmitter()
        results = await submitter.submit(urls, BingChannelConfig(api_key=..., site_url=...))
    """

    name = "bing"
    max_batch_size = 100
    backoff_base_seconds = 2.0

    async def submit(
        self, urls: List[str], channel_config: BingChannelConfig
    ) -> List[SubmissionResult]:
        """Submit URLs in batches of 100, one result per batch."""
        if not urls:
            return []

        self.logger.info(f"Submitting {len(urls)} URLs to Bing Webmaster...")
        batches = split_into_batches(urls, self.max_batch_size)
        self.logger.info(f"Split into {len(batches)} batches")

        results: List[SubmissionResult] = []
        async with httpx.AsyncClient(timeout=self.timeout) as client:
            for index, batch in enumerate(batches):
                self.logger.info(
                    f"Submitting batch {index + 1}/{len(batches)} ({len(batch)} URLs)"
                )
                results.append(
                    await self.submit_batch(client, batch, index, channel_config)
                )

                if index < len(batches) - 1:
                    await asyncio.sleep(BATCH_DELAY_SECONDS)

        succeeded = sum(1 for result in results if result.success)
        self.logger.info(
            f"Bing submission complete: {succeeded}/{len(batches)} batches succeeded"
        )
        return results

    async def submit_batch(
        self,
        client: httpx.AsyncClient,
        urls: List[str],
        batch_index: int,
        channel_config: BingChannelConfig,
    ) -> SubmissionResult:
        """Submit one batch, truncating it to the API limit if needed."""
        if len(urls) > self.max_batch_size:
            self.logger.warning(
                f"Batch size {len(urls)} exceeds max {self.max_batch_size}, truncating"
            )
            urls = urls[:self.max_batch_size]

        return await self._submit_with_retry(
            client,
            urls,
            batch_index,
            BING_ENDPOINT,
            channel_config,
            channel_config.max_retries,
        )

    async def _send_batch(
        self,
        client: httpx.AsyncClient,
        batch: List[str],
        endpoint: str,
        channel_config: BingChannelConfig,
    ) -> int:
        payload = {"siteUrl": channel_config.site_url, "urlList": batch}
        response = await self._post_json(
            client, f"{endpoint}?apikey={channel_config.api_key}", payload
        )

        error = classify_bing_response(response)
        if error is not None:
            raise error
        return response.status_code
