"""
Submission channel contract.

A channel pushes URL lists to one external indexing API. All channels share
the same mechanics:

- split URLs into fixed-size batches (size is channel specific)
- submit batches strictly one after another, pausing between batches
- retry each batch up to max_retries attempts with exponential backoff
  (base * 2**attempt); 4xx responses other than 429 fail immediately
- report one SubmissionResult per batch, never raise for HTTP failures

Channels never touch the dedup cache or quota counters; the scheduler does
that after looking at the results.
"""

import asyncio
import logging
import time
from abc import ABC, abstractmethod
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

import httpx
from django.conf import settings

from indexer.exceptions import (
    ClientError,
    NetworkError,
    RateLimitedError,
    ServerError,
    SubmissionError,
)

logger = logging.getLogger(__name__)


@dataclass
class SubmissionResult:
    """
    Outcome of one batch submitted to one endpoint.

    Attributes:
        success: Whether the endpoint accepted the batch
        url_count: Number of URLs in the batch
        channel: Channel name ("indexnow" or "bing")
        batch_index: Position of the batch within the submission
        endpoint: Search engine host or API endpoint the batch went to
        status_code: HTTP status of the last attempt, if any
        error_code: Machine-readable failure code
        error_message: Human-readable failure description
        attempts: Number of HTTP attempts made
        timestamp: Unix time the batch started
    """

    success: bool
    url_count: int
    channel: str
    batch_index: int = 0
    endpoint: Optional[str] = None
    status_code: Optional[int] = None
    error_code: Optional[str] = None
    error_message: Optional[str] = None
    attempts: int = 0
    timestamp: float = field(default_factory=time.time)

    @property
    def error(self) -> Optional[str]:
        """Single-line error description for reports."""
        if self.success:
            return None
        if self.error_code and self.error_message:
            return f"[{self.channel}] {self.error_code}: {self.error_message}"
        return f"[{self.channel}] {self.error_message or self.error_code or 'Unknown error'}"

    def to_dict(self) -> Dict[str, Any]:
        """Convert result to dictionary for JSON serialization."""
        return {
            "channel": self.channel,
            "batch_index": self.batch_index,
            "endpoint": self.endpoint,
            "success": self.success,
            "status_code": self.status_code,
            "error_code": self.error_code,
            "error": self.error,
            "url_count": self.url_count,
            "attempts": self.attempts,
            "timestamp": self.timestamp,
        }


def split_into_batches(urls: List[str], batch_size: int) -> List[List[str]]:
    """
    Split a URL list into consecutive batches of at most batch_size.

    Example:
        split_into_batches(urls_250, 100) -> sizes [100, 100, 50]
    """
    if batch_size <= 0:
        raise ValueError("batch_size must be positive")
    return [urls[i:i + batch_size] for i in range(0, len(urls), batch_size)]


def classify_status(status_code: int, message: str = "") -> Optional[SubmissionError]:
    """
    Map an HTTP status to a submission error, or None for 2xx.

    - 429: RateLimitedError (retryable)
    - 5xx: ServerError (retryable)
    - 400/401/403 and any other status: ClientError (terminal)
    """
    if 200 <= status_code < 300:
        return None

    detail = message or f"HTTP {status_code}"

    if status_code == 429:
        return RateLimitedError("Rate limit exceeded", status_code=status_code)
    if status_code >= 500:
        return ServerError(f"Server error: {detail}", status_code=status_code)
    if status_code == 400:
        return ClientError(f"Bad Request: {detail}", status_code=status_code, error_code="BAD_REQUEST")
    if status_code == 401:
        return ClientError("Unauthorized: Invalid API key", status_code=status_code, error_code="UNAUTHORIZED")
    if status_code == 403:
        return ClientError(f"Forbidden: {detail}", status_code=status_code, error_code="FORBIDDEN")
    return ClientError(
        f"Unexpected response: {detail}",
        status_code=status_code,
        error_code=f"HTTP_{status_code}",
    )


class SubmissionChannel(ABC):
    """
    Base class for batch URL submitters.

    Subclasses set name, max_batch_size and the backoff parameters, and
    implement submit() and _send_batch().
    """

    name = "base"
    max_batch_size = 100
    backoff_base_seconds = 1.0
    # Extra pause after a 429 before the next attempt (0 = backoff only)
    rate_limit_cooldown_seconds = 0.0

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Args:
            timeout: HTTP request timeout in seconds
            user_agent: User-Agent header for HTTP requests
            logger: Logger to report to (defaults to module logger)
        """
        self.timeout = timeout if timeout is not None else getattr(
            settings, "INDEXER_REQUEST_TIMEOUT", 30
        )
        self.user_agent = user_agent or getattr(
            settings, "INDEXER_USER_AGENT", "SitemapIndexer/1.0"
        )
        self.logger = logger or logging.getLogger(__name__)

    @abstractmethod
    async def submit(self, urls: List[str], channel_config) -> List[SubmissionResult]:
        """Submit all URLs, returning one result per batch."""

    @abstractmethod
    async def _send_batch(
        self,
        client: httpx.AsyncClient,
        batch: List[str],
        endpoint: str,
        channel_config,
    ) -> int:
        """
        Make a single HTTP attempt for a batch.

        Returns:
            HTTP status code on success

        Raises:
            SubmissionError: Classified failure for this attempt
        """

    async def _post_json(
        self, client: httpx.AsyncClient, url: str, payload: Dict[str, Any]
    ) -> httpx.Response:
        """POST a JSON payload, turning transport failures into NetworkError."""
        headers = {
            "Content-Type": "application/json; charset=utf-8",
            "User-Agent": self.user_agent,
        }
        try:
            return await client.post(url, json=payload, headers=headers)
        except httpx.HTTPError as e:
            raise NetworkError(f"{type(e).__name__}: {e}") from e

    def _backoff_seconds(self, attempt: int) -> float:
        """Backoff after the given zero-based failed attempt."""
        return self.backoff_base_seconds * (2 ** attempt)

    async def _submit_with_retry(
        self,
        client: httpx.AsyncClient,
        batch: List[str],
        batch_index: int,
        endpoint: str,
        channel_config,
        max_retries: int,
    ) -> SubmissionResult:
        """
        Submit one batch with the retry ladder.

        Makes up to max_retries attempts (at least one). Terminal errors end
        the ladder immediately.
        """
        started = time.time()
        max_attempts = max(1, max_retries)
        last_error: Optional[SubmissionError] = None

        for attempt in range(max_attempts):
            try:
                status_code = await self._send_batch(client, batch, endpoint, channel_config)
            except SubmissionError as e:
                last_error = e

                if not e.retryable:
                    self.logger.error(
                        f"{self.name} batch {batch_index + 1} to {endpoint} failed: {e}"
                    )
                    break

                if attempt + 1 >= max_attempts:
                    self.logger.error(
                        f"{self.name} batch {batch_index + 1} to {endpoint} failed "
                        f"after {max_attempts} attempts: {e}"
                    )
                    break

                if isinstance(e, RateLimitedError) and self.rate_limit_cooldown_seconds:
                    self.logger.warning(
                        f"Rate limited by {endpoint}, waiting {self.rate_limit_cooldown_seconds:.0f}s..."
                    )
                    await asyncio.sleep(self.rate_limit_cooldown_seconds)

                backoff = self._backoff_seconds(attempt)
                self.logger.warning(
                    f"{self.name} batch {batch_index + 1} failed "
                    f"(attempt {attempt + 1}/{max_attempts}): {e}, retrying in {backoff:.1f}s..."
                )
                await asyncio.sleep(backoff)
                continue

            self.logger.info(
                f"{self.name} batch {batch_index + 1} accepted by {endpoint} "
                f"[{status_code}] ({len(batch)} URLs)"
            )
            return SubmissionResult(
                success=True,
                url_count=len(batch),
                channel=self.name,
                batch_index=batch_index,
                endpoint=endpoint,
                status_code=status_code,
                attempts=attempt + 1,
                timestamp=started,
            )

        return SubmissionResult(
            success=False,
            url_count=len(batch),
            channel=self.name,
            batch_index=batch_index,
            endpoint=endpoint,
            status_code=last_error.status_code if last_error else None,
            error_code=last_error.error_code if last_error else "UNKNOWN_ERROR",
            error_message=str(last_error) if last_error else "Unknown error",
            attempts=attempt + 1,
            timestamp=started,
        )
