"""
Exception hierarchy for the indexer.

ConfigurationError and StoreError are fatal to a site run. FetchError is fatal
only for the root sitemap. SubmissionError subclasses classify a single HTTP
attempt against a submission endpoint and never escape a channel; they are
turned into failed SubmissionResult records.
"""

from typing import Optional


class IndexerError(Exception):
    """Base class for all indexer errors."""

    pass


class ConfigurationError(IndexerError):
    """Missing or invalid site configuration."""

    def __init__(self, message: str, errors: Optional[list] = None):
        super().__init__(message)
        self.errors = errors or []


class FetchError(IndexerError):
    """A sitemap document could not be retrieved or parsed."""

    def __init__(self, message: str, url: Optional[str] = None, status_code: Optional[int] = None):
        super().__init__(message)
        self.url = url
        self.status_code = status_code


class StoreError(IndexerError):
    """The key-value store (Django cache) failed or is unreachable."""

    pass


class SubmissionError(IndexerError):
    """
    A failed submission attempt.

    Attributes:
        error_code: Short machine-readable code (RATE_LIMITED, SERVER_ERROR, ...)
        status_code: HTTP status of the response, None for transport failures
        retryable: Whether the attempt may be repeated
    """

    retryable = False
    default_code = "SUBMISSION_ERROR"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        error_code: Optional[str] = None,
    ):
        super().__init__(message)
        self.status_code = status_code
        self.error_code = error_code or self.default_code


class NetworkError(SubmissionError):
    """Transport failure (DNS, connection reset, timeout)."""

    retryable = True
    default_code = "NETWORK_ERROR"


class ClientError(SubmissionError):
    """4xx response other than 429. Terminal."""

    retryable = False
    default_code = "CLIENT_ERROR"


class RateLimitedError(SubmissionError):
    """HTTP 429."""

    retryable = True
    default_code = "RATE_LIMITED"


class ServerError(SubmissionError):
    """5xx response."""

    retryable = True
    default_code = "SERVER_ERROR"
