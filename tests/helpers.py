"""
Shared builders for the test suite.
"""

import httpx

from indexer.services.sitemap_crawler import SitemapEntry
from indexer.submitters.base import SubmissionResult

SITE_API_KEY = "0123456789abcdef0123456789abcdef"
BING_API_KEY = "fedcba9876543210fedcba9876543210"


def http_response(status_code=200, *, json=None, content=None, headers=None):
    """Build a real httpx.Response for mocked clients."""
    if json is not None:
        return httpx.Response(status_code, json=json, headers=headers)
    return httpx.Response(status_code, content=content or b"", headers=headers)


def make_entries(count, lastmod_start_day=1, prefix="https://example.com/page"):
    """Entries page-1..page-N with increasing lastmod dates."""
    return [
        SitemapEntry(
            loc=f"{prefix}-{i}",
            lastmod=f"2024-01-{lastmod_start_day + i - 1:02d}",
        )
        for i in range(1, count + 1)
    ]


def batch_result(channel, batch_index, success=True, url_count=1, error_code=None):
    return SubmissionResult(
        success=success,
        url_count=url_count,
        channel=channel,
        batch_index=batch_index,
        endpoint="test",
        status_code=200 if success else 500,
        error_code=error_code or (None if success else "SERVER_ERROR"),
        error_message=None if success else "Server error: Internal Server Error",
        attempts=1,
    )
