"""
Pytest configuration and fixtures for the Sitemap Indexer test suite.
"""

from unittest.mock import AsyncMock, patch

import pytest

from tests.helpers import SITE_API_KEY


@pytest.fixture(autouse=True)
def clear_cache():
    """Start every test with an empty cache (dedup, quota, history)."""
    from django.core.cache import cache

    cache.clear()
    yield
    cache.clear()


@pytest.fixture
def mock_http_client():
    """
    Replace httpx.AsyncClient with an AsyncMock usable as a context manager.

    Configure client.get / client.post in the test.
    """
    client = AsyncMock()
    client.__aenter__ = AsyncMock(return_value=client)
    client.__aexit__ = AsyncMock(return_value=None)
    with patch("httpx.AsyncClient", return_value=client):
        yield client


@pytest.fixture
def mock_sleep():
    """Skip real waits between batches and retries."""
    with patch("asyncio.sleep", new_callable=AsyncMock) as sleep:
        yield sleep


@pytest.fixture
def api_client():
    """Create a test API client."""
    from rest_framework.test import APIClient

    return APIClient()


@pytest.fixture
def operator_user(db):
    """Create a user allowed to call the operator API."""
    from django.contrib.auth import get_user_model

    return get_user_model().objects.create_user(username="operator", password="operator-pass")


@pytest.fixture
def authenticated_client(api_client, operator_user):
    api_client.force_authenticate(user=operator_user)
    return api_client


@pytest.fixture
def submission_site(db):
    """Create an enabled SubmissionSite that has never run."""
    from indexer.models import SubmissionSite

    site = SubmissionSite.build(
        sitemap_url="https://www.example.org/sitemap.xml",
        api_key=SITE_API_KEY,
    )
    site.save()
    return site
