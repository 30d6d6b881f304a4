"""
Tests for site configuration resolution.
"""

import pytest

from indexer.exceptions import ConfigurationError
from indexer.models import SubmissionSite
from indexer.services.site_config import (
    LEGACY_SITE_ID,
    ResolvedConfig,
    config_from_site,
    get_config_summary,
    load_legacy_config,
    mask_api_key,
    resolve_config,
    validate_config,
)
from tests.helpers import BING_API_KEY, SITE_API_KEY


def resolved(**overrides):
    params = {
        "site_id": "example.com",
        "sitemap_url": "https://example.com/sitemap.xml",
        "site_host": "example.com",
        "api_key": SITE_API_KEY,
    }
    params.update(overrides)
    return ResolvedConfig(**params)


class TestLegacyConfig:

    def test_loads_from_settings(self):
        config = load_legacy_config()

        assert config.site_id == LEGACY_SITE_ID
        assert config.sitemap_url == "https://example.com/sitemap.xml"
        assert config.key_location == f"https://example.com/{SITE_API_KEY}.txt"
        assert config.search_engines == ["api.indexnow.org"]
        assert config.bing_active is False

    def test_bing_enabled_by_key(self, settings):
        settings.BING_API_KEY = BING_API_KEY
        settings.BING_DAILY_QUOTA = 50

        config = load_legacy_config()

        assert config.bing_active is True
        assert config.bing_daily_quota == 50
        assert config.bing_channel_config().site_url == "https://example.com"

    def test_comma_separated_engines(self, settings):
        settings.INDEXNOW_SEARCH_ENGINES = "api.indexnow.org, www.bing.com,"

        assert load_legacy_config().search_engines == ["api.indexnow.org", "www.bing.com"]

    def test_missing_settings(self, settings):
        settings.INDEXNOW_API_KEY = ""
        settings.INDEXNOW_SITE_HOST = ""

        with pytest.raises(ConfigurationError) as exc_info:
            load_legacy_config()

        assert "INDEXNOW_API_KEY is required" in exc_info.value.errors
        assert "INDEXNOW_SITE_HOST is required" in exc_info.value.errors

    def test_non_numeric_setting(self, settings):
        settings.INDEXNOW_MAX_RETRIES = "lots"

        with pytest.raises(ConfigurationError):
            load_legacy_config()


class TestValidateConfig:

    def test_valid(self):
        validate_config(resolved())

    def test_collects_every_error(self):
        config = resolved(
            sitemap_url="not-a-url",
            api_key="xyz",
            max_concurrent_requests=0,
            request_interval_ms=-1,
            cache_ttl_days=0,
            max_retries=11,
            search_engines=[],
        )

        with pytest.raises(ConfigurationError) as exc_info:
            validate_config(config)

        assert len(exc_info.value.errors) == 7

    def test_short_hex_key_accepted(self):
        validate_config(resolved(api_key="abcdef12"))

    def test_non_hex_key_rejected(self):
        with pytest.raises(ConfigurationError, match="hexadecimal"):
            validate_config(resolved(api_key="ghijklmnopqrstuv"))

    def test_unknown_bing_priority(self):
        with pytest.raises(ConfigurationError):
            validate_config(resolved(bing_priority="oldest"))


class TestSummary:

    def test_mask_api_key(self):
        assert mask_api_key(SITE_API_KEY) == "0123****"
        assert mask_api_key("") == ""
        assert mask_api_key(None) == ""

    def test_summary_masks_secrets(self):
        summary = get_config_summary(resolved(bing_enabled=True, bing_api_key=BING_API_KEY))

        assert summary["api_key"] == "0123****"
        assert summary["bing"]["api_key"] == "fedc****"
        assert summary["bing"]["enabled"] is True
        assert SITE_API_KEY not in str(summary)
        assert BING_API_KEY not in str(summary)


class TestSiteConfig:

    def test_config_from_site(self):
        site = SubmissionSite.build(
            sitemap_url="https://blog.example.net/sitemap.xml",
            api_key=SITE_API_KEY,
            bing_enabled=True,
            bing_api_key=BING_API_KEY,
            bing_daily_quota=25,
        )

        config = config_from_site(site)

        assert config.site_id == "blog.example.net"
        assert config.site_host == "blog.example.net"
        assert config.site_url == "https://blog.example.net"
        assert config.bing_active is True
        assert config.bing_daily_quota == 25

    @pytest.mark.asyncio
    async def test_resolve_legacy(self):
        config = await resolve_config(LEGACY_SITE_ID)

        assert config.site_id == LEGACY_SITE_ID

    @pytest.mark.asyncio
    @pytest.mark.django_db(transaction=True)
    async def test_resolve_site(self, submission_site):
        config = await resolve_config(submission_site.site_id)

        assert config.site_id == "www.example.org"
        assert config.sitemap_url == "https://www.example.org/sitemap.xml"

    @pytest.mark.asyncio
    @pytest.mark.django_db(transaction=True)
    async def test_resolve_unknown_site(self):
        with pytest.raises(ConfigurationError, match="not found"):
            await resolve_config("missing.example")

    @pytest.mark.asyncio
    @pytest.mark.django_db(transaction=True)
    async def test_resolve_disabled_site(self, disabled_site):
        with pytest.raises(ConfigurationError, match="disabled"):
            await resolve_config(disabled_site.site_id)


@pytest.fixture
def disabled_site(submission_site):
    submission_site.enabled = False
    submission_site.save()
    return submission_site
