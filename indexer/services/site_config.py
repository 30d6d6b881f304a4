"""
Site configuration resolution.

A run is configured from one of two sources:

- legacy single-site settings (INDEXNOW_* / BING_* in Django settings),
  used for site id "default"
- a SubmissionSite record, used for any other site id

Both resolve to a ResolvedConfig, so the rest of the pipeline never needs to
know where the values came from.
"""

import logging
import re
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional
from urllib.parse import urlparse

from asgiref.sync import sync_to_async
from django.conf import settings

from indexer.exceptions import ConfigurationError
from indexer.services.quota_admission import SELECTION_STRATEGIES, STRATEGY_NEWEST
from indexer.submitters.bing import BingChannelConfig
from indexer.submitters.indexnow import DEFAULT_SEARCH_ENGINE, IndexNowChannelConfig

logger = logging.getLogger(__name__)


LEGACY_SITE_ID = "default"

_HEX_RE = re.compile(r"^[a-f0-9]+$")


def mask_api_key(key: Optional[str]) -> str:
    """Keep the first 4 characters of a secret."""
    if not key:
        return ""
    return key[:4] + "****"


@dataclass
class ResolvedConfig:
    """Everything one site run needs, independent of its source."""

    site_id: str
    sitemap_url: str
    site_host: str
    api_key: str
    key_location: Optional[str] = None
    search_engines: List[str] = field(default_factory=lambda: [DEFAULT_SEARCH_ENGINE])
    max_concurrent_requests: int = 3
    request_interval_ms: int = 100
    cache_ttl_days: int = 30
    max_retries: int = 3
    bing_enabled: bool = False
    bing_api_key: str = ""
    bing_daily_quota: int = 100
    bing_priority: str = STRATEGY_NEWEST
    interval_hours: int = 6

    def __post_init__(self):
        if not self.key_location:
            self.key_location = f"https://{self.site_host}/{self.api_key}.txt"

    @property
    def site_url(self) -> str:
        """Origin of the sitemap URL, used as the Bing siteUrl."""
        parsed = urlparse(self.sitemap_url)
        return f"{parsed.scheme}://{parsed.netloc}"

    @property
    def bing_active(self) -> bool:
        return self.bing_enabled and bool(self.bing_api_key)

    def indexnow_channel_config(self) -> IndexNowChannelConfig:
        return IndexNowChannelConfig(
            host=self.site_host,
            key=self.api_key,
            key_location=self.key_location,
            search_engines=list(self.search_engines),
            request_interval_ms=self.request_interval_ms,
            max_retries=self.max_retries,
        )

    def bing_channel_config(self) -> BingChannelConfig:
        return BingChannelConfig(
            api_key=self.bing_api_key,
            site_url=self.site_url,
            max_retries=self.max_retries,
        )


def _int_setting(name: str, default: int) -> int:
    value = getattr(settings, name, default)
    try:
        return int(value)
    except (TypeError, ValueError):
        raise ConfigurationError(f"{name} must be an integer, got {value!r}")


def _engine_list(value) -> List[str]:
    if isinstance(value, str):
        value = value.split(",")
    engines = [engine.strip() for engine in value or [] if engine and engine.strip()]
    return engines or [DEFAULT_SEARCH_ENGINE]


def validate_config(config: ResolvedConfig) -> None:
    """
    Validate a resolved configuration.

    Raises:
        ConfigurationError: Listing every problem found
    """
    errors = []

    parsed = urlparse(config.sitemap_url or "")
    if parsed.scheme not in ("http", "https") or not parsed.netloc:
        errors.append(f"Invalid sitemap URL: {config.sitemap_url}")

    if len(config.api_key) < 8:
        errors.append("API key must be at least 8 characters")
    elif not _HEX_RE.match(config.api_key):
        errors.append("API key must be hexadecimal")

    if not 1 <= config.max_concurrent_requests <= 10:
        errors.append("Max concurrent requests must be between 1 and 10")
    if config.request_interval_ms < 0:
        errors.append("Request interval must be non-negative")
    if config.cache_ttl_days < 1:
        errors.append("Cache TTL must be at least 1 day")
    if not 0 <= config.max_retries <= 10:
        errors.append("Max retries must be between 0 and 10")
    if not config.search_engines:
        errors.append("At least one search engine is required")
    if config.bing_daily_quota < 0:
        errors.append("Bing daily quota must be non-negative")
    if config.bing_priority not in SELECTION_STRATEGIES:
        errors.append(f"Bing priority must be one of {', '.join(SELECTION_STRATEGIES)}")

    if errors:
        raise ConfigurationError(
            f"Invalid configuration for {config.site_id}: {'; '.join(errors)}",
            errors=errors,
        )


def load_legacy_config() -> ResolvedConfig:
    """
    Build the single-site configuration from Django settings.

    Raises:
        ConfigurationError: If a required setting is missing or invalid
    """
    required = {
        "INDEXNOW_SITEMAP_URL": getattr(settings, "INDEXNOW_SITEMAP_URL", ""),
        "INDEXNOW_SITE_HOST": getattr(settings, "INDEXNOW_SITE_HOST", ""),
        "INDEXNOW_API_KEY": getattr(settings, "INDEXNOW_API_KEY", ""),
    }
    missing = [name for name, value in required.items() if not value]
    if missing:
        raise ConfigurationError(
            f"{', '.join(missing)} {'is' if len(missing) == 1 else 'are'} required",
            errors=[f"{name} is required" for name in missing],
        )

    config = ResolvedConfig(
        site_id=LEGACY_SITE_ID,
        sitemap_url=required["INDEXNOW_SITEMAP_URL"],
        site_host=required["INDEXNOW_SITE_HOST"],
        api_key=required["INDEXNOW_API_KEY"],
        key_location=getattr(settings, "INDEXNOW_KEY_LOCATION", "") or None,
        search_engines=_engine_list(getattr(settings, "INDEXNOW_SEARCH_ENGINES", None)),
        max_concurrent_requests=_int_setting("INDEXNOW_MAX_CONCURRENT_REQUESTS", 3),
        request_interval_ms=_int_setting("INDEXNOW_REQUEST_INTERVAL_MS", 100),
        cache_ttl_days=_int_setting("INDEXNOW_CACHE_TTL_DAYS", 30),
        max_retries=_int_setting("INDEXNOW_MAX_RETRIES", 3),
        bing_api_key=getattr(settings, "BING_API_KEY", "") or "",
        bing_daily_quota=_int_setting("BING_DAILY_QUOTA", 100),
        bing_priority=getattr(settings, "BING_PRIORITY", STRATEGY_NEWEST) or STRATEGY_NEWEST,
    )
    # The legacy source enables Bing whenever a key is configured
    config.bing_enabled = bool(config.bing_api_key)

    validate_config(config)
    logger.info("Configuration loaded successfully")
    return config


def config_from_site(site) -> ResolvedConfig:
    """Convert a SubmissionSite into a ResolvedConfig."""
    return ResolvedConfig(
        site_id=site.site_id,
        sitemap_url=site.sitemap_url,
        site_host=site.host,
        api_key=site.api_key,
        key_location=site.key_location,
        search_engines=_engine_list(site.search_engines),
        max_concurrent_requests=site.max_concurrent_requests,
        request_interval_ms=site.request_interval_ms,
        cache_ttl_days=site.cache_ttl_days,
        max_retries=site.max_retries,
        bing_enabled=site.bing_enabled,
        bing_api_key=site.bing_api_key or "",
        bing_daily_quota=site.bing_daily_quota,
        bing_priority=site.bing_priority,
        interval_hours=site.interval_hours,
    )


def _load_site(site_id: str):
    from indexer.models import SubmissionSite

    try:
        return SubmissionSite.objects.get(site_id=site_id)
    except SubmissionSite.DoesNotExist:
        return None


async def resolve_config(site_id: Optional[str] = None) -> ResolvedConfig:
    """
    Resolve the configuration for a site run.

    Args:
        site_id: "default" (or None) for the legacy settings, else a SubmissionSite id

    Raises:
        ConfigurationError: If the site is unknown, disabled or invalid
    """
    if not site_id or site_id == LEGACY_SITE_ID:
        return load_legacy_config()

    site = await sync_to_async(_load_site, thread_sensitive=True)(site_id)
    if site is None:
        raise ConfigurationError(f"Site configuration not found: {site_id}")
    if not site.enabled:
        raise ConfigurationError(f"Site is disabled: {site_id}")

    config = config_from_site(site)
    validate_config(config)
    logger.info(f"Loaded config for site: {site_id}")
    return config


def get_config_summary(config: ResolvedConfig) -> Dict[str, Any]:
    """Configuration overview safe to expose (API keys masked)."""
    return {
        "site_id": config.site_id,
        "sitemap_url": config.sitemap_url,
        "site_host": config.site_host,
        "api_key": mask_api_key(config.api_key),
        "key_location": config.key_location,
        "search_engines": list(config.search_engines),
        "max_concurrent_requests": config.max_concurrent_requests,
        "request_interval_ms": config.request_interval_ms,
        "cache_ttl_days": config.cache_ttl_days,
        "max_retries": config.max_retries,
        "bing": {
            "enabled": config.bing_active,
            "api_key": mask_api_key(config.bing_api_key),
            "daily_quota": config.bing_daily_quota,
            "priority": config.bing_priority,
        },
    }
