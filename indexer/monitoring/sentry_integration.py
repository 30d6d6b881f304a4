"""
Sentry error tracking integration for the indexer.

- Adds breadcrumbs for submission context (site, channel, step)
- Filters sensitive data (API keys, tokens)
- Captures exceptions with site/channel tags

The SDK itself is initialised in config/settings/base.py when SENTRY_DSN is
set; without a DSN every call here is a no-op inside the SDK.

Usage:
    from indexer.monitoring import capture_submission_error, add_submission_breadcrumb

    try:
        results = await submitter.submit(urls, channel_config)
    except Exception as e:
        capture_submission_error(error=e, site_id=site_id, channel="bing")
"""

import logging
from typing import Any, Dict, Optional

import sentry_sdk

logger = logging.getLogger(__name__)

# Sensitive fields to filter from Sentry events
SENSITIVE_FIELDS = {
    "api_key",
    "apikey",
    "api-key",
    "key",
    "authorization",
    "password",
    "secret",
    "token",
}


def _filter_sensitive_data(data: Dict[str, Any]) -> Dict[str, Any]:
    """
    Replace values for keys that look like secrets, recursively.

    Args:
        data: Dictionary potentially containing sensitive data

    Returns:
        Dictionary with sensitive values replaced by "[Filtered]"
    """
    if not isinstance(data, dict):
        return data

    filtered = {}
    for key, value in data.items():
        key_lower = str(key).lower()

        if any(sensitive in key_lower for sensitive in SENSITIVE_FIELDS):
            filtered[key] = "[Filtered]"
        elif isinstance(value, dict):
            filtered[key] = _filter_sensitive_data(value)
        else:
            filtered[key] = value

    return filtered


def add_submission_breadcrumb(
    site_id: str,
    channel: Optional[str] = None,
    message: str = "Submission step",
    level: str = "info",
    extra_data: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Add a breadcrumb to Sentry for submission context.

    Args:
        site_id: Site being processed
        channel: Submission channel, if the step is channel specific
        message: Description of the step
        level: Log level (info, warning, error)
        extra_data: Additional context data (filtered for secrets)
    """
    breadcrumb_data = {"site_id": site_id}
    if channel:
        breadcrumb_data["channel"] = channel
    if extra_data:
        breadcrumb_data.update(_filter_sensitive_data(extra_data))

    try:
        sentry_sdk.add_breadcrumb(
            category="indexer",
            message=message,
            level=level,
            data=breadcrumb_data,
        )
    except Exception as e:
        logger.warning(f"Failed to add Sentry breadcrumb: {e}")


def capture_submission_error(
    error: Exception,
    site_id: str,
    channel: Optional[str] = None,
    extra_context: Optional[Dict[str, Any]] = None,
) -> None:
    """
    Capture a run or channel failure to Sentry with site context.

    Args:
        error: The exception that occurred
        site_id: Site being processed
        channel: Channel that failed, None for whole-run failures
        extra_context: Additional context (filtered for secrets)
    """
    add_submission_breadcrumb(
        site_id=site_id,
        channel=channel,
        message=f"Error: {type(error).__name__}",
        level="error",
        extra_data=extra_context,
    )

    try:
        with sentry_sdk.new_scope() as scope:
            scope.set_tag("indexer.site", site_id)
            scope.set_tag("indexer.channel", channel or "all")
            if extra_context:
                scope.set_extra("submission_context", _filter_sensitive_data(extra_context))

            sentry_sdk.capture_exception(error)
    except Exception as e:
        logger.warning(f"Failed to capture exception to Sentry: {e}")
