"""
Monitoring for the indexer: Sentry breadcrumbs and error capture with
site/channel context.
"""

from .sentry_integration import add_submission_breadcrumb, capture_submission_error

__all__ = [
    "add_submission_breadcrumb",
    "capture_submission_error",
]
