"""
Indexer application configuration.
"""

from django.apps import AppConfig


class IndexerConfig(AppConfig):
    """Configuration for the indexer Django application."""

    default_auto_field = "django.db.models.BigAutoField"
    name = "indexer"
    verbose_name = "Sitemap Indexer"

    def ready(self):
        """
        Import signal handlers to register them.

        Signals include:
        - SubmissionSite deletion purging cached execution records
        """
        from indexer import signals  # noqa: F401
