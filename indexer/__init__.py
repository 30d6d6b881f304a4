"""
Indexer Django application.

This app harvests site sitemaps and pushes newly discovered URLs to
search-indexing APIs (IndexNow and Bing Webmaster).
"""

default_app_config = "indexer.apps.IndexerConfig"
