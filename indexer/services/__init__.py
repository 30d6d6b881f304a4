"""
Services module for the Sitemap Indexer.

Contains:
- sitemap_crawler: Sitemap fetching and flattening
- url_cache: Deduplication cache of submitted URLs
- quota_admission: Daily quota gate for the Bing channel
- site_config: Resolution of legacy settings or a SubmissionSite into one config
- execution_store: Last execution pointer and bounded run history
- scheduler: Per-site pipeline and multi-site fan-out
"""
