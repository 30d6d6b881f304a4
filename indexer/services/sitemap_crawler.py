"""
Sitemap Crawler Service.

Fetches a site's sitemap and flattens it into a list of URL entries.

Features:
- Parse <urlset> sitemaps and <sitemapindex> documents
- Resolve sitemap indexes recursively (bounded depth, cycle guard)
- Partial aggregation: a failing nested sitemap is logged and skipped
- Support for gzipped sitemaps (.xml.gz)
- Lenient fallback extraction for malformed XML
- URL validation (absolute http/https only)
"""

import gzip
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone as dt_timezone
from typing import List, Optional, Set
from urllib.parse import urlparse
from xml.etree import ElementTree as ET

import httpx
from django.conf import settings

from indexer.exceptions import FetchError

logger = logging.getLogger(__name__)


DEFAULT_MAX_DEPTH = 5
DEFAULT_MAX_SIZE_BYTES = 50 * 1024 * 1024  # 50MB, sitemaps.org limit

# Order matters: &amp; last so "&amp;lt;" decodes to "&lt;" and not "<"
XML_ENTITIES = (
    ("&lt;", "<"),
    ("&gt;", ">"),
    ("&quot;", '"'),
    ("&apos;", "'"),
    ("&amp;", "&"),
)

_URL_BLOCK_RE = re.compile(r"<url>([\s\S]*?)</url>", re.IGNORECASE)
_SITEMAP_BLOCK_RE = re.compile(r"<sitemap>([\s\S]*?)</sitemap>", re.IGNORECASE)
_TAG_RE_CACHE = {}


@dataclass
class SitemapEntry:
    """
    A URL entry from a sitemap.

    Attributes:
        loc: Absolute URL of the page (identity)
        lastmod: Last modification timestamp, as written in the sitemap
        changefreq: Change frequency hint
        priority: Priority hint (0.0 to 1.0), as written in the sitemap
    """

    loc: str
    lastmod: Optional[str] = None
    changefreq: Optional[str] = None
    priority: Optional[str] = None


@dataclass
class ParsedSitemap:
    """Result of parsing a single sitemap document."""

    is_index: bool
    entries: List[SitemapEntry] = field(default_factory=list)
    child_sitemaps: List[str] = field(default_factory=list)


def decode_xml_entities(text: str) -> str:
    """Decode the five predefined XML character entities."""
    for entity, char in XML_ENTITIES:
        text = text.replace(entity, char)
    return text


def is_valid_url(url: str) -> bool:
    """Check that a string is an absolute http(s) URL."""
    try:
        parsed = urlparse(url)
    except ValueError:
        return False
    return parsed.scheme in ("http", "https") and bool(parsed.netloc)


def parse_lastmod(value: Optional[str]) -> Optional[datetime]:
    """
    Parse a sitemap lastmod value into an aware datetime.

    Supported formats:
    - YYYY-MM-DD
    - YYYY-MM-DDTHH:MM:SSZ
    - YYYY-MM-DDTHH:MM:SS+HH:MM (and fractional seconds)

    Returns None for missing or unparseable values.
    """
    if not value:
        return None

    value = value.strip()
    formats = ["%Y-%m-%d", "%Y-%m-%dT%H:%M:%SZ", "%Y-%m-%dT%H:%M:%S%z"]

    for fmt in formats:
        try:
            parsed = datetime.strptime(value, fmt)
            if parsed.tzinfo is None:
                parsed = parsed.replace(tzinfo=dt_timezone.utc)
            return parsed
        except ValueError:
            continue

    try:
        parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    except ValueError:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=dt_timezone.utc)
    return parsed


def _local_name(tag: str) -> str:
    """Strip the XML namespace from an element tag."""
    return tag.rsplit("}", 1)[-1].lower()


def _child_text(element: ET.Element, name: str) -> Optional[str]:
    for child in element:
        if _local_name(child.tag) == name:
            if child.text and child.text.strip():
                return child.text.strip()
            return None
    return None


def _tag_text(block: str, name: str) -> Optional[str]:
    pattern = _TAG_RE_CACHE.get(name)
    if pattern is None:
        pattern = re.compile(rf"<{name}>(.*?)</{name}>", re.IGNORECASE | re.DOTALL)
        _TAG_RE_CACHE[name] = pattern

    match = pattern.search(block)
    if not match:
        return None
    text = match.group(1).strip()
    return text or None


class SitemapCrawler:
    """
    Fetches and flattens sitemaps into SitemapEntry lists.

    Usage:
        crawler = SitemapCrawler()
        entries = await crawler.fetch_urls("https://example.com/sitemap.xml")
        valid = crawler.filter_valid_urls(entries)
    """

    def __init__(
        self,
        timeout: Optional[float] = None,
        user_agent: Optional[str] = None,
        max_depth: Optional[int] = None,
        max_size_bytes: int = DEFAULT_MAX_SIZE_BYTES,
        logger: Optional[logging.Logger] = None,
    ):
        """
        Initialize the sitemap crawler.

        Args:
            timeout: HTTP request timeout in seconds
            user_agent: User-Agent header for HTTP requests
            max_depth: Maximum sitemap index nesting to follow
            max_size_bytes: Maximum sitemap size to download
            logger: Logger to report progress to (defaults to module logger)
        """
        self.timeout = timeout if timeout is not None else getattr(
            settings, "INDEXER_REQUEST_TIMEOUT", 30
        )
        self.user_agent = user_agent or getattr(
            settings, "INDEXER_USER_AGENT", "SitemapIndexer/1.0"
        )
        self.max_depth = max_depth if max_depth is not None else getattr(
            settings, "INDEXER_SITEMAP_MAX_DEPTH", DEFAULT_MAX_DEPTH
        )
        self.max_size_bytes = max_size_bytes
        self.logger = logger or logging.getLogger(__name__)

    async def fetch_urls(self, root_url: str) -> List[SitemapEntry]:
        """
        Fetch a sitemap and return every URL entry it references.

        Sitemap indexes are resolved recursively. Failures below the root are
        logged and skipped so sibling sitemaps still contribute their entries.

        Args:
            root_url: URL of the sitemap or sitemap index

        Returns:
            Flat list of SitemapEntry objects (unvalidated)

        Raises:
            FetchError: If the root document cannot be retrieved
        """
        self.logger.info(f"Fetching sitemap from: {root_url}")

        async with httpx.AsyncClient(
            timeout=self.timeout, follow_redirects=True
        ) as client:
            entries = await self._resolve(client, root_url, depth=0, visited=set())

        self.logger.info(f"Total URLs from sitemap {root_url}: {len(entries)}")
        return entries

    def filter_valid_urls(self, entries: List[SitemapEntry]) -> List[SitemapEntry]:
        """Keep only entries whose loc is an absolute http/https URL."""
        valid = [entry for entry in entries if is_valid_url(entry.loc)]
        dropped = len(entries) - len(valid)
        if dropped:
            self.logger.debug(f"Dropped {dropped} invalid URLs")
        return valid

    async def _resolve(
        self,
        client: httpx.AsyncClient,
        url: str,
        depth: int,
        visited: Set[str],
    ) -> List[SitemapEntry]:
        visited.add(url)

        content = await self._fetch_document(client, url)
        parsed = self.parse_document(content, url)

        if not parsed.is_index:
            self.logger.info(f"Parsed {len(parsed.entries)} URLs from {url}")
            return parsed.entries

        self.logger.info(
            f"Detected sitemap index {url} with {len(parsed.child_sitemaps)} sitemaps"
        )

        if depth >= self.max_depth:
            self.logger.warning(
                f"Sitemap index {url} exceeds max depth {self.max_depth}, not descending"
            )
            return []

        entries: List[SitemapEntry] = []
        for child_url in parsed.child_sitemaps:
            if child_url in visited:
                self.logger.warning(f"Skipping already visited sitemap: {child_url}")
                continue

            try:
                entries.extend(
                    await self._resolve(client, child_url, depth + 1, visited)
                )
            except FetchError as e:
                self.logger.error(f"Failed to fetch sitemap {child_url}: {e}")
                continue

        return entries

    async def _fetch_document(self, client: httpx.AsyncClient, url: str) -> str:
        """
        Fetch a sitemap document and return its text.

        Raises:
            FetchError: On transport failure, non-2xx status or oversize body
        """
        headers = {
            "User-Agent": self.user_agent,
            "Accept": "application/xml, text/xml, application/gzip, */*",
        }

        try:
            response = await client.get(url, headers=headers)
        except httpx.HTTPError as e:
            raise FetchError(f"Failed to fetch sitemap {url}: {e}", url=url) from e

        if not response.is_success:
            raise FetchError(
                f"HTTP {response.status_code}: {response.reason_phrase}",
                url=url,
                status_code=response.status_code,
            )

        content_length = response.headers.get("content-length")
        if content_length and content_length.isdigit() and int(content_length) > self.max_size_bytes:
            raise FetchError(
                f"Sitemap too large: {content_length} bytes exceeds {self.max_size_bytes}",
                url=url,
            )

        content = response.content
        if url.endswith(".gz") or content[:2] == b"\x1f\x8b":
            try:
                content = gzip.decompress(content)
            except (OSError, EOFError) as e:
                raise FetchError(f"Failed to decompress gzipped sitemap: {e}", url=url) from e
        else:
            content_type = response.headers.get("content-type", "")
            if "xml" not in content_type:
                self.logger.warning(f"Unexpected content type for {url}: {content_type}")

        return content.decode("utf-8", errors="replace")

    def parse_document(self, content: str, source_url: str) -> ParsedSitemap:
        """
        Parse sitemap XML into entries or child sitemap locations.

        Well-formed documents go through ElementTree; malformed ones fall
        back to tag extraction with explicit entity decoding.

        Raises:
            FetchError: If the document is neither a urlset nor a sitemapindex
        """
        try:
            root = ET.fromstring(content.lstrip("\ufeff").strip())
        except ET.ParseError as e:
            self.logger.warning(f"Invalid XML in {source_url} ({e}), using lenient parser")
            return self._parse_lenient(content)

        root_tag = _local_name(root.tag)

        if root_tag == "sitemapindex":
            child_sitemaps = []
            for element in root:
                if _local_name(element.tag) != "sitemap":
                    continue
                loc = _child_text(element, "loc")
                if loc:
                    child_sitemaps.append(loc)
            return ParsedSitemap(is_index=True, child_sitemaps=child_sitemaps)

        if root_tag == "urlset":
            entries = []
            for element in root:
                if _local_name(element.tag) != "url":
                    continue
                loc = _child_text(element, "loc")
                if not loc:
                    continue
                entries.append(
                    SitemapEntry(
                        loc=loc,
                        lastmod=_child_text(element, "lastmod"),
                        changefreq=_child_text(element, "changefreq"),
                        priority=_child_text(element, "priority"),
                    )
                )
            return ParsedSitemap(is_index=False, entries=entries)

        raise FetchError(f"Unknown sitemap root element: {root.tag}", url=source_url)

    def _parse_lenient(self, content: str) -> ParsedSitemap:
        if "<sitemapindex" in content:
            child_sitemaps = []
            for block in _SITEMAP_BLOCK_RE.findall(content):
                loc = _tag_text(block, "loc")
                if loc:
                    child_sitemaps.append(decode_xml_entities(loc))
            return ParsedSitemap(is_index=True, child_sitemaps=child_sitemaps)

        entries = []
        for block in _URL_BLOCK_RE.findall(content):
            loc = _tag_text(block, "loc")
            if not loc:
                continue
            entries.append(
                SitemapEntry(
                    loc=decode_xml_entities(loc),
                    lastmod=_tag_text(block, "lastmod"),
                    changefreq=_tag_text(block, "changefreq"),
                    priority=_tag_text(block, "priority"),
                )
            )
        return ParsedSitemap(is_index=False, entries=entries)
