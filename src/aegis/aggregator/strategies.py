"""Aggregation tiers.

Each tier is a strategy with one capability, ``attempt(fetcher, collector)``,
returning how many items it added. Source-level failures (fetch errors,
unparsable documents) are absorbed inside the tier so the next source, and
ultimately the next tier, still gets its chance.

Tiers, in default cascade order:
- StructuredPageTier: container + field selectors on known pages
- FeedTier: RSS <item> / Atom <entry> elements
- HeadingScrapeTier: heading-like elements of one general page
"""

from __future__ import annotations

import logging
import xml.etree.ElementTree as ET
from abc import ABC, abstractmethod
from collections.abc import Sequence
from urllib.parse import urljoin

from bs4 import BeautifulSoup, Tag

from aegis.aggregator.fetch import FetchError, PageFetcher
from aegis.aggregator.models import AggregatedItem, ItemCollector, now_iso
from aegis.aggregator.sources import (
    DEFAULT_FEEDS,
    DEFAULT_HEADING_SOURCE,
    DEFAULT_PAGE_SOURCES,
    FeedSource,
    HeadingSource,
    PageSource,
)
from aegis.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

FALLBACK_TITLE_CHARS = 100


def absolute_link(href: str | None, base_url: str) -> str:
    """Resolve href against the source URL; no href means the source itself."""
    if not href:
        return base_url
    if href.startswith(("http://", "https://")):
        return href
    return urljoin(base_url, href)


def _text(element: Tag | None) -> str:
    if element is None:
        return ""
    return element.get_text(" ", strip=True)


class ExtractionStrategy(ABC):
    """One tier of the aggregation cascade."""

    name: str = "tier"

    @abstractmethod
    async def attempt(self, fetcher: PageFetcher, collector: ItemCollector) -> int:
        """Fetch and extract into collector. Returns the number of items added."""

    def _fetch_failed(self, source_name: str, error: Exception) -> None:
        logger.info(f"{self.name}: skipping {source_name}: {error}")
        get_metrics().aggregator_fetch_failures_total.labels(source=source_name).inc()


class StructuredPageTier(ExtractionStrategy):
    """Scrape known pages with ordered container and field selectors."""

    name = "structured_pages"

    def __init__(
        self,
        sources: Sequence[PageSource] = DEFAULT_PAGE_SOURCES,
        per_source_limit: int = 3,
        timeout: float = 15.0,
    ):
        self.sources = list(sources)
        self.per_source_limit = per_source_limit
        self.timeout = timeout

    async def attempt(self, fetcher: PageFetcher, collector: ItemCollector) -> int:
        added = 0
        for source in self.sources:
            if collector.is_full:
                break
            try:
                html = await fetcher.fetch(source.url, self.timeout)
            except FetchError as e:
                self._fetch_failed(source.name, e)
                continue
            added += self.extract(source, html, collector)
        return added

    def extract(self, source: PageSource, html: str, collector: ItemCollector) -> int:
        """Apply container rules in order until one yields items."""
        soup = BeautifulSoup(html, "html.parser")
        for container in source.containers:
            added = 0
            for element in soup.select(container)[: self.per_source_limit]:
                if collector.add(self._item(source, element)):
                    added += 1
            if added:
                return added
        return 0

    def _item(self, source: PageSource, element: Tag) -> AggregatedItem:
        title = self._first_text(element, source.title_selectors)
        if not title:
            title = element.get_text(" ", strip=True)[:FALLBACK_TITLE_CHARS].strip()

        href = None
        for selector in source.link_selectors:
            link = element.select_one(selector)
            if link is not None and link.get("href"):
                href = str(link["href"])
                break

        date = self._first_text(element, source.date_selectors)
        return AggregatedItem(
            title=title,
            link=absolute_link(href, source.url),
            published_at=date or now_iso(),
            source_name=source.name,
        )

    @staticmethod
    def _first_text(element: Tag, selectors: Sequence[str]) -> str:
        for selector in selectors:
            text = _text(element.select_one(selector))
            if text:
                return text
        return ""


def _local_name(tag: str) -> str:
    return tag.rsplit("}", 1)[-1]


def _child_text(element: ET.Element, name: str) -> str:
    for child in element:
        if _local_name(child.tag) == name:
            return (child.text or "").strip()
    return ""


def _atom_link(element: ET.Element) -> str:
    for child in element:
        if _local_name(child.tag) == "link":
            if child.get("href"):
                return child.get("href", "").strip()
            if child.text:
                return child.text.strip()
    return ""


class FeedTier(ExtractionStrategy):
    """Read syndicated feeds (RSS 2.0 items, Atom entries)."""

    name = "feeds"

    def __init__(
        self,
        feeds: Sequence[FeedSource] = DEFAULT_FEEDS,
        per_feed_limit: int = 3,
        timeout: float = 10.0,
    ):
        self.feeds = list(feeds)
        self.per_feed_limit = per_feed_limit
        self.timeout = timeout

    async def attempt(self, fetcher: PageFetcher, collector: ItemCollector) -> int:
        added = 0
        for feed in self.feeds:
            if collector.is_full:
                break
            try:
                document = await fetcher.fetch(feed.url, self.timeout)
                entries = self.parse(feed, document)
            except (FetchError, ET.ParseError) as e:
                self._fetch_failed(feed.name, e)
                continue
            for item in entries:
                if collector.add(item):
                    added += 1
        return added

    def parse(self, feed: FeedSource, document: str) -> list[AggregatedItem]:
        """First per_feed_limit items or entries of a feed document."""
        root = ET.fromstring(document.strip())
        elements = [el for el in root.iter() if _local_name(el.tag) in ("item", "entry")]

        items = []
        for element in elements[: self.per_feed_limit]:
            is_atom = _local_name(element.tag) == "entry"
            link = _atom_link(element) if is_atom else _child_text(element, "link")
            published = _child_text(element, "pubDate")
            if is_atom and not published:
                published = _child_text(element, "published") or _child_text(element, "updated")
            items.append(
                AggregatedItem(
                    title=_child_text(element, "title"),
                    link=link or feed.url,
                    published_at=published or now_iso(),
                    source_name=feed.name,
                )
            )
        return items


class HeadingScrapeTier(ExtractionStrategy):
    """Last resort: heading-like elements of a general page."""

    name = "headings"

    def __init__(
        self,
        source: HeadingSource = DEFAULT_HEADING_SOURCE,
        limit: int = 5,
        timeout: float = 15.0,
    ):
        self.source = source
        self.limit = limit
        self.timeout = timeout

    async def attempt(self, fetcher: PageFetcher, collector: ItemCollector) -> int:
        try:
            html = await fetcher.fetch(self.source.url, self.timeout)
        except FetchError as e:
            self._fetch_failed(self.source.name, e)
            return 0
        return self.extract(html, collector)

    def extract(self, html: str, collector: ItemCollector) -> int:
        soup = BeautifulSoup(html, "html.parser")
        added = 0
        for element in soup.select(self.source.selector)[: self.limit]:
            link = element.find("a", href=True)
            if link is None and isinstance(element.parent, Tag):
                link = element.parent.find("a", href=True)
            href = str(link["href"]) if isinstance(link, Tag) else None

            item = AggregatedItem(
                title=_text(element),
                link=absolute_link(href, self.source.url),
                published_at=now_iso(),
                source_name=self.source.name,
            )
            if collector.add(item):
                added += 1
        return added
