"""Default aggregation sources.

Government and relief-organization pages scraped by the structured tier, the
syndicated feeds tried when no page yields anything, and the general page
whose headings are the last resort.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class PageSource:
    """A page with candidate container selectors and per-field selectors.

    Selector lists are ordered by preference; the first that matches wins.
    """

    name: str
    url: str
    containers: tuple[str, ...]
    title_selectors: tuple[str, ...]
    link_selectors: tuple[str, ...]
    date_selectors: tuple[str, ...]


@dataclass(frozen=True, slots=True)
class FeedSource:
    """An RSS or Atom feed."""

    name: str
    url: str


@dataclass(frozen=True, slots=True)
class HeadingSource:
    """A general page whose heading-like elements are scraped."""

    name: str
    url: str
    selector: str = "h1, h2, h3, .title, .headline"


FEMA = PageSource(
    name="FEMA",
    url="https://www.fema.gov/disasters",
    containers=(".disaster-item", ".disaster-list-item", ".news-item", "article", ".content-item"),
    title_selectors=("h3", "h2", "h1", ".title", ".headline"),
    link_selectors=("a", ".link"),
    date_selectors=(".date", ".published", ".timestamp", "time"),
)

RED_CROSS = PageSource(
    name="Red Cross",
    url="https://www.redcross.org/about-us/news-and-events/news/",
    containers=(".news-item", ".news-article", ".content-item", "article", ".story"),
    title_selectors=(".news-title", ".title", "h2", "h3"),
    link_selectors=("a", ".read-more"),
    date_selectors=(".news-date", ".date", ".published"),
)

READY_GOV = PageSource(
    name="Ready.gov",
    url="https://www.ready.gov/",
    containers=(".emergency-alert", ".disaster-info", ".news-item", ".content-block", "article"),
    title_selectors=("h1", "h2", "h3", ".title", ".headline"),
    link_selectors=("a", ".read-more"),
    date_selectors=(".date", ".published", "time"),
)

DEFAULT_PAGE_SOURCES: tuple[PageSource, ...] = (FEMA, RED_CROSS, READY_GOV)

DEFAULT_FEEDS: tuple[FeedSource, ...] = (
    FeedSource(name="FEMA RSS", url="https://www.fema.gov/rss/disasters.xml"),
    FeedSource(name="Red Cross RSS", url="https://www.redcross.org/rss/news.xml"),
    FeedSource(name="Weather RSS", url="https://www.weather.gov/rss/alerts.xml"),
)

DEFAULT_HEADING_SOURCE = HeadingSource(name="Ready.gov", url="https://www.ready.gov/")
