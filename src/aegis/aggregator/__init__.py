"""Official-update aggregation with a cascading source fallback."""

from aegis.aggregator.aggregator import SourceAggregator, default_tiers
from aegis.aggregator.fetch import FetchError, PageFetcher
from aegis.aggregator.models import AggregatedItem, ItemCollector
from aegis.aggregator.sources import (
    DEFAULT_FEEDS,
    DEFAULT_HEADING_SOURCE,
    DEFAULT_PAGE_SOURCES,
    FeedSource,
    HeadingSource,
    PageSource,
)
from aegis.aggregator.strategies import (
    ExtractionStrategy,
    FeedTier,
    HeadingScrapeTier,
    StructuredPageTier,
)

__all__ = [
    "AggregatedItem",
    "DEFAULT_FEEDS",
    "DEFAULT_HEADING_SOURCE",
    "DEFAULT_PAGE_SOURCES",
    "ExtractionStrategy",
    "FeedSource",
    "FeedTier",
    "FetchError",
    "HeadingScrapeTier",
    "HeadingSource",
    "ItemCollector",
    "PageFetcher",
    "PageSource",
    "SourceAggregator",
    "StructuredPageTier",
    "default_tiers",
]
