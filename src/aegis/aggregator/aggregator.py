"""Cascading multi-source aggregator for official updates.

Runs an ordered list of tiers with early exit: a tier only runs when every
tier before it produced nothing. The final list (possibly empty) is cached
under ``official_updates_{topic}`` so repeated reads within the TTL never
touch upstream.

Example:
    aggregator = SourceAggregator(cache, PageFetcher())
    items = await aggregator.aggregate(incident_id)
    body = [item.to_dict() for item in items]
"""

from __future__ import annotations

import logging
from collections.abc import Sequence

from aegis.aggregator.fetch import PageFetcher
from aegis.aggregator.models import DEFAULT_MAX_ITEMS, AggregatedItem, ItemCollector
from aegis.aggregator.strategies import (
    ExtractionStrategy,
    FeedTier,
    HeadingScrapeTier,
    StructuredPageTier,
)
from aegis.cache.keys import CacheKeys
from aegis.cache.store import CacheStore
from aegis.config import Settings
from aegis.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

DEFAULT_TTL = 1800


def default_tiers(settings: Settings) -> list[ExtractionStrategy]:
    """The standard cascade: structured pages, feeds, headings."""
    return [
        StructuredPageTier(
            per_source_limit=settings.aggregator_per_source_limit,
            timeout=settings.aggregator_page_timeout,
        ),
        FeedTier(
            per_feed_limit=settings.aggregator_per_source_limit,
            timeout=settings.aggregator_feed_timeout,
        ),
        HeadingScrapeTier(timeout=settings.aggregator_page_timeout),
    ]


class SourceAggregator:
    """Produces some list of official updates whenever any source answers."""

    def __init__(
        self,
        cache: CacheStore,
        fetcher: PageFetcher,
        tiers: Sequence[ExtractionStrategy] | None = None,
        max_items: int = DEFAULT_MAX_ITEMS,
        min_title_length: int = 10,
        ttl: int = DEFAULT_TTL,
    ):
        self.cache = cache
        self.fetcher = fetcher
        self.tiers = list(tiers) if tiers is not None else [
            StructuredPageTier(),
            FeedTier(),
            HeadingScrapeTier(),
        ]
        self.max_items = max_items
        self.min_title_length = min_title_length
        self.ttl = ttl

    @classmethod
    def from_settings(
        cls, cache: CacheStore, fetcher: PageFetcher, settings: Settings
    ) -> "SourceAggregator":
        return cls(
            cache,
            fetcher,
            tiers=default_tiers(settings),
            max_items=settings.aggregator_max_items,
            min_title_length=settings.aggregator_min_title_length,
            ttl=settings.official_updates_cache_ttl,
        )

    async def aggregate(self, topic: str) -> list[AggregatedItem]:
        """Cached official updates for topic, running the cascade on a miss."""
        key = CacheKeys.official_updates(topic)
        cached = await self.cache.get(key)
        if cached is not None:
            return [AggregatedItem.from_dict(item) for item in cached]

        items = await self.run_cascade()
        await self.cache.set(key, [item.to_dict() for item in items], self.ttl)
        return items

    async def run_cascade(self) -> list[AggregatedItem]:
        """Run tiers in order, stopping at the first that yields anything."""
        metrics = get_metrics()
        collector = ItemCollector(max_items=self.max_items, min_title_length=self.min_title_length)

        for index, tier in enumerate(self.tiers):
            added = await tier.attempt(self.fetcher, collector)
            if added:
                logger.info(f"Aggregation tier {tier.name} produced {added} items")
                metrics.aggregator_tier_results_total.labels(tier=tier.name, outcome="items").inc()
                for skipped in self.tiers[index + 1 :]:
                    metrics.aggregator_tier_results_total.labels(
                        tier=skipped.name, outcome="skipped"
                    ).inc()
                break
            logger.info(f"Aggregation tier {tier.name} produced nothing")
            metrics.aggregator_tier_results_total.labels(tier=tier.name, outcome="empty").inc()
        else:
            logger.warning("Every aggregation tier came back empty")

        return list(collector.items)
