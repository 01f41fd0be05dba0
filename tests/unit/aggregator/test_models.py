"""Tests for aggregated items and the collector."""

from __future__ import annotations

from aegis.aggregator.models import AggregatedItem, ItemCollector


def _item(title: str, link: str = "https://x.example/1") -> AggregatedItem:
    return AggregatedItem(title=title, link=link, published_at="2024-01-01", source_name="FEMA")


class TestItemCollector:
    """Cap, title length and dedup."""

    def test_short_titles_rejected(self) -> None:
        collector = ItemCollector(min_title_length=10)
        assert not collector.add(_item("Ten chars!"))
        assert collector.add(_item("Eleven char"))

    def test_duplicates_rejected(self) -> None:
        collector = ItemCollector()
        assert collector.add(_item("Hurricane warning issued"))
        assert not collector.add(_item("Hurricane warning issued"))
        assert collector.add(_item("Hurricane warning issued", "https://x.example/2"))

    def test_cap(self) -> None:
        collector = ItemCollector(max_items=2)
        for i in range(5):
            collector.add(_item(f"Flood bulletin number {i}", f"https://x.example/{i}"))
        assert len(collector) == 2
        assert collector.is_full


class TestAggregatedItem:
    def test_public_shape(self) -> None:
        assert _item("Wildfire evacuation order").to_dict() == {
            "title": "Wildfire evacuation order",
            "link": "https://x.example/1",
            "pubDate": "2024-01-01",
            "source": "FEMA",
        }

    def test_from_cached_dict(self) -> None:
        item = _item("Wildfire evacuation order")
        assert AggregatedItem.from_dict(item.to_dict()) == item
