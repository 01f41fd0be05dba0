"""Aggregated items and the bounded collector tiers write into."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from typing import Any

DEFAULT_MAX_ITEMS = 10
DEFAULT_MIN_TITLE_LENGTH = 10


def now_iso() -> str:
    return datetime.now(UTC).isoformat()


@dataclass(frozen=True, slots=True)
class AggregatedItem:
    """One official update."""

    title: str
    link: str
    published_at: str
    source_name: str

    def to_dict(self) -> dict[str, Any]:
        """Serialize to the public shape."""
        return {
            "title": self.title,
            "link": self.link,
            "pubDate": self.published_at,
            "source": self.source_name,
        }

    @classmethod
    def from_dict(cls, data: dict[str, Any]) -> "AggregatedItem":
        """Inverse of to_dict (cached values)."""
        return cls(
            title=data["title"],
            link=data["link"],
            published_at=data.get("pubDate") or "",
            source_name=data.get("source") or "",
        )


@dataclass
class ItemCollector:
    """Accumulates items across tiers.

    Enforces the overall cap, the minimum title length and deduplication by
    title+link. Tiers only ever add through ``add``.
    """

    max_items: int = DEFAULT_MAX_ITEMS
    min_title_length: int = DEFAULT_MIN_TITLE_LENGTH
    items: list[AggregatedItem] = field(default_factory=list)
    _seen: set[tuple[str, str]] = field(default_factory=set, repr=False)

    @property
    def is_full(self) -> bool:
        return len(self.items) >= self.max_items

    def accepts_title(self, title: str) -> bool:
        """Title is meaningful enough to keep."""
        return len(title) > self.min_title_length

    def add(self, item: AggregatedItem) -> bool:
        """Add an item. Returns False if rejected (cap, short title, duplicate)."""
        if self.is_full or not self.accepts_title(item.title):
            return False
        identity = (item.title, item.link)
        if identity in self._seen:
            return False
        self._seen.add(identity)
        self.items.append(item)
        return True

    def __len__(self) -> int:
        return len(self.items)
