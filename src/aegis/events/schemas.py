"""Event schemas for Aegis.

Events are notifications that shared state changed. They carry the topic and
a JSON-serializable payload; event_id and timestamp exist for logging and
client-side deduplication only. There is no sequence number and no
durability: an observer that is not connected when an event is published
never sees it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import UTC, datetime
from enum import Enum
from typing import Any
from uuid import uuid4


class Topic(str, Enum):
    """Broadcast topics."""

    RECORD_UPDATED = "record_updated"
    MENTIONS_UPDATED = "mentions_updated"
    RESOURCES_UPDATED = "resources_updated"

    @classmethod
    def parse_many(cls, raw: str | None) -> set["Topic"]:
        """Parse a comma-separated topic list. Empty or None means all topics.

        Raises ValueError on an unknown topic name.
        """
        if not raw:
            return set(cls)
        return {cls(name.strip()) for name in raw.split(",") if name.strip()}


class MentionAction(str, Enum):
    """What happened to an incident's mentions (reports)."""

    CREATED = "created"
    UPDATED = "updated"
    VERIFIED = "verified"
    DELETED = "deleted"
    REFRESHED = "refreshed"


@dataclass(frozen=True, slots=True)
class Event:
    """A published state-change notification."""

    topic: Topic
    payload: dict[str, Any]
    event_id: str = field(default_factory=lambda: str(uuid4()))
    timestamp: datetime = field(default_factory=lambda: datetime.now(UTC))

    def to_message(self) -> dict[str, Any]:
        """Wire shape sent to observers."""
        return {
            "eventId": self.event_id,
            "topic": self.topic.value,
            "timestamp": self.timestamp.isoformat(),
            "payload": self.payload,
        }
