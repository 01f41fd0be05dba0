"""Real-time event broadcasting for Aegis.

Write handlers publish state changes; connected observers (WebSocket clients)
receive them through per-subscription queues.
"""

from aegis.events.broadcaster import EventBroadcaster, Subscription
from aegis.events.publisher import (
    publish_mentions_updated,
    publish_record_deleted,
    publish_record_updated,
    publish_resources_updated,
)
from aegis.events.schemas import Event, MentionAction, Topic

__all__ = [
    # Schemas
    "Event",
    "MentionAction",
    "Topic",
    # Broadcaster
    "EventBroadcaster",
    "Subscription",
    # Publishers
    "publish_mentions_updated",
    "publish_record_deleted",
    "publish_record_updated",
    "publish_resources_updated",
]
