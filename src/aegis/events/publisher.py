"""Event publishing helpers for write handlers.

Handlers call these after a successful state transition and after cache
invalidation. Publishing is fire-and-forget: a failure is logged and never
undoes the write or the invalidation.

Example:
    from aegis.events.publisher import publish_mentions_updated

    await coordinator.invalidate(Mutation.report(report["id"], incident_id))
    publish_mentions_updated(broadcaster, incident_id, MentionAction.CREATED, data=report)
"""

from __future__ import annotations

import logging
from typing import Any

from aegis.events.broadcaster import EventBroadcaster
from aegis.events.schemas import MentionAction, Topic

logger = logging.getLogger(__name__)


def _safe_publish(broadcaster: EventBroadcaster, topic: Topic, payload: dict[str, Any]) -> int:
    try:
        return broadcaster.publish(topic, payload)
    except Exception as e:
        logger.error(f"Failed to broadcast {topic.value}: {e}")
        return 0


def publish_record_updated(broadcaster: EventBroadcaster, record: dict[str, Any]) -> int:
    """Publish the full incident record after create or update."""
    return _safe_publish(broadcaster, Topic.RECORD_UPDATED, record)


def publish_record_deleted(broadcaster: EventBroadcaster, incident_id: str) -> int:
    """Publish an incident deletion."""
    return _safe_publish(broadcaster, Topic.RECORD_UPDATED, {"id": incident_id})


def publish_mentions_updated(
    broadcaster: EventBroadcaster,
    incident_id: str,
    action: MentionAction,
    *,
    data: Any = None,
    deleted_id: str | None = None,
) -> int:
    """Publish a change to an incident's mentions.

    Args:
        broadcaster: Broadcaster to publish to
        incident_id: Incident the mentions belong to
        action: What happened
        data: The mention (or mention list) after the change
        deleted_id: Id of a removed mention

    Returns:
        Number of observers the event was queued for
    """
    payload: dict[str, Any] = {"incident_id": incident_id, "action": action.value}
    if deleted_id is not None:
        payload["deleted_id"] = deleted_id
    else:
        payload["data"] = data
    return _safe_publish(broadcaster, Topic.MENTIONS_UPDATED, payload)


def publish_resources_updated(
    broadcaster: EventBroadcaster,
    incident_id: str,
    *,
    data: Any = None,
    deleted_id: str | None = None,
) -> int:
    """Publish a change to (or a fresh resolution of) an incident's resources."""
    payload: dict[str, Any] = {"incident_id": incident_id}
    if deleted_id is not None:
        payload["deleted_id"] = deleted_id
    else:
        payload["data"] = data
    return _safe_publish(broadcaster, Topic.RESOURCES_UPDATED, payload)
