"""In-process event broadcaster.

Fan-out pub/sub for state-change notifications:
- every subscription owns a bounded FIFO queue
- publish() is synchronous: it snapshots the current subscriptions for the
  topic and enqueues without awaiting, so it never blocks on a slow observer
- a full queue drops the event for that observer only (counted)
- delivery happens in the observer's own task, draining its queue

Delivery is at-most-once and best-effort. Subscriptions registered after a
publish never see that event.

Example:
    broadcaster = EventBroadcaster()
    subscription = broadcaster.subscribe({Topic.RESOURCES_UPDATED})

    broadcaster.publish(Topic.RESOURCES_UPDATED, {"incident_id": "X", "data": body})

    async for event in subscription:
        await websocket.send_bytes(orjson.dumps(event.to_message()))
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import AsyncIterator, Iterable
from typing import Any

from aegis.events.schemas import Event, Topic
from aegis.observability.metrics import get_metrics

logger = logging.getLogger(__name__)

DEFAULT_QUEUE_SIZE = 256


class Subscription:
    """An observer's registration for one or more topics."""

    def __init__(self, topics: Iterable[Topic], max_pending: int = DEFAULT_QUEUE_SIZE):
        self.topics = frozenset(Topic(t) for t in topics)
        self._queue: asyncio.Queue[Event] = asyncio.Queue(maxsize=max_pending)
        self.dropped = 0
        self.closed = False

    def offer(self, event: Event) -> bool:
        """Enqueue without waiting. Returns False if the event was dropped."""
        if self.closed:
            return False
        try:
            self._queue.put_nowait(event)
        except asyncio.QueueFull:
            self.dropped += 1
            return False
        return True

    async def get(self) -> Event:
        """Wait for the next event."""
        return await self._queue.get()

    def get_nowait(self) -> Event | None:
        """Next pending event, or None if the queue is empty."""
        try:
            return self._queue.get_nowait()
        except asyncio.QueueEmpty:
            return None

    @property
    def pending(self) -> int:
        """Number of queued, undelivered events."""
        return self._queue.qsize()

    def __aiter__(self) -> AsyncIterator[Event]:
        return self._iterate()

    async def _iterate(self) -> AsyncIterator[Event]:
        while not self.closed:
            yield await self._queue.get()


class EventBroadcaster:
    """Owns the subscriber registry and fans events out to it."""

    def __init__(self, queue_size: int = DEFAULT_QUEUE_SIZE):
        self.queue_size = queue_size
        self._subscriptions: set[Subscription] = set()
        self._metrics = get_metrics()

    def subscribe(
        self, topics: Iterable[Topic | str], max_pending: int | None = None
    ) -> Subscription:
        """Register an observer. Takes effect for the next publish."""
        subscription = Subscription(
            [Topic(t) for t in topics],
            max_pending=max_pending or self.queue_size,
        )
        if not subscription.topics:
            raise ValueError("At least one topic is required")
        self._subscriptions.add(subscription)
        logger.debug(
            f"Subscribed to {sorted(t.value for t in subscription.topics)} "
            f"(total: {len(self._subscriptions)})"
        )
        return subscription

    def unsubscribe(self, subscription: Subscription) -> None:
        """Remove an observer. Idempotent."""
        subscription.closed = True
        self._subscriptions.discard(subscription)
        logger.debug(f"Unsubscribed (remaining: {len(self._subscriptions)})")

    def publish(self, topic: Topic | str, payload: dict[str, Any]) -> int:
        """Queue an event for every current subscriber of topic.

        Returns the number of observers the event was queued for.
        """
        event = Event(topic=Topic(topic), payload=payload)
        recipients = [s for s in self._subscriptions if event.topic in s.topics]

        delivered = 0
        for subscription in recipients:
            if subscription.offer(event):
                delivered += 1
            else:
                self._metrics.events_dropped_total.labels(topic=event.topic.value).inc()
                logger.warning(
                    f"Dropped {event.topic.value} event {event.event_id}: "
                    f"observer queue full ({subscription.dropped} dropped so far)"
                )

        self._metrics.events_published_total.labels(topic=event.topic.value).inc()
        logger.debug(
            f"Published {event.topic.value} event {event.event_id} "
            f"to {delivered}/{len(recipients)} observers"
        )
        return delivered

    def close(self) -> None:
        """Drop every subscription."""
        for subscription in list(self._subscriptions):
            self.unsubscribe(subscription)

    @property
    def subscriber_count(self) -> int:
        """Number of registered observers."""
        return len(self._subscriptions)
