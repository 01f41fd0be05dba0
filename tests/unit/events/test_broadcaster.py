"""Tests for the in-process event broadcaster."""

from __future__ import annotations

import asyncio

import pytest

from aegis.events.broadcaster import EventBroadcaster
from aegis.events.schemas import Event, Topic


class TestFanOut:
    """Every current subscriber gets each event once."""

    async def test_three_subscribers_then_late_fourth(self, broadcaster: EventBroadcaster) -> None:
        """Late subscribers never see earlier events."""
        early = [broadcaster.subscribe({Topic.RESOURCES_UPDATED}) for _ in range(3)]

        delivered = broadcaster.publish(Topic.RESOURCES_UPDATED, {"incident_id": "X"})
        late = broadcaster.subscribe({Topic.RESOURCES_UPDATED})

        assert delivered == 3
        for subscription in early:
            event = subscription.get_nowait()
            assert event is not None
            assert event.payload == {"incident_id": "X"}
            assert subscription.get_nowait() is None
        assert late.get_nowait() is None

    async def test_topic_filtering(self, broadcaster: EventBroadcaster) -> None:
        mentions = broadcaster.subscribe({Topic.MENTIONS_UPDATED})
        both = broadcaster.subscribe({Topic.MENTIONS_UPDATED, Topic.RECORD_UPDATED})

        broadcaster.publish(Topic.RECORD_UPDATED, {"id": "1"})

        assert mentions.pending == 0
        assert both.pending == 1

    async def test_publish_without_subscribers(self, broadcaster: EventBroadcaster) -> None:
        assert broadcaster.publish("record_updated", {"id": "1"}) == 0

    async def test_fifo_order_per_observer(self, broadcaster: EventBroadcaster) -> None:
        subscription = broadcaster.subscribe({Topic.RECORD_UPDATED})
        for i in range(5):
            broadcaster.publish(Topic.RECORD_UPDATED, {"n": i})

        received = [subscription.get_nowait() for _ in range(5)]
        assert [e.payload["n"] for e in received if e] == [0, 1, 2, 3, 4]


class TestBackpressure:
    """A slow observer only hurts itself."""

    async def test_full_queue_drops_for_that_observer_only(
        self, broadcaster: EventBroadcaster
    ) -> None:
        slow = broadcaster.subscribe({Topic.RECORD_UPDATED}, max_pending=1)
        fast = broadcaster.subscribe({Topic.RECORD_UPDATED})

        broadcaster.publish(Topic.RECORD_UPDATED, {"n": 1})
        delivered = broadcaster.publish(Topic.RECORD_UPDATED, {"n": 2})

        assert delivered == 1
        assert slow.dropped == 1
        assert slow.pending == 1
        assert fast.pending == 2


class TestLifecycle:
    async def test_unsubscribe_is_idempotent(self, broadcaster: EventBroadcaster) -> None:
        subscription = broadcaster.subscribe({Topic.RECORD_UPDATED})
        broadcaster.unsubscribe(subscription)
        broadcaster.unsubscribe(subscription)

        assert broadcaster.subscriber_count == 0
        assert broadcaster.publish(Topic.RECORD_UPDATED, {}) == 0
        assert subscription.closed

    async def test_close_drops_everyone(self, broadcaster: EventBroadcaster) -> None:
        broadcaster.subscribe({Topic.RECORD_UPDATED})
        broadcaster.subscribe({Topic.MENTIONS_UPDATED})
        broadcaster.close()
        assert broadcaster.subscriber_count == 0

    async def test_empty_topic_set_rejected(self, broadcaster: EventBroadcaster) -> None:
        with pytest.raises(ValueError):
            broadcaster.subscribe(set())

    async def test_unknown_topic_rejected(self, broadcaster: EventBroadcaster) -> None:
        with pytest.raises(ValueError):
            broadcaster.subscribe({"weather_updated"})

    async def test_async_iteration_waits_for_events(self, broadcaster: EventBroadcaster) -> None:
        subscription = broadcaster.subscribe({Topic.MENTIONS_UPDATED})

        async def first() -> Event:
            async for event in subscription:
                return event
            raise AssertionError("subscription ended")

        task = asyncio.create_task(first())
        await asyncio.sleep(0)
        broadcaster.publish(Topic.MENTIONS_UPDATED, {"incident_id": "X"})

        event = await asyncio.wait_for(task, timeout=1)
        assert event.topic is Topic.MENTIONS_UPDATED


class TestTopic:
    def test_parse_many_defaults_to_all(self) -> None:
        assert Topic.parse_many(None) == set(Topic)
        assert Topic.parse_many("") == set(Topic)

    def test_parse_many(self) -> None:
        parsed = Topic.parse_many("resources_updated, mentions_updated")
        assert parsed == {Topic.RESOURCES_UPDATED, Topic.MENTIONS_UPDATED}

    def test_parse_many_unknown(self) -> None:
        with pytest.raises(ValueError):
            Topic.parse_many("resources_updated,bogus")

    def test_event_message_shape(self) -> None:
        event = Event(topic=Topic.RECORD_UPDATED, payload={"id": "1"})
        message = event.to_message()
        assert set(message) == {"eventId", "topic", "timestamp", "payload"}
        assert message["topic"] == "record_updated"
