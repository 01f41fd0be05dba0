"""WebSocket API router for real-time events.

Observers connect to /events and pick topics with a comma-separated list:
- All topics: /events
- Filtered: /events?topics=resources_updated,mentions_updated

Each connection owns one broadcaster subscription. A delivery task drains
it while the receive loop answers ``ping`` with ``pong`` and notices
disconnects.

Message format:
{
    "eventId": "uuid",
    "topic": "record_updated|mentions_updated|resources_updated",
    "timestamp": "2024-01-01T00:00:00+00:00",
    "payload": {...}
}
"""

from __future__ import annotations

import asyncio
import contextlib
import logging

import orjson
from fastapi import APIRouter, Query, WebSocket, WebSocketDisconnect, status

from aegis.events.broadcaster import EventBroadcaster, Subscription
from aegis.events.schemas import Topic

logger = logging.getLogger(__name__)

router = APIRouter(tags=["WebSocket"])


class WebSocketManager:
    """Tracks observer connections on top of the broadcaster."""

    def __init__(self, broadcaster: EventBroadcaster) -> None:
        self.broadcaster = broadcaster
        self._connections: dict[int, Subscription] = {}

    async def connect(self, websocket: WebSocket, topics: set[Topic]) -> Subscription:
        """Subscribe, then accept, so nothing published after the handshake is missed."""
        subscription = self.broadcaster.subscribe(topics)
        await websocket.accept()
        self._connections[id(websocket)] = subscription
        logger.info(
            f"WebSocket connected (total: {len(self._connections)}, "
            f"topics: {sorted(t.value for t in topics)})"
        )
        return subscription

    def disconnect(self, websocket: WebSocket) -> None:
        """Drop the connection's subscription."""
        subscription = self._connections.pop(id(websocket), None)
        if subscription is not None:
            self.broadcaster.unsubscribe(subscription)
        logger.info(f"WebSocket disconnected (remaining: {len(self._connections)})")

    @property
    def connection_count(self) -> int:
        """Get current number of connections."""
        return len(self._connections)


async def deliver(websocket: WebSocket, subscription: Subscription) -> None:
    """Send queued events to the socket in publish order."""
    async for event in subscription:
        try:
            await websocket.send_bytes(orjson.dumps(event.to_message()))
        except (WebSocketDisconnect, RuntimeError) as e:
            logger.debug(f"Failed to send to WebSocket: {e}")
            return


@router.websocket("/events")
async def websocket_events(
    websocket: WebSocket,
    topics: str | None = Query(
        default=None, description="Comma-separated topics; all topics when omitted"
    ),
) -> None:
    """WebSocket endpoint for incident, mention and resource events."""
    try:
        selected = Topic.parse_many(topics)
    except ValueError as e:
        logger.info(f"Rejected WebSocket subscription: {e}")
        await websocket.close(code=status.WS_1008_POLICY_VIOLATION, reason=str(e))
        return

    manager: WebSocketManager = websocket.app.state.ws_manager
    subscription = await manager.connect(websocket, selected)
    delivery = asyncio.create_task(deliver(websocket, subscription))

    try:
        while True:
            message = await websocket.receive_text()
            if message == "ping":
                await websocket.send_text("pong")
    except WebSocketDisconnect:
        pass
    finally:
        manager.disconnect(websocket)
        delivery.cancel()
        with contextlib.suppress(asyncio.CancelledError):
            await delivery
