"""
In-memory connection manager for realtime events.

Events are published to channels: one per room ("room:<id>") and one per
participant ("participant:<kind>:<id>"). Subscribers are WebSocket connections
or in-process callbacks.
"""
import asyncio
import json
import logging
import uuid
from typing import Any, Callable, Dict, List, Set

from fastapi import WebSocket

from app.schema.participant import Participant

logger = logging.getLogger(__name__)

Listener = Callable[[str, Any], None]


def room_channel(room_id: uuid.UUID) -> str:
    return f"room:{room_id}"


def participant_channel(participant: Participant) -> str:
    return f"participant:{participant.key}"


class ConnectionManager:
    """Tracks WebSocket connections and listeners per channel and broadcasts events."""

    def __init__(self) -> None:
        # channel -> set of WebSocket
        self._channels: Dict[str, Set[WebSocket]] = {}
        # channel -> in-process callbacks (event, payload)
        self._listeners: Dict[str, List[Listener]] = {}
        self._lock = asyncio.Lock()

    async def subscribe(self, websocket: WebSocket, channel: str) -> None:
        async with self._lock:
            if channel not in self._channels:
                self._channels[channel] = set()
            self._channels[channel].add(websocket)
        logger.debug("Subscribed ws to %s", channel)

    async def unsubscribe(self, websocket: WebSocket, channel: str) -> None:
        async with self._lock:
            if channel in self._channels:
                self._channels[channel].discard(websocket)
                if not self._channels[channel]:
                    del self._channels[channel]
        logger.debug("Unsubscribed ws from %s", channel)

    async def unsubscribe_all(self, websocket: WebSocket, channels: Set[str]) -> None:
        for channel in list(channels):
            await self.unsubscribe(websocket, channel)

    def add_listener(self, channel: str, callback: Listener) -> Callable[[], None]:
        """Register an in-process callback. Returns a function that removes it."""
        self._listeners.setdefault(channel, []).append(callback)

        def _remove() -> None:
            callbacks = self._listeners.get(channel)
            if callbacks and callback in callbacks:
                callbacks.remove(callback)
                if not callbacks:
                    del self._listeners[channel]

        return _remove

    def _notify_listeners(self, channel: str, event: str, payload: Any) -> None:
        for callback in list(self._listeners.get(channel) or []):
            try:
                callback(event, payload)
            except Exception:
                logger.exception("Listener for %s failed on %s", channel, event)

    async def broadcast(
        self,
        channel: str,
        event: str,
        payload: Any,
        exclude_websocket: WebSocket | None = None,
    ) -> None:
        """Send JSON message to all connections subscribed to this channel (except exclude_websocket)."""
        msg = json.dumps({
            "event": event,
            "channel": channel,
            "payload": payload,
        }, default=str)
        async with self._lock:
            sockets = set(self._channels.get(channel) or [])
        dead = []
        for ws in sockets:
            if ws is exclude_websocket:
                continue
            try:
                await ws.send_text(msg)
            except Exception as e:
                logger.warning("Broadcast send failed: %s", e)
                dead.append(ws)
        if dead:
            async with self._lock:
                for ws in dead:
                    if channel in self._channels:
                        self._channels[channel].discard(ws)
                if channel in self._channels and not self._channels[channel]:
                    del self._channels[channel]

    def publish(self, channel: str, event: str, payload: Any) -> None:
        """
        Publish from sync code after a commit. Listeners run immediately;
        the WebSocket broadcast is scheduled on the running loop, if any.
        """
        self._notify_listeners(channel, event, payload)
        try:
            loop = asyncio.get_running_loop()
        except RuntimeError:
            # No running loop (sync caller); sockets are only reachable from the loop.
            return
        loop.create_task(self.broadcast(channel, event, payload))

    def publish_to_room(self, room_id: uuid.UUID, event: str, payload: Any) -> None:
        self.publish(room_channel(room_id), event, payload)

    def publish_to_participants(self, participants, event: str, payload: Any) -> None:
        for participant in participants:
            self.publish(participant_channel(participant), event, payload)


connection_manager = ConnectionManager()
