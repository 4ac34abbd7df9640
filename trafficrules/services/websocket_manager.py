"""
WebSocket Manager

Live in-app notification delivery.

A user may hold several sockets (phone + browser) on any API instance,
while notifications are created wherever the scheduler or an endpoint
happens to run. Each new notification is published to the Redis channel
notifications:<user_id>; every instance listens on notifications:* and
forwards the event to the sockets it holds for that user.

When Redis is unreachable the event is delivered to local sockets only.
"""

import asyncio
import json
import logging
from dataclasses import dataclass, asdict, field
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Set

from fastapi import WebSocket

from trafficrules.db.redis import get_redis

logger = logging.getLogger(__name__)

CHANNEL_PREFIX = "notifications:"
LISTENER_RETRY_SECONDS = 5


def _channel(user_id: str) -> str:
    return f"{CHANNEL_PREFIX}{user_id}"


# ============================================================
# Event Envelope
# ============================================================

@dataclass
class NotificationEvent:
    """What a client receives over the socket."""
    event: str
    user_id: str
    payload: Dict[str, Any] = field(default_factory=dict)
    sent_at: str = field(default_factory=lambda: datetime.now(timezone.utc).isoformat())

    # Event names
    NOTIFICATION = "notification"
    CONNECTED = "connected"

    def encode(self) -> str:
        return json.dumps(asdict(self), default=str)

    @classmethod
    def decode(cls, raw) -> "NotificationEvent":
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8")
        return cls(**json.loads(raw))


# ============================================================
# Connection Manager
# ============================================================

class ConnectionManager:
    """
    Tracks open notification sockets per user and relays events
    published on Redis to them.
    """

    def __init__(self):
        self._sockets: Dict[str, Set[WebSocket]] = {}
        self._owners: Dict[WebSocket, str] = {}
        self._listener: Optional[asyncio.Task] = None

    # ---------------------------------------------
    # Sockets
    # ---------------------------------------------

    async def connect(self, websocket: WebSocket, user_id: str) -> None:
        """Accept the socket, greet the client, make sure we are listening."""
        await websocket.accept()

        self._sockets.setdefault(user_id, set()).add(websocket)
        self._owners[websocket] = user_id
        logger.info(f"Notification socket opened for user {user_id} ({len(self._sockets[user_id])} open)")

        await websocket.send_text(NotificationEvent(
            event=NotificationEvent.CONNECTED,
            user_id=user_id,
            payload={"status": "connected"},
        ).encode())

        self._start_listener()

    def disconnect(self, websocket: WebSocket) -> None:
        user_id = self._owners.pop(websocket, None)
        if user_id is None:
            return

        sockets = self._sockets.get(user_id)
        if sockets is not None:
            sockets.discard(websocket)
            if not sockets:
                del self._sockets[user_id]
        logger.info(f"Notification socket closed for user {user_id}")

    def is_connected(self, user_id: str) -> bool:
        """True if this instance holds at least one socket for the user."""
        return bool(self._sockets.get(str(user_id)))

    # ---------------------------------------------
    # Delivery
    # ---------------------------------------------

    async def send_to_user(self, user_id: str, data: Dict[str, Any]) -> None:
        """
        Publish a serialized notification for `user_id`.

        Falls back to this instance's sockets if the publish fails.
        """
        user_id = str(user_id)
        event = NotificationEvent(
            event=NotificationEvent.NOTIFICATION,
            user_id=user_id,
            payload=data,
        )

        try:
            redis = await get_redis()
            await redis.publish(_channel(user_id), event.encode())
        except Exception as e:
            logger.error(f"Redis publish failed, delivering locally: {e}")
            await self._deliver_local(event)

    async def _deliver_local(self, event: NotificationEvent) -> int:
        """Write the event to every local socket of its user. Dead sockets are dropped."""
        sockets = list(self._sockets.get(event.user_id, ()))
        if not sockets:
            return 0

        message = event.encode()
        delivered = 0
        for websocket in sockets:
            try:
                await websocket.send_text(message)
                delivered += 1
            except Exception as e:
                logger.warning(f"Dropping notification socket for user {event.user_id}: {e}")
                self.disconnect(websocket)
        return delivered

    # ---------------------------------------------
    # Redis listener
    # ---------------------------------------------

    def _start_listener(self) -> None:
        if self._listener is None or self._listener.done():
            self._listener = asyncio.create_task(self._listen())

    async def _listen(self) -> None:
        """Relay notifications:* messages to local sockets, reconnecting on failure."""
        while True:
            try:
                redis = await get_redis()
                async with redis.pubsub() as pubsub:
                    await pubsub.psubscribe(f"{CHANNEL_PREFIX}*")
                    logger.info(f"Listening for notifications on {CHANNEL_PREFIX}*")

                    async for message in pubsub.listen():
                        if message["type"] != "pmessage":
                            continue
                        try:
                            await self._deliver_local(NotificationEvent.decode(message["data"]))
                        except Exception as e:
                            logger.error(f"Bad notification event on {message.get('channel')}: {e}")

            except asyncio.CancelledError:
                raise
            except Exception as e:
                logger.error(f"Notification listener lost Redis ({e}), retrying in {LISTENER_RETRY_SECONDS}s")
                await asyncio.sleep(LISTENER_RETRY_SECONDS)

    async def shutdown(self) -> None:
        """Stop listening and close every socket."""
        if self._listener is not None:
            self._listener.cancel()
            try:
                await self._listener
            except asyncio.CancelledError:
                pass
            self._listener = None

        for websocket in list(self._owners):
            try:
                await websocket.close()
            except Exception as e:
                logger.debug(f"Error closing notification socket: {e}")

        self._sockets.clear()
        self._owners.clear()
        logger.info("Notification sockets closed")


# ============================================================
# Singleton Instance
# ============================================================

_connection_manager: Optional[ConnectionManager] = None


def get_connection_manager() -> ConnectionManager:
    global _connection_manager
    if _connection_manager is None:
        _connection_manager = ConnectionManager()
    return _connection_manager


async def shutdown_connection_manager() -> None:
    global _connection_manager
    if _connection_manager is not None:
        await _connection_manager.shutdown()
        _connection_manager = None
