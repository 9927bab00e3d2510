"""Broadcast hub: fan-out of domain events to every connected client.

Fire-and-forget: no acknowledgement and no retry. A client that misses an
event catches up through the REST endpoints. A send failure is logged and
never propagates to the publisher.
"""

from __future__ import annotations

import enum
import logging
from typing import Any
from typing import Protocol

from asgiref.sync import async_to_sync

logger = logging.getLogger(__name__)


class EventKind(enum.StrEnum):
    ONLINE_USERS_CHANGED = "onlineUsersChanged"
    FEED_POST_CREATED = "feedPostCreated"
    FEED_COMMENT_CREATED = "feedCommentCreated"
    LIKE_COUNT_CHANGED = "likeCountChanged"
    PROFILE_UPDATED = "profileUpdated"


# Outbound Socket.IO event name for each broadcast kind.
WIRE_EVENTS: dict[EventKind, str] = {
    EventKind.ONLINE_USERS_CHANGED: "onlineUsers",
    EventKind.FEED_POST_CREATED: "feedPostCreated",
    EventKind.FEED_COMMENT_CREATED: "feedCommentCreated",
    EventKind.LIKE_COUNT_CHANGED: "likeCountChanged",
    EventKind.PROFILE_UPDATED: "profileUpdated",
}

PRIVATE_MESSAGE_EVENT = "privateMessage"
HISTORY_EVENT = "history"


class Emitter(Protocol):
    async def emit(self, event: str, data: Any = None, **kwargs: Any) -> Any: ...


class BroadcastHub:
    """Wraps the Socket.IO server and tracks which connections are live."""

    def __init__(self, server: Emitter) -> None:
        self._server = server
        self._connections: set[str] = set()

    def attach(self, connection_id: str) -> None:
        self._connections.add(connection_id)

    def detach(self, connection_id: str) -> None:
        self._connections.discard(connection_id)

    def is_connected(self, connection_id: str) -> bool:
        return connection_id in self._connections

    @property
    def connection_count(self) -> int:
        return len(self._connections)

    async def publish(self, kind: EventKind, payload: Any) -> None:
        """Send ``payload`` to every connected client under the wire name of ``kind``."""

        event = WIRE_EVENTS[kind]
        try:
            await self._server.emit(event, payload)
        except Exception:  # noqa: BLE001 - broadcast is best-effort
            logger.exception("Broadcast of %s failed", event)

    async def send_to(self, connection_id: str, event: str, payload: Any) -> bool:
        """Point-to-point delivery to one connection.

        The connection may live on another worker (Redis manager), so this
        always hands the event to the server. Callers replying to their own
        connection check ``is_connected`` first.
        """

        try:
            await self._server.emit(event, payload, to=connection_id)
        except Exception:  # noqa: BLE001 - delivery is best-effort
            logger.exception("Delivery of %s to %s failed", event, connection_id)
            return False
        return True

    def publish_from_sync(self, kind: EventKind, payload: Any) -> None:
        """Publish from sync Django code (views, ``on_commit`` hooks)."""

        async_to_sync(self.publish)(kind, payload)
