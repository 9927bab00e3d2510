"""Connection sessions: one per live Socket.IO connection.

A session starts ``ANONYMOUS``, becomes ``IDENTIFIED`` once ``comeOnline``
binds it to the user its access token proved at connect, and ends ``CLOSED``
on disconnect. Inbound events are
validated against their schema and handled one at a time per connection, in
arrival order.

Handlers never raise out of ``handle``: validation, lookup and storage
errors are logged and the session is left as it was. A fact that failed to
persist is never broadcast.
"""

from __future__ import annotations

import asyncio
import enum
import logging
from typing import TYPE_CHECKING
from typing import Any

from channels.db import database_sync_to_async

from social_feed.core.exceptions import SocialFeedError
from social_feed.core.exceptions import ValidationError
from social_feed.realtime import schemas
from social_feed.realtime.broadcast import HISTORY_EVENT
from social_feed.realtime.broadcast import EventKind
from social_feed.realtime.payloads import build_comment_payload
from social_feed.realtime.payloads import build_like_count_payload

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Awaitable
    from collections.abc import Callable
    from uuid import UUID

    from social_feed.core.gateway import PersistenceGateway
    from social_feed.realtime.broadcast import BroadcastHub
    from social_feed.realtime.messaging import PrivateMessagingRouter
    from social_feed.realtime.presence import PresenceRegistry

logger = logging.getLogger(__name__)


class SessionState(enum.Enum):
    ANONYMOUS = "anonymous"
    IDENTIFIED = "identified"
    CLOSED = "closed"


class ConnectionSession:
    def __init__(  # noqa: PLR0913
        self,
        connection_id: str,
        *,
        gateway: PersistenceGateway,
        hub: BroadcastHub,
        registry: PresenceRegistry,
        router: PrivateMessagingRouter,
        authenticated_user_id: UUID | None = None,
    ) -> None:
        self.connection_id = connection_id
        # User proven by the access token at connect; None for a receive-only client.
        self.authenticated_user_id = authenticated_user_id
        self.state = SessionState.ANONYMOUS
        self.user_id: UUID | None = None
        self.display_name: str | None = None
        self._gateway = gateway
        self._hub = hub
        self._registry = registry
        self._router = router
        self._lock = asyncio.Lock()
        self._handlers: dict[str, Callable[[dict[str, Any]], Awaitable[None]]] = {
            schemas.COME_ONLINE: self.come_online,
            schemas.GO_OFFLINE: self.go_offline,
            schemas.LIKE: self.like,
            schemas.COMMENT: self.comment,
            schemas.PRIVATE_MESSAGE: self.private_message,
            schemas.REQUEST_HISTORY: self.request_history,
        }

    def __repr__(self) -> str:
        return f"<ConnectionSession {self.connection_id} {self.state.value}>"

    @property
    def closed(self) -> bool:
        return self.state is SessionState.CLOSED

    @property
    def identified(self) -> bool:
        return self.state is SessionState.IDENTIFIED

    async def handle(self, event: str, data: Any) -> None:
        """Validate and dispatch one inbound event."""

        if self.closed:
            logger.debug("Ignoring %s on closed connection %s", event, self.connection_id)
            return
        try:
            payload = schemas.validate_inbound(event, data)
        except ValidationError as exc:
            logger.warning("Dropped %s from %s: %s", event, self.connection_id, exc)
            return

        async with self._lock:
            if self.closed:
                return
            try:
                await self._handlers[event](payload)
            except SocialFeedError as exc:
                logger.warning(
                    "%s from %s aborted: %s",
                    event,
                    self.connection_id,
                    exc.message,
                )

    # ------------------------------------------------------------ transitions

    async def come_online(self, payload: dict[str, Any]) -> None:
        user_id = payload["userId"]
        if self.authenticated_user_id is None:
            msg = "comeOnline requires an authenticated connection"
            raise ValidationError(msg)
        if str(user_id) != str(self.authenticated_user_id):
            msg = "comeOnline userId does not match the authenticated user"
            raise ValidationError(msg)
        display_name = payload["displayName"]
        await self._registry.mark_online(user_id, display_name, self.connection_id)
        if self.closed:
            # Disconnected while the presence row was being written.
            await self._registry.mark_offline(self.connection_id)
            return
        self.user_id = user_id
        self.display_name = display_name
        self.state = SessionState.IDENTIFIED

    async def go_offline(self, payload: dict[str, Any]) -> None:
        self._require_identity("goOffline")
        if payload["userId"] != self.user_id:
            msg = "goOffline userId does not match this connection"
            raise ValidationError(msg)
        await self._registry.mark_offline_by_user(self.user_id)
        logger.info("User %s logged out on %s", self.user_id, self.connection_id)
        self.user_id = None
        self.display_name = None
        if not self.closed:
            self.state = SessionState.ANONYMOUS

    async def like(self, payload: dict[str, Any]) -> None:
        self._require_identity("like")
        post_id = payload["postId"]
        liked = await database_sync_to_async(self._gateway.toggle_like)(
            post_id,
            self.user_id,
        )
        # Always a fresh aggregate, never an incrementally maintained counter.
        count = await database_sync_to_async(self._gateway.count_likes)(post_id)
        logger.info(
            "User %s %s post %s (count=%d)",
            self.user_id,
            "liked" if liked else "unliked",
            post_id,
            count,
        )
        await self._hub.publish(
            EventKind.LIKE_COUNT_CHANGED,
            build_like_count_payload(post_id, count),
        )

    async def comment(self, payload: dict[str, Any]) -> None:
        self._require_identity("comment")
        comment = await database_sync_to_async(self._gateway.create_comment)(
            post_id=payload["postId"],
            author_id=self.user_id,
            content=payload["content"],
        )
        await self._hub.publish(
            EventKind.FEED_COMMENT_CREATED,
            build_comment_payload(comment),
        )

    async def private_message(self, payload: dict[str, Any]) -> None:
        self._require_identity("privateMessage")
        await self._router.send_private_message(
            self.user_id,
            payload["recipientId"],
            payload["body"],
            echo_to=self.connection_id,
        )

    async def request_history(self, payload: dict[str, Any]) -> None:
        self._require_identity("requestHistory")
        with_user_id = payload["withUserId"]
        messages = await self._router.fetch_history(self.user_id, with_user_id)
        await self.reply(
            HISTORY_EVENT,
            {"withUserId": str(with_user_id), "messages": messages},
        )

    async def disconnect(self) -> bool:
        """Terminal transition. Safe to call more than once.

        Returns True only for the call that actually closed the session.
        """

        if self.closed:
            return False
        self.state = SessionState.CLOSED
        self._hub.detach(self.connection_id)
        # Always: an entry can exist even if the session never became IDENTIFIED.
        try:
            await self._registry.mark_offline(self.connection_id)
        except SocialFeedError as exc:
            logger.error(
                "Presence cleanup for %s failed: %s",
                self.connection_id,
                exc.message,
            )
        return True

    # ---------------------------------------------------------------- helpers

    async def reply(self, event: str, payload: Any) -> bool:
        """Send to this connection only, unless it has gone away."""

        if self.closed or not self._hub.is_connected(self.connection_id):
            return False
        return await self._hub.send_to(self.connection_id, event, payload)

    def _require_identity(self, event: str) -> None:
        if not self.identified or self.user_id is None:
            msg = f"{event} requires comeOnline first"
            raise ValidationError(msg)


class SessionManager:
    """Owns the live ``ConnectionSession`` objects of this process."""

    def __init__(
        self,
        *,
        gateway: PersistenceGateway,
        hub: BroadcastHub,
        registry: PresenceRegistry,
        router: PrivateMessagingRouter,
    ) -> None:
        self._gateway = gateway
        self._hub = hub
        self._registry = registry
        self._router = router
        self._sessions: dict[str, ConnectionSession] = {}

    def __len__(self) -> int:
        return len(self._sessions)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._sessions

    def get(self, connection_id: str) -> ConnectionSession | None:
        return self._sessions.get(connection_id)

    def open(
        self,
        connection_id: str,
        *,
        user_id: UUID | None = None,
    ) -> ConnectionSession:
        session = ConnectionSession(
            connection_id,
            gateway=self._gateway,
            hub=self._hub,
            registry=self._registry,
            router=self._router,
            authenticated_user_id=user_id,
        )
        self._sessions[connection_id] = session
        self._hub.attach(connection_id)
        logger.info("A user connected: %s (user %s)", connection_id, user_id)
        return session

    async def dispatch(self, connection_id: str, event: str, data: Any) -> None:
        session = self._sessions.get(connection_id)
        if session is None:
            logger.warning("%s from unknown connection %s", event, connection_id)
            return
        await session.handle(event, data)

    async def close(self, connection_id: str) -> bool:
        session = self._sessions.pop(connection_id, None)
        if session is None:
            return False
        closed = await session.disconnect()
        logger.info("User disconnected: %s", connection_id)
        return closed
