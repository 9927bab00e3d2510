"""Global Socket.IO server for the frontend.

Every live feature shares this server instance: the online list, feed
updates, like counts and private chat.

Frontend convention:
- URL base: ws://<host>:8000
- Socket.IO path: ``settings.SOCKETIO_PATH`` (default ``/ws/socket.io/``)
- Auth: ``query.token`` or ``auth.token`` (JWT access token from login).
  Without a token the connection is a receive-only anonymous client.
- Identity: the client sends ``comeOnline {userId, displayName}`` after
  connecting, with its own authenticated user id; until then the connection
  is anonymous and only receives broadcasts.

Inbound events are handed to the connection's ``ConnectionSession``; see
``social_feed.realtime.session`` for the state machine.
"""

from __future__ import annotations

import logging
from typing import Any

import socketio
from django.conf import settings
from django.db import DatabaseError
from rest_framework.exceptions import AuthenticationFailed
from rest_framework_simplejwt.exceptions import TokenError

from social_feed.core.exceptions import SocialFeedError
from social_feed.core.gateway import PersistenceGateway
from social_feed.realtime import schemas
from social_feed.realtime.auth import authenticate_token
from social_feed.realtime.auth import extract_token
from social_feed.realtime.broadcast import WIRE_EVENTS
from social_feed.realtime.broadcast import BroadcastHub
from social_feed.realtime.broadcast import EventKind
from social_feed.realtime.messaging import PrivateMessagingRouter
from social_feed.realtime.presence import PresenceRegistry
from social_feed.realtime.session import SessionManager

logger = logging.getLogger(__name__)


def _cors_origins() -> str | list[str]:
    origins = list(settings.SOCKETIO_CORS_ALLOWED_ORIGINS)
    # Engine.IO only treats the bare string "*" as a wildcard.
    return "*" if "*" in origins else origins


def _client_manager() -> socketio.AsyncManager | None:
    # Redis lets broadcasts and point-to-point sends reach connections held
    # by other worker processes.
    url = getattr(settings, "REDIS_URL", "")
    if not url:
        return None
    return socketio.AsyncRedisManager(url)


sio = socketio.AsyncServer(
    async_mode="asgi",
    client_manager=_client_manager(),
    cors_allowed_origins=_cors_origins(),
    logger=False,
    engineio_logger=False,
)

gateway = PersistenceGateway()
hub = BroadcastHub(sio)
registry = PresenceRegistry(gateway, hub)
router = PrivateMessagingRouter(gateway, registry, hub)
sessions = SessionManager(gateway=gateway, hub=hub, registry=registry, router=router)


@sio.event
async def connect(sid: str, environ: dict[str, Any], auth: Any | None = None):
    token = extract_token(environ, auth)
    user_id = None
    if token:
        try:
            user_id = await authenticate_token(token)
        except TokenError as exc:
            message = str(exc)
            if "expired" in message.lower():
                msg = "jwt_expired"
                raise socketio.exceptions.ConnectionRefusedError(msg) from exc
            msg = "unauthorized"
            raise socketio.exceptions.ConnectionRefusedError(msg) from exc
        except AuthenticationFailed as exc:  # bad token, user not found / inactive
            msg = "unauthorized"
            raise socketio.exceptions.ConnectionRefusedError(msg) from exc
        except DatabaseError as exc:
            logger.exception("Socket.IO connect error")
            msg = "server_error"
            raise socketio.exceptions.ConnectionRefusedError(msg) from exc

    session = sessions.open(sid, user_id=user_id)
    # Give the new client the current online list straight away.
    try:
        users = await registry.list_online()
    except SocialFeedError as exc:
        logger.warning("Could not load online users for %s: %s", sid, exc.message)
        return
    await session.reply(WIRE_EVENTS[EventKind.ONLINE_USERS_CHANGED], users)


@sio.event
async def disconnect(sid: str, *args: Any):
    # python-socketio >= 5.12 passes a reason argument.
    await sessions.close(sid)


@sio.on(schemas.COME_ONLINE)
async def come_online(sid: str, data: Any = None):
    await sessions.dispatch(sid, schemas.COME_ONLINE, data)


@sio.on(schemas.GO_OFFLINE)
async def go_offline(sid: str, data: Any = None):
    await sessions.dispatch(sid, schemas.GO_OFFLINE, data)


@sio.on(schemas.LIKE)
async def like(sid: str, data: Any = None):
    await sessions.dispatch(sid, schemas.LIKE, data)


@sio.on(schemas.COMMENT)
async def comment(sid: str, data: Any = None):
    await sessions.dispatch(sid, schemas.COMMENT, data)


@sio.on(schemas.PRIVATE_MESSAGE)
async def private_message(sid: str, data: Any = None):
    await sessions.dispatch(sid, schemas.PRIVATE_MESSAGE, data)


@sio.on(schemas.REQUEST_HISTORY)
async def request_history(sid: str, data: Any = None):
    await sessions.dispatch(sid, schemas.REQUEST_HISTORY, data)


def publish_event(kind: EventKind, payload: Any) -> None:
    """Broadcast an event to every client from sync Django code."""

    hub.publish_from_sync(kind, payload)
