"""Presence registry: which users are connected, and through which connection.

Policy is replace-by-userId: a user holds at most one live connection, and
coming online from a new connection drops the old entry. Every mutation that
changes the online list is followed by an ``onlineUsersChanged`` broadcast,
even when the visible list did not change (e.g. a reconnect). A broadcast that
fails is logged; it never turns a successful write into a failed one.
"""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING
from typing import Any

from channels.db import database_sync_to_async

from social_feed.core.exceptions import SocialFeedError
from social_feed.realtime.broadcast import EventKind
from social_feed.realtime.payloads import build_online_users_payload

if TYPE_CHECKING:  # import for type checking only
    from uuid import UUID

    from social_feed.core.gateway import PersistenceGateway
    from social_feed.realtime.broadcast import BroadcastHub

logger = logging.getLogger(__name__)


class PresenceRegistry:
    def __init__(self, gateway: PersistenceGateway, hub: BroadcastHub) -> None:
        self._gateway = gateway
        self._hub = hub

    async def mark_online(
        self,
        user_id: UUID | str,
        display_name: str,
        connection_id: str,
    ) -> None:
        await database_sync_to_async(self._gateway.upsert_presence)(
            user_id,
            display_name,
            connection_id,
        )
        logger.info("User %s (%s) is now online", display_name, user_id)
        await self.broadcast_online()

    async def mark_offline(self, connection_id: str) -> bool:
        """Drop the entry for ``connection_id``. No-op (and no broadcast) if absent."""

        removed = await database_sync_to_async(
            self._gateway.remove_presence_by_connection,
        )(connection_id)
        if not removed:
            return False
        logger.info("Connection %s went offline", connection_id)
        await self.broadcast_online()
        return True

    async def mark_offline_by_user(self, user_id: UUID | str) -> int:
        removed = await database_sync_to_async(self._gateway.remove_presence_by_user)(
            user_id,
        )
        if removed:
            logger.info("User %s explicitly went offline", user_id)
            await self.broadcast_online()
        return removed

    async def list_online(self) -> list[dict[str, Any]]:
        entries = await database_sync_to_async(self._gateway.list_presence)()
        return build_online_users_payload(entries)

    async def resolve_connection(self, user_id: UUID | str) -> str | None:
        return await database_sync_to_async(self._gateway.resolve_connection_for_user)(
            user_id,
        )

    async def broadcast_online(self) -> None:
        """Re-broadcast the full list. Best-effort: the write it follows stands."""

        try:
            users = await self.list_online()
        except SocialFeedError as exc:
            logger.error("Could not load online users for broadcast: %s", exc.message)
            return
        await self._hub.publish(EventKind.ONLINE_USERS_CHANGED, users)
        logger.debug("Broadcasting %d online users", len(users))
