"""Private messaging router.

Delivery semantics: the message is persisted first, always. Only then is it
pushed live: to the recipient's connection when they are online, and back to
the sender's own connection. A recipient who is offline reads it from history
later. So every message is stored at least once and delivered live at most
once.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import TYPE_CHECKING
from typing import Any

from channels.db import database_sync_to_async

from social_feed.realtime.broadcast import PRIVATE_MESSAGE_EVENT
from social_feed.realtime.payloads import build_message_payload

if TYPE_CHECKING:  # import for type checking only
    from uuid import UUID

    from social_feed.core.gateway import PersistenceGateway
    from social_feed.realtime.broadcast import BroadcastHub
    from social_feed.realtime.presence import PresenceRegistry

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DeliveryReport:
    message: dict[str, Any]
    delivered: bool
    echoed: bool


class PrivateMessagingRouter:
    def __init__(
        self,
        gateway: PersistenceGateway,
        registry: PresenceRegistry,
        hub: BroadcastHub,
    ) -> None:
        self._gateway = gateway
        self._registry = registry
        self._hub = hub

    async def send_private_message(
        self,
        sender_id: UUID | str,
        recipient_id: UUID | str,
        body: str,
        *,
        echo_to: str | None = None,
    ) -> DeliveryReport:
        """Persist, then deliver point-to-point.

        ``echo_to`` is the sender's own connection. When omitted it is looked
        up in the presence registry. ``PersistenceError`` and ``NotFoundError``
        from the write propagate and nothing is delivered.
        """

        message = await database_sync_to_async(self._gateway.save_private_message)(
            sender_id,
            recipient_id,
            body,
        )
        payload = build_message_payload(message)

        # A caller-supplied echo target is a connection served by this process.
        local_echo = echo_to is not None
        if echo_to is None:
            echo_to = await self._registry.resolve_connection(sender_id)

        recipient_connection = await self._registry.resolve_connection(recipient_id)
        delivered = False
        if recipient_connection is None:
            logger.info(
                "Recipient %s not online; message %s stored for later",
                recipient_id,
                payload["messageId"],
            )
        elif recipient_connection == echo_to:
            # Message to self: the echo below covers it.
            delivered = True
        else:
            delivered = await self._hub.send_to(
                recipient_connection,
                PRIVATE_MESSAGE_EVENT,
                payload,
            )
            logger.info("Private message sent to %s", recipient_id)

        echoed = False
        if local_echo and not self._hub.is_connected(echo_to):
            logger.debug("Sender connection %s closed; echo skipped", echo_to)
        elif echo_to is not None:
            echoed = await self._hub.send_to(echo_to, PRIVATE_MESSAGE_EVENT, payload)
        return DeliveryReport(message=payload, delivered=delivered, echoed=echoed)

    async def fetch_history(
        self,
        user_a: UUID | str,
        user_b: UUID | str,
    ) -> list[dict[str, Any]]:
        """Messages between two users, oldest first. Symmetric in its arguments."""

        messages = await database_sync_to_async(self._gateway.fetch_history)(
            user_a,
            user_b,
        )
        return [build_message_payload(m) for m in messages]
