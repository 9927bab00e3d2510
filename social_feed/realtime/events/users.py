from __future__ import annotations

from typing import TYPE_CHECKING

from social_feed.realtime.broadcast import EventKind
from social_feed.realtime.payloads import build_profile_payload
from social_feed.realtime.socketio import publish_event

if TYPE_CHECKING:  # import for type checking only
    from social_feed.users.models import User


def publish_profile_updated(user: User) -> None:
    publish_event(EventKind.PROFILE_UPDATED, build_profile_payload(user))
