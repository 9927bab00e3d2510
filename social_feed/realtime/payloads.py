"""Builders for outbound Socket.IO payloads.

These return plain JSON-serializable dicts. Payloads that go to everyone are
built only from public fields: a Socket.IO connection id never appears here.
"""

from __future__ import annotations

from typing import TYPE_CHECKING
from typing import Any

from social_feed.feed.api.serializers import CommentSerializer
from social_feed.feed.api.serializers import PostSerializer
from social_feed.messaging.api.serializers import PrivateMessageSerializer

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Iterable
    from uuid import UUID

    from social_feed.feed.models import Comment
    from social_feed.feed.models import Post
    from social_feed.messaging.models import PrivateMessage
    from social_feed.presence.models import PresenceEntry
    from social_feed.users.models import User


def build_online_users_payload(entries: Iterable[PresenceEntry]) -> list[dict[str, Any]]:
    return [
        {
            "userId": str(entry.user_id),
            "displayName": entry.display_name,
            "imageRef": entry.user.profile_image,
        }
        for entry in entries
    ]


def build_post_payload(post: Post) -> dict[str, Any]:
    return {"post": dict(PostSerializer(post).data)}


def build_comment_payload(comment: Comment) -> dict[str, Any]:
    return {"comment": dict(CommentSerializer(comment).data)}


def build_like_count_payload(post_id: UUID | str, count: int) -> dict[str, Any]:
    return {"postId": str(post_id), "count": int(count)}


def build_profile_payload(user: User) -> dict[str, Any]:
    return {"userId": str(user.pk), "imageRef": user.profile_image}


def build_message_payload(message: PrivateMessage) -> dict[str, Any]:
    return dict(PrivateMessageSerializer(message).data)

