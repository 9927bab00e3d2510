from __future__ import annotations

from typing import TYPE_CHECKING

from social_feed.realtime.broadcast import EventKind
from social_feed.realtime.payloads import build_comment_payload
from social_feed.realtime.payloads import build_post_payload
from social_feed.realtime.socketio import publish_event

if TYPE_CHECKING:  # import for type checking only
    from social_feed.feed.models import Comment
    from social_feed.feed.models import Post


def publish_post_created(post: Post) -> None:
    """Publish a newly created Post to every connected client."""

    publish_event(EventKind.FEED_POST_CREATED, build_post_payload(post))


def publish_comment_created(comment: Comment) -> None:
    """Publish a newly created Comment to every connected client."""

    publish_event(EventKind.FEED_COMMENT_CREATED, build_comment_payload(comment))
