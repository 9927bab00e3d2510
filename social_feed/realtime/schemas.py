"""Canonical payload schemas for inbound Socket.IO events.

Each inbound event has exactly one accepted shape. Anything else is rejected
with ``ValidationError`` and the event is dropped.
"""

from __future__ import annotations

from typing import Any

from rest_framework import serializers

from social_feed.core.exceptions import ValidationError

COME_ONLINE = "comeOnline"
GO_OFFLINE = "goOffline"
LIKE = "like"
COMMENT = "comment"
PRIVATE_MESSAGE = "privateMessage"
REQUEST_HISTORY = "requestHistory"


class ComeOnlineSchema(serializers.Serializer):
    userId = serializers.UUIDField()  # noqa: N815
    displayName = serializers.CharField(max_length=150)  # noqa: N815


class GoOfflineSchema(serializers.Serializer):
    userId = serializers.UUIDField()  # noqa: N815


class LikeSchema(serializers.Serializer):
    postId = serializers.UUIDField()  # noqa: N815


class CommentSchema(serializers.Serializer):
    postId = serializers.UUIDField()  # noqa: N815
    content = serializers.CharField()


class PrivateMessageSchema(serializers.Serializer):
    recipientId = serializers.UUIDField()  # noqa: N815
    body = serializers.CharField(trim_whitespace=False)

    def validate_body(self, value: str) -> str:
        if not value.strip():
            msg = "This field may not be blank."
            raise serializers.ValidationError(msg)
        return value


class RequestHistorySchema(serializers.Serializer):
    withUserId = serializers.UUIDField()  # noqa: N815


INBOUND_SCHEMAS: dict[str, type[serializers.Serializer]] = {
    COME_ONLINE: ComeOnlineSchema,
    GO_OFFLINE: GoOfflineSchema,
    LIKE: LikeSchema,
    COMMENT: CommentSchema,
    PRIVATE_MESSAGE: PrivateMessageSchema,
    REQUEST_HISTORY: RequestHistorySchema,
}


def validate_inbound(event: str, data: Any) -> dict[str, Any]:
    """Validate ``data`` against the schema of ``event``.

    Raises:
        ValidationError: unknown event, non-object payload, or a missing or
            malformed field.
    """

    schema_class = INBOUND_SCHEMAS.get(event)
    if schema_class is None:
        msg = f"Unknown event: {event}"
        raise ValidationError(msg)
    if not isinstance(data, dict):
        msg = f"{event} payload must be an object"
        raise ValidationError(msg)
    schema = schema_class(data=data)
    if not schema.is_valid():
        fields = ", ".join(sorted(schema.errors))
        msg = f"{event} payload rejected ({fields})"
        raise ValidationError(msg)
    return dict(schema.validated_data)
