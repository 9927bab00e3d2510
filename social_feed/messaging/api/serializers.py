from rest_framework import serializers

from social_feed.messaging.models import PrivateMessage


class PrivateMessageSerializer(serializers.ModelSerializer[PrivateMessage]):
    """Wire shape of a private message (live ``privateMessage`` event and history)."""

    messageId = serializers.UUIDField(source="id", read_only=True)  # noqa: N815
    senderId = serializers.UUIDField(source="sender_id", read_only=True)  # noqa: N815
    recipientId = serializers.UUIDField(source="recipient_id", read_only=True)  # noqa: N815
    timestamp = serializers.DateTimeField(source="created_at", read_only=True)

    class Meta:
        model = PrivateMessage
        fields = ["messageId", "senderId", "recipientId", "body", "timestamp"]
