import uuid

from django.conf import settings
from django.db import models


class PrivateMessage(models.Model):
    """Append-only direct message between two users."""

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="sent_messages",
    )
    recipient = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="received_messages",
    )
    body = models.TextField()
    created_at = models.DateTimeField(auto_now_add=True, db_index=True)

    class Meta:
        ordering = ["created_at"]
        indexes = [
            models.Index(
                fields=["sender", "recipient", "created_at"],
                name="message_conversation_idx",
            ),
        ]

    def __str__(self):
        return f"{self.sender_id} -> {self.recipient_id}"
