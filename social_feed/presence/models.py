from django.conf import settings
from django.db import models


class PresenceEntry(models.Model):
    """One live Socket.IO connection bound to a user.

    ``connection_id`` is the Socket.IO sid. It is unique here and must never be
    copied into anything that is broadcast to other clients.
    """

    connection_id = models.CharField(max_length=64, unique=True)
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="presence_entries",
    )
    display_name = models.CharField(max_length=150)
    connected_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        ordering = ["connected_at", "id"]
        verbose_name_plural = "presence entries"

    def __str__(self):
        return f"{self.display_name} ({self.user_id})"
