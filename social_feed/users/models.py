import uuid

from django.contrib.auth.models import AbstractUser
from django.db import models
from django.db.models import CharField
from django.db.models import EmailField
from django.utils.translation import gettext_lazy as _

from .managers import UserManager


class User(AbstractUser):
    """
    Default custom user model for social_feed.

    Users log in with their email. ``display_name`` and ``profile_image`` are
    what other users see in the feed, the online list and chat.
    """

    id = models.UUIDField(primary_key=True, default=uuid.uuid4, editable=False)
    email = EmailField(_("email address"), unique=True)
    username = None  # type: ignore[assignment]
    display_name = CharField(_("Display Name"), max_length=150)
    # Opaque reference (usually a URL); storage of the file itself lives elsewhere.
    profile_image = CharField(_("Profile Image"), max_length=500, blank=True, default="")
    # Audit timestamps
    created_at = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "email"
    REQUIRED_FIELDS = ["display_name"]

    objects = UserManager()

    def __str__(self) -> str:
        return self.display_name or self.email
