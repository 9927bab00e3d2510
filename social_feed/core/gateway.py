"""Persistence gateway over the Django ORM.

Every read and write the realtime layer and the REST views need goes through
``PersistenceGateway``. Methods are synchronous; async callers wrap them with
``channels.db.database_sync_to_async``.

Storage failures surface as ``PersistenceError``, missing rows as
``NotFoundError`` and a taken email as ``DuplicateError``. Callers never see a
raw ``django.db`` exception.
"""

from __future__ import annotations

import functools
import logging
from typing import TYPE_CHECKING
from typing import Any

from django.conf import settings
from django.contrib.auth import get_user_model
from django.core.exceptions import ObjectDoesNotExist
from django.core.exceptions import ValidationError as DjangoValidationError
from django.db import DatabaseError
from django.db import IntegrityError
from django.db import transaction
from django.db.models import BooleanField
from django.db.models import Count
from django.db.models import Exists
from django.db.models import OuterRef
from django.db.models import Q
from django.db.models import Value

from social_feed.core.exceptions import DuplicateError
from social_feed.core.exceptions import NotFoundError
from social_feed.core.exceptions import PersistenceError
from social_feed.core.exceptions import ValidationError
from social_feed.feed.models import Comment
from social_feed.feed.models import Like
from social_feed.feed.models import Post
from social_feed.messaging.models import PrivateMessage
from social_feed.presence.models import PresenceEntry

if TYPE_CHECKING:  # import for type checking only
    from collections.abc import Callable
    from uuid import UUID

    from social_feed.users.models import User

logger = logging.getLogger(__name__)


def _translate_errors(func: Callable[..., Any]) -> Callable[..., Any]:
    @functools.wraps(func)
    def wrapper(*args, **kwargs):
        try:
            return func(*args, **kwargs)
        except ObjectDoesNotExist as exc:
            raise NotFoundError(str(exc)) from exc
        except DjangoValidationError as exc:
            # e.g. a malformed UUID reaching a lookup
            raise ValidationError("; ".join(exc.messages)) from exc
        except DatabaseError as exc:
            logger.exception("Persistence failure in %s", func.__name__)
            raise PersistenceError from exc

    return wrapper


class PersistenceGateway:
    """CRUD over users, posts, comments, likes, presence and private messages."""

    # ------------------------------------------------------------------ users

    @_translate_errors
    def find_user_by_email(self, email: str) -> User | None:
        user_model = get_user_model()
        return user_model.objects.filter(email__iexact=email.strip()).first()

    @_translate_errors
    def create_user(
        self,
        *,
        email: str,
        password: str,
        display_name: str,
        profile_image: str = "",
    ) -> User:
        user_model = get_user_model()
        if user_model.objects.filter(email__iexact=email.strip()).exists():
            msg = "Email already registered."
            raise DuplicateError(msg)
        try:
            with transaction.atomic():
                return user_model.objects.create_user(
                    email=email.strip(),
                    password=password,
                    display_name=display_name,
                    profile_image=profile_image or "",
                )
        except IntegrityError as exc:
            msg = "Email already registered."
            raise DuplicateError(msg) from exc

    @_translate_errors
    def get_user(self, user_id: UUID | str) -> User:
        return get_user_model().objects.get(pk=user_id)

    @_translate_errors
    def update_profile_image(self, user_id: UUID | str, image_ref: str) -> User:
        user = get_user_model().objects.get(pk=user_id)
        user.profile_image = image_ref
        user.save(update_fields=["profile_image", "updated_at"])
        return user

    # ------------------------------------------------------------------ posts

    def _posts_for(self, viewer_id: UUID | str | None):
        qs = Post.objects.select_related("author").annotate(
            like_count=Count("likes", distinct=True),
        )
        if viewer_id is None:
            return qs.annotate(is_liked=Value(False, output_field=BooleanField()))
        return qs.annotate(
            is_liked=Exists(
                Like.objects.filter(post=OuterRef("pk"), user_id=viewer_id),
            ),
        )

    @_translate_errors
    def create_post(self, *, author_id: UUID | str, content: str, media_url: str = "") -> Post:
        if not get_user_model().objects.filter(pk=author_id).exists():
            msg = "Author does not exist."
            raise NotFoundError(msg)
        post = Post.objects.create(
            author_id=author_id,
            content=content or "",
            media_url=media_url or "",
        )
        return self.get_post(post.pk, viewer_id=author_id)

    @_translate_errors
    def get_post(self, post_id: UUID | str, viewer_id: UUID | str | None = None) -> Post:
        return self._posts_for(viewer_id).get(pk=post_id)

    @_translate_errors
    def list_posts(self, viewer_id: UUID | str | None, limit: int | None = None) -> list[Post]:
        limit = limit or settings.FEED_PAGE_SIZE
        return list(self._posts_for(viewer_id).order_by("-created_at")[:limit])

    # --------------------------------------------------------------- comments

    @_translate_errors
    def create_comment(self, *, post_id: UUID | str, author_id: UUID | str, content: str) -> Comment:
        if not Post.objects.filter(pk=post_id).exists():
            msg = "Post does not exist."
            raise NotFoundError(msg)
        if not get_user_model().objects.filter(pk=author_id).exists():
            msg = "Author does not exist."
            raise NotFoundError(msg)
        comment = Comment.objects.create(
            post_id=post_id,
            author_id=author_id,
            content=content,
        )
        # Re-read with the author joined so the caller sees the current
        # display name and profile image, not a cached copy.
        return Comment.objects.select_related("author").get(pk=comment.pk)

    @_translate_errors
    def list_comments(self, post_id: UUID | str) -> list[Comment]:
        if not Post.objects.filter(pk=post_id).exists():
            msg = "Post does not exist."
            raise NotFoundError(msg)
        return list(
            Comment.objects.filter(post_id=post_id)
            .select_related("author")
            .order_by("created_at", "id"),
        )

    # ------------------------------------------------------------------ likes

    @_translate_errors
    def has_like(self, post_id: UUID | str, user_id: UUID | str) -> bool:
        return Like.objects.filter(post_id=post_id, user_id=user_id).exists()

    @_translate_errors
    def add_like(self, post_id: UUID | str, user_id: UUID | str) -> None:
        Like.objects.get_or_create(post_id=post_id, user_id=user_id)

    @_translate_errors
    def remove_like(self, post_id: UUID | str, user_id: UUID | str) -> None:
        Like.objects.filter(post_id=post_id, user_id=user_id).delete()

    @_translate_errors
    def count_likes(self, post_id: UUID | str) -> int:
        return Like.objects.filter(post_id=post_id).count()

    @_translate_errors
    def toggle_like(self, post_id: UUID | str, user_id: UUID | str) -> bool:
        """Flip the like for (post, user) and return whether it is now liked.

        Insert first; when the unique constraint rejects the insert the like
        already existed, so delete it instead. Two concurrent toggles can
        therefore never both observe "absent" and both insert.
        """

        if not Post.objects.filter(pk=post_id).exists():
            msg = "Post does not exist."
            raise NotFoundError(msg)
        if not get_user_model().objects.filter(pk=user_id).exists():
            msg = "User does not exist."
            raise NotFoundError(msg)
        with transaction.atomic():
            try:
                with transaction.atomic():
                    Like.objects.create(post_id=post_id, user_id=user_id)
            except IntegrityError:
                Like.objects.filter(post_id=post_id, user_id=user_id).delete()
                return False
        return True

    # --------------------------------------------------------------- presence

    @_translate_errors
    def upsert_presence(
        self,
        user_id: UUID | str,
        display_name: str,
        connection_id: str,
        *,
        replace: bool = True,
    ) -> PresenceEntry:
        """Bind ``connection_id`` to the user.

        With ``replace`` (the default) any other connection the user held is
        dropped first, so a user has at most one live entry.
        """

        if not get_user_model().objects.filter(pk=user_id).exists():
            msg = "User does not exist."
            raise NotFoundError(msg)
        with transaction.atomic():
            if replace:
                PresenceEntry.objects.filter(user_id=user_id).exclude(
                    connection_id=connection_id,
                ).delete()
            entry, _ = PresenceEntry.objects.update_or_create(
                connection_id=connection_id,
                defaults={"user_id": user_id, "display_name": display_name},
            )
        return entry

    @_translate_errors
    def remove_presence_by_connection(self, connection_id: str) -> int:
        deleted, _ = PresenceEntry.objects.filter(connection_id=connection_id).delete()
        return deleted

    @_translate_errors
    def remove_presence_by_user(self, user_id: UUID | str) -> int:
        deleted, _ = PresenceEntry.objects.filter(user_id=user_id).delete()
        return deleted

    @_translate_errors
    def list_presence(self) -> list[PresenceEntry]:
        return list(PresenceEntry.objects.select_related("user"))

    @_translate_errors
    def resolve_connection_for_user(self, user_id: UUID | str) -> str | None:
        return (
            PresenceEntry.objects.filter(user_id=user_id)
            .order_by("-connected_at", "-id")
            .values_list("connection_id", flat=True)
            .first()
        )

    @_translate_errors
    def clear_presence(self) -> int:
        deleted, _ = PresenceEntry.objects.all().delete()
        return deleted

    # ------------------------------------------------------- private messages

    @_translate_errors
    def save_private_message(
        self,
        sender_id: UUID | str,
        recipient_id: UUID | str,
        body: str,
    ) -> PrivateMessage:
        user_model = get_user_model()
        if not user_model.objects.filter(pk=sender_id).exists():
            msg = "Sender does not exist."
            raise NotFoundError(msg)
        if not user_model.objects.filter(pk=recipient_id).exists():
            msg = "Recipient does not exist."
            raise NotFoundError(msg)
        return PrivateMessage.objects.create(
            sender_id=sender_id,
            recipient_id=recipient_id,
            body=body,
        )

    @_translate_errors
    def fetch_history(self, user_a: UUID | str, user_b: UUID | str) -> list[PrivateMessage]:
        """All messages between the two users, oldest first, either direction."""

        conversation = Q(sender_id=user_a, recipient_id=user_b) | Q(
            sender_id=user_b,
            recipient_id=user_a,
        )
        return list(
            PrivateMessage.objects.filter(conversation).order_by("created_at", "id"),
        )
