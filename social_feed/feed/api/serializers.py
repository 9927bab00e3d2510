from __future__ import annotations

from typing import Any

from rest_framework import serializers

from social_feed.feed.models import Comment
from social_feed.feed.models import Post


class PostSerializer(serializers.ModelSerializer[Post]):
    """Wire shape of a post, shared by the REST feed and ``feedPostCreated``.

    ``likeCount`` and ``isLiked`` come from queryset annotations.
    """

    postId = serializers.UUIDField(source="id", read_only=True)  # noqa: N815
    authorId = serializers.UUIDField(source="author_id", read_only=True)  # noqa: N815
    authorName = serializers.CharField(source="author.display_name", read_only=True)  # noqa: N815
    authorImage = serializers.CharField(source="author.profile_image", read_only=True)  # noqa: N815
    mediaUrl = serializers.CharField(source="media_url", read_only=True)  # noqa: N815
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)  # noqa: N815
    likeCount = serializers.IntegerField(source="like_count", read_only=True, default=0)  # noqa: N815
    isLiked = serializers.BooleanField(source="is_liked", read_only=True, default=False)  # noqa: N815

    class Meta:
        model = Post
        fields = [
            "postId",
            "authorId",
            "authorName",
            "authorImage",
            "content",
            "mediaUrl",
            "createdAt",
            "likeCount",
            "isLiked",
        ]


class PostCreateSerializer(serializers.Serializer):
    content = serializers.CharField(required=False, allow_blank=True, default="")
    mediaUrl = serializers.CharField(  # noqa: N815
        max_length=500,
        required=False,
        allow_blank=True,
        default="",
    )

    def validate(self, attrs: dict[str, Any]) -> dict[str, Any]:
        if not attrs.get("content", "").strip() and not attrs.get("mediaUrl", "").strip():
            msg = "Content or media is required."
            raise serializers.ValidationError(msg)
        return attrs


class CommentSerializer(serializers.ModelSerializer[Comment]):
    """Wire shape of a comment, shared by the REST API and ``feedCommentCreated``."""

    commentId = serializers.UUIDField(source="id", read_only=True)  # noqa: N815
    postId = serializers.UUIDField(source="post_id", read_only=True)  # noqa: N815
    authorId = serializers.UUIDField(source="author_id", read_only=True)  # noqa: N815
    authorName = serializers.CharField(source="author.display_name", read_only=True)  # noqa: N815
    authorImage = serializers.CharField(source="author.profile_image", read_only=True)  # noqa: N815
    createdAt = serializers.DateTimeField(source="created_at", read_only=True)  # noqa: N815

    class Meta:
        model = Comment
        fields = [
            "commentId",
            "postId",
            "authorId",
            "authorName",
            "authorImage",
            "content",
            "createdAt",
        ]


class CommentCreateSerializer(serializers.Serializer):
    content = serializers.CharField()
