from __future__ import annotations

from django.db import transaction
from drf_spectacular.utils import extend_schema
from drf_spectacular.utils import extend_schema_view
from rest_framework import status
from rest_framework.decorators import action
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.viewsets import ViewSet

from social_feed.core.gateway import PersistenceGateway
from social_feed.realtime.events.feed import publish_comment_created
from social_feed.realtime.events.feed import publish_post_created

from .serializers import CommentCreateSerializer
from .serializers import CommentSerializer
from .serializers import PostCreateSerializer
from .serializers import PostSerializer


@extend_schema_view(
    list=extend_schema(tags=["Feed"], responses=PostSerializer(many=True)),
    create=extend_schema(tags=["Feed"], request=PostCreateSerializer),
    comments=extend_schema(tags=["Feed"], request=CommentCreateSerializer),
)
class PostViewSet(ViewSet):
    """The public feed.

    - list: latest posts, newest first, with like counts and the viewer's
      like flag
    - create: new post, broadcast as ``feedPostCreated`` once committed
    - comments: GET lists a post's comments oldest first; POST adds one and
      broadcasts ``feedCommentCreated``
    """

    permission_classes = [IsAuthenticated]
    gateway = PersistenceGateway()

    def list(self, request):
        posts = self.gateway.list_posts(viewer_id=request.user.pk)
        return Response(
            {"success": True, "posts": PostSerializer(posts, many=True).data},
        )

    def create(self, request):
        serializer = PostCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        post = self.gateway.create_post(
            author_id=request.user.pk,
            content=data.get("content", ""),
            media_url=data.get("mediaUrl", ""),
        )
        # Durability first: only announce the post once it is committed.
        transaction.on_commit(lambda: publish_post_created(post))
        return Response(
            {
                "success": True,
                "message": "Post created.",
                "post": PostSerializer(post).data,
            },
            status=status.HTTP_201_CREATED,
        )

    @action(detail=True, methods=["get", "post"], url_path="comments")
    def comments(self, request, pk=None):
        if request.method == "GET":
            comments = self.gateway.list_comments(pk)
            return Response(
                {
                    "success": True,
                    "comments": CommentSerializer(comments, many=True).data,
                },
            )

        serializer = CommentCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        comment = self.gateway.create_comment(
            post_id=pk,
            author_id=request.user.pk,
            content=serializer.validated_data["content"],
        )
        transaction.on_commit(lambda: publish_comment_created(comment))
        return Response(
            {
                "success": True,
                "message": "Comment posted.",
                "comment": CommentSerializer(comment).data,
            },
            status=status.HTTP_201_CREATED,
        )
