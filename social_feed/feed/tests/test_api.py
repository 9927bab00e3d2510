import uuid

import pytest
from rest_framework import status
from rest_framework.test import APIClient

from social_feed.feed.models import Comment
from social_feed.feed.models import Post
from tests.factories import create_post

pytestmark = pytest.mark.django_db


@pytest.fixture
def client(alice):
    api = APIClient()
    api.force_authenticate(user=alice)
    return api


def test_feed_requires_auth():
    r = APIClient().get("/api/v1/posts/")
    assert r.status_code == status.HTTP_401_UNAUTHORIZED


def test_feed_lists_posts_with_like_state(client, gateway, alice, bob):
    older = create_post(bob, content="older")
    newer = create_post(bob, content="newer")
    gateway.toggle_like(older.pk, alice.pk)

    r = client.get("/api/v1/posts/")

    assert r.status_code == status.HTTP_200_OK
    by_id = {p["postId"]: p for p in r.data["posts"]}
    assert by_id[str(older.pk)]["likeCount"] == 1
    assert by_id[str(older.pk)]["isLiked"] is True
    assert by_id[str(newer.pk)]["likeCount"] == 0
    assert by_id[str(newer.pk)]["isLiked"] is False
    assert by_id[str(newer.pk)]["authorName"] == "Bob"


def test_create_post_broadcasts_after_commit(
    client,
    alice,
    live_hub,
    django_capture_on_commit_callbacks,
):
    with django_capture_on_commit_callbacks(execute=True):
        r = client.post(
            "/api/v1/posts/",
            {"content": "Hello feed", "mediaUrl": "https://cdn.example.com/p.jpg"},
            format="json",
        )

    assert r.status_code == status.HTTP_201_CREATED, r.content
    post = Post.objects.get()
    assert r.data["post"]["postId"] == str(post.pk)
    assert r.data["post"]["mediaUrl"] == "https://cdn.example.com/p.jpg"
    [event] = live_hub.broadcasts("feedPostCreated")
    assert event.data["post"]["postId"] == str(post.pk)
    assert event.data["post"]["authorId"] == str(alice.pk)
    assert event.data["post"]["likeCount"] == 0


def test_create_post_needs_content_or_media(client, live_hub, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        r = client.post("/api/v1/posts/", {"content": "  "}, format="json")
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert not Post.objects.exists()
    assert live_hub.emitted == []


def test_comment_via_rest_broadcasts(
    client,
    bob,
    live_hub,
    django_capture_on_commit_callbacks,
):
    post = create_post(bob)
    with django_capture_on_commit_callbacks(execute=True):
        r = client.post(
            f"/api/v1/posts/{post.pk}/comments/",
            {"content": "Great post"},
            format="json",
        )
    assert r.status_code == status.HTTP_201_CREATED, r.content
    comment = Comment.objects.get()
    assert r.data["comment"]["commentId"] == str(comment.pk)
    [event] = live_hub.broadcasts("feedCommentCreated")
    assert event.data["comment"]["postId"] == str(post.pk)


def test_list_comments_oldest_first(client, gateway, alice, bob):
    post = create_post(bob)
    gateway.create_comment(post_id=post.pk, author_id=alice.pk, content="first")
    gateway.create_comment(post_id=post.pk, author_id=bob.pk, content="second")

    r = client.get(f"/api/v1/posts/{post.pk}/comments/")

    assert r.status_code == status.HTTP_200_OK
    assert [c["content"] for c in r.data["comments"]] == ["first", "second"]


def test_comment_on_missing_post_is_not_found(client, live_hub, django_capture_on_commit_callbacks):
    with django_capture_on_commit_callbacks(execute=True):
        r = client.post(
            f"/api/v1/posts/{uuid.uuid4()}/comments/",
            {"content": "anyone?"},
            format="json",
        )
    assert r.status_code == status.HTTP_404_NOT_FOUND
    assert r.data["success"] is False
    assert live_hub.emitted == []
