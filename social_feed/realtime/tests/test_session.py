import asyncio
import uuid
from unittest import mock

import pytest
from asgiref.sync import async_to_sync
from django.db import DatabaseError

from social_feed.feed.models import Comment
from social_feed.presence.models import PresenceEntry
from social_feed.realtime.session import SessionState
from tests.factories import create_post

pytestmark = pytest.mark.django_db(transaction=True)


def dispatch(sessions, sid, event, data):
    async_to_sync(sessions.dispatch)(sid, event, data)


def identify(sessions, sid, user):
    sessions.open(sid, user_id=user.pk)
    dispatch(
        sessions,
        sid,
        "comeOnline",
        {"userId": str(user.pk), "displayName": user.display_name},
    )
    return sessions.get(sid)


def test_new_session_is_anonymous(sessions, hub):
    session = sessions.open("sid-1")
    assert session.state is SessionState.ANONYMOUS
    assert hub.is_connected("sid-1")
    assert "sid-1" in sessions


def test_come_online_identifies(sessions, alice):
    session = identify(sessions, "sid-a", alice)
    assert session.state is SessionState.IDENTIFIED
    assert session.user_id == alice.pk
    assert PresenceEntry.objects.filter(connection_id="sid-a", user=alice).exists()


def test_come_online_with_unknown_user_stays_anonymous(sessions, server):
    ghost_id = uuid.uuid4()
    sessions.open("sid-x", user_id=ghost_id)
    dispatch(
        sessions,
        "sid-x",
        "comeOnline",
        {"userId": str(ghost_id), "displayName": "Ghost"},
    )
    assert sessions.get("sid-x").state is SessionState.ANONYMOUS
    assert server.broadcasts("onlineUsers") == []


def test_anonymous_events_are_dropped(sessions, server, alice):
    post = create_post(alice)
    sessions.open("sid-1")
    dispatch(sessions, "sid-1", "like", {"postId": str(post.pk)})
    dispatch(sessions, "sid-1", "comment", {"postId": str(post.pk), "content": "hi"})
    assert server.emitted == []
    assert not Comment.objects.exists()


def test_malformed_event_leaves_session_untouched(sessions, server, alice):
    session = identify(sessions, "sid-a", alice)
    server.clear()
    dispatch(sessions, "sid-a", "like", {"post": "nope"})
    dispatch(sessions, "sid-a", "comeOnline", "Alice")
    assert session.state is SessionState.IDENTIFIED
    assert server.emitted == []


def test_like_twice_broadcasts_one_then_zero(sessions, server, alice, bob):
    post = create_post(alice)
    identify(sessions, "sid-b", bob)
    server.clear()

    dispatch(sessions, "sid-b", "like", {"postId": str(post.pk)})
    dispatch(sessions, "sid-b", "like", {"postId": str(post.pk)})

    counts = [e.data for e in server.broadcasts("likeCountChanged")]
    assert counts == [
        {"postId": str(post.pk), "count": 1},
        {"postId": str(post.pk), "count": 0},
    ]


def test_comment_persists_then_broadcasts(sessions, server, alice, bob):
    post = create_post(alice)
    identify(sessions, "sid-b", bob)
    server.clear()

    dispatch(sessions, "sid-b", "comment", {"postId": str(post.pk), "content": "Nice!"})

    comment = Comment.objects.get()
    [event] = server.broadcasts("feedCommentCreated")
    assert event.data["comment"]["commentId"] == str(comment.pk)
    assert event.data["comment"]["authorName"] == "Bob"
    assert event.data["comment"]["content"] == "Nice!"


def test_failed_write_is_never_broadcast(sessions, server, alice, bob):
    post = create_post(alice)
    identify(sessions, "sid-b", bob)
    server.clear()

    with mock.patch(
        "social_feed.core.gateway.Comment.objects.create",
        side_effect=DatabaseError("database is locked"),
    ):
        dispatch(sessions, "sid-b", "comment", {"postId": str(post.pk), "content": "x"})

    assert server.emitted == []
    assert sessions.get("sid-b").state is SessionState.IDENTIFIED


def test_go_offline_returns_to_anonymous(sessions, server, alice):
    session = identify(sessions, "sid-a", alice)
    server.clear()
    dispatch(sessions, "sid-a", "goOffline", {"userId": str(alice.pk)})
    assert session.state is SessionState.ANONYMOUS
    assert session.user_id is None
    assert not PresenceEntry.objects.exists()
    assert [e.data for e in server.broadcasts("onlineUsers")] == [[]]


def test_go_offline_for_another_user_is_rejected(sessions, server, alice, bob):
    identify(sessions, "sid-b", bob)
    session = identify(sessions, "sid-a", alice)
    server.clear()
    dispatch(sessions, "sid-a", "goOffline", {"userId": str(bob.pk)})
    assert session.state is SessionState.IDENTIFIED
    assert PresenceEntry.objects.filter(user=bob).exists()
    assert server.emitted == []


def test_disconnect_is_idempotent(sessions, server, hub, alice):
    identify(sessions, "sid-a", alice)
    session = sessions.get("sid-a")
    server.clear()

    assert async_to_sync(sessions.close)("sid-a") is True
    assert async_to_sync(sessions.close)("sid-a") is False
    assert async_to_sync(session.disconnect)() is False

    assert session.state is SessionState.CLOSED
    assert not hub.is_connected("sid-a")
    assert not PresenceEntry.objects.exists()
    assert len(server.broadcasts("onlineUsers")) == 1


def test_anonymous_disconnect_does_not_broadcast(sessions, server):
    sessions.open("sid-1")
    assert async_to_sync(sessions.close)("sid-1") is True
    assert server.emitted == []


def test_closed_session_ignores_events(sessions, server, alice):
    post = create_post(alice)
    session = identify(sessions, "sid-a", alice)
    async_to_sync(sessions.close)("sid-a")
    server.clear()

    async_to_sync(session.handle)("like", {"postId": str(post.pk)})
    assert server.emitted == []


def test_request_history_replies_to_requester_only(sessions, server, gateway, alice, bob):
    gateway.save_private_message(alice.pk, bob.pk, "first")
    gateway.save_private_message(bob.pk, alice.pk, "second")
    identify(sessions, "sid-a", alice)
    server.clear()

    dispatch(sessions, "sid-a", "requestHistory", {"withUserId": str(bob.pk)})

    [reply] = server.sent_to("sid-a", "history")
    assert reply.data["withUserId"] == str(bob.pk)
    assert [m["body"] for m in reply.data["messages"]] == ["first", "second"]
    assert server.broadcasts() == []


def test_private_message_goes_through_router(sessions, server, alice, bob):
    identify(sessions, "sid-a", alice)
    identify(sessions, "sid-b", bob)
    server.clear()

    dispatch(
        sessions,
        "sid-a",
        "privateMessage",
        {"recipientId": str(bob.pk), "body": "psst"},
    )

    assert [e.data["body"] for e in server.sent_to("sid-b", "privateMessage")] == ["psst"]
    assert [e.data["body"] for e in server.sent_to("sid-a", "privateMessage")] == ["psst"]


def test_dispatch_to_unknown_connection_is_ignored(sessions, server):
    dispatch(sessions, "sid-unknown", "like", {"postId": str(uuid.uuid4())})
    assert server.emitted == []


def test_come_online_as_another_user_is_rejected(sessions, server, gateway, alice, bob):
    gateway.save_private_message(alice.pk, bob.pk, "secret")
    session = sessions.open("sid-m", user_id=bob.pk)

    dispatch(
        sessions,
        "sid-m",
        "comeOnline",
        {"userId": str(alice.pk), "displayName": "Alice"},
    )
    dispatch(sessions, "sid-m", "requestHistory", {"withUserId": str(bob.pk)})

    assert session.state is SessionState.ANONYMOUS
    assert session.user_id is None
    assert not PresenceEntry.objects.exists()
    assert server.sent_to("sid-m", "history") == []


def test_unauthenticated_connection_cannot_come_online(sessions, server, alice):
    session = sessions.open("sid-anon")
    dispatch(
        sessions,
        "sid-anon",
        "comeOnline",
        {"userId": str(alice.pk), "displayName": "Alice"},
    )
    assert session.state is SessionState.ANONYMOUS
    assert not PresenceEntry.objects.exists()
    assert server.emitted == []


def test_failed_online_broadcast_keeps_write_and_disconnect_cleans_up(
    sessions,
    server,
    alice,
):
    with mock.patch(
        "social_feed.core.gateway.PresenceEntry.objects.select_related",
        side_effect=DatabaseError("database is locked"),
    ):
        session = identify(sessions, "sid-a", alice)
        assert session.state is SessionState.IDENTIFIED
        assert server.broadcasts("onlineUsers") == []

        async_to_sync(sessions.close)("sid-a")

    assert not PresenceEntry.objects.exists()


def test_disconnect_drops_entry_left_by_anonymous_session(sessions, gateway, alice):
    session = sessions.open("sid-a", user_id=alice.pk)
    gateway.upsert_presence(alice.pk, "Alice", "sid-a")
    assert session.state is SessionState.ANONYMOUS

    async_to_sync(sessions.close)("sid-a")

    assert not PresenceEntry.objects.exists()


def test_overlapping_events_run_in_arrival_order(sessions, server, alice, bob):
    post = create_post(alice)
    identify(sessions, "sid-b", bob)
    server.clear()

    async def burst():
        await asyncio.gather(
            *(
                sessions.dispatch("sid-b", "like", {"postId": str(post.pk)})
                for _ in range(4)
            ),
        )

    async_to_sync(burst)()

    counts = [e.data["count"] for e in server.broadcasts("likeCountChanged")]
    assert counts == [1, 0, 1, 0]


def test_disconnect_while_come_online_in_flight(sessions, server, alice):
    sessions.open("sid-a", user_id=alice.pk)
    session = sessions.get("sid-a")

    async def race():
        pending = asyncio.ensure_future(
            sessions.dispatch(
                "sid-a",
                "comeOnline",
                {"userId": str(alice.pk), "displayName": "Alice"},
            ),
        )
        # Let comeOnline reach its first database await.
        await asyncio.sleep(0)
        await sessions.close("sid-a")
        await pending

    async_to_sync(race)()

    assert session.state is SessionState.CLOSED
    assert session.user_id is None
    assert not PresenceEntry.objects.exists()
    assert server.sent_to("sid-a") == []
    snapshots = server.broadcasts("onlineUsers")
    assert snapshots
    assert snapshots[-1].data == []
