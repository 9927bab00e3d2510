import pytest
import socketio
from asgiref.sync import async_to_sync

from social_feed.realtime import socketio as realtime_socketio
from tests.factories import access_token_for
from tests.factories import create_post
from tests.factories import socket_environ

pytestmark = pytest.mark.django_db(transaction=True)


@pytest.fixture
def connect(transactional_db, live_hub):
    opened = []

    def _connect(sid, user=None):
        async_to_sync(realtime_socketio.connect)(sid, socket_environ(user))
        opened.append(sid)

    yield _connect
    for sid in opened:
        async_to_sync(realtime_socketio.disconnect)(sid, "client disconnect")


def test_connect_sends_online_snapshot_to_new_client(connect, live_hub, alice):
    connect("sid-a", alice)
    async_to_sync(realtime_socketio.come_online)(
        "sid-a",
        {"userId": str(alice.pk), "displayName": "Alice"},
    )
    live_hub.clear()

    connect("sid-new")

    [snapshot] = live_hub.sent_to("sid-new", "onlineUsers")
    assert [u["displayName"] for u in snapshot.data] == ["Alice"]
    assert live_hub.broadcasts() == []


def test_handlers_route_through_sessions(connect, live_hub, alice, bob):
    post = create_post(alice)
    connect("sid-b", bob)
    async_to_sync(realtime_socketio.come_online)(
        "sid-b",
        {"userId": str(bob.pk), "displayName": "Bob"},
    )
    async_to_sync(realtime_socketio.like)("sid-b", {"postId": str(post.pk)})
    async_to_sync(realtime_socketio.comment)(
        "sid-b",
        {"postId": str(post.pk), "content": "hey"},
    )

    assert live_hub.broadcasts("likeCountChanged")[0].data["count"] == 1
    assert live_hub.broadcasts("feedCommentCreated")


def test_disconnect_takes_user_offline(connect, live_hub, alice):
    connect("sid-a", alice)
    async_to_sync(realtime_socketio.come_online)(
        "sid-a",
        {"userId": str(alice.pk), "displayName": "Alice"},
    )
    live_hub.clear()

    async_to_sync(realtime_socketio.disconnect)("sid-a", "transport close")

    assert "sid-a" not in realtime_socketio.sessions
    assert [e.data for e in live_hub.broadcasts("onlineUsers")] == [[]]


def test_publish_event_uses_shared_hub(live_hub):
    from social_feed.realtime.broadcast import EventKind

    realtime_socketio.publish_event(
        EventKind.PROFILE_UPDATED,
        {"userId": "u", "imageRef": "x"},
    )
    [event] = live_hub.broadcasts("profileUpdated")
    assert event.data == {"userId": "u", "imageRef": "x"}


def test_connect_with_bad_token_is_refused(live_hub):
    with pytest.raises(socketio.exceptions.ConnectionRefusedError):
        async_to_sync(realtime_socketio.connect)(
            "sid-bad",
            {"QUERY_STRING": "token=not-a-jwt"},
        )
    assert "sid-bad" not in realtime_socketio.sessions


def test_connect_binds_authenticated_user(connect, alice):
    connect("sid-a", alice)
    session = realtime_socketio.sessions.get("sid-a")
    assert session.authenticated_user_id == alice.pk


def test_token_accepted_from_auth_object(transactional_db, live_hub, alice):
    async_to_sync(realtime_socketio.connect)(
        "sid-auth",
        {},
        {"token": access_token_for(alice)},
    )
    try:
        session = realtime_socketio.sessions.get("sid-auth")
        assert session.authenticated_user_id == alice.pk
    finally:
        async_to_sync(realtime_socketio.disconnect)("sid-auth")


def test_cannot_come_online_as_someone_else(connect, live_hub, gateway, alice, bob):
    gateway.save_private_message(alice.pk, bob.pk, "secret")
    connect("sid-m", bob)
    async_to_sync(realtime_socketio.come_online)(
        "sid-m",
        {"userId": str(alice.pk), "displayName": "Alice"},
    )
    async_to_sync(realtime_socketio.request_history)(
        "sid-m",
        {"withUserId": str(bob.pk)},
    )
    assert live_hub.sent_to("sid-m", "history") == []
