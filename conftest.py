import pytest

from social_feed.core.gateway import PersistenceGateway
from social_feed.realtime.broadcast import BroadcastHub
from social_feed.realtime.messaging import PrivateMessagingRouter
from social_feed.realtime.presence import PresenceRegistry
from social_feed.realtime.session import SessionManager
from tests.factories import create_user
from tests.fakes import RecordingServer


@pytest.fixture
def gateway():
    return PersistenceGateway()


@pytest.fixture
def server():
    return RecordingServer()


@pytest.fixture
def hub(server):
    return BroadcastHub(server)


@pytest.fixture
def registry(gateway, hub):
    return PresenceRegistry(gateway, hub)


@pytest.fixture
def router(gateway, registry, hub):
    return PrivateMessagingRouter(gateway, registry, hub)


@pytest.fixture
def sessions(gateway, hub, registry, router):
    return SessionManager(gateway=gateway, hub=hub, registry=registry, router=router)


@pytest.fixture
def live_hub(monkeypatch, server):
    """Point the process-wide hub at a recording server.

    Used by code that publishes through ``social_feed.realtime.socketio``
    (REST views, ``on_commit`` hooks, the Socket.IO handlers).
    """
    from social_feed.realtime import socketio as realtime_socketio

    monkeypatch.setattr(realtime_socketio.hub, "_server", server)
    return server


@pytest.fixture
def alice(db):
    return create_user("Alice")


@pytest.fixture
def bob(db):
    return create_user("Bob")
