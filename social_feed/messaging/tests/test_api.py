import pytest
from rest_framework import status
from rest_framework.test import APIClient

pytestmark = pytest.mark.django_db


def test_history_between_two_users(gateway, alice, bob):
    gateway.save_private_message(alice.pk, bob.pk, "ping")
    gateway.save_private_message(bob.pk, alice.pk, "pong")
    client = APIClient()
    client.force_authenticate(user=bob)

    r = client.get("/api/v1/messages/history/", {"withUserId": str(alice.pk)})

    assert r.status_code == status.HTTP_200_OK
    history = r.data["history"]
    assert [m["body"] for m in history] == ["ping", "pong"]
    assert history[0]["senderId"] == str(alice.pk)
    assert history[0]["recipientId"] == str(bob.pk)
    assert set(history[0]) == {"messageId", "senderId", "recipientId", "body", "timestamp"}


def test_history_requires_with_user_id(alice):
    client = APIClient()
    client.force_authenticate(user=alice)
    r = client.get("/api/v1/messages/history/")
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert "withUserId" in r.data["errors"]


def test_history_requires_auth(alice):
    r = APIClient().get("/api/v1/messages/history/", {"withUserId": str(alice.pk)})
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
