import pytest
from rest_framework import status
from rest_framework.test import APIClient

pytestmark = pytest.mark.django_db


def test_profile_image_requires_auth():
    r = APIClient().patch(
        "/api/v1/users/me/profile-image/",
        {"imageRef": "x.png"},
        format="json",
    )
    assert r.status_code == status.HTTP_401_UNAUTHORIZED
    assert r.data["success"] is False


def test_profile_image_update_broadcasts_after_commit(
    alice,
    live_hub,
    django_capture_on_commit_callbacks,
):
    client = APIClient()
    client.force_authenticate(user=alice)

    with django_capture_on_commit_callbacks(execute=True) as callbacks:
        r = client.patch(
            "/api/v1/users/me/profile-image/",
            {"imageRef": "https://cdn.example.com/alice.png"},
            format="json",
        )

    assert r.status_code == status.HTTP_200_OK, r.content
    assert r.data["user"]["imageRef"] == "https://cdn.example.com/alice.png"
    assert len(callbacks) == 1
    [event] = live_hub.broadcasts("profileUpdated")
    assert event.data == {
        "userId": str(alice.pk),
        "imageRef": "https://cdn.example.com/alice.png",
    }


def test_profile_image_validation_error_does_not_broadcast(
    alice,
    live_hub,
    django_capture_on_commit_callbacks,
):
    client = APIClient()
    client.force_authenticate(user=alice)
    with django_capture_on_commit_callbacks(execute=True):
        r = client.patch("/api/v1/users/me/profile-image/", {}, format="json")
    assert r.status_code == status.HTTP_400_BAD_REQUEST
    assert live_hub.emitted == []
