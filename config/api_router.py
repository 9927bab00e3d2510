from django.conf import settings
from django.urls import path
from rest_framework.routers import DefaultRouter
from rest_framework.routers import SimpleRouter

from social_feed.feed.api.views import PostViewSet
from social_feed.messaging.api.views import ChatHistoryView
from social_feed.users.api.views import LoginView
from social_feed.users.api.views import ProfileImageView
from social_feed.users.api.views import SignupView

router = DefaultRouter() if settings.DEBUG else SimpleRouter()

router.register("posts", PostViewSet, basename="posts")


app_name = "api"
urlpatterns = [
    path("auth/signup/", SignupView.as_view(), name="signup"),
    path("auth/login/", LoginView.as_view(), name="login"),
    path(
        "users/me/profile-image/",
        ProfileImageView.as_view(),
        name="profile-image",
    ),
    path("messages/history/", ChatHistoryView.as_view(), name="chat-history"),
    *router.urls,
]
