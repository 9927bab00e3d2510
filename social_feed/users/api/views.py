from __future__ import annotations

from django.contrib.auth.hashers import check_password
from django.db import transaction
from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.tokens import RefreshToken

from social_feed.core.gateway import PersistenceGateway
from social_feed.realtime.events.users import publish_profile_updated

from .serializers import LoginSerializer
from .serializers import ProfileImageSerializer
from .serializers import SignupSerializer
from .serializers import UserSerializer


@extend_schema(tags=["Authentication"], request=SignupSerializer)
class SignupView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []
    gateway = PersistenceGateway()

    def post(self, request):
        serializer = SignupSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        user = self.gateway.create_user(
            email=data["email"],
            password=data["password"],
            display_name=data["displayName"],
            profile_image=data.get("imageRef", ""),
        )
        return Response(
            {
                "success": True,
                "message": "User created successfully.",
                "user": UserSerializer(user).data,
            },
            status=status.HTTP_201_CREATED,
        )


@extend_schema(tags=["Authentication"], request=LoginSerializer)
class LoginView(APIView):
    permission_classes = [AllowAny]
    authentication_classes: list = []
    gateway = PersistenceGateway()

    def post(self, request):
        serializer = LoginSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        user = self.gateway.find_user_by_email(data["email"])
        if (
            user is None
            or not user.is_active
            or not check_password(data["password"], user.password)
        ):
            return Response(
                {"success": False, "message": "Invalid credentials."},
                status=status.HTTP_401_UNAUTHORIZED,
            )

        refresh = RefreshToken.for_user(user)
        return Response(
            {
                "success": True,
                "message": "Login successful.",
                "user": UserSerializer(user).data,
                "access": str(refresh.access_token),
                "refresh": str(refresh),
            },
        )


@extend_schema(tags=["Users"], request=ProfileImageSerializer)
class ProfileImageView(APIView):
    permission_classes = [IsAuthenticated]
    gateway = PersistenceGateway()

    def patch(self, request):
        serializer = ProfileImageSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        user = self.gateway.update_profile_image(
            request.user.pk,
            serializer.validated_data["imageRef"],
        )
        transaction.on_commit(lambda: publish_profile_updated(user))
        return Response(
            {
                "success": True,
                "message": "Profile image updated.",
                "user": UserSerializer(user).data,
            },
        )
