from rest_framework import serializers

from social_feed.users.models import User


class UserSerializer(serializers.ModelSerializer[User]):
    userId = serializers.UUIDField(source="id", read_only=True)  # noqa: N815
    displayName = serializers.CharField(source="display_name", read_only=True)  # noqa: N815
    imageRef = serializers.CharField(source="profile_image", read_only=True)  # noqa: N815

    class Meta:
        model = User
        fields = ["userId", "email", "displayName", "imageRef"]
        read_only_fields = ["email"]


class SignupSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)
    displayName = serializers.CharField(max_length=150)  # noqa: N815
    imageRef = serializers.CharField(  # noqa: N815
        max_length=500,
        required=False,
        allow_blank=True,
        default="",
    )


class LoginSerializer(serializers.Serializer):
    email = serializers.EmailField()
    password = serializers.CharField(write_only=True, trim_whitespace=False)


class ProfileImageSerializer(serializers.Serializer):
    imageRef = serializers.CharField(max_length=500, allow_blank=True)  # noqa: N815
