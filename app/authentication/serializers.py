"""
Serializers for authentication endpoints.

- UserSerializer: public user representation (also embedded in chat payloads)
- RegisterSerializer: account creation input
- LoginSerializer: simplejwt token pair plus the user
- LogoutSerializer: optional refresh token to blacklist

Security:
    - Password fields are write-only
"""

from django.contrib.auth.password_validation import validate_password
from rest_framework import serializers
from rest_framework_simplejwt.serializers import TokenObtainPairSerializer

from authentication.models import User, validate_username_format


class UserSerializer(serializers.ModelSerializer):
    """Read-only user representation."""

    class Meta:
        model = User
        fields = [
            "id",
            "username",
            "email",
            "display_name",
            "avatar_url",
            "status",
            "last_seen",
        ]
        read_only_fields = fields


class UserSummarySerializer(serializers.ModelSerializer):
    """Compact user representation used in search results and member lists."""

    class Meta:
        model = User
        fields = ["id", "username", "display_name", "avatar_url", "status", "last_seen"]
        read_only_fields = fields


class RegisterSerializer(serializers.Serializer):
    """Input for POST /api/v1/auth/register/."""

    username = serializers.CharField(
        max_length=30, validators=[validate_username_format]
    )
    email = serializers.EmailField()
    password = serializers.CharField(
        write_only=True,
        min_length=8,
        style={"input_type": "password"},
        help_text="Password must be at least 8 characters.",
    )
    display_name = serializers.CharField(
        max_length=100, required=False, allow_blank=True, default=""
    )

    def validate_email(self, value):
        return value.lower().strip()

    def validate(self, attrs):
        candidate = User(username=attrs["username"], email=attrs["email"])
        validate_password(attrs["password"], user=candidate)
        return attrs


class LoginSerializer(TokenObtainPairSerializer):
    """
    Username/password login returning a JWT pair and the user.

    Response:
        {"refresh": "...", "access": "...", "user": {...}}
    """

    def validate(self, attrs):
        data = super().validate(attrs)
        data["user"] = UserSerializer(self.user).data
        return data


class LogoutSerializer(serializers.Serializer):
    refresh = serializers.CharField(required=False)


class ProfileUpdateSerializer(serializers.Serializer):
    """Input for PATCH /api/v1/auth/me/."""

    display_name = serializers.CharField(max_length=100, required=False, allow_blank=True)
    avatar_url = serializers.CharField(max_length=500, required=False, allow_blank=True)
