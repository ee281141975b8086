"""
Tests for the account endpoints.

- POST /api/v1/auth/register/
- POST /api/v1/auth/login/
- POST /api/v1/auth/logout/
- POST /api/v1/auth/token/refresh/
- GET/PATCH /api/v1/auth/me/
"""

from rest_framework import status
from rest_framework_simplejwt.token_blacklist.models import BlacklistedToken

from authentication.models import PresenceStatus, User

REGISTER_URL = "/api/v1/auth/register/"
LOGIN_URL = "/api/v1/auth/login/"
LOGOUT_URL = "/api/v1/auth/logout/"
REFRESH_URL = "/api/v1/auth/token/refresh/"
ME_URL = "/api/v1/auth/me/"


# =============================================================================
# TestRegisterView
# =============================================================================


class TestRegisterView:
    def test_register_returns_user_and_tokens(self, db, api_client):
        """
        Why it matters: Clients go straight from sign-up to an authenticated
        socket without a separate login call.
        """
        response = api_client.post(
            REGISTER_URL,
            {
                "username": "carol",
                "email": "carol@example.com",
                "password": "s3cret-pass",
                "display_name": "Carol",
            },
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["user"]["username"] == "carol"
        assert response.data["user"]["display_name"] == "Carol"
        assert response.data["access"]
        assert response.data["refresh"]
        assert "password" not in response.data["user"]

    def test_register_rejects_invalid_username(self, db, api_client):
        response = api_client.post(
            REGISTER_URL,
            {"username": "a b", "email": "x@example.com", "password": "s3cret-pass"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST

    def test_register_rejects_duplicate_username(self, db, api_client, user):
        response = api_client.post(
            REGISTER_URL,
            {"username": user.username, "email": "new@example.com", "password": "s3cret-pass"},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "USERNAME_TAKEN"


# =============================================================================
# TestLoginLogout
# =============================================================================


class TestLoginLogout:
    def test_login_returns_tokens_and_marks_online(self, db, api_client, user):
        """
        Why it matters: Presence is shared between REST login and socket
        connect; either should show the user online.
        """
        response = api_client.post(
            LOGIN_URL,
            {"username": user.username, "password": "TestPass123!"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["access"]
        assert response.data["user"]["id"] == user.pk
        user.refresh_from_db()
        assert user.status == PresenceStatus.ONLINE

    def test_login_with_wrong_password_fails(self, db, api_client, user):
        response = api_client.post(
            LOGIN_URL,
            {"username": user.username, "password": "wrong"},
            format="json",
        )

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
        user.refresh_from_db()
        assert user.status == PresenceStatus.OFFLINE

    def test_logout_marks_offline_and_blacklists_refresh(
        self, db, authenticated_client, user, tokens
    ):
        User.objects.filter(pk=user.pk).update(status=PresenceStatus.ONLINE)

        response = authenticated_client.post(
            LOGOUT_URL, {"refresh": tokens["refresh"]}, format="json"
        )

        assert response.status_code == status.HTTP_204_NO_CONTENT
        user.refresh_from_db()
        assert user.status == PresenceStatus.OFFLINE
        assert BlacklistedToken.objects.filter(token__user=user).exists()

    def test_blacklisted_refresh_cannot_be_used(self, db, authenticated_client, api_client, tokens):
        """
        Why it matters: Logging out must end the session on every device
        holding that refresh token.
        """
        authenticated_client.post(LOGOUT_URL, {"refresh": tokens["refresh"]}, format="json")

        response = api_client.post(REFRESH_URL, {"refresh": tokens["refresh"]}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_logout_without_refresh_still_succeeds(self, db, authenticated_client):
        response = authenticated_client.post(LOGOUT_URL, {}, format="json")

        assert response.status_code == status.HTTP_204_NO_CONTENT

    def test_logout_requires_authentication(self, db, api_client):
        response = api_client.post(LOGOUT_URL, {}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED


# =============================================================================
# TestMeView
# =============================================================================


class TestMeView:
    def test_returns_current_user(self, db, authenticated_client, user):
        response = authenticated_client.get(ME_URL)

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == user.pk
        assert response.data["username"] == user.username

    def test_anonymous_is_rejected(self, db, api_client):
        response = api_client.get(ME_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_patch_updates_profile(self, db, authenticated_client, user):
        response = authenticated_client.patch(
            ME_URL,
            {"display_name": "Alice L.", "avatar_url": "https://cdn.example.com/a.png"},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["display_name"] == "Alice L."
        assert response.data["avatar_url"] == "https://cdn.example.com/a.png"
        user.refresh_from_db()
        assert user.display_name == "Alice L."

    def test_patch_leaves_omitted_fields(self, db, authenticated_client, user):
        user.avatar_url = "https://cdn.example.com/old.png"
        user.save(update_fields=["avatar_url"])

        response = authenticated_client.patch(ME_URL, {"display_name": "New"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["avatar_url"] == "https://cdn.example.com/old.png"

    def test_patch_ignores_read_only_fields(self, db, authenticated_client, user):
        response = authenticated_client.patch(
            ME_URL, {"username": "mallory", "status": "online"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        user.refresh_from_db()
        assert user.username != "mallory"
        assert user.status == PresenceStatus.OFFLINE

    def test_patch_rejects_overlong_display_name(self, db, authenticated_client):
        response = authenticated_client.patch(
            ME_URL, {"display_name": "x" * 101}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "display_name" in response.data

    def test_patch_requires_authentication(self, db, api_client):
        response = api_client.patch(ME_URL, {"display_name": "x"}, format="json")

        assert response.status_code == status.HTTP_401_UNAUTHORIZED
