"""
Account views.

Endpoints:
    POST /api/v1/auth/register/       - Create account, returns JWT pair
    POST /api/v1/auth/login/          - Obtain JWT pair, marks user online
    POST /api/v1/auth/logout/         - Marks user offline, blacklists refresh
    POST /api/v1/auth/token/refresh/  - Refresh access token
    GET  /api/v1/auth/me/             - Current user
    PATCH /api/v1/auth/me/            - Update display name / avatar
"""

import logging

from drf_spectacular.utils import extend_schema
from rest_framework import status
from rest_framework.permissions import AllowAny, IsAuthenticated
from rest_framework.response import Response
from rest_framework.views import APIView
from rest_framework_simplejwt.exceptions import TokenError
from rest_framework_simplejwt.tokens import RefreshToken
from rest_framework_simplejwt.views import TokenObtainPairView

from authentication.serializers import (
    LoginSerializer,
    LogoutSerializer,
    ProfileUpdateSerializer,
    RegisterSerializer,
    UserSerializer,
)
from authentication.services import AccountService, PresenceService

logger = logging.getLogger(__name__)


class RegisterView(APIView):
    """
    Create an account and return a JWT pair.

    URL: /api/v1/auth/register/
    """

    permission_classes = [AllowAny]

    @extend_schema(
        summary="Register",
        tags=["Auth"],
        request=RegisterSerializer,
        responses={201: UserSerializer},
    )
    def post(self, request):
        serializer = RegisterSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AccountService.register(**serializer.validated_data)
        if not result:
            return Response(result.to_response(), status=status.HTTP_400_BAD_REQUEST)

        refresh = RefreshToken.for_user(result.data)
        return Response(
            {
                "user": UserSerializer(result.data).data,
                "refresh": str(refresh),
                "access": str(refresh.access_token),
            },
            status=status.HTTP_201_CREATED,
        )


class LoginView(TokenObtainPairView):
    """
    Username/password login.

    URL: /api/v1/auth/login/

    On success the user is marked online, the same as opening a socket.
    """

    serializer_class = LoginSerializer

    @extend_schema(summary="Log in", tags=["Auth"])
    def post(self, request, *args, **kwargs):
        response = super().post(request, *args, **kwargs)
        if response.status_code == status.HTTP_200_OK:
            PresenceService.mark_online(response.data["user"]["id"])
        return response


class LogoutView(APIView):
    """
    Log out.

    URL: /api/v1/auth/logout/

    Request body:
        {"refresh": "<token>"}   // Optional, blacklisted when given
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        summary="Log out",
        tags=["Auth"],
        request=LogoutSerializer,
        responses={204: None},
    )
    def post(self, request):
        serializer = LogoutSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        refresh = serializer.validated_data.get("refresh")
        if refresh:
            try:
                RefreshToken(refresh).blacklist()
            except TokenError:
                logger.info(f"Ignoring invalid refresh token on logout for user {request.user.id}")

        PresenceService.mark_offline(request.user.id)
        return Response(status=status.HTTP_204_NO_CONTENT)


class MeView(APIView):
    """
    Current user and profile updates.

    URL: /api/v1/auth/me/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(summary="Current user", tags=["Auth"], responses={200: UserSerializer})
    def get(self, request):
        return Response(UserSerializer(request.user).data)

    @extend_schema(
        summary="Update profile",
        tags=["Auth"],
        request=ProfileUpdateSerializer,
        responses={200: UserSerializer},
    )
    def patch(self, request):
        serializer = ProfileUpdateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = AccountService.update_profile(request.user, **serializer.validated_data)
        if not result:
            return Response(result.to_response(), status=status.HTTP_500_INTERNAL_SERVER_ERROR)
        return Response(UserSerializer(result.data).data)
