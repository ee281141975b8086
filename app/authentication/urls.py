"""
URL configuration for the authentication app.

URL structure:
    /api/v1/auth/register/        - Create account
    /api/v1/auth/login/           - JWT login (marks online)
    /api/v1/auth/logout/          - Logout (marks offline)
    /api/v1/auth/token/refresh/   - Refresh access token
    /api/v1/auth/me/              - Current user (GET), profile update (PATCH)
"""

from django.urls import path
from rest_framework_simplejwt.views import TokenRefreshView

from authentication.views import LoginView, LogoutView, MeView, RegisterView

app_name = "authentication"

urlpatterns = [
    path("register/", RegisterView.as_view(), name="register"),
    path("login/", LoginView.as_view(), name="login"),
    path("logout/", LogoutView.as_view(), name="logout"),
    path("token/refresh/", TokenRefreshView.as_view(), name="token-refresh"),
    path("me/", MeView.as_view(), name="me"),
]
