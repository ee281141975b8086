"""
Test configuration and fixtures for authentication tests.

This module provides:
- User fixtures
- API client helpers for anonymous and JWT-authenticated requests

Usage:
    def test_example(user, authenticated_client):
        response = authenticated_client.get("/api/v1/auth/me/")
        assert response.status_code == 200
"""

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def user(db):
    """Create a basic active user (password "TestPass123!")."""
    return UserFactory(username="alice", display_name="Alice")


@pytest.fixture
def other_user(db):
    return UserFactory(username="bob", display_name="Bob")


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    """Unauthenticated API client."""
    return APIClient()


@pytest.fixture
def tokens(user):
    """JWT pair for the default user."""
    refresh = RefreshToken.for_user(user)
    return {"refresh": str(refresh), "access": str(refresh.access_token)}


@pytest.fixture
def authenticated_client(user, tokens):
    """API client sending the default user's access token."""
    client = APIClient()
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {tokens['access']}")
    return client
