"""
Test configuration and fixtures for chat tests.

This module provides:
- Users in different roles (admin, member, outsider)
- A group chat and a direct chat between them
- JWT-authenticated API clients per user
- A recorder for room broadcasts

Usage:
    def test_example(group_chat, alice_client):
        response = alice_client.get(f"/api/v1/chats/{group_chat.id}/")
        assert response.status_code == 200
"""

from unittest.mock import patch

import pytest
from rest_framework.test import APIClient
from rest_framework_simplejwt.tokens import RefreshToken

from authentication.tests.factories import UserFactory
from chat.realtime import get_room_router
from chat.tests.factories import DirectChatFactory, GroupChatFactory, MessageFactory


def client_for(user) -> APIClient:
    client = APIClient()
    access = RefreshToken.for_user(user).access_token
    client.credentials(HTTP_AUTHORIZATION=f"Bearer {access}")
    return client


# =============================================================================
# User Fixtures
# =============================================================================


@pytest.fixture
def alice(db):
    """Group admin and direct chat participant."""
    return UserFactory(username="alice", display_name="Alice")


@pytest.fixture
def bob(db):
    """Plain member of both test chats."""
    return UserFactory(username="bob", display_name="Bob")


@pytest.fixture
def carol(db):
    """User outside every test chat."""
    return UserFactory(username="carol", display_name="Carol")


# =============================================================================
# Chat Fixtures
# =============================================================================


@pytest.fixture
def group_chat(db, alice, bob):
    """Group chat created by alice (admin) with bob as member."""
    return GroupChatFactory(created_by=alice, name="Weekend plans", members=[bob])


@pytest.fixture
def direct_chat(db, alice, bob):
    return DirectChatFactory(user1=alice, user2=bob)


@pytest.fixture
def message(db, group_chat, alice):
    """Text message by alice in the group chat."""
    return MessageFactory(chat=group_chat, sender=alice, content="Hello team")


# =============================================================================
# API Client Fixtures
# =============================================================================


@pytest.fixture
def api_client():
    return APIClient()


@pytest.fixture
def alice_client(alice):
    return client_for(alice)


@pytest.fixture
def bob_client(bob):
    return client_for(bob)


@pytest.fixture
def carol_client(carol):
    return client_for(carol)


# =============================================================================
# Real-time Fixtures
# =============================================================================


class RoomEvents:
    """Records what the room router emitted, in emit order."""

    def __init__(self):
        self.calls: list[tuple[int, str, dict]] = []

    async def emit(self, chat_id, event, payload, exclude_channel=None, exclude_user_id=None):
        self.calls.append((chat_id, event, payload))

    def names(self) -> list[str]:
        return [event for _, event, _ in self.calls]

    def of(self, event: str) -> list[dict]:
        return [payload for _, name, payload in self.calls if name == event]


@pytest.fixture
def room_events():
    """
    Capture room emits instead of sending them over the channel layer.

    Service broadcasts run on commit, so pair this with
    django_capture_on_commit_callbacks(execute=True).
    """
    events = RoomEvents()
    with patch.object(get_room_router(), "emit_to_room", new=events.emit):
        yield events
