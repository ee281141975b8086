"""
Tests for chat API views.

This module tests the REST endpoints:
- ChatViewSet: list, create, retrieve, hide, members, user search
- MessageViewSet: send, upload, history, delete, status, reactions, pins

Test Organization:
    - Each endpoint group has its own test class
    - Tests follow pattern: test_<method>_<scenario>_<expected_outcome>

Tests focus on observable HTTP behavior: status codes, camelCase response
bodies and the resulting database state. Business rules themselves are
covered in test_services.py.
"""

from datetime import timedelta
from unittest.mock import patch

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.utils import timezone
from rest_framework import status

from authentication.tests.factories import UserFactory
from chat.constants import MESSAGE_CONFIG
from chat.models import ChatMember, DeletedChat, Message, MessageFile, PinnedMessage
from chat.services import MessageService
from chat.tests.factories import MessageFactory, MessageReactionFactory, PinnedMessageFactory
from core.services import ServiceResult


# =============================================================================
# URL Constants
# =============================================================================


CHATS_URL = "/api/v1/chats/"
SEARCH_URL = "/api/v1/chats/search/users/"
MESSAGES_URL = "/api/v1/messages/"
UPLOAD_URL = "/api/v1/messages/upload/"


def chat_url(chat_id):
    return f"{CHATS_URL}{chat_id}/"


def members_url(chat_id, user_id=None):
    url = f"{CHATS_URL}{chat_id}/members/"
    return f"{url}{user_id}/" if user_id is not None else url


def history_url(chat_id):
    return f"{MESSAGES_URL}chat/{chat_id}/"


def message_url(message_id, action=""):
    url = f"{MESSAGES_URL}{message_id}/"
    return f"{url}{action}/" if action else url


# =============================================================================
# TestChatListCreate
# =============================================================================


class TestChatListCreate:
    """
    Tests for GET/POST /api/v1/chats/.

    Verifies:
    - Listing returns members, lastMessage and unreadCount
    - Direct chat creation is idempotent (201 then 200)
    """

    def test_list_returns_user_chats(self, db, alice_client, group_chat, bob):
        MessageFactory(chat=group_chat, sender=bob, content="unread")

        response = alice_client.get(CHATS_URL)

        assert response.status_code == status.HTTP_200_OK
        [chat] = response.data
        assert chat["id"] == group_chat.pk
        assert chat["chatType"] == "group"
        assert chat["name"] == "Weekend plans"
        assert chat["unreadCount"] == 1
        assert chat["lastMessage"]["content"] == "unread"
        assert {m["username"] for m in chat["members"]} == {"alice", "bob"}

    def test_list_requires_authentication(self, db, api_client):
        response = api_client.get(CHATS_URL)

        assert response.status_code == status.HTTP_401_UNAUTHORIZED

    def test_create_group_returns_201(self, db, alice_client, alice, bob, carol):
        response = alice_client.post(
            CHATS_URL,
            {"chatType": "group", "chatName": "Trip", "participants": [bob.pk, carol.pk]},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["name"] == "Trip"
        roles = {m["userId"]: m["role"] for m in response.data["members"]}
        assert roles == {alice.pk: "admin", bob.pk: "member", carol.pk: "member"}

    def test_create_existing_direct_returns_200(self, db, alice_client, bob, direct_chat):
        response = alice_client.post(
            CHATS_URL,
            {"chatType": "direct", "participants": [bob.pk]},
            format="json",
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == direct_chat.pk

    def test_create_with_invalid_participants_returns_400(self, db, alice_client, alice):
        response = alice_client.post(
            CHATS_URL,
            {"chatType": "direct", "participants": [alice.pk]},
            format="json",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_PARTICIPANTS"

    def test_create_with_unknown_user_returns_404(self, db, alice_client):
        response = alice_client.post(
            CHATS_URL,
            {"chatType": "group", "participants": [999999]},
            format="json",
        )

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "USER_NOT_FOUND"

    def test_create_with_missing_participants_returns_400(self, db, alice_client):
        response = alice_client.post(CHATS_URL, {"chatType": "group"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST


# =============================================================================
# TestChatDetail
# =============================================================================


class TestChatDetail:
    def test_retrieve_as_member(self, db, bob_client, group_chat):
        response = bob_client.get(chat_url(group_chat.pk))

        assert response.status_code == status.HTTP_200_OK
        assert response.data["id"] == group_chat.pk
        assert "lastMessage" not in response.data

    def test_retrieve_as_outsider_returns_403(self, db, carol_client, group_chat):
        """
        Why it matters: Chat contents and member lists are private to members.
        """
        response = carol_client.get(chat_url(group_chat.pk))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_MEMBER"

    def test_hide_returns_204(self, db, alice_client, alice, group_chat):
        response = alice_client.delete(chat_url(group_chat.pk))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert DeletedChat.objects.filter(chat=group_chat, user=alice).exists()
        assert alice_client.get(CHATS_URL).data == []


# =============================================================================
# TestChatMembers
# =============================================================================


class TestChatMembers:
    def test_admin_adds_member(self, db, alice_client, group_chat, carol):
        response = alice_client.post(
            members_url(group_chat.pk), {"userId": carol.pk}, format="json"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data == {"chatId": group_chat.pk, "userId": carol.pk, "role": "member"}

    def test_member_cannot_add_returns_403(self, db, bob_client, group_chat, carol):
        response = bob_client.post(
            members_url(group_chat.pk), {"userId": carol.pk}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_ADMIN"

    def test_member_cannot_remove_admin_returns_403(self, db, bob_client, group_chat, alice):
        response = bob_client.delete(members_url(group_chat.pk, alice.pk))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_ADMIN"
        assert ChatMember.objects.filter(chat=group_chat, user=alice).exists()

    def test_admin_removes_member(self, db, alice_client, group_chat, bob):
        response = alice_client.delete(members_url(group_chat.pk, bob.pk))

        assert response.status_code == status.HTTP_204_NO_CONTENT
        assert not ChatMember.objects.filter(chat=group_chat, user=bob).exists()

    def test_remove_non_member_returns_404(self, db, alice_client, group_chat, carol):
        response = alice_client.delete(members_url(group_chat.pk, carol.pk))

        assert response.status_code == status.HTTP_404_NOT_FOUND
        assert response.data["error_code"] == "MEMBER_NOT_FOUND"


# =============================================================================
# TestUserSearch
# =============================================================================


class TestUserSearch:
    def test_search_returns_matches(self, db, alice_client):
        UserFactory(username="daniel", display_name="Dan")

        response = alice_client.get(SEARCH_URL, {"query": "dan"})

        assert response.status_code == status.HTTP_200_OK
        assert [u["username"] for u in response.data] == ["daniel"]
        assert "email" not in response.data[0]

    def test_short_query_returns_400(self, db, alice_client):
        response = alice_client.get(SEARCH_URL, {"query": "d"})

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "QUERY_TOO_SHORT"


# =============================================================================
# TestSendMessage
# =============================================================================


class TestSendMessage:
    def test_send_text_returns_201(self, db, alice_client, alice, group_chat):
        response = alice_client.post(
            MESSAGES_URL,
            {"chatId": group_chat.pk, "messageType": "text", "content": "Hello"},
            format="json",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["content"] == "Hello"
        assert response.data["senderId"] == alice.pk
        assert response.data["status"] == "sent"
        assert Message.objects.filter(chat=group_chat).count() == 1

    def test_send_as_outsider_returns_403(self, db, carol_client, group_chat):
        response = carol_client.post(
            MESSAGES_URL, {"chatId": group_chat.pk, "content": "Hello"}, format="json"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert Message.objects.count() == 0

    def test_send_empty_returns_400(self, db, alice_client, group_chat):
        response = alice_client.post(
            MESSAGES_URL, {"chatId": group_chat.pk, "content": ""}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "EMPTY_CONTENT"


# =============================================================================
# TestUploadMessage
# =============================================================================


class TestUploadMessage:
    """
    Tests for POST /api/v1/messages/upload/.

    Verifies:
    - The message type follows from the file's MIME type
    - Disallowed files and outsiders are rejected before storage
    """

    def test_upload_image_creates_image_message(self, db, alice_client, group_chat):
        upload = SimpleUploadedFile("beach.PNG", b"\x89PNG fake", content_type="image/png")

        response = alice_client.post(
            UPLOAD_URL,
            {"file": upload, "chatId": group_chat.pk, "content": "Look"},
            format="multipart",
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["messageType"] == "image"
        assert response.data["content"] == "Look"
        file = response.data["file"]
        assert file["originalName"] == "beach.PNG"
        assert file["mimeType"] == "image/png"
        assert file["uploadPath"].startswith("chat/images/")
        assert file["storedName"].endswith(".png")

    def test_upload_pdf_creates_file_message(self, db, alice_client, group_chat):
        upload = SimpleUploadedFile("plan.pdf", b"%PDF-1.4", content_type="application/pdf")

        response = alice_client.post(
            UPLOAD_URL, {"file": upload, "chatId": group_chat.pk}, format="multipart"
        )

        assert response.status_code == status.HTTP_201_CREATED
        assert response.data["messageType"] == "file"
        assert response.data["file"]["uploadPath"].startswith("chat/files/")

    def test_upload_disallowed_type_returns_400(self, db, alice_client, group_chat):
        upload = SimpleUploadedFile("run.sh", b"#!/bin/sh", content_type="text/x-shellscript")

        response = alice_client.post(
            UPLOAD_URL, {"file": upload, "chatId": group_chat.pk}, format="multipart"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "UNSUPPORTED_FILE_TYPE"
        assert MessageFile.objects.count() == 0

    def test_upload_as_outsider_stores_nothing(self, db, carol_client, group_chat):
        upload = SimpleUploadedFile("a.png", b"\x89PNG", content_type="image/png")

        response = carol_client.post(
            UPLOAD_URL, {"file": upload, "chatId": group_chat.pk}, format="multipart"
        )

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert MessageFile.objects.count() == 0

    def test_upload_with_caption_over_limit_stores_nothing(self, db, alice_client, group_chat):
        """
        Why it matters: A rejected upload must not leave orphaned files
        behind in storage.
        """
        upload = SimpleUploadedFile("a.png", b"\x89PNG", content_type="image/png")

        response = alice_client.post(
            UPLOAD_URL,
            {
                "file": upload,
                "chatId": group_chat.pk,
                "content": "x" * (MESSAGE_CONFIG.MAX_CONTENT_LENGTH + 1),
            },
            format="multipart",
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert "content" in response.data
        assert MessageFile.objects.count() == 0
        assert Message.objects.count() == 0
        assert not default_storage.exists("chat/images")

    def test_failed_send_discards_stored_upload(self, db, alice_client, group_chat):
        upload = SimpleUploadedFile("a.png", b"\x89PNG", content_type="image/png")
        failure = ServiceResult.failure(
            "A storage error occurred, please try again", error_code="STORE_ERROR"
        )

        with patch.object(MessageService, "send_message", return_value=failure):
            response = alice_client.post(
                UPLOAD_URL, {"file": upload, "chatId": group_chat.pk}, format="multipart"
            )

        assert response.status_code == status.HTTP_500_INTERNAL_SERVER_ERROR
        assert response.data["error_code"] == "STORE_ERROR"
        assert MessageFile.objects.count() == 0
        _, files = default_storage.listdir("chat/images")
        assert files == []


# =============================================================================
# TestMessageHistory
# =============================================================================


class TestMessageHistory:
    def test_history_is_chronological(self, db, bob_client, group_chat, alice):
        start = timezone.now() - timedelta(minutes=10)
        first = MessageFactory(chat=group_chat, sender=alice, created_at=start)
        second = MessageFactory(
            chat=group_chat, sender=alice, created_at=start + timedelta(minutes=1)
        )

        response = bob_client.get(history_url(group_chat.pk))

        assert response.status_code == status.HTTP_200_OK
        assert [m["id"] for m in response.data] == [first.pk, second.pk]

    def test_history_paging(self, db, bob_client, group_chat, alice):
        start = timezone.now() - timedelta(minutes=10)
        messages = [
            MessageFactory(chat=group_chat, sender=alice, created_at=start + timedelta(seconds=i))
            for i in range(4)
        ]

        response = bob_client.get(history_url(group_chat.pk), {"limit": 2, "offset": 2})

        assert [m["id"] for m in response.data] == [messages[0].pk, messages[1].pk]

    def test_tombstone_rendered_as_placeholder(self, db, bob_client, group_chat, alice):
        """
        Why it matters: Deleted-for-everyone content must never reach clients,
        but the gap in the conversation stays visible.
        """
        message = MessageFactory(
            chat=group_chat, sender=alice, content="secret", deleted_for_everyone=True
        )
        MessageReactionFactory(message=message, user=alice)

        response = bob_client.get(history_url(group_chat.pk))

        [data] = response.data
        assert data["content"] == MESSAGE_CONFIG.DELETED_PLACEHOLDER
        assert data["isDeleted"] is True
        assert data["reactions"] == []

    def test_reactions_are_included(self, db, bob_client, group_chat, message, bob):
        MessageReactionFactory(message=message, user=bob, emoji="🔥")

        response = bob_client.get(history_url(group_chat.pk))

        assert response.data[0]["reactions"] == [
            {"userId": bob.pk, "username": "bob", "emoji": "🔥"}
        ]

    def test_history_as_outsider_returns_403(self, db, carol_client, group_chat):
        response = carol_client.get(history_url(group_chat.pk))

        assert response.status_code == status.HTTP_403_FORBIDDEN


# =============================================================================
# TestMessageActions
# =============================================================================


class TestMessageActions:
    def test_delete_own_recent_message(self, db, alice_client, message):
        response = alice_client.delete(message_url(message.pk))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"deletedForEveryone": True}

    def test_delete_others_message_returns_403(self, db, bob_client, message):
        response = bob_client.delete(message_url(message.pk))

        assert response.status_code == status.HTTP_403_FORBIDDEN
        assert response.data["error_code"] == "NOT_SENDER"

    def test_delete_missing_message_returns_404(self, db, alice_client):
        response = alice_client.delete(message_url(999999))

        assert response.status_code == status.HTTP_404_NOT_FOUND

    def test_update_status(self, db, bob_client, message):
        response = bob_client.patch(
            message_url(message.pk, "status"), {"status": "read"}, format="json"
        )

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"messageId": message.pk, "status": "read", "changed": True}

    def test_status_regression_returns_400(self, db, bob_client, message):
        Message.objects.filter(pk=message.pk).update(status="read")

        response = bob_client.patch(
            message_url(message.pk, "status"), {"status": "delivered"}, format="json"
        )

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "STATUS_REGRESSION"

    def test_add_and_remove_reaction(self, db, bob_client, bob, message):
        added = bob_client.post(
            message_url(message.pk, "reactions"), {"emoji": "👍"}, format="json"
        )
        removed = bob_client.delete(
            message_url(message.pk, "reactions"), {"emoji": "👍"}, format="json"
        )

        assert added.status_code == status.HTTP_201_CREATED
        assert added.data["emoji"] == "👍"
        assert removed.status_code == status.HTTP_200_OK
        assert removed.data["removed"] is True

    def test_pin_and_list(self, db, bob_client, bob, group_chat, message):
        response = bob_client.post(message_url(message.pk, "pin"), {"duration": "7d"}, format="json")

        assert response.status_code == status.HTTP_200_OK
        assert response.data["messageId"] == message.pk
        assert response.data["pinnedBy"] == bob.pk

        pins = bob_client.get(f"{history_url(group_chat.pk)}pinned/")
        assert [p["messageId"] for p in pins.data] == [message.pk]

    def test_pin_invalid_duration_returns_400(self, db, bob_client, message):
        response = bob_client.post(message_url(message.pk, "pin"), {"duration": "2w"}, format="json")

        assert response.status_code == status.HTTP_400_BAD_REQUEST
        assert response.data["error_code"] == "INVALID_DURATION"

    def test_unpin(self, db, bob_client, group_chat, message):
        PinnedMessageFactory(message=message)

        response = bob_client.delete(message_url(message.pk, "unpin"))

        assert response.status_code == status.HTTP_200_OK
        assert response.data == {"messageId": message.pk, "chatId": group_chat.pk, "unpinned": True}
        assert not PinnedMessage.objects.filter(message=message).exists()

    def test_outsider_cannot_pin(self, db, carol_client, message):
        response = carol_client.post(message_url(message.pk, "pin"), {}, format="json")

        assert response.status_code == status.HTTP_403_FORBIDDEN
