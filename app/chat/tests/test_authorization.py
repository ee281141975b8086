"""
Tests for MembershipGuard and the authorization decorators.

Test Categories:
    1. is_member / role_of - Basic membership checks
    2. chat_ids_for_user - Bulk chat lookup for socket authentication
    3. get_accessible_message - Message load with access check
    4. Fail-closed behavior on store errors
    5. Decorator tests - require_chat_member, require_message_access
"""

from unittest.mock import patch

from django.db import DatabaseError

from chat.authorization import MembershipGuard, require_chat_member, require_message_access
from chat.models import ChatMember, MemberRole
from chat.tests.factories import GroupChatFactory
from core.services import BaseService, ServiceResult


class GuardedService(BaseService):
    @classmethod
    @require_chat_member()
    def chat_action(cls, *, user, chat_id):
        return ServiceResult.success("allowed")

    @classmethod
    @require_message_access()
    def message_action(cls, *, user, message_id, _message=None):
        return ServiceResult.success(_message)


# =============================================================================
# TestMembership
# =============================================================================


class TestMembership:
    """Tests for MembershipGuard.is_member() and role_of()."""

    def test_member_is_member(self, db, group_chat, bob):
        assert MembershipGuard.is_member(group_chat.pk, bob.pk) is True

    def test_outsider_is_not_member(self, db, group_chat, carol):
        assert MembershipGuard.is_member(group_chat.pk, carol.pk) is False

    def test_nonexistent_chat_is_not_member(self, db, alice):
        assert MembershipGuard.is_member(999999, alice.pk) is False

    def test_removed_member_loses_access(self, db, group_chat, bob):
        """
        Why it matters: Removal deletes the row; access must end with it.
        """
        ChatMember.objects.filter(chat=group_chat, user=bob).delete()

        assert MembershipGuard.is_member(group_chat.pk, bob.pk) is False

    def test_role_of(self, db, group_chat, alice, bob, carol):
        assert MembershipGuard.role_of(group_chat.pk, alice.pk) == MemberRole.ADMIN
        assert MembershipGuard.role_of(group_chat.pk, bob.pk) == MemberRole.MEMBER
        assert MembershipGuard.role_of(group_chat.pk, carol.pk) is None


# =============================================================================
# TestChatIdsForUser
# =============================================================================


class TestChatIdsForUser:
    def test_returns_every_chat(self, db, alice, group_chat, direct_chat):
        assert set(MembershipGuard.chat_ids_for_user(alice.pk)) == {
            group_chat.pk,
            direct_chat.pk,
        }

    def test_user_without_chats(self, db, carol):
        assert MembershipGuard.chat_ids_for_user(carol.pk) == []


# =============================================================================
# TestGetAccessibleMessage
# =============================================================================


class TestGetAccessibleMessage:
    def test_member_gets_message(self, db, message, bob):
        loaded, error = MembershipGuard.get_accessible_message(bob.pk, message.pk)

        assert error is None
        assert loaded.pk == message.pk

    def test_outsider_is_denied(self, db, message, carol):
        loaded, error = MembershipGuard.get_accessible_message(carol.pk, message.pk)

        assert loaded is None
        assert error == "NOT_MEMBER"

    def test_missing_message(self, db, bob):
        loaded, error = MembershipGuard.get_accessible_message(bob.pk, 999999)

        assert loaded is None
        assert error == "MESSAGE_NOT_FOUND"


# =============================================================================
# TestFailClosed
# =============================================================================


class TestFailClosed:
    """
    Store errors during a check deny access.

    Why it matters: A flaky database must never turn into an open door.
    """

    def test_is_member_denies_on_store_error(self, db, group_chat, bob):
        with patch.object(ChatMember.objects, "filter", side_effect=DatabaseError("down")):
            assert MembershipGuard.is_member(group_chat.pk, bob.pk) is False

    def test_role_of_is_none_on_store_error(self, db, group_chat, alice):
        with patch.object(ChatMember.objects, "filter", side_effect=DatabaseError("down")):
            assert MembershipGuard.role_of(group_chat.pk, alice.pk) is None

    def test_chat_ids_empty_on_store_error(self, db, alice, group_chat):
        with patch.object(ChatMember.objects, "filter", side_effect=DatabaseError("down")):
            assert MembershipGuard.chat_ids_for_user(alice.pk) == []


# =============================================================================
# TestRequireChatMemberDecorator
# =============================================================================


class TestRequireChatMemberDecorator:
    def test_allows_member(self, db, group_chat, bob):
        result = GuardedService.chat_action(user=bob, chat_id=group_chat.pk)

        assert result.success is True
        assert result.data == "allowed"

    def test_blocks_outsider(self, db, group_chat, carol):
        result = GuardedService.chat_action(user=carol, chat_id=group_chat.pk)

        assert result.success is False
        assert result.error_code == "NOT_MEMBER"

    def test_member_of_other_chat_is_blocked(self, db, group_chat, carol):
        GroupChatFactory(created_by=carol)

        result = GuardedService.chat_action(user=carol, chat_id=group_chat.pk)

        assert result.error_code == "NOT_MEMBER"

    def test_missing_chat_id(self, db, bob):
        result = GuardedService.chat_action(user=bob, chat_id=None)

        assert result.error_code == "INVALID_REQUEST"


# =============================================================================
# TestRequireMessageAccessDecorator
# =============================================================================


class TestRequireMessageAccessDecorator:
    def test_injects_message(self, db, message, bob):
        result = GuardedService.message_action(user=bob, message_id=message.pk)

        assert result.success is True
        assert result.data.pk == message.pk

    def test_blocks_outsider(self, db, message, carol):
        result = GuardedService.message_action(user=carol, message_id=message.pk)

        assert result.error_code == "NOT_MEMBER"

    def test_missing_message(self, db, bob):
        result = GuardedService.message_action(user=bob, message_id=999999)

        assert result.error_code == "MESSAGE_NOT_FOUND"

    def test_missing_user(self, db, message):
        result = GuardedService.message_action(user=None, message_id=message.pk)

        assert result.error_code == "INVALID_REQUEST"
