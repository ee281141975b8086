"""
Serializers for the chat API.

Field names are camelCase on the wire for both REST responses and
real-time payloads, so the same serializer output is returned by a view and
pushed to a room.

Serializer Hierarchy:
    Output:
        MessageFileSerializer: Upload metadata with a storage URL
        ReactionSerializer: {userId, username, emoji}
        MessageSerializer: Enriched message, tombstones rendered as placeholder
        PinnedMessageSerializer: Pin joined with message and identities
        ChatMemberSerializer: Member with user info and role
        ChatSerializer: Chat with members, last message and unread count

    Input:
        ChatCreateSerializer, MemberAddSerializer, UserSearchSerializer
        MessageCreateSerializer, MessageUploadSerializer, MessageListSerializer
        MessageStatusSerializer, ReactionInputSerializer, PinInputSerializer

Design Decisions:
    - Tombstoned messages keep their row; content, file and reactions are
      blanked here, never in the store
    - Input serializers only check shape; domain rules (content length,
      membership, durations) are enforced by the services
"""

from __future__ import annotations

from django.core.files.storage import default_storage
from rest_framework import serializers

from chat.constants import MESSAGE_CONFIG, PIN_CONFIG
from chat.models import (
    Chat,
    ChatMember,
    Message,
    MessageFile,
    MessageReaction,
    PinnedMessage,
)


# =============================================================================
# Message Serializers
# =============================================================================


class MessageFileSerializer(serializers.ModelSerializer):
    originalName = serializers.CharField(source="original_name")
    storedName = serializers.CharField(source="stored_name")
    fileType = serializers.CharField(source="file_type")
    fileSize = serializers.IntegerField(source="file_size")
    mimeType = serializers.CharField(source="mime_type")
    uploadPath = serializers.CharField(source="upload_path")
    url = serializers.SerializerMethodField()

    class Meta:
        model = MessageFile
        fields = [
            "id",
            "originalName",
            "storedName",
            "fileType",
            "fileSize",
            "mimeType",
            "uploadPath",
            "url",
        ]
        read_only_fields = fields

    def get_url(self, obj: MessageFile) -> str:
        return default_storage.url(obj.upload_path)


class ReactionSerializer(serializers.ModelSerializer):
    userId = serializers.IntegerField(source="user_id")
    username = serializers.CharField(source="user.username")

    class Meta:
        model = MessageReaction
        fields = ["userId", "username", "emoji"]
        read_only_fields = fields


class MessageSerializer(serializers.ModelSerializer):
    """
    Message enriched with sender identity, file metadata and reactions.

    Expects ``sender`` and ``file`` to be joined and ``reactions`` (with their
    users) to be prefetched. Honors the ``hidden_by_viewer`` annotation set by
    MessageService.list_messages.
    """

    chatId = serializers.IntegerField(source="chat_id")
    senderId = serializers.IntegerField(source="sender_id")
    senderUsername = serializers.CharField(source="sender.username")
    senderDisplayName = serializers.CharField(source="sender.display_name")
    senderAvatar = serializers.CharField(source="sender.avatar_url")
    messageType = serializers.CharField(source="message_type")
    file = MessageFileSerializer(allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at")
    deletedForEveryone = serializers.BooleanField(source="deleted_for_everyone")
    isDeleted = serializers.SerializerMethodField()
    reactions = ReactionSerializer(many=True)

    class Meta:
        model = Message
        fields = [
            "id",
            "chatId",
            "senderId",
            "senderUsername",
            "senderDisplayName",
            "senderAvatar",
            "messageType",
            "content",
            "file",
            "status",
            "createdAt",
            "deletedForEveryone",
            "isDeleted",
            "reactions",
        ]
        read_only_fields = fields

    def get_isDeleted(self, obj: Message) -> bool:
        return obj.deleted_for_everyone or bool(getattr(obj, "hidden_by_viewer", False))

    def to_representation(self, instance: Message) -> dict:
        data = super().to_representation(instance)
        if instance.deleted_for_everyone:
            data["content"] = MESSAGE_CONFIG.DELETED_PLACEHOLDER
            data["file"] = None
            data["reactions"] = []
        return data


class LastMessageSerializer(serializers.ModelSerializer):
    """Chat list preview."""

    senderId = serializers.IntegerField(source="sender_id")
    senderUsername = serializers.CharField(source="sender.username")
    messageType = serializers.CharField(source="message_type")
    createdAt = serializers.DateTimeField(source="created_at")
    content = serializers.SerializerMethodField()

    class Meta:
        model = Message
        fields = ["id", "senderId", "senderUsername", "messageType", "content", "createdAt"]
        read_only_fields = fields

    def get_content(self, obj: Message) -> str | None:
        if obj.deleted_for_everyone:
            return MESSAGE_CONFIG.DELETED_PLACEHOLDER
        return obj.content


# =============================================================================
# Pin Serializers
# =============================================================================


class PinnedMessageSerializer(serializers.ModelSerializer):
    """
    Pin joined with the message content and the sender and pinner identities.

    Expects ``message__sender`` and ``pinned_by`` to be joined.
    """

    messageId = serializers.IntegerField(source="message_id")
    chatId = serializers.IntegerField(source="chat_id")
    pinnedBy = serializers.IntegerField(source="pinned_by_id")
    pinnedByUsername = serializers.CharField(source="pinned_by.username")
    pinnedUntil = serializers.DateTimeField(source="pinned_until")
    createdAt = serializers.DateTimeField(source="created_at")
    messageType = serializers.CharField(source="message.message_type")
    content = serializers.SerializerMethodField()
    senderId = serializers.IntegerField(source="message.sender_id")
    senderUsername = serializers.CharField(source="message.sender.username")

    class Meta:
        model = PinnedMessage
        fields = [
            "id",
            "messageId",
            "chatId",
            "pinnedBy",
            "pinnedByUsername",
            "pinnedUntil",
            "createdAt",
            "messageType",
            "content",
            "senderId",
            "senderUsername",
        ]
        read_only_fields = fields

    def get_content(self, obj: PinnedMessage) -> str | None:
        if obj.message.deleted_for_everyone:
            return MESSAGE_CONFIG.DELETED_PLACEHOLDER
        return obj.message.content


# =============================================================================
# Chat Serializers
# =============================================================================


class ChatMemberSerializer(serializers.ModelSerializer):
    userId = serializers.IntegerField(source="user_id")
    username = serializers.CharField(source="user.username")
    displayName = serializers.CharField(source="user.display_name")
    avatarUrl = serializers.CharField(source="user.avatar_url")
    status = serializers.CharField(source="user.status")
    lastSeen = serializers.DateTimeField(source="user.last_seen", allow_null=True)
    joinedAt = serializers.DateTimeField(source="joined_at")

    class Meta:
        model = ChatMember
        fields = [
            "userId",
            "username",
            "displayName",
            "avatarUrl",
            "status",
            "lastSeen",
            "role",
            "joinedAt",
        ]
        read_only_fields = fields


class ChatSerializer(serializers.ModelSerializer):
    """
    Chat with its members.

    ``last_message`` and ``unread_count`` are attached by
    ChatService.list_chats; they are omitted when absent.
    """

    chatType = serializers.CharField(source="chat_type")
    createdBy = serializers.IntegerField(source="created_by_id", allow_null=True)
    createdAt = serializers.DateTimeField(source="created_at")
    updatedAt = serializers.DateTimeField(source="updated_at")
    members = ChatMemberSerializer(many=True)

    class Meta:
        model = Chat
        fields = [
            "id",
            "chatType",
            "name",
            "createdBy",
            "createdAt",
            "updatedAt",
            "members",
        ]
        read_only_fields = fields

    def to_representation(self, instance: Chat) -> dict:
        data = super().to_representation(instance)
        if hasattr(instance, "last_message"):
            data["lastMessage"] = (
                LastMessageSerializer(instance.last_message).data
                if instance.last_message
                else None
            )
        if hasattr(instance, "unread_count"):
            data["unreadCount"] = instance.unread_count
        return data


# =============================================================================
# Input Serializers
# =============================================================================


class ChatCreateSerializer(serializers.Serializer):
    chatType = serializers.CharField()
    chatName = serializers.CharField(required=False, allow_blank=True, default="")
    participants = serializers.ListField(
        child=serializers.IntegerField(min_value=1),
        allow_empty=False,
        help_text="User ids to add (the creator is added automatically).",
    )


class MemberAddSerializer(serializers.Serializer):
    userId = serializers.IntegerField(min_value=1)


class UserSearchSerializer(serializers.Serializer):
    query = serializers.CharField(allow_blank=True, trim_whitespace=True)


class MessageCreateSerializer(serializers.Serializer):
    chatId = serializers.IntegerField(min_value=1)
    messageType = serializers.CharField(default="text")
    content = serializers.CharField(
        required=False, allow_blank=True, allow_null=True, trim_whitespace=False
    )


class MessageUploadSerializer(serializers.Serializer):
    file = serializers.FileField()
    chatId = serializers.IntegerField(min_value=1)
    content = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        trim_whitespace=False,
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
    )


class MessageListSerializer(serializers.Serializer):
    """Query parameters for message history. Out of range limits are clamped."""

    limit = serializers.IntegerField(required=False, default=MESSAGE_CONFIG.DEFAULT_PAGE_SIZE)
    offset = serializers.IntegerField(required=False, default=0, min_value=0)


class MessageStatusSerializer(serializers.Serializer):
    status = serializers.CharField()


class ReactionInputSerializer(serializers.Serializer):
    emoji = serializers.CharField(trim_whitespace=True)


class PinInputSerializer(serializers.Serializer):
    duration = serializers.CharField(required=False, default=PIN_CONFIG.DEFAULT_DURATION)
