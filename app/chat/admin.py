"""
Django admin configuration for chat models.

Provides admin interfaces for:
- Chat and membership management
- Message moderation (tombstones, reactions, per-user hides)
- Pins
"""

from django.contrib import admin

from chat.models import (
    Chat,
    ChatMember,
    DeletedChat,
    DeletedMessage,
    DirectChatPair,
    Message,
    MessageFile,
    MessageReaction,
    PinnedMessage,
)


class ChatMemberInline(admin.TabularInline):
    """Inline display of members in chat admin."""

    model = ChatMember
    extra = 0
    readonly_fields = ["joined_at"]
    raw_id_fields = ["user"]


@admin.register(Chat)
class ChatAdmin(admin.ModelAdmin):
    list_display = ["id", "chat_type", "name", "created_by", "created_at", "updated_at"]
    list_filter = ["chat_type", "created_at"]
    search_fields = ["name", "id"]
    readonly_fields = ["created_at", "updated_at"]
    raw_id_fields = ["created_by"]
    inlines = [ChatMemberInline]
    ordering = ["-updated_at"]


@admin.register(DirectChatPair)
class DirectChatPairAdmin(admin.ModelAdmin):
    list_display = ["chat", "user_lower", "user_higher"]
    raw_id_fields = ["chat", "user_lower", "user_higher"]


@admin.register(ChatMember)
class ChatMemberAdmin(admin.ModelAdmin):
    list_display = ["id", "chat", "user", "role", "joined_at"]
    list_filter = ["role", "joined_at"]
    search_fields = ["user__username", "chat__name"]
    raw_id_fields = ["chat", "user"]
    ordering = ["-joined_at"]


class MessageReactionInline(admin.TabularInline):
    model = MessageReaction
    extra = 0
    raw_id_fields = ["user"]


@admin.register(Message)
class MessageAdmin(admin.ModelAdmin):
    """Admin interface for Message model."""

    list_display = [
        "id",
        "chat",
        "sender",
        "message_type",
        "content_preview",
        "status",
        "deleted_for_everyone",
        "created_at",
    ]
    list_filter = ["message_type", "status", "deleted_for_everyone", "created_at"]
    search_fields = ["content", "sender__username"]
    readonly_fields = ["created_at", "deleted_at"]
    raw_id_fields = ["chat", "sender", "file", "deleted_by"]
    inlines = [MessageReactionInline]
    ordering = ["-created_at"]

    @admin.display(description="Content Preview")
    def content_preview(self, obj: Message) -> str:
        """Return truncated content for list display."""
        content = obj.content or ""
        max_length = 50
        if len(content) > max_length:
            return content[:max_length] + "..."
        return content


@admin.register(MessageFile)
class MessageFileAdmin(admin.ModelAdmin):
    list_display = ["id", "original_name", "mime_type", "file_size", "uploaded_by", "created_at"]
    search_fields = ["original_name", "stored_name"]
    raw_id_fields = ["uploaded_by"]


@admin.register(PinnedMessage)
class PinnedMessageAdmin(admin.ModelAdmin):
    list_display = ["id", "message", "chat", "pinned_by", "pinned_until", "created_at"]
    list_filter = ["pinned_until"]
    raw_id_fields = ["message", "chat", "pinned_by"]


admin.site.register(DeletedMessage, list_display=["message", "user", "deleted_at"])
admin.site.register(DeletedChat, list_display=["chat", "user", "deleted_at"])
