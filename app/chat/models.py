"""
Chat system models.

Models:
    Chat: Direct (two-person) or group conversation container
    DirectChatPair: Enforces one direct chat per pair of users
    ChatMember: User membership in a chat with a role
    MessageFile: Metadata of an uploaded file attached to a message
    Message: A message within a chat
    MessageReaction: One emoji reaction by one user on one message
    DeletedMessage: Per-user hide marker for a message
    PinnedMessage: Time-bounded pin of a message
    DeletedChat: Per-user hide marker for a whole chat

Design Decisions:
    - Deleting for everyone keeps the row and sets a tombstone; deleting for
      self writes a DeletedMessage marker and leaves the message untouched
    - Pins are never read back after pinned_until; the expiry sweep only
      reclaims the rows
    - Message status is chat-global and only moves forward
"""

from __future__ import annotations

from django.conf import settings
from django.db import models
from django.db.models import F, Q
from django.utils import timezone

from core.models import BaseModel


class ChatType(models.TextChoices):
    """
    Type of chat.

    DIRECT: Exactly two members, both with role MEMBER
    GROUP: One or more members, creator is ADMIN
    """

    DIRECT = "direct", "Direct"
    GROUP = "group", "Group"


class MemberRole(models.TextChoices):
    """Role within a chat. Only admins may add or remove group members."""

    ADMIN = "admin", "Admin"
    MEMBER = "member", "Member"


class MessageType(models.TextChoices):
    TEXT = "text", "Text"
    IMAGE = "image", "Image"
    VIDEO = "video", "Video"
    FILE = "file", "File"


class MessageStatus(models.TextChoices):
    """
    Delivery status of a message.

    Ordered: SENT < DELIVERED < READ. Use MessageStatus.rank() to compare.
    """

    SENT = "sent", "Sent"
    DELIVERED = "delivered", "Delivered"
    READ = "read", "Read"

    @classmethod
    def rank(cls, value: str) -> int:
        return [cls.SENT, cls.DELIVERED, cls.READ].index(value)


class Chat(BaseModel):
    """
    A conversation between members.

    Fields:
        chat_type: direct or group
        name: Group display name (empty for direct chats)
        created_by: User who created the chat

    updated_at (from BaseModel) is bumped on every new message so chat
    lists sort by recent activity.
    """

    chat_type = models.CharField(
        max_length=10,
        choices=ChatType.choices,
        default=ChatType.DIRECT,
        db_index=True,
    )
    name = models.CharField(
        max_length=100,
        blank=True,
        default="",
        help_text="Name for group chats (empty for direct)",
    )
    created_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="created_chats",
    )

    class Meta:
        db_table = "chat_chat"
        ordering = ["-updated_at"]
        indexes = [
            models.Index(fields=["-updated_at"], name="chat_chat_updated_idx"),
        ]

    def __str__(self) -> str:
        if self.chat_type == ChatType.DIRECT:
            return f"Direct({self.pk})"
        return f"Group: {self.name}" if self.name else f"Group({self.pk})"

    @property
    def is_direct(self) -> bool:
        return self.chat_type == ChatType.DIRECT

    @property
    def is_group(self) -> bool:
        return self.chat_type == ChatType.GROUP


class DirectChatPair(models.Model):
    """
    One direct chat per pair of users.

    Stores the pair in canonical order (lower user id first) so that creating
    a direct chat from either side finds the same row.

    Constraints:
        - UniqueConstraint(user_lower, user_higher)
        - CheckConstraint(user_lower_id < user_higher_id)
    """

    chat = models.OneToOneField(
        Chat,
        on_delete=models.CASCADE,
        primary_key=True,
        related_name="direct_pair",
    )
    user_lower = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    user_higher = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )

    class Meta:
        db_table = "chat_direct_pair"
        constraints = [
            models.UniqueConstraint(
                fields=["user_lower", "user_higher"],
                name="unique_direct_chat_pair",
            ),
            models.CheckConstraint(
                condition=Q(user_lower_id__lt=F("user_higher_id")),
                name="direct_pair_lower_less_than_higher",
            ),
        ]

    def __str__(self) -> str:
        return f"DirectPair({self.user_lower_id}, {self.user_higher_id})"

    @staticmethod
    def canonical(user_a_id: int, user_b_id: int) -> tuple[int, int]:
        return (user_a_id, user_b_id) if user_a_id < user_b_id else (user_b_id, user_a_id)


class ChatMember(models.Model):
    """
    Membership of a user in a chat.

    Removing a member deletes the row, so existence of a row is the single
    source of truth for "is a member".
    """

    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name="members")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_memberships",
    )
    role = models.CharField(
        max_length=10,
        choices=MemberRole.choices,
        default=MemberRole.MEMBER,
    )
    joined_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_member"
        ordering = ["joined_at", "id"]
        constraints = [
            models.UniqueConstraint(fields=["chat", "user"], name="unique_chat_member"),
        ]
        indexes = [
            models.Index(fields=["user", "chat"], name="chat_member_user_idx"),
        ]

    def __str__(self) -> str:
        return f"Member: {self.user_id} in {self.chat_id} ({self.role})"

    @property
    def is_admin(self) -> bool:
        return self.role == MemberRole.ADMIN


class MessageFile(models.Model):
    """
    Stored upload attached to a media message.

    upload_path is the storage-relative path returned by the file storage.
    """

    original_name = models.CharField(max_length=255)
    stored_name = models.CharField(max_length=255)
    file_type = models.CharField(max_length=20, blank=True, help_text="File extension")
    mime_type = models.CharField(max_length=100)
    file_size = models.PositiveBigIntegerField()
    upload_path = models.CharField(max_length=500)
    uploaded_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        related_name="chat_files",
    )
    created_at = models.DateTimeField(auto_now_add=True)

    class Meta:
        db_table = "chat_message_file"

    def __str__(self) -> str:
        return self.original_name


class Message(models.Model):
    """
    A message within a chat.

    Fields:
        message_type: text, image, video or file
        content: Text body (required for text, optional caption otherwise)
        file: Attached upload (required for non-text)
        status: sent -> delivered -> read
        deleted_for_everyone / deleted_at / deleted_by: tombstone

    Per-user hides live in DeletedMessage.
    """

    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name="messages")
    sender = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_messages",
    )
    message_type = models.CharField(
        max_length=10,
        choices=MessageType.choices,
        default=MessageType.TEXT,
    )
    content = models.TextField(null=True, blank=True)
    file = models.OneToOneField(
        MessageFile,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="message",
    )
    status = models.CharField(
        max_length=10,
        choices=MessageStatus.choices,
        default=MessageStatus.SENT,
    )
    created_at = models.DateTimeField(default=timezone.now, db_index=True)

    # Tombstone
    deleted_for_everyone = models.BooleanField(default=False)
    deleted_at = models.DateTimeField(null=True, blank=True)
    deleted_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.SET_NULL,
        null=True,
        blank=True,
        related_name="+",
    )

    class Meta:
        db_table = "chat_message"
        ordering = ["created_at", "id"]
        indexes = [
            models.Index(
                fields=["chat", "-created_at", "-id"],
                name="chat_msg_chat_history_idx",
            ),
            models.Index(
                fields=["chat", "sender", "status"],
                name="chat_msg_unread_idx",
            ),
        ]

    def __str__(self) -> str:
        preview = (self.content or self.message_type)[:50]
        deleted = " [deleted]" if self.deleted_for_everyone else ""
        return f"User {self.sender_id}: {preview}{deleted}"


class MessageReaction(models.Model):
    """
    An emoji reaction. A user may hold several distinct emojis on one message
    but only one row per (message, user, emoji).
    """

    message = models.ForeignKey(
        Message, on_delete=models.CASCADE, related_name="reactions"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="chat_reactions",
    )
    emoji = models.CharField(max_length=32)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_message_reaction"
        ordering = ["created_at", "id"]
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user", "emoji"],
                name="unique_message_user_emoji",
            ),
        ]

    def __str__(self) -> str:
        return f"{self.user_id} {self.emoji} on {self.message_id}"


class DeletedMessage(models.Model):
    """Hides a message from one user's history only."""

    message = models.ForeignKey(
        Message, on_delete=models.CASCADE, related_name="hidden_for"
    )
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    deleted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_deleted_message"
        constraints = [
            models.UniqueConstraint(
                fields=["message", "user"],
                name="unique_deleted_message_user",
            ),
        ]

    def __str__(self) -> str:
        return f"Message {self.message_id} hidden for {self.user_id}"


class PinnedMessage(models.Model):
    """
    A time-bounded pin. At most one row per message; re-pinning overwrites
    pinned_by, pinned_until and created_at.

    Active while pinned_until > now.
    """

    message = models.OneToOneField(
        Message, on_delete=models.CASCADE, related_name="pin"
    )
    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name="pins")
    pinned_by = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    pinned_until = models.DateTimeField(db_index=True)
    created_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_pinned_message"
        ordering = ["-created_at"]
        indexes = [
            models.Index(fields=["chat", "pinned_until"], name="chat_pin_active_idx"),
        ]
        constraints = [
            models.CheckConstraint(
                condition=Q(pinned_until__gt=F("created_at")),
                name="pin_until_after_created",
            ),
        ]

    def __str__(self) -> str:
        return f"Pin({self.message_id} until {self.pinned_until:%Y-%m-%d %H:%M})"

    @property
    def is_active(self) -> bool:
        return self.pinned_until > timezone.now()


class DeletedChat(models.Model):
    """Hides a whole chat from one user's chat list."""

    chat = models.ForeignKey(Chat, on_delete=models.CASCADE, related_name="hidden_for")
    user = models.ForeignKey(
        settings.AUTH_USER_MODEL,
        on_delete=models.CASCADE,
        related_name="+",
    )
    deleted_at = models.DateTimeField(default=timezone.now)

    class Meta:
        db_table = "chat_deleted_chat"
        constraints = [
            models.UniqueConstraint(
                fields=["chat", "user"],
                name="unique_deleted_chat_user",
            ),
        ]

    def __str__(self) -> str:
        return f"Chat {self.chat_id} hidden for {self.user_id}"
