"""
Chat system service layer.

Business logic for chats, messages, reactions and pins. The REST views and
the WebSocket consumer are thin adapters over these classes: they decode
input, call a service, and render the ServiceResult.

Services:
    ChatService: Chat lifecycle and membership (create, list, members, hide, search)
    MessageService: Send, status, delete, history
    ReactionService: Add and remove emoji reactions
    PinService: Time-bounded pins and the expiry sweep

Design Principles:
    - Services are stateless (use class methods)
    - Membership is checked by chat.authorization before the store is touched
    - Expected failures return ServiceResult.failure()
    - Database errors are logged and returned as STORE_ERROR failures
    - Room broadcasts are scheduled on commit, so clients only hear about
      committed writes, in commit order

Usage:
    from chat.services import MessageService, PinService

    result = MessageService.send_message(
        user=user, chat_id=chat.id, message_type="text", content="Hello!"
    )
    if result.success:
        message = result.data

    result = PinService.pin_message(user=user, message_id=message.id, duration="7d")
"""

from __future__ import annotations

from typing import TYPE_CHECKING, Any, Optional

from django.contrib.auth import get_user_model
from django.db import DatabaseError, IntegrityError
from django.db.models import Count, Exists, OuterRef, Prefetch, Q, Subquery
from django.utils import timezone

from chat.authorization import MembershipGuard, require_chat_member, require_message_access
from chat.constants import (
    CHAT_CONFIG,
    MESSAGE_CONFIG,
    PIN_CONFIG,
    REACTION_CONFIG,
    SERVER_EVENTS,
)
from chat.models import (
    Chat,
    ChatMember,
    ChatType,
    DeletedChat,
    DeletedMessage,
    DirectChatPair,
    MemberRole,
    Message,
    MessageFile,
    MessageReaction,
    MessageStatus,
    MessageType,
    PinnedMessage,
)
from chat.realtime import get_room_router
from chat.serializers import MessageSerializer, PinnedMessageSerializer
from chat.uploads import message_type_for_mime
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from authentication.models import User


def _message_queryset():
    """Messages joined with everything MessageSerializer reads."""
    return Message.objects.select_related("sender", "file").prefetch_related(
        Prefetch("reactions", queryset=MessageReaction.objects.select_related("user"))
    )


def _pin_queryset():
    """Pins joined with everything PinnedMessageSerializer reads."""
    return PinnedMessage.objects.select_related("message__sender", "pinned_by")


# =============================================================================
# Chats
# =============================================================================


class ChatService(BaseService):
    """
    Chat lifecycle and membership.

    Methods:
        create_chat: Create a group chat, or create/reuse a direct chat
        list_chats: User's visible chats with last message and unread count
        get_chat: One chat with its members
        add_member: Admin adds a user to a group
        remove_member: Admin removes a user from a group
        hide_chat: Hide a chat from the user's list
        search_users: Find users by username or display name
    """

    @classmethod
    def create_chat(
        cls,
        *,
        user: User,
        chat_type: str,
        participant_ids: list[int],
        name: str = "",
    ) -> ServiceResult[dict[str, Any]]:
        """
        Create a chat.

        Direct chats are unique per pair of users. Asking for a direct chat
        that already exists returns it (un-hidden for the creator) with
        ``created=False``.

        Returns:
            ServiceResult with {"chat": Chat, "created": bool}

        Error codes:
            INVALID_CHAT_TYPE: chat_type is not direct or group
            INVALID_PARTICIPANTS: No other participants, or not exactly one for direct
            NAME_TOO_LONG: Group name over 100 characters
            USER_NOT_FOUND: A participant id does not match an active user
        """
        if chat_type not in ChatType.values:
            return ServiceResult.failure(
                f"Chat type must be one of: {', '.join(ChatType.values)}",
                error_code="INVALID_CHAT_TYPE",
            )

        other_ids = list(dict.fromkeys(pid for pid in participant_ids if pid != user.pk))
        if not other_ids:
            return ServiceResult.failure(
                "At least one other participant is required",
                error_code="INVALID_PARTICIPANTS",
            )
        if chat_type == ChatType.DIRECT and len(other_ids) != 1:
            return ServiceResult.failure(
                "A direct chat needs exactly one other participant",
                error_code="INVALID_PARTICIPANTS",
            )

        name = (name or "").strip()
        if len(name) > CHAT_CONFIG.MAX_NAME_LENGTH:
            return ServiceResult.failure(
                f"Chat name cannot exceed {CHAT_CONFIG.MAX_NAME_LENGTH} characters",
                error_code="NAME_TOO_LONG",
            )

        try:
            User = get_user_model()
            found = User.objects.filter(pk__in=other_ids, is_active=True).count()
            if found != len(other_ids):
                return ServiceResult.failure(
                    "One or more participants do not exist",
                    error_code="USER_NOT_FOUND",
                )

            if chat_type == ChatType.DIRECT:
                return cls._get_or_create_direct(user, other_ids[0])
            return cls._create_group(user, name, other_ids)
        except DatabaseError as e:
            return cls.handle_store_error(e, "create_chat")

    @classmethod
    def _get_or_create_direct(cls, user: User, other_id: int) -> ServiceResult[dict[str, Any]]:
        lower, higher = DirectChatPair.canonical(user.pk, other_id)

        existing = cls._find_direct(user, lower, higher)
        if existing is not None:
            return ServiceResult.success({"chat": existing, "created": False})

        try:
            with cls.atomic():
                chat = Chat.objects.create(chat_type=ChatType.DIRECT, created_by=user)
                DirectChatPair.objects.create(
                    chat=chat, user_lower_id=lower, user_higher_id=higher
                )
                ChatMember.objects.bulk_create(
                    [
                        ChatMember(chat=chat, user_id=lower, role=MemberRole.MEMBER),
                        ChatMember(chat=chat, user_id=higher, role=MemberRole.MEMBER),
                    ]
                )
                get_room_router().add_users_to_room_on_commit(chat.pk, [lower, higher])
        except IntegrityError:
            # A concurrent request created the pair first
            existing = cls._find_direct(user, lower, higher)
            if existing is None:
                raise
            return ServiceResult.success({"chat": existing, "created": False})

        cls.get_logger().info(
            f"Created direct chat {chat.pk} between users {lower} and {higher}"
        )
        return ServiceResult.success({"chat": chat, "created": True})

    @classmethod
    def _find_direct(cls, user: User, lower: int, higher: int) -> Optional[Chat]:
        pair = (
            DirectChatPair.objects.select_related("chat")
            .filter(user_lower_id=lower, user_higher_id=higher)
            .first()
        )
        if pair is None:
            return None
        DeletedChat.objects.filter(chat_id=pair.chat_id, user=user).delete()
        return pair.chat

    @classmethod
    def _create_group(
        cls, user: User, name: str, other_ids: list[int]
    ) -> ServiceResult[dict[str, Any]]:
        with cls.atomic():
            chat = Chat.objects.create(chat_type=ChatType.GROUP, name=name, created_by=user)
            ChatMember.objects.bulk_create(
                [ChatMember(chat=chat, user=user, role=MemberRole.ADMIN)]
                + [
                    ChatMember(chat=chat, user_id=uid, role=MemberRole.MEMBER)
                    for uid in other_ids
                ]
            )
            get_room_router().add_users_to_room_on_commit(chat.pk, [user.pk, *other_ids])

        cls.get_logger().info(
            f"User {user.pk} created group chat {chat.pk} with {len(other_ids) + 1} members"
        )
        return ServiceResult.success({"chat": chat, "created": True})

    @classmethod
    def list_chats(cls, *, user: User) -> ServiceResult[list[Chat]]:
        """
        List the user's chats, most recently active first.

        Chats the user hid are excluded. Each chat gets ``last_message``
        (Message or None) and ``unread_count`` attributes: messages from other
        members that are not yet read and not deleted for everyone.
        """
        latest = Message.objects.filter(chat=OuterRef("pk")).order_by("-created_at", "-id")
        unread = Count(
            "messages",
            filter=Q(messages__deleted_for_everyone=False)
            & ~Q(messages__sender=user)
            & ~Q(messages__status=MessageStatus.READ),
            distinct=True,
        )

        try:
            chats = list(
                Chat.objects.filter(members__user=user)
                .exclude(hidden_for__user=user)
                .annotate(
                    unread_count=unread,
                    last_message_id=Subquery(latest.values("id")[:1]),
                )
                .prefetch_related(
                    Prefetch("members", queryset=ChatMember.objects.select_related("user"))
                )
                .order_by("-updated_at", "-id")
            )
            last_ids = [c.last_message_id for c in chats if c.last_message_id]
            last_messages = Message.objects.select_related("sender").in_bulk(last_ids)
        except DatabaseError as e:
            return cls.handle_store_error(e, "list_chats")

        for chat in chats:
            chat.last_message = last_messages.get(chat.last_message_id)

        return ServiceResult.success(chats)

    @classmethod
    @require_chat_member()
    def get_chat(cls, *, user: User, chat_id: int) -> ServiceResult[Chat]:
        """Get one chat with its members."""
        try:
            chat = (
                Chat.objects.prefetch_related(
                    Prefetch("members", queryset=ChatMember.objects.select_related("user"))
                )
                .filter(pk=chat_id)
                .first()
            )
        except DatabaseError as e:
            return cls.handle_store_error(e, "get_chat")

        if chat is None:
            return ServiceResult.failure("Chat not found", error_code="CHAT_NOT_FOUND")
        return ServiceResult.success(chat)

    @classmethod
    def _check_group_admin(cls, user: User, chat_id: int) -> Optional[ServiceResult]:
        """Return a failure unless the user is an admin of a group chat."""
        role = MembershipGuard.role_of(chat_id, user.pk)
        if role is None:
            return ServiceResult.failure(
                "You are not a member of this chat", error_code="NOT_MEMBER"
            )
        chat_type = Chat.objects.filter(pk=chat_id).values_list("chat_type", flat=True).first()
        if chat_type != ChatType.GROUP:
            return ServiceResult.failure(
                "Members can only be managed in group chats",
                error_code="NOT_GROUP_CHAT",
            )
        if role != MemberRole.ADMIN:
            return ServiceResult.failure(
                "Only admins can manage members", error_code="NOT_ADMIN"
            )
        return None

    @classmethod
    def add_member(cls, *, user: User, chat_id: int, member_id: int) -> ServiceResult[ChatMember]:
        """
        Add a user to a group chat.

        Error codes:
            NOT_MEMBER, NOT_GROUP_CHAT, NOT_ADMIN: Actor may not manage members
            USER_NOT_FOUND: No active user with that id
            ALREADY_MEMBER: User is already in the chat
        """
        try:
            denied = cls._check_group_admin(user, chat_id)
            if denied is not None:
                return denied

            User = get_user_model()
            new_user = User.objects.filter(pk=member_id, is_active=True).first()
            if new_user is None:
                return ServiceResult.failure("User not found", error_code="USER_NOT_FOUND")

            if ChatMember.objects.filter(chat_id=chat_id, user=new_user).exists():
                return ServiceResult.failure(
                    "User is already a member of this chat",
                    error_code="ALREADY_MEMBER",
                )

            with cls.atomic():
                member = ChatMember.objects.create(
                    chat_id=chat_id, user=new_user, role=MemberRole.MEMBER
                )
                router = get_room_router()
                router.add_users_to_room_on_commit(chat_id, [new_user.pk])
                router.broadcast_to_room(
                    chat_id,
                    SERVER_EVENTS.MEMBER_ADDED,
                    {
                        "chatId": chat_id,
                        "userId": new_user.pk,
                        "username": new_user.username,
                        "addedBy": user.pk,
                    },
                )
        except IntegrityError:
            return ServiceResult.failure(
                "User is already a member of this chat", error_code="ALREADY_MEMBER"
            )
        except DatabaseError as e:
            return cls.handle_store_error(e, "add_member")

        cls.get_logger().info(f"User {user.pk} added user {member_id} to chat {chat_id}")
        return ServiceResult.success(member)

    @classmethod
    def remove_member(cls, *, user: User, chat_id: int, member_id: int) -> ServiceResult[None]:
        """
        Remove a user from a group chat.

        The removed user is told through member_removed before their
        connections leave the room.

        Error codes:
            NOT_MEMBER, NOT_GROUP_CHAT, NOT_ADMIN: Actor may not manage members
            MEMBER_NOT_FOUND: Target is not in the chat
            LAST_MEMBER: Target is the only remaining member
        """
        try:
            denied = cls._check_group_admin(user, chat_id)
            if denied is not None:
                return denied

            with cls.atomic():
                member = (
                    ChatMember.objects.select_for_update()
                    .filter(chat_id=chat_id, user_id=member_id)
                    .first()
                )
                if member is None:
                    return ServiceResult.failure(
                        "User is not a member of this chat",
                        error_code="MEMBER_NOT_FOUND",
                    )
                if ChatMember.objects.filter(chat_id=chat_id).count() <= 1:
                    return ServiceResult.failure(
                        "Cannot remove the last member of a chat",
                        error_code="LAST_MEMBER",
                    )

                member.delete()
                router = get_room_router()
                router.broadcast_to_room(
                    chat_id,
                    SERVER_EVENTS.MEMBER_REMOVED,
                    {"chatId": chat_id, "userId": member_id, "removedBy": user.pk},
                )
                router.remove_user_from_room_on_commit(chat_id, member_id)
        except DatabaseError as e:
            return cls.handle_store_error(e, "remove_member")

        cls.get_logger().info(f"User {user.pk} removed user {member_id} from chat {chat_id}")
        return ServiceResult.success(None)

    @classmethod
    @require_chat_member()
    def hide_chat(cls, *, user: User, chat_id: int) -> ServiceResult[None]:
        """Hide a chat from the user's list. Membership is unchanged."""
        try:
            DeletedChat.objects.bulk_create(
                [DeletedChat(chat_id=chat_id, user=user, deleted_at=timezone.now())],
                update_conflicts=True,
                unique_fields=["chat", "user"],
                update_fields=["deleted_at"],
            )
        except DatabaseError as e:
            return cls.handle_store_error(e, "hide_chat")
        return ServiceResult.success(None)

    @classmethod
    def search_users(cls, *, user: User, query: str) -> ServiceResult[list[User]]:
        """
        Case-insensitive search on username and display name.

        Error codes:
            QUERY_TOO_SHORT: Fewer than 2 characters after trimming
        """
        query = (query or "").strip()
        if len(query) < CHAT_CONFIG.SEARCH_MIN_QUERY_LENGTH:
            return ServiceResult.failure(
                f"Search query must be at least {CHAT_CONFIG.SEARCH_MIN_QUERY_LENGTH} characters",
                error_code="QUERY_TOO_SHORT",
            )

        User = get_user_model()
        try:
            users = list(
                User.objects.filter(
                    Q(username__icontains=query) | Q(display_name__icontains=query),
                    is_active=True,
                )
                .exclude(pk=user.pk)
                .order_by("username")[: CHAT_CONFIG.SEARCH_MAX_RESULTS]
            )
        except DatabaseError as e:
            return cls.handle_store_error(e, "search_users")
        return ServiceResult.success(users)


# =============================================================================
# Messages
# =============================================================================


class MessageService(BaseService):
    """
    Service for message operations.

    Methods:
        send_message: Persist and broadcast a new message
        update_status: Advance sent -> delivered -> read
        delete_message: Tombstone within the window, hide for self after it
        list_messages: Paginated history for one viewer
    """

    @classmethod
    @require_chat_member()
    def send_message(
        cls,
        *,
        user: User,
        chat_id: int,
        message_type: str = MessageType.TEXT,
        content: Optional[str] = None,
        file: Optional[MessageFile] = None,
        file_data: Optional[dict[str, Any]] = None,
    ) -> ServiceResult[Message]:
        """
        Send a message to a chat.

        Media messages carry either an already stored ``file`` (REST upload)
        or ``file_data`` metadata (socket), which is persisted in the same
        transaction as the message.

        Error codes:
            NOT_MEMBER: User is not in the chat
            INVALID_MESSAGE_TYPE: Unknown message type
            EMPTY_CONTENT: Text message without content
            CONTENT_TOO_LONG: Content over 5000 characters
            FILE_REQUIRED: Media message without a file
            MESSAGE_TYPE_MISMATCH: Attached file does not match the message type
        """
        if message_type not in MessageType.values:
            return ServiceResult.failure(
                f"Message type must be one of: {', '.join(MessageType.values)}",
                error_code="INVALID_MESSAGE_TYPE",
            )

        if message_type == MessageType.TEXT and not (content and content.strip()):
            return ServiceResult.failure(
                "Message content cannot be empty", error_code="EMPTY_CONTENT"
            )

        if content and len(content) > MESSAGE_CONFIG.MAX_CONTENT_LENGTH:
            return ServiceResult.failure(
                f"Message content cannot exceed {MESSAGE_CONFIG.MAX_CONTENT_LENGTH} characters",
                error_code="CONTENT_TOO_LONG",
            )

        if message_type != MessageType.TEXT and file is None and not file_data:
            return ServiceResult.failure(
                f"A file is required for {message_type} messages",
                error_code="FILE_REQUIRED",
            )

        attached_mime = file.mime_type if file is not None else (file_data or {}).get("mime_type")
        if attached_mime is not None and message_type_for_mime(attached_mime) != message_type:
            return ServiceResult.failure(
                f"A '{attached_mime}' file cannot be sent as a {message_type} message",
                error_code="MESSAGE_TYPE_MISMATCH",
            )

        try:
            with cls.atomic():
                if file is None and file_data:
                    file = MessageFile.objects.create(uploaded_by=user, **file_data)

                message = Message.objects.create(
                    chat_id=chat_id,
                    sender=user,
                    message_type=message_type,
                    content=content or None,
                    file=file,
                    status=MessageStatus.SENT,
                )
                Chat.objects.filter(pk=chat_id).update(updated_at=message.created_at)

                message = _message_queryset().get(pk=message.pk)
                get_room_router().broadcast_to_room(
                    chat_id, SERVER_EVENTS.NEW_MESSAGE, MessageSerializer(message).data
                )
        except DatabaseError as e:
            return cls.handle_store_error(e, "send_message")

        cls.get_logger().debug(f"User {user.pk} sent message {message.pk} to chat {chat_id}")
        return ServiceResult.success(message)

    @classmethod
    @require_message_access()
    def update_status(
        cls,
        *,
        user: User,
        message_id: int,
        status: str,
        _message: Optional[Message] = None,
    ) -> ServiceResult[dict[str, Any]]:
        """
        Advance a message's status.

        Status only moves forward. Re-applying the current status succeeds
        with ``changed=False`` and no broadcast.

        Returns:
            ServiceResult with {"message_id", "status", "changed"}

        Error codes:
            INVALID_STATUS: Not sent, delivered or read
            STATUS_REGRESSION: Status is already further along
        """
        if status not in MessageStatus.values:
            return ServiceResult.failure(
                f"Status must be one of: {', '.join(MessageStatus.values)}",
                error_code="INVALID_STATUS",
            )

        new_rank = MessageStatus.rank(status)
        behind = [s for s in MessageStatus.values if MessageStatus.rank(s) < new_rank]

        try:
            with cls.atomic():
                # Conditional update so concurrent updates cannot move it backwards
                updated = Message.objects.filter(pk=message_id, status__in=behind).update(
                    status=status
                )
                if not updated:
                    current = Message.objects.values_list("status", flat=True).get(pk=message_id)
                    if MessageStatus.rank(current) > new_rank:
                        return ServiceResult.failure(
                            f"Message is already {current}",
                            error_code="STATUS_REGRESSION",
                        )
                    return ServiceResult.success(
                        {"message_id": message_id, "status": current, "changed": False}
                    )

                get_room_router().broadcast_to_room(
                    _message.chat_id,
                    SERVER_EVENTS.MESSAGE_STATUS_UPDATE,
                    {"messageId": message_id, "status": status, "userId": user.pk},
                )
        except DatabaseError as e:
            return cls.handle_store_error(e, "update_status")

        return ServiceResult.success(
            {"message_id": message_id, "status": status, "changed": True}
        )

    @classmethod
    @require_message_access()
    def delete_message(
        cls,
        *,
        user: User,
        message_id: int,
        _message: Optional[Message] = None,
    ) -> ServiceResult[dict[str, Any]]:
        """
        Delete a message.

        Within 60 seconds of sending (inclusive) the message is tombstoned for
        everyone and its pin is dropped. After that only a per-user hide
        marker is written for the sender.

        Returns:
            ServiceResult with {"message_id", "deleted_for_everyone"}

        Error codes:
            NOT_SENDER: Only the sender can delete a message
            ALREADY_DELETED: Message was already deleted for everyone
        """
        if _message.sender_id != user.pk:
            return ServiceResult.failure(
                "You can only delete your own messages", error_code="NOT_SENDER"
            )
        if _message.deleted_for_everyone:
            return ServiceResult.failure(
                "Message was already deleted", error_code="ALREADY_DELETED"
            )

        now = timezone.now()
        for_everyone = now - _message.created_at <= MESSAGE_CONFIG.DELETE_FOR_EVERYONE_WINDOW

        try:
            with cls.atomic():
                if for_everyone:
                    updated = Message.objects.filter(
                        pk=message_id, deleted_for_everyone=False
                    ).update(deleted_for_everyone=True, deleted_at=now, deleted_by=user)
                    if not updated:
                        return ServiceResult.failure(
                            "Message was already deleted", error_code="ALREADY_DELETED"
                        )
                    PinnedMessage.objects.filter(message_id=message_id).delete()
                    get_room_router().broadcast_to_room(
                        _message.chat_id,
                        SERVER_EVENTS.MESSAGE_DELETED,
                        {
                            "messageId": message_id,
                            "chatId": _message.chat_id,
                            "deletedBy": user.pk,
                        },
                    )
                else:
                    DeletedMessage.objects.bulk_create(
                        [DeletedMessage(message_id=message_id, user=user, deleted_at=now)],
                        update_conflicts=True,
                        unique_fields=["message", "user"],
                        update_fields=["deleted_at"],
                    )
        except DatabaseError as e:
            return cls.handle_store_error(e, "delete_message")

        cls.get_logger().info(
            f"User {user.pk} deleted message {message_id} "
            f"({'for everyone' if for_everyone else 'for self'})"
        )
        return ServiceResult.success(
            {"message_id": message_id, "deleted_for_everyone": for_everyone}
        )

    @classmethod
    @require_chat_member()
    def list_messages(
        cls,
        *,
        user: User,
        chat_id: int,
        limit: int = MESSAGE_CONFIG.DEFAULT_PAGE_SIZE,
        offset: int = 0,
    ) -> ServiceResult[list[Message]]:
        """
        Get one page of history as the viewer sees it.

        Pages are taken newest-first (offset 0 is the latest page) and
        returned oldest-first. Messages the viewer hid are skipped unless they
        were also deleted for everyone. Each message carries a
        ``hidden_by_viewer`` annotation.
        """
        limit = max(1, min(int(limit), MESSAGE_CONFIG.MAX_PAGE_SIZE))
        offset = max(0, int(offset))

        hidden = DeletedMessage.objects.filter(message=OuterRef("pk"), user=user)
        try:
            page = list(
                _message_queryset()
                .filter(chat_id=chat_id)
                .annotate(hidden_by_viewer=Exists(hidden))
                .filter(Q(hidden_by_viewer=False) | Q(deleted_for_everyone=True))
                .order_by("-created_at", "-id")[offset : offset + limit]
            )
        except DatabaseError as e:
            return cls.handle_store_error(e, "list_messages")

        page.reverse()
        return ServiceResult.success(page)


# =============================================================================
# Reactions
# =============================================================================


class ReactionService(BaseService):
    """
    Emoji reactions.

    A user may put several different emojis on one message; the same emoji
    twice is a no-op.
    """

    @classmethod
    def _clean_emoji(cls, emoji: Optional[str]) -> Optional[str]:
        emoji = (emoji or "").strip()
        if not emoji or len(emoji) > REACTION_CONFIG.MAX_EMOJI_LENGTH:
            return None
        return emoji

    @classmethod
    @require_message_access()
    def add_reaction(
        cls,
        *,
        user: User,
        message_id: int,
        emoji: str,
        _message: Optional[Message] = None,
    ) -> ServiceResult[dict[str, Any]]:
        """
        Add a reaction (idempotent upsert).

        Error codes:
            INVALID_EMOJI: Blank or longer than 32 characters
            MESSAGE_DELETED: Message was deleted for everyone
        """
        emoji = cls._clean_emoji(emoji)
        if emoji is None:
            return ServiceResult.failure(
                f"Emoji must be 1-{REACTION_CONFIG.MAX_EMOJI_LENGTH} characters",
                error_code="INVALID_EMOJI",
            )
        if _message.deleted_for_everyone:
            return ServiceResult.failure(
                "Cannot react to a deleted message", error_code="MESSAGE_DELETED"
            )

        payload = {
            "messageId": message_id,
            "userId": user.pk,
            "username": user.username,
            "emoji": emoji,
        }
        try:
            with cls.atomic():
                MessageReaction.objects.bulk_create(
                    [MessageReaction(message=_message, user=user, emoji=emoji)],
                    update_conflicts=True,
                    unique_fields=["message", "user", "emoji"],
                    update_fields=["created_at"],
                )
                get_room_router().broadcast_to_room(
                    _message.chat_id, SERVER_EVENTS.REACTION_ADDED, payload
                )
        except DatabaseError as e:
            return cls.handle_store_error(e, "add_reaction")

        return ServiceResult.success(payload)

    @classmethod
    @require_message_access()
    def remove_reaction(
        cls,
        *,
        user: User,
        message_id: int,
        emoji: str,
        _message: Optional[Message] = None,
    ) -> ServiceResult[dict[str, Any]]:
        """
        Remove a reaction. Removing one that does not exist succeeds.

        Returns:
            ServiceResult with {"messageId", "userId", "emoji", "removed"}
        """
        emoji = cls._clean_emoji(emoji)
        if emoji is None:
            return ServiceResult.failure(
                f"Emoji must be 1-{REACTION_CONFIG.MAX_EMOJI_LENGTH} characters",
                error_code="INVALID_EMOJI",
            )

        payload = {"messageId": message_id, "userId": user.pk, "emoji": emoji}
        try:
            with cls.atomic():
                deleted, _ = MessageReaction.objects.filter(
                    message=_message, user=user, emoji=emoji
                ).delete()
                if deleted:
                    get_room_router().broadcast_to_room(
                        _message.chat_id, SERVER_EVENTS.REACTION_REMOVED, payload
                    )
        except DatabaseError as e:
            return cls.handle_store_error(e, "remove_reaction")

        return ServiceResult.success({**payload, "removed": bool(deleted)})


# =============================================================================
# Pins
# =============================================================================


class PinService(BaseService):
    """
    Time-bounded pins.

    A pin is active while pinned_until is in the future. Reads filter on
    that, so expired rows are invisible whether or not the sweep has run.
    """

    @classmethod
    @require_message_access()
    def pin_message(
        cls,
        *,
        user: User,
        message_id: int,
        duration: Optional[str] = None,
        _message: Optional[Message] = None,
    ) -> ServiceResult[PinnedMessage]:
        """
        Pin a message for 24h, 7d or 30d (default 24h).

        Re-pinning replaces pinned_by, pinned_until and created_at.

        Error codes:
            INVALID_DURATION: Not one of the allowed durations
            MESSAGE_DELETED: Message was deleted for everyone
        """
        duration = duration or PIN_CONFIG.DEFAULT_DURATION
        if duration not in PIN_CONFIG.DURATIONS:
            return ServiceResult.failure(
                f"Duration must be one of: {', '.join(PIN_CONFIG.DURATIONS)}",
                error_code="INVALID_DURATION",
            )
        if _message.deleted_for_everyone:
            return ServiceResult.failure(
                "Cannot pin a deleted message", error_code="MESSAGE_DELETED"
            )

        now = timezone.now()
        try:
            with cls.atomic():
                PinnedMessage.objects.bulk_create(
                    [
                        PinnedMessage(
                            message=_message,
                            chat_id=_message.chat_id,
                            pinned_by=user,
                            pinned_until=now + PIN_CONFIG.DURATIONS[duration],
                            created_at=now,
                        )
                    ],
                    update_conflicts=True,
                    unique_fields=["message"],
                    update_fields=["pinned_by", "pinned_until", "created_at"],
                )
                pin = _pin_queryset().get(message_id=message_id)
                get_room_router().broadcast_to_room(
                    _message.chat_id,
                    SERVER_EVENTS.MESSAGE_PINNED,
                    PinnedMessageSerializer(pin).data,
                )
        except DatabaseError as e:
            return cls.handle_store_error(e, "pin_message")

        cls.get_logger().info(
            f"User {user.pk} pinned message {message_id} for {duration}"
        )
        return ServiceResult.success(pin)

    @classmethod
    @require_message_access()
    def unpin_message(
        cls,
        *,
        user: User,
        message_id: int,
        _message: Optional[Message] = None,
    ) -> ServiceResult[dict[str, Any]]:
        """
        Remove a message's pin. Unpinning an unpinned message succeeds.

        Returns:
            ServiceResult with {"messageId", "chatId", "unpinned"}
        """
        payload = {"messageId": message_id, "chatId": _message.chat_id}
        try:
            with cls.atomic():
                deleted, _ = PinnedMessage.objects.filter(message_id=message_id).delete()
                if deleted:
                    get_room_router().broadcast_to_room(
                        _message.chat_id, SERVER_EVENTS.MESSAGE_UNPINNED, payload
                    )
        except DatabaseError as e:
            return cls.handle_store_error(e, "unpin_message")

        return ServiceResult.success({**payload, "unpinned": bool(deleted)})

    @classmethod
    @require_chat_member()
    def list_active_pins(cls, *, user: User, chat_id: int) -> ServiceResult[list[PinnedMessage]]:
        """Active pins of a chat, newest pin first."""
        try:
            pins = list(
                _pin_queryset()
                .filter(chat_id=chat_id, pinned_until__gt=timezone.now())
                .order_by("-created_at", "-id")
            )
        except DatabaseError as e:
            return cls.handle_store_error(e, "list_active_pins")
        return ServiceResult.success(pins)

    @classmethod
    def remove_expired_pins(cls) -> ServiceResult[int]:
        """
        Delete every pin whose pinned_until has passed.

        Returns:
            ServiceResult with the number of pins deleted
        """
        try:
            deleted, _ = PinnedMessage.objects.filter(
                pinned_until__lt=timezone.now()
            ).delete()
        except DatabaseError as e:
            return cls.handle_store_error(e, "remove_expired_pins")
        return ServiceResult.success(deleted)
