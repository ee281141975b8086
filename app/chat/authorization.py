"""
Membership guard for chat operations.

Single authority for "may user U act on chat C". Every chat-scoped service
method consults it before touching the store, whichever adapter (REST view
or WebSocket consumer) called the service.

Key Components:
    MembershipGuard: Stateless membership and role checks
    require_chat_member: Decorator for chat-level access
    require_message_access: Decorator for message-level access with injection

The guard fails closed: a database error during a check is logged and
treated as "not a member".

Error Codes:
    NOT_MEMBER: User is not a member of the chat
    MESSAGE_NOT_FOUND: Message does not exist
    INVALID_REQUEST: Missing required parameters (user or ID)

Usage:
    if MembershipGuard.is_member(chat_id, user.id):
        ...

    class ReactionService(BaseService):
        @classmethod
        @require_message_access()
        def add_reaction(cls, *, user, message_id, emoji, _message=None):
            # _message is injected by the decorator
            ...
"""

from __future__ import annotations

import logging
from functools import wraps
from typing import TYPE_CHECKING, Callable, Optional, TypeVar

from django.db import DatabaseError

from core.services import ServiceResult

if TYPE_CHECKING:
    from chat.models import Message


T = TypeVar("T")

logger = logging.getLogger(__name__)


class MembershipGuard:
    """
    Stateless membership checks.

    All methods take plain ids so the socket layer can call them without
    loading a user instance.
    """

    @classmethod
    def is_member(cls, chat_id: int, user_id: int) -> bool:
        """
        Check whether the user belongs to the chat.

        Returns:
            True if a ChatMember row exists, False otherwise or on store error
        """
        from chat.models import ChatMember

        try:
            return ChatMember.objects.filter(chat_id=chat_id, user_id=user_id).exists()
        except DatabaseError:
            logger.error(
                f"Membership check failed for user {user_id} in chat {chat_id}",
                exc_info=True,
            )
            return False

    @classmethod
    def role_of(cls, chat_id: int, user_id: int) -> Optional[str]:
        """
        Get the user's role in the chat.

        Returns:
            "admin" or "member", or None if not a member or on store error
        """
        from chat.models import ChatMember

        try:
            return (
                ChatMember.objects.filter(chat_id=chat_id, user_id=user_id)
                .values_list("role", flat=True)
                .first()
            )
        except DatabaseError:
            logger.error(
                f"Role lookup failed for user {user_id} in chat {chat_id}",
                exc_info=True,
            )
            return None

    @classmethod
    def chat_ids_for_user(cls, user_id: int) -> list[int]:
        """
        Get ids of every chat the user belongs to.

        Used to join the rooms of a freshly authenticated connection.
        Returns an empty list on store error.
        """
        from chat.models import ChatMember

        try:
            return list(
                ChatMember.objects.filter(user_id=user_id).values_list(
                    "chat_id", flat=True
                )
            )
        except DatabaseError:
            logger.error(f"Could not load chats for user {user_id}", exc_info=True)
            return []

    @classmethod
    def get_accessible_message(
        cls, user_id: int, message_id: int
    ) -> tuple[Optional["Message"], Optional[str]]:
        """
        Load a message the user may act on.

        Returns:
            (message, None) when access is granted
            (None, "MESSAGE_NOT_FOUND") when the message does not exist
            (None, "NOT_MEMBER") when the user is not in the message's chat
        """
        from chat.models import Message

        try:
            message = Message.objects.select_related("chat", "sender").get(pk=message_id)
        except Message.DoesNotExist:
            return None, "MESSAGE_NOT_FOUND"
        except DatabaseError:
            logger.error(f"Could not load message {message_id}", exc_info=True)
            return None, "NOT_MEMBER"

        if not cls.is_member(message.chat_id, user_id):
            return None, "NOT_MEMBER"

        return message, None


def require_chat_member(
    chat_id_param: str = "chat_id",
    user_param: str = "user",
) -> Callable:
    """
    Decorator that requires the user to be a member of the chat.

    Reads user and chat id from the keyword arguments of the decorated
    service method.

    Returns:
        ServiceResult.failure with NOT_MEMBER if the check fails
        ServiceResult.failure with INVALID_REQUEST if required params missing

    Example:
        class MessageService(BaseService):
            @classmethod
            @require_chat_member()
            def list_messages(cls, *, user, chat_id, limit=50, offset=0):
                ...
    """

    def decorator(
        func: Callable[..., ServiceResult[T]],
    ) -> Callable[..., ServiceResult[T]]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> ServiceResult[T]:
            user = kwargs.get(user_param)
            chat_id = kwargs.get(chat_id_param)

            if user is None or chat_id is None:
                return ServiceResult.failure(
                    "Missing required parameters",
                    error_code="INVALID_REQUEST",
                )

            if not MembershipGuard.is_member(chat_id, user.pk):
                return ServiceResult.failure(
                    "You are not a member of this chat",
                    error_code="NOT_MEMBER",
                )

            return func(*args, **kwargs)

        return wrapper

    return decorator


def require_message_access(
    message_id_param: str = "message_id",
    user_param: str = "user",
) -> Callable:
    """
    Decorator that requires the user to be a member of the message's chat.

    On success the loaded message is injected as the ``_message`` kwarg.

    Returns:
        ServiceResult.failure with MESSAGE_NOT_FOUND if the message doesn't exist
        ServiceResult.failure with NOT_MEMBER if user not in the chat
        ServiceResult.failure with INVALID_REQUEST if required params missing

    Example:
        class PinService(BaseService):
            @classmethod
            @require_message_access()
            def unpin_message(cls, *, user, message_id, _message=None):
                ...
    """

    def decorator(
        func: Callable[..., ServiceResult[T]],
    ) -> Callable[..., ServiceResult[T]]:
        @wraps(func)
        def wrapper(*args, **kwargs) -> ServiceResult[T]:
            user = kwargs.get(user_param)
            message_id = kwargs.get(message_id_param)

            if user is None or message_id is None:
                return ServiceResult.failure(
                    "Missing required parameters",
                    error_code="INVALID_REQUEST",
                )

            message, error_code = MembershipGuard.get_accessible_message(
                user.pk, message_id
            )
            if message is None:
                if error_code == "MESSAGE_NOT_FOUND":
                    return ServiceResult.failure(
                        "Message not found", error_code="MESSAGE_NOT_FOUND"
                    )
                return ServiceResult.failure(
                    "You are not a member of this chat",
                    error_code="NOT_MEMBER",
                )

            kwargs["_message"] = message
            return func(*args, **kwargs)

        return wrapper

    return decorator
