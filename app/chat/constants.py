"""
Constants and configuration for the chat module.

This module centralizes configuration values for:
- Message operations (content limits, delete window, history paging)
- Pins (allowed durations)
- Reactions (emoji limits)
- Chats (names, user search)
- Real-time routing (group names, event names)
- Error codes and the category each belongs to

Deployment-tunable values (upload types, upload size, sweep interval) live
in Django settings instead.

Import example:
    from chat.constants import MESSAGE_CONFIG, PIN_CONFIG, ERROR_CODES
"""

from datetime import timedelta
from typing import Final


# =============================================================================
# Message Configuration
# =============================================================================


class MESSAGE_CONFIG:
    """Configuration for message operations."""

    MAX_CONTENT_LENGTH: Final[int] = 5000  # Characters

    # Sender may delete for everyone up to this many seconds after sending
    # (inclusive). Later deletes only hide the message for the sender.
    DELETE_FOR_EVERYONE_WINDOW: Final[timedelta] = timedelta(seconds=60)

    # Rendered in place of content for messages deleted for everyone
    DELETED_PLACEHOLDER: Final[str] = "This message was deleted"

    # History paging
    DEFAULT_PAGE_SIZE: Final[int] = 50
    MAX_PAGE_SIZE: Final[int] = 100


# =============================================================================
# Pin Configuration
# =============================================================================


class PIN_CONFIG:
    """Configuration for pinned messages."""

    DURATIONS: Final[dict[str, timedelta]] = {
        "24h": timedelta(hours=24),
        "7d": timedelta(days=7),
        "30d": timedelta(days=30),
    }
    DEFAULT_DURATION: Final[str] = "24h"


# =============================================================================
# Reaction Configuration
# =============================================================================


class REACTION_CONFIG:
    """Configuration for message reactions."""

    # Compound emojis (skin tones, ZWJ sequences) span several code points
    MAX_EMOJI_LENGTH: Final[int] = 32


# =============================================================================
# Chat Configuration
# =============================================================================


class CHAT_CONFIG:
    """Configuration for chat management."""

    MAX_NAME_LENGTH: Final[int] = 100
    SEARCH_MIN_QUERY_LENGTH: Final[int] = 2
    SEARCH_MAX_RESULTS: Final[int] = 20


# =============================================================================
# Real-time Configuration
# =============================================================================


class REALTIME_CONFIG:
    """Channel layer group names."""

    # Every authenticated connection joins this group for user_status events
    PRESENCE_GROUP: Final[str] = "presence"

    # Room for chat 42 is "chat_42"
    ROOM_GROUP_PREFIX: Final[str] = "chat_"


class SERVER_EVENTS:
    """Event names pushed to clients."""

    AUTHENTICATED: Final[str] = "authenticated"
    JOINED_CHAT: Final[str] = "joined_chat"
    LEFT_CHAT: Final[str] = "left_chat"
    NEW_MESSAGE: Final[str] = "new_message"
    MESSAGE_STATUS_UPDATE: Final[str] = "message_status_update"
    REACTION_ADDED: Final[str] = "reaction_added"
    REACTION_REMOVED: Final[str] = "reaction_removed"
    MESSAGE_DELETED: Final[str] = "message_deleted"
    MESSAGE_PINNED: Final[str] = "message_pinned"
    MESSAGE_UNPINNED: Final[str] = "message_unpinned"
    USER_TYPING: Final[str] = "user_typing"
    USER_STATUS: Final[str] = "user_status"
    MEMBER_ADDED: Final[str] = "member_added"
    MEMBER_REMOVED: Final[str] = "member_removed"
    ERROR: Final[str] = "error"


# =============================================================================
# Error Codes
# =============================================================================


class ERROR_CATEGORY:
    """Failure categories shared by the REST and real-time adapters."""

    VALIDATION: Final[str] = "validation"
    ACCESS_DENIED: Final[str] = "access_denied"
    NOT_FOUND: Final[str] = "not_found"
    STORE_ERROR: Final[str] = "store_error"
    INTERNAL: Final[str] = "internal"


ERROR_CODES: Final[dict[str, str]] = {
    # Access denied
    "ACCESS_DENIED": ERROR_CATEGORY.ACCESS_DENIED,
    "NOT_MEMBER": ERROR_CATEGORY.ACCESS_DENIED,
    "NOT_ADMIN": ERROR_CATEGORY.ACCESS_DENIED,
    "NOT_SENDER": ERROR_CATEGORY.ACCESS_DENIED,
    "NOT_AUTHENTICATED": ERROR_CATEGORY.ACCESS_DENIED,
    # Not found
    "CHAT_NOT_FOUND": ERROR_CATEGORY.NOT_FOUND,
    "MESSAGE_NOT_FOUND": ERROR_CATEGORY.NOT_FOUND,
    "USER_NOT_FOUND": ERROR_CATEGORY.NOT_FOUND,
    "MEMBER_NOT_FOUND": ERROR_CATEGORY.NOT_FOUND,
    # Validation
    "INVALID_REQUEST": ERROR_CATEGORY.VALIDATION,
    "INVALID_PAYLOAD": ERROR_CATEGORY.VALIDATION,
    "UNKNOWN_EVENT": ERROR_CATEGORY.VALIDATION,
    "INVALID_MESSAGE_TYPE": ERROR_CATEGORY.VALIDATION,
    "EMPTY_CONTENT": ERROR_CATEGORY.VALIDATION,
    "CONTENT_TOO_LONG": ERROR_CATEGORY.VALIDATION,
    "FILE_REQUIRED": ERROR_CATEGORY.VALIDATION,
    "MESSAGE_TYPE_MISMATCH": ERROR_CATEGORY.VALIDATION,
    "INVALID_STATUS": ERROR_CATEGORY.VALIDATION,
    "STATUS_REGRESSION": ERROR_CATEGORY.VALIDATION,
    "INVALID_EMOJI": ERROR_CATEGORY.VALIDATION,
    "ALREADY_DELETED": ERROR_CATEGORY.VALIDATION,
    "MESSAGE_DELETED": ERROR_CATEGORY.VALIDATION,
    "INVALID_DURATION": ERROR_CATEGORY.VALIDATION,
    "INVALID_CHAT_TYPE": ERROR_CATEGORY.VALIDATION,
    "INVALID_PARTICIPANTS": ERROR_CATEGORY.VALIDATION,
    "NAME_TOO_LONG": ERROR_CATEGORY.VALIDATION,
    "NOT_GROUP_CHAT": ERROR_CATEGORY.VALIDATION,
    "ALREADY_MEMBER": ERROR_CATEGORY.VALIDATION,
    "LAST_MEMBER": ERROR_CATEGORY.VALIDATION,
    "QUERY_TOO_SHORT": ERROR_CATEGORY.VALIDATION,
    "UNSUPPORTED_FILE_TYPE": ERROR_CATEGORY.VALIDATION,
    "FILE_TOO_LARGE": ERROR_CATEGORY.VALIDATION,
    # Store
    "STORE_ERROR": ERROR_CATEGORY.STORE_ERROR,
    "INTERNAL_ERROR": ERROR_CATEGORY.INTERNAL,
}


def error_category(error_code: str | None) -> str:
    """Return the category for an error code (unknown codes are validation)."""
    return ERROR_CODES.get(error_code or "", ERROR_CATEGORY.VALIDATION)
