"""
Typed client events for the chat WebSocket.

Raw JSON frames are validated with DRF serializers and turned into frozen
dataclasses before the consumer acts on them. Anything that fails
validation raises core.exceptions.ValidationError, which the consumer turns
into an ``error`` event for the sending connection only.

Frame format:
    {"type": "send_message", "chatId": 3, "senderId": 7, "messageType": "text", "content": "hi"}

Usage:
    event = decode_event(frame)
    if isinstance(event, SendMessage):
        ...
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Any, Optional

from rest_framework import serializers

from chat.constants import MESSAGE_CONFIG, REACTION_CONFIG
from core.exceptions import ValidationError


# =============================================================================
# Events
# =============================================================================


@dataclass(frozen=True)
class Authenticate:
    user_id: int


@dataclass(frozen=True)
class JoinChat:
    chat_id: int
    user_id: Optional[int] = None


@dataclass(frozen=True)
class LeaveChat:
    chat_id: int


@dataclass(frozen=True)
class FileData:
    original_name: str
    stored_name: str
    file_type: str
    file_size: int
    mime_type: str
    upload_path: str

    def as_model_fields(self) -> dict[str, Any]:
        return {
            "original_name": self.original_name,
            "stored_name": self.stored_name,
            "file_type": self.file_type,
            "file_size": self.file_size,
            "mime_type": self.mime_type,
            "upload_path": self.upload_path,
        }


@dataclass(frozen=True)
class SendMessage:
    chat_id: int
    sender_id: int
    message_type: str
    content: Optional[str] = None
    file_data: Optional[FileData] = None


@dataclass(frozen=True)
class MessageStatusUpdate:
    message_id: int
    user_id: int
    status: str


@dataclass(frozen=True)
class AddReaction:
    message_id: int
    user_id: int
    emoji: str


@dataclass(frozen=True)
class RemoveReaction:
    message_id: int
    user_id: int
    emoji: str


@dataclass(frozen=True)
class Typing:
    chat_id: int
    user_id: int
    username: str
    is_typing: bool


# =============================================================================
# Payload serializers
# =============================================================================


class AuthenticatePayload(serializers.Serializer):
    userId = serializers.IntegerField(min_value=1)


class JoinChatPayload(serializers.Serializer):
    chatId = serializers.IntegerField(min_value=1)
    userId = serializers.IntegerField(min_value=1, required=False)


class LeaveChatPayload(serializers.Serializer):
    chatId = serializers.IntegerField(min_value=1)


class FileDataPayload(serializers.Serializer):
    originalName = serializers.CharField(max_length=255)
    storedName = serializers.CharField(max_length=255)
    fileType = serializers.CharField(max_length=20, allow_blank=True)
    fileSize = serializers.IntegerField(min_value=0)
    mimeType = serializers.CharField(max_length=100)
    uploadPath = serializers.CharField(max_length=500)


class SendMessagePayload(serializers.Serializer):
    chatId = serializers.IntegerField(min_value=1)
    senderId = serializers.IntegerField(min_value=1)
    messageType = serializers.CharField(default="text")
    content = serializers.CharField(
        required=False,
        allow_blank=True,
        allow_null=True,
        trim_whitespace=False,
        max_length=MESSAGE_CONFIG.MAX_CONTENT_LENGTH,
    )
    fileData = FileDataPayload(required=False, allow_null=True)


class MessageStatusPayload(serializers.Serializer):
    messageId = serializers.IntegerField(min_value=1)
    userId = serializers.IntegerField(min_value=1)
    status = serializers.CharField()


class ReactionPayload(serializers.Serializer):
    messageId = serializers.IntegerField(min_value=1)
    userId = serializers.IntegerField(min_value=1)
    emoji = serializers.CharField(max_length=REACTION_CONFIG.MAX_EMOJI_LENGTH)


class TypingPayload(serializers.Serializer):
    chatId = serializers.IntegerField(min_value=1)
    userId = serializers.IntegerField(min_value=1)
    username = serializers.CharField(required=False, allow_blank=True, default="")
    isTyping = serializers.BooleanField(default=True)


# =============================================================================
# Decoding
# =============================================================================


def _file_data(data: Optional[dict]) -> Optional[FileData]:
    if not data:
        return None
    return FileData(
        original_name=data["originalName"],
        stored_name=data["storedName"],
        file_type=data["fileType"],
        file_size=data["fileSize"],
        mime_type=data["mimeType"],
        upload_path=data["uploadPath"],
    )


DECODERS = {
    "authenticate": (AuthenticatePayload, lambda d: Authenticate(user_id=d["userId"])),
    "join_chat": (
        JoinChatPayload,
        lambda d: JoinChat(chat_id=d["chatId"], user_id=d.get("userId")),
    ),
    "leave_chat": (LeaveChatPayload, lambda d: LeaveChat(chat_id=d["chatId"])),
    "send_message": (
        SendMessagePayload,
        lambda d: SendMessage(
            chat_id=d["chatId"],
            sender_id=d["senderId"],
            message_type=d["messageType"],
            content=d.get("content"),
            file_data=_file_data(d.get("fileData")),
        ),
    ),
    "message_status": (
        MessageStatusPayload,
        lambda d: MessageStatusUpdate(
            message_id=d["messageId"], user_id=d["userId"], status=d["status"]
        ),
    ),
    "add_reaction": (
        ReactionPayload,
        lambda d: AddReaction(message_id=d["messageId"], user_id=d["userId"], emoji=d["emoji"]),
    ),
    "remove_reaction": (
        ReactionPayload,
        lambda d: RemoveReaction(
            message_id=d["messageId"], user_id=d["userId"], emoji=d["emoji"]
        ),
    ),
    "typing": (
        TypingPayload,
        lambda d: Typing(
            chat_id=d["chatId"],
            user_id=d["userId"],
            username=d["username"],
            is_typing=d["isTyping"],
        ),
    ),
}


def decode_event(frame: Any):
    """
    Validate a raw frame and build its typed event.

    Raises:
        ValidationError: INVALID_PAYLOAD for malformed frames or fields,
            UNKNOWN_EVENT for an unrecognised ``type``
    """
    if not isinstance(frame, dict):
        raise ValidationError("Event must be a JSON object", error_code="INVALID_PAYLOAD")

    event_type = frame.get("type")
    if not isinstance(event_type, str) or not event_type:
        raise ValidationError("Event type is required", error_code="INVALID_PAYLOAD")

    decoder = DECODERS.get(event_type)
    if decoder is None:
        raise ValidationError(f"Unknown event type: {event_type}", error_code="UNKNOWN_EVENT")

    serializer_class, build = decoder
    serializer = serializer_class(data=frame)
    if not serializer.is_valid():
        raise ValidationError(
            f"Invalid {event_type} payload",
            error_code="INVALID_PAYLOAD",
            details={"errors": serializer.errors},
        )
    return build(serializer.validated_data)
