"""
WebSocket consumer for the chat application.

One multiplexed connection per client at ws/chat/. The connection is
authenticated by JWTAuthMiddleware; the client then sends ``authenticate``
to go online and join the rooms of all its chats.

Consumers:
    ChatConsumer: Decodes client events, calls the chat services and relays
        room events from the channel layer

Channel Groups:
    presence: every authenticated connection (user_status events)
    chat_<id>: the live connections of a chat's members

Message Types (from client):
    authenticate, join_chat, leave_chat, send_message, message_status,
    add_reaction, remove_reaction, typing

Message Types (to client):
    {"type": <event>, "data": {...}} for authenticated, joined_chat,
    left_chat, new_message, message_status_update, reaction_added,
    reaction_removed, message_deleted, message_pinned, message_unpinned,
    user_typing, user_status, member_added, member_removed and error

Close Codes:
    4001: No valid JWT on connect
"""

from __future__ import annotations

import logging
from typing import Optional

from channels.db import database_sync_to_async
from channels.generic.websocket import AsyncJsonWebsocketConsumer

from authentication.services import PresenceService
from chat.authorization import MembershipGuard
from chat.constants import SERVER_EVENTS, error_category
from chat.events import (
    AddReaction,
    Authenticate,
    JoinChat,
    LeaveChat,
    MessageStatusUpdate,
    RemoveReaction,
    SendMessage,
    Typing,
    decode_event,
)
from chat.realtime import get_room_router
from chat.services import MessageService, ReactionService
from chat.uploads import validate_upload
from core.exceptions import BaseApplicationError, PermissionDeniedError, ValidationError

logger = logging.getLogger(__name__)


class ChatConsumer(AsyncJsonWebsocketConsumer):
    """
    WebSocket consumer for real-time chat.

    Handles:
        - Session authentication and presence
        - Joining/leaving chat rooms
        - Sending messages, status updates and reactions through the services
        - Typing indicators (relayed, never stored)

    Attributes:
        user: The JWT user from the scope
        authenticated: True once ``authenticate`` succeeded on this connection
    """

    def __init__(self, *args, **kwargs):
        super().__init__(*args, **kwargs)
        self.user = None
        self.authenticated = False
        self.router = get_room_router()

    async def connect(self):
        self.user = self.scope.get("user")

        if not self.user or not self.user.is_authenticated:
            logger.warning("Rejected WebSocket connection without a valid token")
            await self.close(code=4001)
            return

        await self.accept()
        logger.info(f"User {self.user.pk} connected on {self.channel_name}")

    async def disconnect(self, close_code):
        if not self.authenticated:
            return

        last_for_user = await self.router.detach(self.channel_name)
        if last_for_user is not None:
            result = await database_sync_to_async(PresenceService.mark_offline)(last_for_user)
            if not result:
                logger.warning(f"Could not mark user {last_for_user} offline: {result.error}")
        logger.info(f"User {self.user.pk} disconnected ({close_code})")

    # -------------------------------------------------------------------------
    # Inbound
    # -------------------------------------------------------------------------

    async def receive_json(self, content, **kwargs):
        event_type = content.get("type") if isinstance(content, dict) else None

        try:
            event = decode_event(content)
            if not isinstance(event, Authenticate):
                self._require_session()
            await self._dispatch(event)
        except BaseApplicationError as e:
            await self._send_error(e.message, e.error_code, event_type)
        except Exception:
            # The connection stays open; only this event fails
            logger.exception(f"Unhandled error processing {event_type!r} for user {self.user.pk}")
            await self._send_error("Internal error", "INTERNAL_ERROR", event_type)

    async def _dispatch(self, event) -> None:
        if isinstance(event, Authenticate):
            await self._handle_authenticate(event)
        elif isinstance(event, JoinChat):
            self._require_self(event.user_id)
            await self._handle_join_chat(event)
        elif isinstance(event, LeaveChat):
            await self.router.leave_room(event.chat_id, self.channel_name)
            await self._send_event(SERVER_EVENTS.LEFT_CHAT, {"chatId": event.chat_id})
        elif isinstance(event, SendMessage):
            self._require_self(event.sender_id)
            await self._handle_send_message(event)
        elif isinstance(event, MessageStatusUpdate):
            self._require_self(event.user_id)
            await self._run_service(
                "message_status",
                MessageService.update_status,
                message_id=event.message_id,
                status=event.status,
            )
        elif isinstance(event, AddReaction):
            self._require_self(event.user_id)
            await self._run_service(
                "add_reaction",
                ReactionService.add_reaction,
                message_id=event.message_id,
                emoji=event.emoji,
            )
        elif isinstance(event, RemoveReaction):
            self._require_self(event.user_id)
            await self._run_service(
                "remove_reaction",
                ReactionService.remove_reaction,
                message_id=event.message_id,
                emoji=event.emoji,
            )
        elif isinstance(event, Typing):
            self._require_self(event.user_id)
            await self._handle_typing(event)

    async def _handle_authenticate(self, event: Authenticate) -> None:
        if event.user_id != self.user.pk:
            raise PermissionDeniedError(
                "Token does not belong to this user", error_code="ACCESS_DENIED"
            )
        if self.authenticated:
            chat_ids = sorted(self.router.registry.rooms_for_channel(self.channel_name))
            await self._send_event(
                SERVER_EVENTS.AUTHENTICATED, {"userId": self.user.pk, "chatIds": chat_ids}
            )
            return

        result = await database_sync_to_async(PresenceService.mark_online)(self.user.pk)
        if not result:
            await self._send_error(result.error, result.error_code, "authenticate")
            return

        chat_ids = await database_sync_to_async(MembershipGuard.chat_ids_for_user)(self.user.pk)
        await self.router.attach(self.user.pk, self.channel_name, chat_ids)
        self.authenticated = True

        await self._send_event(
            SERVER_EVENTS.AUTHENTICATED, {"userId": self.user.pk, "chatIds": chat_ids}
        )
        logger.info(f"User {self.user.pk} authenticated, joined {len(chat_ids)} rooms")

    async def _handle_join_chat(self, event: JoinChat) -> None:
        is_member = await database_sync_to_async(MembershipGuard.is_member)(
            event.chat_id, self.user.pk
        )
        if not is_member:
            raise PermissionDeniedError(
                "You are not a member of this chat", error_code="NOT_MEMBER"
            )
        await self.router.join_room(event.chat_id, self.channel_name)
        await self._send_event(SERVER_EVENTS.JOINED_CHAT, {"chatId": event.chat_id})

    async def _handle_send_message(self, event: SendMessage) -> None:
        file_data = None
        if event.file_data is not None:
            check = validate_upload(event.file_data.mime_type, event.file_data.file_size)
            if not check.is_valid:
                raise ValidationError(check.error, error_code=check.error_code)
            file_data = event.file_data.as_model_fields()

        await self._run_service(
            "send_message",
            MessageService.send_message,
            chat_id=event.chat_id,
            message_type=event.message_type,
            content=event.content,
            file_data=file_data,
        )

    async def _handle_typing(self, event: Typing) -> None:
        # Only connections that joined the room may signal typing there
        if not self.router.registry.in_room(self.channel_name, event.chat_id):
            raise PermissionDeniedError(
                "Join the chat before sending typing events", error_code="NOT_MEMBER"
            )
        await self.router.emit_to_room(
            event.chat_id,
            SERVER_EVENTS.USER_TYPING,
            {
                "chatId": event.chat_id,
                "userId": self.user.pk,
                "username": event.username or self.user.username,
                "isTyping": event.is_typing,
            },
            exclude_user_id=self.user.pk,
        )

    async def _run_service(self, event_type: str, method, **kwargs) -> None:
        """Call a service method off the event loop; report failures to this connection."""
        result = await database_sync_to_async(method)(user=self.user, **kwargs)
        if not result:
            await self._send_error(result.error, result.error_code, event_type)

    # -------------------------------------------------------------------------
    # Outbound
    # -------------------------------------------------------------------------

    async def room_event(self, event):
        """Relay a room.event from the channel layer to this client."""
        if event.get("exclude_channel") == self.channel_name:
            return
        exclude_user_id = event.get("exclude_user_id")
        if exclude_user_id is not None and exclude_user_id == self.user.pk:
            return
        await self._send_event(event["event"], event["data"])

    async def _send_event(self, event: str, data: dict) -> None:
        await self.send_json({"type": event, "data": data})

    async def _send_error(
        self, message: str, error_code: Optional[str], event_type: Optional[str]
    ) -> None:
        await self._send_event(
            SERVER_EVENTS.ERROR,
            {
                "code": error_code,
                "category": error_category(error_code),
                "message": message,
                "event": event_type,
            },
        )

    # -------------------------------------------------------------------------
    # Checks
    # -------------------------------------------------------------------------

    def _require_session(self) -> None:
        if not self.authenticated:
            raise PermissionDeniedError(
                "Send authenticate first", error_code="NOT_AUTHENTICATED"
            )

    def _require_self(self, user_id: Optional[int]) -> None:
        if user_id is not None and user_id != self.user.pk:
            raise PermissionDeniedError(
                "Payload user does not match the session user",
                error_code="ACCESS_DENIED",
            )
