"""
Presence and room routing for real-time delivery.

Components:
    ConnectionRegistry: Which live connection belongs to which user, and
        which rooms each connection has joined
    RoomRouter: Joins/leaves channel layer groups and fans events out

A room is the channel layer group "chat_<id>" holding the live connections
of that chat's members. Every authenticated connection also joins the
"presence" group, which carries user_status events.

Lifecycle:
    The registry and router are created once per process in
    ChatConfig.ready(). Connections are registered on ``authenticate`` and
    removed on disconnect. Nothing else holds connection state.

Delivery is fire and forget. A member who is not connected misses the
event and catches up through the paginated history endpoint.

Usage:
    router = get_room_router()

    # From async code (the consumer)
    await router.emit_to_room(chat_id, "user_typing", payload, exclude_user_id=user_id)

    # From service code, after the current transaction commits
    router.broadcast_to_room(chat_id, "new_message", payload)
"""

from __future__ import annotations

import logging
from collections import defaultdict
from typing import Any, Optional

from asgiref.sync import async_to_sync
from channels.layers import get_channel_layer
from django.apps import apps
from django.db import transaction

from chat.constants import REALTIME_CONFIG

logger = logging.getLogger(__name__)

# Channel layer message type, dispatched to ChatConsumer.room_event
ROOM_EVENT_TYPE = "room.event"


def room_group_name(chat_id: int) -> str:
    """Channel layer group name for a chat room."""
    return f"{REALTIME_CONFIG.ROOM_GROUP_PREFIX}{chat_id}"


class ConnectionRegistry:
    """
    Process-wide map of live connections.

    A user may hold several connections (tabs, devices). The user counts as
    online until the last one is unregistered.

    All mutation happens on the event loop thread, so no locking is needed.
    """

    def __init__(self):
        self._user_channels: dict[int, set[str]] = defaultdict(set)
        self._channel_user: dict[str, int] = {}
        self._channel_rooms: dict[str, set[int]] = defaultdict(set)

    def register(self, user_id: int, channel_name: str) -> bool:
        """
        Record a connection for a user.

        Returns:
            True if this is the user's first live connection
        """
        first = not self._user_channels.get(user_id)
        self._user_channels[user_id].add(channel_name)
        self._channel_user[channel_name] = user_id
        return first

    def unregister(self, channel_name: str) -> tuple[Optional[int], set[int], bool]:
        """
        Forget a connection.

        Returns:
            (user_id, rooms the connection had joined, whether it was the
            user's last connection). user_id is None for unknown channels.
        """
        user_id = self._channel_user.pop(channel_name, None)
        rooms = self._channel_rooms.pop(channel_name, set())
        if user_id is None:
            return None, rooms, False

        channels = self._user_channels.get(user_id, set())
        channels.discard(channel_name)
        last = not channels
        if last:
            self._user_channels.pop(user_id, None)
        return user_id, rooms, last

    def add_to_room(self, channel_name: str, chat_id: int) -> None:
        self._channel_rooms[channel_name].add(chat_id)

    def remove_from_room(self, channel_name: str, chat_id: int) -> None:
        rooms = self._channel_rooms.get(channel_name)
        if rooms is not None:
            rooms.discard(chat_id)

    def in_room(self, channel_name: str, chat_id: int) -> bool:
        return chat_id in self._channel_rooms.get(channel_name, ())

    def rooms_for_channel(self, channel_name: str) -> set[int]:
        return set(self._channel_rooms.get(channel_name, ()))

    def channels_for_user(self, user_id: int) -> set[str]:
        return set(self._user_channels.get(user_id, ()))

    def user_for_channel(self, channel_name: str) -> Optional[int]:
        return self._channel_user.get(channel_name)

    def is_online(self, user_id: int) -> bool:
        return bool(self._user_channels.get(user_id))

    def clear(self) -> None:
        self._user_channels.clear()
        self._channel_user.clear()
        self._channel_rooms.clear()


class RoomRouter:
    """
    Routes events to rooms over the channel layer.

    Async methods are for the consumer. The ``broadcast_*`` and
    ``*_on_commit`` methods are for synchronous service code: they defer the
    send until the surrounding transaction commits, so events go out in the
    order the writes completed and never for rolled-back writes.
    """

    def __init__(self, registry: ConnectionRegistry):
        self.registry = registry

    @property
    def channel_layer(self):
        return get_channel_layer()

    # -------------------------------------------------------------------------
    # Connection lifecycle
    # -------------------------------------------------------------------------

    async def attach(self, user_id: int, channel_name: str, chat_ids: list[int]) -> bool:
        """
        Register an authenticated connection and join its rooms.

        Returns:
            True if this is the user's first live connection
        """
        first = self.registry.register(user_id, channel_name)
        await self.channel_layer.group_add(REALTIME_CONFIG.PRESENCE_GROUP, channel_name)
        for chat_id in chat_ids:
            await self.join_room(chat_id, channel_name)
        return first

    async def detach(self, channel_name: str) -> Optional[int]:
        """
        Leave every group and forget the connection.

        Returns:
            The user id if that was the user's last connection, else None
        """
        user_id, rooms, last = self.registry.unregister(channel_name)
        for chat_id in rooms:
            await self.channel_layer.group_discard(room_group_name(chat_id), channel_name)
        await self.channel_layer.group_discard(REALTIME_CONFIG.PRESENCE_GROUP, channel_name)
        return user_id if last else None

    async def join_room(self, chat_id: int, channel_name: str) -> None:
        await self.channel_layer.group_add(room_group_name(chat_id), channel_name)
        self.registry.add_to_room(channel_name, chat_id)

    async def leave_room(self, chat_id: int, channel_name: str) -> None:
        await self.channel_layer.group_discard(room_group_name(chat_id), channel_name)
        self.registry.remove_from_room(channel_name, chat_id)

    async def add_user_to_room(self, chat_id: int, user_id: int) -> None:
        """Join every live connection of the user to the room."""
        for channel_name in self.registry.channels_for_user(user_id):
            await self.join_room(chat_id, channel_name)

    async def remove_user_from_room(self, chat_id: int, user_id: int) -> None:
        """Remove every live connection of the user from the room."""
        for channel_name in self.registry.channels_for_user(user_id):
            await self.leave_room(chat_id, channel_name)

    # -------------------------------------------------------------------------
    # Fan-out
    # -------------------------------------------------------------------------

    async def emit_to_room(
        self,
        chat_id: int,
        event: str,
        payload: dict[str, Any],
        exclude_channel: Optional[str] = None,
        exclude_user_id: Optional[int] = None,
    ) -> None:
        """Deliver an event to every connection in the chat's room."""
        await self._group_send(
            room_group_name(chat_id), event, payload, exclude_channel, exclude_user_id
        )

    async def emit_to_presence(
        self,
        event: str,
        payload: dict[str, Any],
        exclude_user_id: Optional[int] = None,
    ) -> None:
        """Deliver an event to every authenticated connection."""
        await self._group_send(
            REALTIME_CONFIG.PRESENCE_GROUP, event, payload, None, exclude_user_id
        )

    async def _group_send(
        self,
        group: str,
        event: str,
        payload: dict[str, Any],
        exclude_channel: Optional[str],
        exclude_user_id: Optional[int],
    ) -> None:
        try:
            await self.channel_layer.group_send(
                group,
                {
                    "type": ROOM_EVENT_TYPE,
                    "event": event,
                    "data": payload,
                    "exclude_channel": exclude_channel,
                    "exclude_user_id": exclude_user_id,
                },
            )
        except Exception:
            logger.exception(f"Failed to deliver {event} to group {group}")

    # -------------------------------------------------------------------------
    # Synchronous entry points for service code
    # -------------------------------------------------------------------------

    def broadcast_to_room(self, chat_id: int, event: str, payload: dict[str, Any]) -> None:
        """Emit to a room once the current transaction commits."""
        transaction.on_commit(
            lambda: async_to_sync(self.emit_to_room)(chat_id, event, payload)
        )

    def broadcast_presence(
        self,
        event: str,
        payload: dict[str, Any],
        exclude_user_id: Optional[int] = None,
    ) -> None:
        """Emit to every authenticated connection once the transaction commits."""
        transaction.on_commit(
            lambda: async_to_sync(self.emit_to_presence)(
                event, payload, exclude_user_id=exclude_user_id
            )
        )

    def add_users_to_room_on_commit(self, chat_id: int, user_ids: list[int]) -> None:
        """Join the live connections of newly added members to the room."""

        async def _join():
            for user_id in user_ids:
                await self.add_user_to_room(chat_id, user_id)

        transaction.on_commit(lambda: async_to_sync(_join)())

    def remove_user_from_room_on_commit(self, chat_id: int, user_id: int) -> None:
        """Pull a removed member's live connections out of the room."""
        transaction.on_commit(
            lambda: async_to_sync(self.remove_user_from_room)(chat_id, user_id)
        )


def get_room_router() -> RoomRouter:
    """Return the process-wide router created by the chat app."""
    return apps.get_app_config("chat").room_router
