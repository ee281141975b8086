"""
Signal receivers for the chat app.

- broadcast_user_status: pushes ``user_status`` to every other connection
  when a user's presence changes (socket connect/disconnect or REST
  login/logout)
"""

import logging

from asgiref.sync import async_to_sync
from django.dispatch import receiver

from authentication.signals import presence_changed
from chat.constants import SERVER_EVENTS
from chat.realtime import get_room_router

logger = logging.getLogger(__name__)


@receiver(presence_changed)
def broadcast_user_status(sender, user_id, status, last_seen, **kwargs):
    """
    Broadcast a presence change to all other connected users.

    presence_changed is already sent on commit, so the event is emitted
    directly.
    """
    payload = {
        "userId": user_id,
        "status": status,
        "lastSeen": last_seen.isoformat() if last_seen else None,
    }
    async_to_sync(get_room_router().emit_to_presence)(
        SERVER_EVENTS.USER_STATUS, payload, exclude_user_id=user_id
    )
    logger.debug(f"Broadcast user_status {status} for user {user_id}")
