"""
Chat application configuration.

This app provides:
- Direct and group chats with admin-managed membership
- Messages with status, reactions, delete-for-everyone and self-only delete
- Time-bounded pins swept by celery beat
- Real-time fan-out over Django Channels
"""

from django.apps import AppConfig


class ChatConfig(AppConfig):
    """
    Configuration for the chat application.

    Owns the process-wide connection registry and room router. Both live
    for the lifetime of the process and are reached through
    chat.realtime.get_room_router().
    """

    default_auto_field = "django.db.models.BigAutoField"
    name = "chat"
    verbose_name = "Chat"

    def ready(self):
        from chat.realtime import ConnectionRegistry, RoomRouter

        self.connection_registry = ConnectionRegistry()
        self.room_router = RoomRouter(self.connection_registry)

        # Connect presence_changed -> user_status broadcast
        from chat import receivers  # noqa: F401
