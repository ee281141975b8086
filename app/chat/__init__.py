"""
Chat app for real-time messaging.

This app handles:
- Direct and group chats with admin-managed membership
- Message sending, status, reactions and deletion
- Time-bounded pins and their expiry sweep
- WebSocket fan-out to chat rooms and presence

Related apps:
    - authentication: User model, presence persistence
    - core: ServiceResult, BaseService, exceptions

WebSocket Support:
    Uses Django Channels for real-time communication.
    See consumers.py for the WebSocket handler, realtime.py for rooms.

Usage:
    from chat.services import MessageService

    result = MessageService.send_message(
        user=user, chat_id=chat.id, message_type="text", content="Hello!"
    )
"""
