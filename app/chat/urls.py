"""
URL configuration for the chat API.

URL Structure:
    Chats:
        /chats/                              GET, POST
        /chats/search/users/                 GET
        /chats/{id}/                         GET, DELETE
        /chats/{id}/members/                 POST
        /chats/{id}/members/{user_id}/       DELETE

    Messages:
        /messages/                           POST
        /messages/upload/                    POST
        /messages/chat/{chat_id}/            GET
        /messages/chat/{chat_id}/pinned/     GET
        /messages/{id}/                      DELETE
        /messages/{id}/status/               PATCH
        /messages/{id}/reactions/            POST, DELETE
        /messages/{id}/pin/                  POST
        /messages/{id}/unpin/                DELETE

All URLs are prefixed with /api/v1/ in the main URL configuration.
"""

from django.urls import path

from chat.views import ChatViewSet, MessageViewSet

app_name = "chat"

urlpatterns = [
    # Chats
    path(
        "chats/",
        ChatViewSet.as_view({"get": "list", "post": "create"}),
        name="chat-list",
    ),
    path(
        "chats/search/users/",
        ChatViewSet.as_view({"get": "search_users"}),
        name="chat-search-users",
    ),
    path(
        "chats/<int:pk>/",
        ChatViewSet.as_view({"get": "retrieve", "delete": "destroy"}),
        name="chat-detail",
    ),
    path(
        "chats/<int:pk>/members/",
        ChatViewSet.as_view({"post": "add_member"}),
        name="chat-members",
    ),
    path(
        "chats/<int:pk>/members/<int:user_id>/",
        ChatViewSet.as_view({"delete": "remove_member"}),
        name="chat-member-detail",
    ),
    # Messages
    path(
        "messages/",
        MessageViewSet.as_view({"post": "create"}),
        name="message-list",
    ),
    path(
        "messages/upload/",
        MessageViewSet.as_view({"post": "upload"}),
        name="message-upload",
    ),
    path(
        "messages/chat/<int:chat_id>/",
        MessageViewSet.as_view({"get": "chat_messages"}),
        name="chat-messages",
    ),
    path(
        "messages/chat/<int:chat_id>/pinned/",
        MessageViewSet.as_view({"get": "chat_pins"}),
        name="chat-pins",
    ),
    path(
        "messages/<int:pk>/",
        MessageViewSet.as_view({"delete": "destroy"}),
        name="message-detail",
    ),
    path(
        "messages/<int:pk>/status/",
        MessageViewSet.as_view({"patch": "update_status"}),
        name="message-status",
    ),
    path(
        "messages/<int:pk>/reactions/",
        MessageViewSet.as_view({"post": "reactions", "delete": "reactions"}),
        name="message-reactions",
    ),
    path(
        "messages/<int:pk>/pin/",
        MessageViewSet.as_view({"post": "pin"}),
        name="message-pin",
    ),
    path(
        "messages/<int:pk>/unpin/",
        MessageViewSet.as_view({"delete": "unpin"}),
        name="message-unpin",
    ),
]
