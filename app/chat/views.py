"""
ViewSets for the chat API.

Views are thin adapters: validate the request shape, call a service,
render the ServiceResult. Membership and every domain rule are enforced by
the services, the same ones the WebSocket consumer calls.

URL Structure (prefixed with /api/v1/):
    chats/                               GET, POST
    chats/search/users/?query=           GET
    chats/{id}/                          GET, DELETE
    chats/{id}/members/                  POST
    chats/{id}/members/{user_id}/        DELETE
    messages/                            POST
    messages/upload/                     POST (multipart)
    messages/chat/{chat_id}/             GET (?limit&offset)
    messages/chat/{chat_id}/pinned/      GET
    messages/{id}/                       DELETE
    messages/{id}/status/                PATCH
    messages/{id}/reactions/             POST, DELETE
    messages/{id}/pin/                   POST
    messages/{id}/unpin/                 DELETE

Errors:
    Failed results are rendered as {"error", "error_code"} with the HTTP
    status of the code's category (400, 403, 404 or 500).
"""

from __future__ import annotations

from drf_spectacular.types import OpenApiTypes
from drf_spectacular.utils import OpenApiParameter, OpenApiResponse, extend_schema
from rest_framework import status, viewsets
from rest_framework.permissions import IsAuthenticated
from rest_framework.response import Response

from authentication.serializers import UserSummarySerializer
from chat.authorization import MembershipGuard
from chat.constants import ERROR_CATEGORY, error_category
from chat.serializers import (
    ChatCreateSerializer,
    ChatSerializer,
    MemberAddSerializer,
    MessageCreateSerializer,
    MessageListSerializer,
    MessageSerializer,
    MessageStatusSerializer,
    MessageUploadSerializer,
    PinInputSerializer,
    PinnedMessageSerializer,
    ReactionInputSerializer,
    UserSearchSerializer,
)
from chat.services import ChatService, MessageService, PinService, ReactionService
from chat.uploads import UploadService, message_type_for_mime
from core.services import ServiceResult

CATEGORY_STATUS = {
    ERROR_CATEGORY.VALIDATION: status.HTTP_400_BAD_REQUEST,
    ERROR_CATEGORY.ACCESS_DENIED: status.HTTP_403_FORBIDDEN,
    ERROR_CATEGORY.NOT_FOUND: status.HTTP_404_NOT_FOUND,
    ERROR_CATEGORY.STORE_ERROR: status.HTTP_500_INTERNAL_SERVER_ERROR,
    ERROR_CATEGORY.INTERNAL: status.HTTP_500_INTERNAL_SERVER_ERROR,
}


def error_response(result: ServiceResult) -> Response:
    """Render a failed ServiceResult with the status of its error category."""
    return Response(
        result.to_response(),
        status=CATEGORY_STATUS[error_category(result.error_code)],
    )


# =============================================================================
# Chats
# =============================================================================


class ChatViewSet(viewsets.ViewSet):
    """
    Chat management.

    URL: /api/v1/chats/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="list_chats",
        summary="List chats",
        description="Chats the user belongs to, most recent activity first, with "
        "members, last message and unread count. Hidden chats are excluded.",
        responses={200: ChatSerializer(many=True)},
        tags=["Chat - Chats"],
    )
    def list(self, request):
        result = ChatService.list_chats(user=request.user)
        if not result:
            return error_response(result)
        return Response(ChatSerializer(result.data, many=True).data)

    @extend_schema(
        operation_id="create_chat",
        summary="Create chat",
        description="Create a group chat, or get the existing direct chat with a user.",
        request=ChatCreateSerializer,
        responses={
            201: ChatSerializer,
            200: OpenApiResponse(ChatSerializer, description="Existing direct chat"),
        },
        tags=["Chat - Chats"],
    )
    def create(self, request):
        serializer = ChatCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = ChatService.create_chat(
            user=request.user,
            chat_type=data["chatType"],
            participant_ids=data["participants"],
            name=data["chatName"],
        )
        if not result:
            return error_response(result)

        chat = ChatService.get_chat(user=request.user, chat_id=result.data["chat"].pk)
        if not chat:
            return error_response(chat)
        return Response(
            ChatSerializer(chat.data).data,
            status=status.HTTP_201_CREATED if result.data["created"] else status.HTTP_200_OK,
        )

    @extend_schema(
        operation_id="get_chat",
        summary="Get chat",
        responses={200: ChatSerializer},
        tags=["Chat - Chats"],
    )
    def retrieve(self, request, pk=None):
        result = ChatService.get_chat(user=request.user, chat_id=int(pk))
        if not result:
            return error_response(result)
        return Response(ChatSerializer(result.data).data)

    @extend_schema(
        operation_id="hide_chat",
        summary="Hide chat",
        description="Hide the chat from the user's list. Membership is kept.",
        responses={204: None},
        tags=["Chat - Chats"],
    )
    def destroy(self, request, pk=None):
        result = ChatService.hide_chat(user=request.user, chat_id=int(pk))
        if not result:
            return error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="add_chat_member",
        summary="Add member",
        request=MemberAddSerializer,
        responses={201: OpenApiResponse(description="Member added")},
        tags=["Chat - Members"],
    )
    def add_member(self, request, pk=None):
        serializer = MemberAddSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = ChatService.add_member(
            user=request.user,
            chat_id=int(pk),
            member_id=serializer.validated_data["userId"],
        )
        if not result:
            return error_response(result)
        return Response(
            {"chatId": int(pk), "userId": result.data.user_id, "role": result.data.role},
            status=status.HTTP_201_CREATED,
        )

    @extend_schema(
        operation_id="remove_chat_member",
        summary="Remove member",
        responses={204: None},
        tags=["Chat - Members"],
    )
    def remove_member(self, request, pk=None, user_id=None):
        result = ChatService.remove_member(
            user=request.user, chat_id=int(pk), member_id=int(user_id)
        )
        if not result:
            return error_response(result)
        return Response(status=status.HTTP_204_NO_CONTENT)

    @extend_schema(
        operation_id="search_users",
        summary="Search users",
        parameters=[
            OpenApiParameter(
                name="query",
                type=OpenApiTypes.STR,
                location=OpenApiParameter.QUERY,
                description="Username or display name (minimum 2 characters)",
                required=True,
            ),
        ],
        responses={200: UserSummarySerializer(many=True)},
        tags=["Chat - Chats"],
    )
    def search_users(self, request):
        serializer = UserSearchSerializer(data={"query": request.query_params.get("query", "")})
        serializer.is_valid(raise_exception=True)

        result = ChatService.search_users(
            user=request.user, query=serializer.validated_data["query"]
        )
        if not result:
            return error_response(result)
        return Response(UserSummarySerializer(result.data, many=True).data)


# =============================================================================
# Messages
# =============================================================================


class MessageViewSet(viewsets.ViewSet):
    """
    Message, reaction and pin operations.

    URL: /api/v1/messages/
    """

    permission_classes = [IsAuthenticated]

    @extend_schema(
        operation_id="send_message",
        summary="Send text message",
        request=MessageCreateSerializer,
        responses={201: MessageSerializer},
        tags=["Chat - Messages"],
    )
    def create(self, request):
        serializer = MessageCreateSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        result = MessageService.send_message(
            user=request.user,
            chat_id=data["chatId"],
            message_type=data["messageType"],
            content=data.get("content"),
        )
        if not result:
            return error_response(result)
        return Response(MessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="upload_message_file",
        summary="Upload file message",
        description="Store an image, video or document and send it as a message. "
        "The message type follows from the file's MIME type.",
        request={"multipart/form-data": MessageUploadSerializer},
        responses={201: MessageSerializer},
        tags=["Chat - Messages"],
    )
    def upload(self, request):
        serializer = MessageUploadSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        data = serializer.validated_data

        # Check membership before anything is written to storage
        if not MembershipGuard.is_member(data["chatId"], request.user.pk):
            return error_response(
                ServiceResult.failure(
                    "You are not a member of this chat", error_code="NOT_MEMBER"
                )
            )

        stored = UploadService.store(user=request.user, uploaded_file=data["file"])
        if not stored:
            return error_response(stored)

        result = MessageService.send_message(
            user=request.user,
            chat_id=data["chatId"],
            message_type=message_type_for_mime(stored.data.mime_type),
            content=data.get("content"),
            file=stored.data,
        )
        if not result:
            UploadService.discard(stored.data)
            return error_response(result)
        return Response(MessageSerializer(result.data).data, status=status.HTTP_201_CREATED)

    @extend_schema(
        operation_id="list_chat_messages",
        summary="Message history",
        description="One page of history, oldest first within the page. offset=0 is "
        "the newest page.",
        parameters=[
            OpenApiParameter("limit", OpenApiTypes.INT, OpenApiParameter.QUERY),
            OpenApiParameter("offset", OpenApiTypes.INT, OpenApiParameter.QUERY),
        ],
        responses={200: MessageSerializer(many=True)},
        tags=["Chat - Messages"],
    )
    def chat_messages(self, request, chat_id=None):
        serializer = MessageListSerializer(data=request.query_params)
        serializer.is_valid(raise_exception=True)

        result = MessageService.list_messages(
            user=request.user,
            chat_id=int(chat_id),
            limit=serializer.validated_data["limit"],
            offset=serializer.validated_data["offset"],
        )
        if not result:
            return error_response(result)
        return Response(MessageSerializer(result.data, many=True).data)

    @extend_schema(
        operation_id="list_pinned_messages",
        summary="Active pins",
        responses={200: PinnedMessageSerializer(many=True)},
        tags=["Chat - Pins"],
    )
    def chat_pins(self, request, chat_id=None):
        result = PinService.list_active_pins(user=request.user, chat_id=int(chat_id))
        if not result:
            return error_response(result)
        return Response(PinnedMessageSerializer(result.data, many=True).data)

    @extend_schema(
        operation_id="delete_message",
        summary="Delete message",
        description="Within 60 seconds of sending the message is deleted for everyone; "
        "after that it is only hidden for the sender.",
        responses={200: OpenApiResponse(description='{"deletedForEveryone": bool}')},
        tags=["Chat - Messages"],
    )
    def destroy(self, request, pk=None):
        result = MessageService.delete_message(user=request.user, message_id=int(pk))
        if not result:
            return error_response(result)
        return Response({"deletedForEveryone": result.data["deleted_for_everyone"]})

    @extend_schema(
        operation_id="update_message_status",
        summary="Update message status",
        request=MessageStatusSerializer,
        responses={200: OpenApiResponse(description='{"messageId", "status", "changed"}')},
        tags=["Chat - Messages"],
    )
    def update_status(self, request, pk=None):
        serializer = MessageStatusSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = MessageService.update_status(
            user=request.user,
            message_id=int(pk),
            status=serializer.validated_data["status"],
        )
        if not result:
            return error_response(result)
        return Response(
            {
                "messageId": result.data["message_id"],
                "status": result.data["status"],
                "changed": result.data["changed"],
            }
        )

    @extend_schema(
        operation_id="message_reactions",
        summary="Add or remove a reaction",
        request=ReactionInputSerializer,
        responses={
            201: OpenApiResponse(description="Reaction added"),
            200: OpenApiResponse(description="Reaction removed"),
        },
        tags=["Chat - Reactions"],
    )
    def reactions(self, request, pk=None):
        serializer = ReactionInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)
        emoji = serializer.validated_data["emoji"]

        if request.method == "POST":
            result = ReactionService.add_reaction(
                user=request.user, message_id=int(pk), emoji=emoji
            )
            success_status = status.HTTP_201_CREATED
        else:
            result = ReactionService.remove_reaction(
                user=request.user, message_id=int(pk), emoji=emoji
            )
            success_status = status.HTTP_200_OK

        if not result:
            return error_response(result)
        return Response(result.data, status=success_status)

    @extend_schema(
        operation_id="pin_message",
        summary="Pin message",
        request=PinInputSerializer,
        responses={200: PinnedMessageSerializer},
        tags=["Chat - Pins"],
    )
    def pin(self, request, pk=None):
        serializer = PinInputSerializer(data=request.data)
        serializer.is_valid(raise_exception=True)

        result = PinService.pin_message(
            user=request.user,
            message_id=int(pk),
            duration=serializer.validated_data["duration"],
        )
        if not result:
            return error_response(result)
        return Response(PinnedMessageSerializer(result.data).data)

    @extend_schema(
        operation_id="unpin_message",
        summary="Unpin message",
        responses={200: OpenApiResponse(description='{"messageId", "chatId", "unpinned"}')},
        tags=["Chat - Pins"],
    )
    def unpin(self, request, pk=None):
        result = PinService.unpin_message(user=request.user, message_id=int(pk))
        if not result:
            return error_response(result)
        return Response(result.data)
