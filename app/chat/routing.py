"""
WebSocket URL routing for the chat application.

URL Patterns:
    ws/chat/ - One multiplexed connection per client; rooms are joined by
               events, not by URL

Authentication:
    JWT access token as query parameter: ?token=<jwt_access_token>.
    JWTAuthMiddleware validates it and attaches the user to the scope.
"""

from django.urls import re_path

from chat import consumers

websocket_urlpatterns = [
    re_path(r"^ws/chat/?$", consumers.ChatConsumer.as_asgi()),
]
