"""
ASGI config for the FriChat backend.

Routes two protocols:
- HTTP requests to Django (REST API, admin, health check)
- WebSocket connections to the chat consumer through Django Channels

Uvicorn serves this module's ``application``.
"""

import os

from django.core.asgi import get_asgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

# Initialize Django before importing anything that touches models
django_asgi_app = get_asgi_application()

from channels.routing import ProtocolTypeRouter, URLRouter  # noqa: E402
from channels.security.websocket import AllowedHostsOriginValidator  # noqa: E402

from chat.middleware import JWTAuthMiddleware  # noqa: E402
from chat.routing import websocket_urlpatterns  # noqa: E402

application = ProtocolTypeRouter(
    {
        "http": django_asgi_app,
        # 1. AllowedHostsOriginValidator - origin must match ALLOWED_HOSTS
        # 2. JWTAuthMiddleware - resolves scope["user"] from ?token=<jwt>
        # 3. URLRouter - dispatches to the chat consumer
        "websocket": AllowedHostsOriginValidator(
            JWTAuthMiddleware(URLRouter(websocket_urlpatterns))
        ),
    }
)
