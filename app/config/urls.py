"""
Root URL configuration for the FriChat backend.

URL Structure:
    /                                   - ReDoc API documentation
    /schema/                            - OpenAPI schema (YAML)
    /admin/                             - Django admin interface
    /health/                            - Health check endpoint
    /api/v1/auth/                       - Accounts
        register/                       - Create account, returns JWT pair
        login/                          - Obtain JWT pair, marks user online
        logout/                         - Marks user offline
        token/refresh/                  - Refresh access token
        me/                             - Current user
    /api/v1/chats/                      - Chat list/create
        search/users/?query=            - User search
        {id}/                           - Chat detail / hide
        {id}/members/                   - Add member
        {id}/members/{user_id}/         - Remove member
    /api/v1/messages/                   - Send text message
        upload/                         - Send media message (multipart)
        chat/{chat_id}/                 - Paginated history
        chat/{chat_id}/pinned/          - Active pins
        {id}/                           - Delete message
        {id}/status/                    - Advance delivery status
        {id}/reactions/                 - Add/remove reaction
        {id}/pin/                       - Pin message
        {id}/unpin/                     - Unpin message
    ws/chat/?token=<jwt>                - Real-time channel (see chat.routing)
"""

from django.contrib import admin
from django.urls import include, path
from drf_spectacular.views import SpectacularAPIView, SpectacularRedocView

from core.views import health_check

# =============================================================================
# API v1 Routes
# =============================================================================
api_v1_patterns = [
    path("auth/", include("authentication.urls")),
    path("", include("chat.urls")),
]

urlpatterns = [
    # Documentation
    path("", SpectacularRedocView.as_view(url_name="schema"), name="redoc"),
    path("schema/", SpectacularAPIView.as_view(), name="schema"),
    # Admin
    path("admin/", admin.site.urls),
    # Health check (Docker, load balancers)
    path("health/", health_check, name="health_check"),
    # API v1
    path("api/v1/", include(api_v1_patterns)),
]

# =============================================================================
# Admin Site Customization
# =============================================================================
admin.site.site_header = "FriChat Admin"
admin.site.site_title = "FriChat Admin"
admin.site.index_title = "Chat administration"
