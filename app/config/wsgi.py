"""
WSGI entry point for the FriChat backend.

Serves the REST API only; WebSocket traffic needs the ASGI application in
config.asgi.
"""

import os

from django.core.wsgi import get_wsgi_application

os.environ.setdefault("DJANGO_SETTINGS_MODULE", "config.settings")

application = get_wsgi_application()
