"""
Signals published by the authentication app.

presence_changed is sent after a user's presence status is committed.
The chat app listens for it and broadcasts ``user_status`` to connected
clients, so login/logout over REST and connect/disconnect over the socket
produce the same event.

Signal arguments:
    sender: The User model class
    user_id: Primary key of the user whose status changed
    status: New status ("online" or "offline")
    last_seen: Timestamp stamped with the change
"""

from django.dispatch import Signal

presence_changed = Signal()
