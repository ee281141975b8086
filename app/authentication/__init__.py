"""
Authentication application.

Key components:
    - User model: username-based account with presence status
    - AccountService: registration
    - PresenceService: online/offline persistence, publishes presence_changed

Usage:
    from authentication.models import User
    from authentication.services import PresenceService
"""
