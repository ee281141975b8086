"""
Tests for the authentication app.

- test_models.py: User model and manager
- test_services.py: AccountService and PresenceService
- test_views.py: register/login/logout/me endpoints
"""
