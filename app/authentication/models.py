"""
Authentication models.

- User: username-based account carrying the presence state the chat
  layer reads (status, last_seen) and the identity it renders
  (display_name, avatar_url).

Related files:
    - managers.py: UserManager for username-based creation
    - services.py: AccountService and PresenceService
    - signals.py: presence_changed signal
"""

import re

from django.contrib.auth.models import AbstractBaseUser, PermissionsMixin
from django.core.exceptions import ValidationError
from django.db import models

from authentication.managers import UserManager


def validate_username_format(value):
    """Validate username format: 3-30 chars, alphanumeric + _ + -."""
    if not re.match(r"^[a-zA-Z0-9_-]{3,30}$", value):
        raise ValidationError(
            "Username must be 3-30 characters and contain only "
            "letters, numbers, underscores, and hyphens."
        )


class PresenceStatus(models.TextChoices):
    ONLINE = "online", "Online"
    OFFLINE = "offline", "Offline"


class User(AbstractBaseUser, PermissionsMixin):
    """
    Chat user.

    Fields:
        username: Unique handle used for login and shown in chats
        email: Unique contact address
        display_name: Free-form name shown next to messages
        avatar_url: Reference to the user's avatar image
        status: online/offline, written on connect/disconnect and login/logout
        last_seen: Stamped on every presence change
        is_active: Whether the account can log in
        is_staff: Whether the user can access Django admin
        date_joined: When the account was created

    Usage:
        user = User.objects.create_user(
            username="alice", email="alice@example.com", password="s3cret-pass"
        )
    """

    username = models.CharField(
        max_length=30,
        unique=True,
        validators=[validate_username_format],
        help_text="Unique username (3-30 chars, alphanumeric + _ + -)",
    )
    email = models.EmailField(
        unique=True,
        max_length=254,
        help_text="User's email address",
    )
    display_name = models.CharField(
        max_length=100,
        blank=True,
        help_text="Name shown next to the user's messages",
    )
    avatar_url = models.CharField(
        max_length=500,
        blank=True,
        help_text="Avatar image reference",
    )

    # Presence
    status = models.CharField(
        max_length=10,
        choices=PresenceStatus.choices,
        default=PresenceStatus.OFFLINE,
        db_index=True,
    )
    last_seen = models.DateTimeField(null=True, blank=True)

    # Account status flags
    is_active = models.BooleanField(
        default=True,
        help_text="Whether this user account is active. Deselect instead of deleting.",
    )
    is_staff = models.BooleanField(
        default=False,
        help_text="Whether the user can access the admin site.",
    )

    date_joined = models.DateTimeField(auto_now_add=True)
    updated_at = models.DateTimeField(auto_now=True)

    USERNAME_FIELD = "username"
    EMAIL_FIELD = "email"
    REQUIRED_FIELDS = ["email"]

    objects = UserManager()

    class Meta:
        verbose_name = "user"
        verbose_name_plural = "users"
        ordering = ["username"]

    def __str__(self):
        return self.username

    def get_full_name(self):
        return self.display_name or self.username

    def get_short_name(self):
        return self.username

    @property
    def is_online(self) -> bool:
        return self.status == PresenceStatus.ONLINE
