"""
Authentication services.

- AccountService: account registration and profile updates
- PresenceService: persists online/offline status and last_seen

Presence is written from two places: REST login/logout and WebSocket
connect/disconnect. Both go through PresenceService, which publishes
presence_changed once the write is committed.

Related files:
    - models.py: User
    - signals.py: presence_changed
    - chat/receivers.py: broadcasts user_status on presence_changed
"""

from __future__ import annotations

from typing import TYPE_CHECKING

from django.db import DatabaseError, IntegrityError, transaction
from django.utils import timezone

from authentication.models import PresenceStatus, User
from authentication.signals import presence_changed
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from datetime import datetime


class AccountService(BaseService):
    """
    Account creation and profile updates.

    Usage:
        result = AccountService.register(
            username="alice",
            email="alice@example.com",
            password="s3cret-pass",
            display_name="Alice",
        )
    """

    @classmethod
    def register(
        cls,
        username: str,
        email: str,
        password: str,
        display_name: str = "",
    ) -> ServiceResult[User]:
        """
        Create a new account.

        Returns:
            ServiceResult with the created user, or USERNAME_TAKEN /
            EMAIL_TAKEN when the unique fields collide.
        """
        logger = cls.get_logger()

        if User.objects.filter(username__iexact=username).exists():
            return ServiceResult.failure(
                "This username is already taken", error_code="USERNAME_TAKEN"
            )
        if User.objects.filter(email__iexact=email).exists():
            return ServiceResult.failure(
                "A user with this email already exists", error_code="EMAIL_TAKEN"
            )

        try:
            with cls.atomic():
                user = User.objects.create_user(
                    username=username,
                    email=email,
                    password=password,
                    display_name=display_name or username,
                )
        except IntegrityError:
            # Lost a race against a concurrent registration
            return ServiceResult.failure(
                "This username or email is already taken",
                error_code="USERNAME_TAKEN",
            )
        except DatabaseError as e:
            return cls.handle_store_error(e, "register")

        logger.info(f"Registered user {user.id} ({user.username})")
        return ServiceResult.success(user)

    @classmethod
    def update_profile(
        cls,
        user: User,
        display_name: str | None = None,
        avatar_url: str | None = None,
    ) -> ServiceResult[User]:
        """
        Change the profile fields shown to other users.

        Fields left as None are unchanged. A blank display name falls back
        to the username, as on registration.
        """
        update_fields = []
        if display_name is not None:
            user.display_name = display_name.strip() or user.username
            update_fields.append("display_name")
        if avatar_url is not None:
            user.avatar_url = avatar_url.strip()
            update_fields.append("avatar_url")

        if not update_fields:
            return ServiceResult.success(user)

        try:
            user.save(update_fields=update_fields)
        except DatabaseError as e:
            return cls.handle_store_error(e, "update_profile")

        cls.get_logger().info(f"User {user.id} updated {', '.join(update_fields)}")
        return ServiceResult.success(user)


class PresenceService(BaseService):
    """
    Online/offline bookkeeping for users.

    Every status change stamps last_seen. The presence_changed signal is
    sent on commit so listeners never broadcast a state that was rolled back.
    """

    @classmethod
    def mark_online(cls, user_id: int) -> ServiceResult[datetime]:
        """Mark the user online and stamp last_seen."""
        return cls._set_status(user_id, PresenceStatus.ONLINE)

    @classmethod
    def mark_offline(cls, user_id: int) -> ServiceResult[datetime]:
        """Mark the user offline and stamp last_seen."""
        return cls._set_status(user_id, PresenceStatus.OFFLINE)

    @classmethod
    def _set_status(cls, user_id: int, status: str) -> ServiceResult[datetime]:
        now = timezone.now()
        try:
            updated = User.objects.filter(pk=user_id).update(
                status=status, last_seen=now
            )
        except DatabaseError as e:
            return cls.handle_store_error(e, f"set presence {status} for user {user_id}")

        if not updated:
            return ServiceResult.failure("User not found", error_code="USER_NOT_FOUND")

        transaction.on_commit(
            lambda: presence_changed.send(
                sender=User, user_id=user_id, status=status, last_seen=now
            )
        )
        cls.get_logger().debug(f"User {user_id} is now {status}")
        return ServiceResult.success(now)
