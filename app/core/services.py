"""
Service layer primitives shared by every domain app.

- ServiceResult: success/failure wrapper returned by all chat services
- BaseService: logger and transaction helpers

Services own the business rules; REST views and the WebSocket consumer are
thin adapters that translate a ServiceResult into an HTTP response or a
socket event. Expected failures (not a member, unknown message, bad status)
are returned as failed results. Store failures are logged and returned as
STORE_ERROR failures, never raised to the adapter.

Usage:
    from core.services import BaseService, ServiceResult

    class ReactionService(BaseService):
        @classmethod
        def add_reaction(cls, message_id, user, emoji) -> ServiceResult[dict]:
            with cls.atomic():
                ...
            return ServiceResult.success({"emoji": emoji})

    result = ReactionService.add_reaction(message_id, request.user, "👍")
    if not result:
        return Response(result.to_response(), status=400)
"""

from __future__ import annotations

import logging
from contextlib import contextmanager
from dataclasses import dataclass, field
from typing import TYPE_CHECKING, Generic, TypeVar

from django.db import DatabaseError, transaction

if TYPE_CHECKING:
    from collections.abc import Generator
    from typing import Any

T = TypeVar("T")

STORE_ERROR = "STORE_ERROR"


@dataclass
class ServiceResult(Generic[T]):
    """
    Result wrapper for service operations.

    Attributes:
        success: Whether the operation succeeded
        data: Result data if successful (None if failed)
        error: Human-readable error message if failed
        error_code: Machine-readable error code for client handling
        errors: Field-level errors for validation failures
    """

    success: bool
    data: T | None = None
    error: str | None = None
    error_code: str | None = None
    errors: dict[str, list[str]] | None = field(default=None)

    @classmethod
    def success(cls, data: T) -> ServiceResult[T]:
        """Create a successful result carrying ``data``."""
        return cls(success=True, data=data)

    @classmethod
    def failure(
        cls,
        error: str,
        error_code: str | None = None,
        errors: dict[str, list[str]] | None = None,
    ) -> ServiceResult[T]:
        """
        Create a failed result.

        Args:
            error: Human-readable error message
            error_code: Machine-readable error code, e.g. "NOT_MEMBER"
            errors: Field-level errors (for validation failures)

        Example:
            return ServiceResult.failure(
                "You are not a member of this chat", "NOT_MEMBER"
            )
        """
        return cls(
            success=False,
            error=error,
            error_code=error_code,
            errors=errors,
        )

    def to_response(self) -> dict[str, Any]:
        """
        Convert a failed result to the API error body.

        Returns:
            {"error": ..., "error_code": ..., "errors": {...}?}
        """
        if self.success:
            return {"success": True, "data": self.data}

        response: dict[str, Any] = {"error": self.error}
        if self.error_code:
            response["error_code"] = self.error_code
        if self.errors:
            response["errors"] = self.errors
        return response

    def __bool__(self) -> bool:
        return self.success


class BaseService:
    """
    Base class for stateless service classes.

    Services expose classmethods only. Each service gets a logger named
    after its module and class so log output can be filtered per service.
    """

    @classmethod
    def get_logger(cls) -> logging.Logger:
        """Return the logger for this service class."""
        return logging.getLogger(f"{cls.__module__}.{cls.__name__}")

    @classmethod
    @contextmanager
    def atomic(cls) -> Generator[None, None, None]:
        """
        Run the enclosed block in a database transaction.

        Example:
            with cls.atomic():
                message = Message.objects.create(...)
                Chat.objects.filter(pk=chat_id).update(updated_at=now)
        """
        with transaction.atomic():
            yield

    @classmethod
    def handle_store_error(cls, exc: DatabaseError, context: str = "") -> ServiceResult:
        """
        Log a database failure and convert it to a STORE_ERROR result.

        Args:
            exc: The caught database exception
            context: Short description of the operation that failed

        Returns:
            Failed ServiceResult with a generic message
        """
        message = f"{context}: {exc}" if context else str(exc)
        cls.get_logger().error(message, exc_info=True)
        return ServiceResult.failure(
            "A storage error occurred, please try again",
            error_code=STORE_ERROR,
        )
