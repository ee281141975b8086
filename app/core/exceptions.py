"""
Application exception hierarchy.

Services report expected failures through ServiceResult. These exceptions
are raised at the edges, where there is no result to return: decoding a
real-time payload, or rejecting an event from a socket session that has
not authenticated.

Exception Hierarchy:
    BaseApplicationError (base)
    ├── ValidationError - Malformed input
    └── PermissionDeniedError - Session may not perform the action

Usage:
    from core.exceptions import ValidationError

    raise ValidationError("chatId is required", error_code="INVALID_PAYLOAD")
"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from typing import Any


class BaseApplicationError(Exception):
    """
    Base exception carrying a machine-readable error code.

    Attributes:
        message: Human-readable error description
        error_code: Code clients branch on
        details: Extra context, e.g. {"errors": {field: [messages]}}
    """

    default_error_code: str = "APPLICATION_ERROR"

    def __init__(
        self,
        message: str,
        error_code: str | None = None,
        details: dict[str, Any] | None = None,
    ):
        self.message = message
        self.error_code = error_code or self.default_error_code
        self.details = details or {}
        super().__init__(message)

    def __str__(self) -> str:
        return f"[{self.error_code}] {self.message}"


class ValidationError(BaseApplicationError):
    """Raised when an inbound payload is malformed or out of range."""

    default_error_code: str = "INVALID_PAYLOAD"


class PermissionDeniedError(BaseApplicationError):
    """
    Raised when the socket session may not perform an operation.

    Covers events sent before ``authenticate`` and payloads that name a
    different user than the authenticated session.
    """

    default_error_code: str = "ACCESS_DENIED"
