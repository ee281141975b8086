"""
Chat attachment uploads.

Validates the declared MIME type and size of an upload against
CHAT_ALLOWED_UPLOAD_TYPES / CHAT_MAX_UPLOAD_SIZE and stores it through
Django's default storage:

    chat/images/<uuid>.<ext>
    chat/videos/<uuid>.<ext>
    chat/files/<uuid>.<ext>

The same validation applies to file metadata sent over the socket.
"""

from __future__ import annotations

import logging
import os
import uuid
from dataclasses import dataclass
from typing import TYPE_CHECKING, Optional

from django.conf import settings
from django.core.files.storage import default_storage
from django.db import DatabaseError

from chat.models import MessageFile, MessageType
from core.services import BaseService, ServiceResult

if TYPE_CHECKING:
    from django.core.files.uploadedfile import UploadedFile

    from authentication.models import User

logger = logging.getLogger(__name__)

STORAGE_DIRECTORIES: dict[str, str] = {
    MessageType.IMAGE: "chat/images",
    MessageType.VIDEO: "chat/videos",
    MessageType.FILE: "chat/files",
}


@dataclass
class ValidationResult:
    """Result of upload validation."""

    is_valid: bool
    message_type: Optional[str] = None
    error: Optional[str] = None
    error_code: Optional[str] = None


def message_type_for_mime(mime_type: str) -> Optional[str]:
    """Map an allowed MIME type to the message type it produces, else None."""
    mime_type = (mime_type or "").split(";")[0].strip().lower()
    for message_type, mime_types in settings.CHAT_ALLOWED_UPLOAD_TYPES.items():
        if mime_type in mime_types:
            return message_type
    return None


def validate_upload(mime_type: str, size: int) -> ValidationResult:
    """Check an upload's MIME type against the allow-list and its size against the cap."""
    mime_type = (mime_type or "").split(";")[0].strip().lower()
    message_type = message_type_for_mime(mime_type)
    if message_type is None:
        return ValidationResult(
            is_valid=False,
            error=f"File type '{mime_type or 'unknown'}' is not allowed",
            error_code="UNSUPPORTED_FILE_TYPE",
        )

    max_size = settings.CHAT_MAX_UPLOAD_SIZE
    if size > max_size:
        return ValidationResult(
            is_valid=False,
            error=f"File exceeds the maximum size of {max_size // (1024 * 1024)}MB",
            error_code="FILE_TOO_LARGE",
        )

    return ValidationResult(is_valid=True, message_type=message_type)


class UploadService(BaseService):
    """Stores uploaded attachments and records their metadata."""

    @classmethod
    def store(cls, *, user: User, uploaded_file: UploadedFile) -> ServiceResult[MessageFile]:
        """
        Validate and save an uploaded file.

        Returns:
            ServiceResult with the MessageFile row. Its message type is
            available through message_type_for_mime(file.mime_type).

        Error codes:
            UNSUPPORTED_FILE_TYPE: MIME type not in the allow-list
            FILE_TOO_LARGE: Over CHAT_MAX_UPLOAD_SIZE
        """
        mime_type = (uploaded_file.content_type or "").split(";")[0].strip().lower()
        result = validate_upload(mime_type, uploaded_file.size)
        if not result.is_valid:
            return ServiceResult.failure(result.error, error_code=result.error_code)

        original_name = os.path.basename(uploaded_file.name or "upload")
        extension = os.path.splitext(original_name)[1].lower()
        stored_name = f"{uuid.uuid4().hex}{extension}"
        path = f"{STORAGE_DIRECTORIES[result.message_type]}/{stored_name}"

        saved_path = default_storage.save(path, uploaded_file)
        try:
            file = MessageFile.objects.create(
                original_name=original_name[:255],
                stored_name=os.path.basename(saved_path),
                file_type=extension.lstrip("."),
                mime_type=mime_type,
                file_size=uploaded_file.size,
                upload_path=saved_path,
                uploaded_by=user,
            )
        except DatabaseError as e:
            default_storage.delete(saved_path)
            return cls.handle_store_error(e, "store_upload")

        logger.info(
            f"User {user.pk} uploaded {original_name} ({uploaded_file.size} bytes) to {saved_path}"
        )
        return ServiceResult.success(file)

    @classmethod
    def discard(cls, file: MessageFile) -> None:
        """Remove a stored upload that never became part of a message."""
        file_id, upload_path = file.pk, file.upload_path
        try:
            file.delete()
        except DatabaseError:
            logger.error(f"Could not delete upload record {file_id}", exc_info=True)
        default_storage.delete(upload_path)
        logger.info(f"Discarded unsent upload {upload_path}")
