"""
Tests for attachment validation and storage.
"""

from unittest.mock import patch

from django.core.files.storage import default_storage
from django.core.files.uploadedfile import SimpleUploadedFile
from django.db import DatabaseError

from chat.models import MessageFile
from chat.uploads import UploadService, message_type_for_mime, validate_upload


# =============================================================================
# TestValidateUpload
# =============================================================================


class TestValidateUpload:
    def test_maps_mime_types_to_message_types(self):
        assert message_type_for_mime("image/png") == "image"
        assert message_type_for_mime("video/mp4") == "video"
        assert message_type_for_mime("application/pdf") == "file"
        assert message_type_for_mime("text/html") is None

    def test_accepts_allowed_type_ignoring_parameters(self):
        result = validate_upload("Image/JPEG; charset=binary", 1024)

        assert result.is_valid is True
        assert result.message_type == "image"

    def test_rejects_unknown_type(self):
        result = validate_upload("application/x-msdownload", 1024)

        assert result.is_valid is False
        assert result.error_code == "UNSUPPORTED_FILE_TYPE"

    def test_size_limit_is_inclusive(self, settings):
        settings.CHAT_MAX_UPLOAD_SIZE = 1000

        assert validate_upload("image/png", 1000).is_valid is True
        too_big = validate_upload("image/png", 1001)
        assert too_big.is_valid is False
        assert too_big.error_code == "FILE_TOO_LARGE"


# =============================================================================
# TestUploadServiceStore
# =============================================================================


class TestUploadServiceStore:
    """
    Verifies:
    - Files land under the directory for their message type with a random name
    - A failed database write leaves no orphan file behind
    """

    def test_stores_video_under_videos(self, db, alice):
        upload = SimpleUploadedFile("clip.MP4", b"\x00\x00\x00\x18ftyp", content_type="video/mp4")

        result = UploadService.store(user=alice, uploaded_file=upload)

        assert result.success is True
        file = result.data
        assert file.upload_path.startswith("chat/videos/")
        assert file.stored_name.endswith(".mp4")
        assert file.original_name == "clip.MP4"
        assert file.file_type == "mp4"
        assert file.file_size == upload.size
        assert file.uploaded_by_id == alice.pk
        assert default_storage.exists(file.upload_path)

    def test_same_name_gets_distinct_stored_names(self, db, alice):
        first = UploadService.store(
            user=alice,
            uploaded_file=SimpleUploadedFile("a.png", b"1", content_type="image/png"),
        )
        second = UploadService.store(
            user=alice,
            uploaded_file=SimpleUploadedFile("a.png", b"2", content_type="image/png"),
        )

        assert first.data.stored_name != second.data.stored_name

    def test_rejected_file_is_not_stored(self, db, alice):
        upload = SimpleUploadedFile("page.html", b"<html>", content_type="text/html")

        result = UploadService.store(user=alice, uploaded_file=upload)

        assert result.error_code == "UNSUPPORTED_FILE_TYPE"
        assert MessageFile.objects.count() == 0

    def test_store_error_removes_saved_file(self, db, alice):
        """
        Why it matters: Files without a MessageFile row can never be served
        or cleaned up.
        """
        upload = SimpleUploadedFile("a.png", b"png", content_type="image/png")

        with patch.object(MessageFile.objects, "create", side_effect=DatabaseError("down")):
            result = UploadService.store(user=alice, uploaded_file=upload)

        assert result.success is False
        assert result.error_code == "STORE_ERROR"
        _, files = default_storage.listdir("chat/images")
        assert files == []
