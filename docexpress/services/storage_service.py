"""Local disk storage adapter: upload intake, scratch paths, byte removal."""

import logging
import mimetypes
import time
from pathlib import Path
from typing import Optional
from uuid import uuid4

from docexpress.core.config import settings
from docexpress.core.errors import FileTooLargeError, ForbiddenError, UnsupportedMediaError
from docexpress.models.file import (
    UploadMeta,
    file_type_from_mime,
    is_allowed_mime_type,
    size_limit_for,
)

logger = logging.getLogger(__name__)


class StorageService:
    """Service for placing bytes under the storage root."""

    @staticmethod
    def storage_root() -> Path:
        return Path(settings.storage_root).resolve()

    @staticmethod
    def temp_path(extension: str) -> Path:
        """
        Get a unique scratch path for an operation output.

        Args:
            extension: File extension, with or without the leading dot

        Returns:
            Path under the temp directory; parent directories exist
        """
        if extension and not extension.startswith("."):
            extension = f".{extension}"
        temp_dir = StorageService.storage_root() / "temp"
        temp_dir.mkdir(parents=True, exist_ok=True)
        return temp_dir / f"temp-{int(time.time() * 1000)}-{uuid4()}{extension}"

    @staticmethod
    def detect_mime_type(filename: str, declared: Optional[str] = None) -> str:
        """Prefer the declared content type unless it is generic."""
        if declared and declared != "application/octet-stream":
            return declared
        guessed, _ = mimetypes.guess_type(filename)
        return guessed or declared or "application/octet-stream"

    @staticmethod
    def save_upload(content: bytes, original_name: str, mime_type: Optional[str] = None) -> UploadMeta:
        """
        Validate and store an uploaded file.

        Args:
            content: Raw bytes
            original_name: Client-supplied file name
            mime_type: Client-declared content type

        Returns:
            Upload metadata ready for FileService.create_from_upload

        Raises:
            UnsupportedMediaError: If the MIME type is not accepted
            FileTooLargeError: If the size exceeds the limit for its file type
        """
        mime_type = StorageService.detect_mime_type(original_name, mime_type)
        if not is_allowed_mime_type(mime_type):
            raise UnsupportedMediaError(f"Unsupported file type: {mime_type}")

        limit = size_limit_for(file_type_from_mime(mime_type))
        if len(content) > limit:
            raise FileTooLargeError(
                f"File size exceeds the allowed limit of {limit // (1024 * 1024)}MB"
            )

        upload_dir = StorageService.storage_root() / "uploads"
        upload_dir.mkdir(parents=True, exist_ok=True)
        filename = f"{uuid4()}{Path(original_name).suffix.lower()}"
        file_path = upload_dir / filename
        file_path.write_bytes(content)

        logger.info(f"Stored upload {original_name} as {filename} ({len(content)} bytes)")

        return UploadMeta(
            original_name=original_name,
            filename=filename,
            mime_type=mime_type,
            size=len(content),
            storage_path=str(file_path),
            storage_key=StorageService.storage_key_for(file_path),
        )

    @staticmethod
    def storage_key_for(path: Path) -> str:
        """Location of ``path`` relative to the storage root."""
        resolved = Path(path).resolve()
        try:
            return resolved.relative_to(StorageService.storage_root()).as_posix()
        except ValueError:
            return resolved.name

    @staticmethod
    def ensure_within_root(path: Path) -> Path:
        """
        Resolve ``path`` and make sure it stays inside the storage root.

        Raises:
            ForbiddenError: If the path escapes the storage root
        """
        resolved = Path(path).resolve()
        if not resolved.is_relative_to(StorageService.storage_root()):
            raise ForbiddenError("Invalid file path", code="invalid_path")
        return resolved

    @staticmethod
    def remove(path: Path) -> bool:
        """Best-effort unlink. Failures are logged, never raised."""
        try:
            StorageService.ensure_within_root(path).unlink()
            return True
        except (OSError, ForbiddenError) as e:
            logger.warning(f"Failed to delete file from disk: {path} ({e})")
            return False
