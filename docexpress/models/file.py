"""File metadata models and MIME classification."""

from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import AliasChoices, BaseModel, ConfigDict, Field


class FileType(str, Enum):
    """Coarse file classification derived from MIME type."""

    IMAGE = "image"
    PDF = "pdf"
    VIDEO = "video"
    DOCUMENT = "document"
    TEXT = "text"
    OTHER = "other"


class FileState(str, Enum):
    """Lifecycle of a file record. A purged file has no record at all."""

    LIVE = "LIVE"
    SOFT_DELETED = "SOFT_DELETED"


MIME_TYPES: Dict[FileType, tuple[str, ...]] = {
    FileType.IMAGE: (
        "image/jpeg",
        "image/png",
        "image/webp",
        "image/heic",
        "image/heif",
        "image/gif",
        "image/bmp",
        "image/tiff",
    ),
    FileType.PDF: ("application/pdf",),
    FileType.VIDEO: (
        "video/mp4",
        "video/mpeg",
        "video/quicktime",
        "video/x-msvideo",
        "video/webm",
        "video/x-matroska",
    ),
    FileType.DOCUMENT: (
        "application/vnd.openxmlformats-officedocument.wordprocessingml.document",  # .docx
        "application/msword",  # .doc
        "application/vnd.openxmlformats-officedocument.presentationml.presentation",  # .pptx
        "application/vnd.ms-powerpoint",  # .ppt
        "application/vnd.openxmlformats-officedocument.spreadsheetml.sheet",  # .xlsx
        "application/vnd.ms-excel",  # .xls
    ),
    FileType.TEXT: ("text/plain",),
}

# Upload size limits in bytes
FILE_SIZE_LIMITS: Dict[FileType, int] = {
    FileType.IMAGE: 20 * 1024 * 1024,
    FileType.VIDEO: 500 * 1024 * 1024,
    FileType.DOCUMENT: 50 * 1024 * 1024,
}
DEFAULT_FILE_SIZE_LIMIT = 50 * 1024 * 1024


def file_type_from_mime(mime_type: Optional[str]) -> FileType:
    """Classify a MIME type; unknown types map to OTHER."""
    for file_type, mime_types in MIME_TYPES.items():
        if mime_type in mime_types:
            return file_type
    return FileType.OTHER


def is_allowed_mime_type(mime_type: Optional[str]) -> bool:
    """Whether uploads of this MIME type are accepted."""
    return file_type_from_mime(mime_type) is not FileType.OTHER


def size_limit_for(file_type: FileType) -> int:
    return FILE_SIZE_LIMITS.get(file_type, DEFAULT_FILE_SIZE_LIMIT)


def extension_of(name: str) -> Optional[str]:
    """Lower-cased extension without the dot, or None."""
    suffix = Path(name).suffix
    return suffix[1:].lower() if suffix else None


class UploadMeta(BaseModel):
    """What the storage adapter reports about a freshly stored upload."""

    original_name: str
    filename: str
    mime_type: str
    size: int = Field(ge=0)
    storage_path: str
    storage_key: Optional[str] = None


class OutputMeta(BaseModel):
    """An operation output already written to disk."""

    file_path: Path
    original_name: str
    mime_type: str


class FileResponse(BaseModel):
    """Response containing file metadata."""

    model_config = ConfigDict(from_attributes=True)

    file_id: UUID
    owner_id: str
    original_name: str
    filename: str
    mime_type: str
    size: int
    file_type: FileType
    extension: Optional[str] = None
    storage_key: str
    is_favorite: bool = False
    is_deleted: bool = False
    deleted_at: Optional[datetime] = None
    source_job_id: Optional[UUID] = None
    metadata: Dict[str, Any] = Field(
        default_factory=dict, validation_alias=AliasChoices("file_metadata", "metadata")
    )
    created_at: datetime
    updated_at: Optional[datetime] = None


class FileTypeUsage(BaseModel):
    count: int
    total_size: int


class FileUsageStats(BaseModel):
    """Aggregate usage over an owner's live files."""

    by_type: Dict[str, FileTypeUsage]
    total_files: int
    total_size: int


class FileBatchRequest(BaseModel):
    file_ids: List[UUID] = Field(..., min_length=1)


class RenameFileRequest(BaseModel):
    new_name: str = Field(..., min_length=1, max_length=255)
