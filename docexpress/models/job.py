"""Job models for file transformation work."""

from datetime import datetime
from enum import Enum
from typing import Any, Dict, List, Optional
from uuid import UUID

from pydantic import BaseModel, Field

from docexpress.models.file import FileResponse


class JobType(str, Enum):
    """Closed set of operations a job can run."""

    # Image conversions
    IMAGE_TO_PDF = "IMAGE_TO_PDF"
    IMAGE_TO_TXT = "IMAGE_TO_TXT"
    IMAGE_FORMAT_CONVERT = "IMAGE_FORMAT_CONVERT"
    IMAGE_TRANSFORM = "IMAGE_TRANSFORM"
    IMAGE_MERGE = "IMAGE_MERGE"

    # PDF operations
    PDF_MERGE = "PDF_MERGE"
    PDF_SPLIT = "PDF_SPLIT"
    PDF_REORDER = "PDF_REORDER"
    PDF_EXTRACT_TEXT = "PDF_EXTRACT_TEXT"
    PDF_EXTRACT_IMAGES = "PDF_EXTRACT_IMAGES"

    # Document conversions
    DOCX_TO_PDF = "DOCX_TO_PDF"
    PPTX_TO_PDF = "PPTX_TO_PDF"

    # Compression
    COMPRESS_IMAGE = "COMPRESS_IMAGE"
    COMPRESS_PDF = "COMPRESS_PDF"
    COMPRESS_VIDEO = "COMPRESS_VIDEO"


class JobStatus(str, Enum):
    """Job processing status."""

    PENDING = "PENDING"
    RUNNING = "RUNNING"
    COMPLETED = "COMPLETED"
    FAILED = "FAILED"


ACTIVE_STATUSES = (JobStatus.PENDING, JobStatus.RUNNING)
TERMINAL_STATUSES = (JobStatus.COMPLETED, JobStatus.FAILED)

CANCELLED_MESSAGE = "Cancelled by user"


class JobSpec(BaseModel):
    """Everything needed to admit a job."""

    owner_id: str
    job_type: JobType
    input_file_ids: List[UUID]
    options: Dict[str, Any] = Field(default_factory=dict)


class JobResponse(BaseModel):
    """Response containing job information with resolved file metadata."""

    job_id: UUID
    owner_id: str
    job_type: JobType
    status: JobStatus

    input_files: List[FileResponse] = Field(default_factory=list)
    output_files: List[FileResponse] = Field(default_factory=list)
    options: Dict[str, Any] = Field(default_factory=dict)

    error_message: Optional[str] = None

    created_at: datetime
    updated_at: Optional[datetime] = None
    completed_at: Optional[datetime] = None
    duration_seconds: Optional[float] = None


class JobStats(BaseModel):
    """Per-owner job history aggregate."""

    total: int
    by_status: Dict[str, int]
    by_type: Dict[str, int]


class OperationRequest(BaseModel):
    """Request body for submitting an operation."""

    file_ids: List[UUID] = Field(default_factory=list)
    options: Dict[str, Any] = Field(default_factory=dict)


class CleanupRequest(BaseModel):
    max_age_days: int = Field(default=30, ge=1)
