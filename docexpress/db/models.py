"""SQLAlchemy ORM models for jobs and stored files."""

from datetime import datetime, timezone
from typing import Optional
from uuid import uuid4

from sqlalchemy import (
    BigInteger,
    Boolean,
    Column,
    DateTime,
    Enum,
    Index,
    JSON,
    String,
    Text,
    Uuid,
)

from docexpress.db.base import Base
from docexpress.models.file import FileState, FileType
from docexpress.models.job import JobStatus, JobType


def utcnow() -> datetime:
    """Naive UTC timestamp, the form every DateTime column stores."""
    return datetime.now(timezone.utc).replace(tzinfo=None)


class StoredFile(Base):
    """Metadata record for a stored byte blob."""

    __tablename__ = "files"
    __allow_unmapped__ = True

    file_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    owner_id = Column(String(64), nullable=False, index=True)

    original_name = Column(String(255), nullable=False)
    filename = Column(String(255), nullable=False, unique=True)
    mime_type = Column(String(255), nullable=False)
    size = Column(BigInteger, nullable=False, default=0)
    storage_path = Column(String(1024), nullable=False)
    storage_key = Column(String(1024), nullable=False, unique=True)
    file_type = Column(Enum(FileType), nullable=False, index=True)
    extension = Column(String(32), nullable=True)

    # width/height for images, duration for videos, pages for PDFs
    file_metadata = Column("metadata", JSON, nullable=False, default=dict)
    is_favorite = Column(Boolean, nullable=False, default=False)

    state = Column(Enum(FileState), nullable=False, default=FileState.LIVE, index=True)
    deleted_at = Column(DateTime, nullable=True)

    # Back-reference only; never an ownership edge
    source_job_id = Column(Uuid(as_uuid=True), nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)

    __table_args__ = (
        Index("ix_files_owner_created", "owner_id", "created_at"),
        Index("ix_files_owner_type", "owner_id", "file_type"),
        Index("ix_files_owner_state", "owner_id", "state"),
    )

    @property
    def is_deleted(self) -> bool:
        return self.state == FileState.SOFT_DELETED

    def __repr__(self) -> str:
        return f"<StoredFile(id={self.file_id}, name='{self.original_name}', state={self.state})>"


class Job(Base):
    """A tracked unit of work turning input files into output files."""

    __tablename__ = "jobs"
    __allow_unmapped__ = True

    job_id = Column(Uuid(as_uuid=True), primary_key=True, default=uuid4)
    owner_id = Column(String(64), nullable=False, index=True)
    job_type = Column(Enum(JobType), nullable=False, index=True)
    status = Column(Enum(JobStatus), nullable=False, default=JobStatus.PENDING, index=True)

    # Ordered lists of file ids (as strings); references only
    input_files = Column(JSON, nullable=False, default=list)
    output_files = Column(JSON, nullable=False, default=list)
    options = Column(JSON, nullable=False, default=dict)

    error_message = Column(Text, nullable=True)

    created_at = Column(DateTime, nullable=False, default=utcnow)
    updated_at = Column(DateTime, nullable=False, default=utcnow, onupdate=utcnow)
    completed_at = Column(DateTime, nullable=True)

    __table_args__ = (
        Index("ix_jobs_owner_created", "owner_id", "created_at"),
        Index("ix_jobs_owner_status", "owner_id", "status"),
        Index("ix_jobs_owner_type", "owner_id", "job_type"),
    )

    @property
    def duration_seconds(self) -> Optional[float]:
        if not self.completed_at or not self.created_at:
            return None
        return (self.completed_at - self.created_at).total_seconds()

    def __repr__(self) -> str:
        return f"<Job(id={self.job_id}, type={self.job_type}, status={self.status})>"
