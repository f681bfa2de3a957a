"""File lifecycle service: create, resolve, update and destroy file records."""

import logging
from pathlib import Path
from typing import Iterable, List, Optional, Sequence, Tuple, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from docexpress.core.config import settings
from docexpress.core.errors import ForbiddenError, InvalidRequestError, NotFoundError
from docexpress.db.models import StoredFile, utcnow
from docexpress.models.file import (
    FileResponse,
    FileState,
    FileType,
    FileTypeUsage,
    FileUsageStats,
    OutputMeta,
    UploadMeta,
    extension_of,
    file_type_from_mime,
)
from docexpress.services.storage_service import StorageService

logger = logging.getLogger(__name__)

FileId = Union[UUID, str]

SORTABLE_FIELDS = {"created_at", "updated_at", "original_name", "size", "file_type"}


def as_uuid(value: FileId) -> UUID:
    """Parse an id; malformed ids never resolve."""
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError(f"File {value} not found") from None


class FileService:
    """Service for managing file metadata records."""

    @staticmethod
    def _upload_record(upload: UploadMeta, owner_id: str) -> StoredFile:
        return StoredFile(
            owner_id=owner_id,
            original_name=upload.original_name,
            filename=upload.filename,
            mime_type=upload.mime_type,
            size=upload.size,
            storage_path=upload.storage_path,
            storage_key=upload.storage_key or upload.filename,
            file_type=file_type_from_mime(upload.mime_type),
            extension=extension_of(upload.original_name),
            file_metadata={},
        )

    @staticmethod
    def create_from_upload(db: Session, upload: UploadMeta, owner_id: str) -> StoredFile:
        """Create a file record for an inbound upload."""
        [file] = FileService.create_from_uploads(db, [upload], owner_id)
        return file

    @staticmethod
    def create_from_uploads(db: Session, uploads: Sequence[UploadMeta], owner_id: str) -> List[StoredFile]:
        """
        Create records for several uploads in one commit.

        Either every record is created or none is; the caller owns the
        stored bytes and removes them on failure.
        """
        files: List[StoredFile] = []
        try:
            for upload in uploads:
                file = FileService._upload_record(upload, owner_id)
                db.add(file)
                files.append(file)
            db.commit()
        except Exception:
            db.rollback()
            raise

        for file in files:
            db.refresh(file)
            logger.info(f"Created file {file.file_id} for owner {owner_id} ({file.file_type.value})")

        return files

    @staticmethod
    def create_output(
        db: Session,
        output: OutputMeta,
        owner_id: str,
        job_id: Optional[UUID] = None,
    ) -> StoredFile:
        """
        Register a file an operation wrote to disk.

        Size is read from disk and the record is stamped with the producing
        job for traceability. Each call commits on its own, so outputs
        registered before a later failure stay valid files.

        Args:
            db: Database session
            output: Path, display name and MIME type of the output
            owner_id: Owner of the new file
            job_id: Job that produced the file

        Returns:
            The new file record
        """
        path = Path(output.file_path)
        file = StoredFile(
            owner_id=owner_id,
            original_name=output.original_name,
            filename=path.name,
            mime_type=output.mime_type,
            size=path.stat().st_size,
            storage_path=str(path.resolve()),
            storage_key=StorageService.storage_key_for(path),
            file_type=file_type_from_mime(output.mime_type),
            extension=extension_of(output.original_name),
            file_metadata={},
            source_job_id=job_id,
        )
        db.add(file)
        db.commit()
        db.refresh(file)

        logger.info(f"Registered output file {file.file_id} for job {job_id}")

        return file

    @staticmethod
    def get_file(
        db: Session,
        file_id: FileId,
        owner_id: Optional[str] = None,
        include_deleted: bool = False,
    ) -> StoredFile:
        """
        Get a single file.

        Raises:
            NotFoundError: If missing, or soft-deleted and ``include_deleted`` is False
            ForbiddenError: If ``owner_id`` is given and does not own the file
        """
        query = db.query(StoredFile).filter(StoredFile.file_id == as_uuid(file_id))
        if not include_deleted:
            query = query.filter(StoredFile.state == FileState.LIVE)

        file = query.first()
        if not file:
            raise NotFoundError("File not found")

        if owner_id is not None and file.owner_id != owner_id:
            raise ForbiddenError("Access denied to this file")

        return file

    @staticmethod
    def resolve_files(
        db: Session, file_ids: Sequence[FileId], owner_id: Optional[str] = None
    ) -> List[StoredFile]:
        """
        Resolve live files, all or nothing.

        Args:
            db: Database session
            file_ids: Requested ids; the result follows this order
            owner_id: When given, every file must belong to this owner

        Returns:
            One record per requested id

        Raises:
            NotFoundError: If any id does not resolve to a live file
            ForbiddenError: If any resolved file belongs to someone else
        """
        ids = [as_uuid(file_id) for file_id in file_ids]
        unique_ids = set(ids)

        files = (
            db.query(StoredFile)
            .filter(StoredFile.file_id.in_(unique_ids), StoredFile.state == FileState.LIVE)
            .all()
        )

        if len(files) != len(unique_ids):
            raise NotFoundError("One or more files not found")

        if owner_id is not None:
            foreign = [f for f in files if f.owner_id != owner_id]
            if foreign:
                raise ForbiddenError("Access denied to one or more files")

        by_id = {f.file_id: f for f in files}
        return [by_id[file_id] for file_id in ids]

    @staticmethod
    def find_existing(db: Session, file_ids: Iterable[FileId]) -> List[StoredFile]:
        """
        Records that still exist for ``file_ids``, in request order.

        Soft-deleted records are kept; purged ones and malformed ids are
        silently skipped. Used to render job history.
        """
        ids = []
        for file_id in file_ids:
            try:
                ids.append(as_uuid(file_id))
            except NotFoundError:
                continue
        if not ids:
            return []

        by_id = {
            f.file_id: f
            for f in db.query(StoredFile).filter(StoredFile.file_id.in_(set(ids))).all()
        }
        return [by_id[file_id] for file_id in ids if file_id in by_id]

    @staticmethod
    def list_files(
        db: Session,
        owner_id: str,
        page: int = 1,
        limit: Optional[int] = None,
        file_type: Optional[FileType] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[StoredFile], int, int]:
        """
        List an owner's live files.

        Returns:
            Tuple of (files, total, effective_limit)
        """
        page = max(page, 1)
        limit = min(limit or settings.default_page_limit, settings.max_page_limit)
        if sort_by not in SORTABLE_FIELDS:
            raise InvalidRequestError(f"Cannot sort files by {sort_by}")

        query = db.query(StoredFile).filter(
            StoredFile.owner_id == owner_id, StoredFile.state == FileState.LIVE
        )
        if file_type is not None:
            query = query.filter(StoredFile.file_type == file_type)

        total = query.count()
        column = getattr(StoredFile, sort_by)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        files = query.order_by(ordering).offset((page - 1) * limit).limit(limit).all()

        return files, total, limit

    @staticmethod
    def rename_file(db: Session, file_id: FileId, owner_id: str, new_name: str) -> StoredFile:
        """Change the display name; the extension follows the new name."""
        new_name = (new_name or "").strip()
        if not new_name:
            raise InvalidRequestError("New name is required")

        file = FileService.get_file(db, file_id, owner_id)
        file.original_name = new_name
        file.extension = extension_of(new_name)
        db.commit()
        db.refresh(file)
        return file

    @staticmethod
    def toggle_favorite(db: Session, file_id: FileId, owner_id: str) -> StoredFile:
        file = FileService.get_file(db, file_id, owner_id)
        file.is_favorite = not file.is_favorite
        db.commit()
        db.refresh(file)
        return file

    @staticmethod
    def soft_delete(db: Session, file_id: FileId, owner_id: str) -> StoredFile:
        """
        Move a live file to SOFT_DELETED.

        The record and bytes stay; the file drops out of listings, stats and
        resolution but remains visible in job history.
        """
        file = FileService.get_file(db, file_id, owner_id)
        file.state = FileState.SOFT_DELETED
        file.deleted_at = utcnow()
        db.commit()
        db.refresh(file)

        logger.info(f"Soft-deleted file {file.file_id} for owner {owner_id}")

        return file

    @staticmethod
    def hard_delete(db: Session, file_id: FileId, owner_id: str) -> dict:
        """
        Purge a file: remove its bytes, then its record.

        A failure to remove the bytes is logged and does not block removal
        of the record.
        """
        file = FileService.get_file(db, file_id, owner_id, include_deleted=True)
        removed_from_disk = StorageService.remove(FileService.resolve_path(file))

        db.delete(file)
        db.commit()

        logger.info(
            f"Purged file {file_id} for owner {owner_id} (bytes removed: {removed_from_disk})"
        )

        return {"deleted": True, "file_id": str(file_id)}

    @staticmethod
    def resolve_path(file: StoredFile) -> Path:
        """
        Absolute path of a file's bytes.

        Relative storage paths are taken relative to the storage root. This
        does not check containment; call ``ensure_within_storage_root``
        before touching the bytes.
        """
        path = Path(file.storage_path)
        if not path.is_absolute():
            path = Path(settings.storage_root) / path
        return path.resolve()

    @staticmethod
    def ensure_within_storage_root(file: StoredFile) -> Path:
        """Resolved path of ``file``, guaranteed inside the storage root."""
        return StorageService.ensure_within_root(FileService.resolve_path(file))

    @staticmethod
    def usage_stats(db: Session, owner_id: str) -> FileUsageStats:
        """Count and total size of an owner's live files, by file type."""
        rows = (
            db.query(
                StoredFile.file_type,
                func.count(StoredFile.file_id),
                func.coalesce(func.sum(StoredFile.size), 0),
            )
            .filter(StoredFile.owner_id == owner_id, StoredFile.state == FileState.LIVE)
            .group_by(StoredFile.file_type)
            .all()
        )

        by_type = {
            file_type.value: FileTypeUsage(count=count, total_size=int(total_size))
            for file_type, count, total_size in rows
        }

        return FileUsageStats(
            by_type=by_type,
            total_files=sum(usage.count for usage in by_type.values()),
            total_size=sum(usage.total_size for usage in by_type.values()),
        )

    @staticmethod
    def to_response(file: StoredFile) -> FileResponse:
        """Convert StoredFile ORM model to response Pydantic model."""
        return FileResponse.model_validate(file)
