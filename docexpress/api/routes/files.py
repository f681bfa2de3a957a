"""File upload and management API routes."""

import logging
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, File, Query, Request, UploadFile, status
from fastapi.responses import FileResponse as FileDownload
from sqlalchemy.orm import Session as DBSession

from docexpress.core.config import settings
from docexpress.core.errors import InvalidRequestError, NotFoundError
from docexpress.db.session import get_db
from docexpress.middleware.auth import get_current_user_id
from docexpress.middleware.rate_limit import limiter
from docexpress.models.common import PaginatedResponse, Pagination
from docexpress.models.file import (
    FileBatchRequest,
    FileResponse,
    FileType,
    FileUsageStats,
    RenameFileRequest,
    UploadMeta,
)
from docexpress.services.file_service import FileService
from docexpress.services.storage_service import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/files", tags=["files"])

MAX_FILES_PER_UPLOAD = 10


@router.post("/upload", response_model=FileResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.upload_rate_limit)
async def upload_file(
    request: Request,
    file: UploadFile = File(...),
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> FileResponse:
    """
    Upload a single file.

    Raises:
        UnsupportedMediaError: If the MIME type is not accepted
        FileTooLargeError: If the file exceeds its type's size limit
    """
    if not file.filename:
        raise InvalidRequestError("No file uploaded")

    content = await file.read()
    upload = StorageService.save_upload(content, file.filename, file.content_type)
    record = FileService.create_from_upload(db, upload, user_id)

    return FileService.to_response(record)


@router.post("/upload-multiple", status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.upload_rate_limit)
async def upload_multiple_files(
    request: Request,
    files: List[UploadFile] = File(...),
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
):
    """
    Upload up to ten files at once.

    Every file is validated and stored before the records are created in a
    single commit; if anything fails, no record is kept and the bytes
    already stored are removed.
    """
    if not files:
        raise InvalidRequestError("No files uploaded")
    if len(files) > MAX_FILES_PER_UPLOAD:
        raise InvalidRequestError(f"At most {MAX_FILES_PER_UPLOAD} files can be uploaded at once")

    stored: List[UploadMeta] = []
    try:
        for file in files:
            content = await file.read()
            stored.append(StorageService.save_upload(content, file.filename or "upload", file.content_type))
        records = FileService.create_from_uploads(db, stored, user_id)
    except Exception:
        for upload in stored:
            StorageService.remove(upload.storage_path)
        raise

    return {
        "files": [FileService.to_response(record) for record in records],
        "count": len(records),
    }


@router.get("", response_model=PaginatedResponse[FileResponse])
async def list_files(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    file_type: Optional[FileType] = Query(None, alias="fileType"),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> PaginatedResponse[FileResponse]:
    """List the caller's live files."""
    files, total, limit = FileService.list_files(
        db,
        user_id,
        page=page,
        limit=limit,
        file_type=file_type,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return PaginatedResponse[FileResponse](
        data=[FileService.to_response(f) for f in files],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/stats", response_model=FileUsageStats)
async def get_file_stats(
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> FileUsageStats:
    return FileService.usage_stats(db, user_id)


@router.post("/batch")
async def get_files_by_ids(
    body: FileBatchRequest,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
):
    """Resolve several files at once; fails if any is missing or foreign."""
    files = FileService.resolve_files(db, body.file_ids, owner_id=user_id)
    return {"files": [FileService.to_response(f) for f in files]}


@router.get("/{file_id}", response_model=FileResponse)
async def get_file(
    file_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> FileResponse:
    return FileService.to_response(FileService.get_file(db, file_id, user_id))


@router.get("/{file_id}/download")
async def download_file(
    file_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
):
    """
    Stream a file's bytes.

    Raises:
        ForbiddenError: If the stored path escapes the storage root
        NotFoundError: If the bytes are gone from disk
    """
    file = FileService.get_file(db, file_id, user_id)
    path = FileService.ensure_within_storage_root(file)
    if not path.is_file():
        raise NotFoundError("File not found on disk")

    return FileDownload(path, media_type=file.mime_type, filename=file.original_name)


@router.patch("/{file_id}/rename", response_model=FileResponse)
async def rename_file(
    file_id: UUID,
    body: RenameFileRequest,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> FileResponse:
    return FileService.to_response(FileService.rename_file(db, file_id, user_id, body.new_name))


@router.patch("/{file_id}/favorite", response_model=FileResponse)
async def toggle_favorite(
    file_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> FileResponse:
    return FileService.to_response(FileService.toggle_favorite(db, file_id, user_id))


@router.delete("/{file_id}", response_model=FileResponse)
async def delete_file(
    file_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> FileResponse:
    """Soft delete: the file disappears from listings but stays in job history."""
    return FileService.to_response(FileService.soft_delete(db, file_id, user_id))


@router.delete("/{file_id}/permanent")
async def permanently_delete_file(
    file_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
):
    """Remove the file's bytes and record."""
    return FileService.hard_delete(db, file_id, user_id)
