"""Administrative job routes."""

import logging
from typing import Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query
from sqlalchemy.orm import Session as DBSession

from docexpress.db.session import get_db
from docexpress.middleware.auth import require_admin
from docexpress.models.common import PaginatedResponse, Pagination
from docexpress.models.job import CleanupRequest, JobResponse, JobStatus, JobType
from docexpress.services.job_service import JobService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/admin", tags=["admin"])


@router.get("/jobs", response_model=PaginatedResponse[JobResponse])
async def list_all_jobs(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    owner_id: Optional[str] = Query(None, alias="ownerId"),
    job_type: Optional[JobType] = Query(None, alias="type"),
    job_status: Optional[JobStatus] = Query(None, alias="status"),
    admin_id: str = Depends(require_admin),
    db: DBSession = Depends(get_db),
) -> PaginatedResponse[JobResponse]:
    """List jobs across all owners."""
    jobs, total, limit = JobService.list_all_jobs(
        db, page=page, limit=limit, owner_id=owner_id, job_type=job_type, status=job_status
    )
    return PaginatedResponse[JobResponse](
        data=[JobService.to_response(db, job) for job in jobs],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/jobs/{job_id}", response_model=JobResponse)
async def get_any_job(
    job_id: UUID,
    admin_id: str = Depends(require_admin),
    db: DBSession = Depends(get_db),
) -> JobResponse:
    return JobService.to_response(db, JobService.get_job(db, job_id))


@router.post("/jobs/cleanup")
async def cleanup_jobs(
    body: CleanupRequest,
    admin_id: str = Depends(require_admin),
    db: DBSession = Depends(get_db),
):
    """Delete terminal jobs older than ``max_age_days``."""
    deleted = JobService.cleanup_old_jobs(db, body.max_age_days)
    logger.info(f"Admin {admin_id} cleaned up {deleted} job(s)")
    return {"deleted_count": deleted, "max_age_days": body.max_age_days}
