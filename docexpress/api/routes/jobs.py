"""Job history and management API routes."""

import logging
from typing import List, Literal, Optional
from uuid import UUID

from fastapi import APIRouter, Depends, Query, status
from sqlalchemy.orm import Session as DBSession

from docexpress.api.dependencies import ensure_job_capacity, processing_errors
from docexpress.core.config import settings
from docexpress.db.session import get_db
from docexpress.middleware.auth import get_current_user_id
from docexpress.models.common import PaginatedResponse, Pagination
from docexpress.models.job import JobResponse, JobStats, JobStatus, JobType
from docexpress.models.options import OPTIONS_MODELS
from docexpress.operations.registry import OPERATIONS, build_processor
from docexpress.services.job_service import JobService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/jobs", tags=["jobs"])


@router.get("", response_model=PaginatedResponse[JobResponse])
async def list_jobs(
    page: int = Query(1, ge=1),
    limit: Optional[int] = Query(None, ge=1),
    job_type: Optional[JobType] = Query(None, alias="type"),
    job_status: Optional[JobStatus] = Query(None, alias="status"),
    sort_by: str = Query("created_at", alias="sortBy"),
    sort_order: Literal["asc", "desc"] = Query("desc", alias="sortOrder"),
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> PaginatedResponse[JobResponse]:
    """List the caller's jobs, newest first by default."""
    jobs, total, limit = JobService.list_jobs(
        db,
        owner_id=user_id,
        page=page,
        limit=limit,
        job_type=job_type,
        status=job_status,
        sort_by=sort_by,
        sort_order=sort_order,
    )
    return PaginatedResponse[JobResponse](
        data=[JobService.to_response(db, job) for job in jobs],
        pagination=Pagination.build(page, limit, total),
    )


@router.get("/recent", response_model=List[JobResponse])
async def recent_jobs(
    limit: int = Query(10, ge=1),
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> List[JobResponse]:
    return [JobService.to_response(db, job) for job in JobService.recent_jobs(db, user_id, limit)]


@router.get("/stats", response_model=JobStats)
async def job_stats(
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> JobStats:
    return JobService.job_stats(db, user_id)


@router.get("/types")
async def job_types(user_id: str = Depends(get_current_user_id)):
    """Available job types with the input file types and options each accepts."""
    return {
        "types": [
            {
                "type": job_type.value,
                "accepted_file_types": sorted(t.value for t in operation.accepted_file_types),
                "min_inputs": operation.min_inputs,
                "max_inputs": operation.max_inputs,
                "options_schema": OPTIONS_MODELS[job_type].model_json_schema(),
            }
            for job_type, operation in OPERATIONS.items()
        ]
    }


@router.get("/pending-count")
async def pending_count(
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
):
    return {"count": JobService.pending_jobs_count(db, user_id)}


@router.get("/check-limit")
async def check_limit(
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
):
    """Advisory view of admission control for the caller."""
    current = JobService.pending_jobs_count(db, user_id)
    return {
        "can_create": current < settings.max_concurrent_jobs,
        "current": current,
        "limit": settings.max_concurrent_jobs,
    }


@router.get("/{job_id}", response_model=JobResponse)
async def get_job(
    job_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> JobResponse:
    """
    Get job status and details.

    Input and output files are resolved to their metadata; files deleted
    since are flagged, purged ones are omitted.
    """
    return JobService.to_response(db, JobService.get_job(db, job_id, user_id))


@router.post("/{job_id}/cancel", response_model=JobResponse)
async def cancel_job(
    job_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> JobResponse:
    return JobService.to_response(db, JobService.cancel_job(db, job_id, user_id))


@router.post("/{job_id}/retry", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
async def retry_job(
    job_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> JobResponse:
    """Re-queue a failed job as a new PENDING job without running it."""
    return JobService.to_response(db, JobService.retry_job(db, job_id, user_id))


@router.post("/{job_id}/rerun", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
def rerun_job(
    job_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> JobResponse:
    """Retry a failed job and run the new job right away on a worker thread."""
    original = JobService.get_job(db, job_id, user_id)
    ensure_job_capacity(db, user_id)
    with processing_errors():
        job = JobService.re_execute_job(db, job_id, user_id, build_processor(db, original.job_type))
    return JobService.to_response(db, job)


@router.delete("/{job_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_job(
    job_id: UUID,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> None:
    """Delete a job record; its files are left alone."""
    JobService.delete_job(db, job_id, user_id)
