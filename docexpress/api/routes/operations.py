"""Operation submission routes."""

import logging

from fastapi import APIRouter, Depends, Request, status
from sqlalchemy.orm import Session as DBSession

from docexpress.api.dependencies import ensure_job_capacity, processing_errors
from docexpress.core.config import settings
from docexpress.db.session import get_db
from docexpress.middleware.auth import get_current_user_id
from docexpress.middleware.rate_limit import limiter
from docexpress.models.job import JobResponse, JobSpec, OperationRequest
from docexpress.models.options import parse_job_type, parse_options
from docexpress.operations.registry import build_processor
from docexpress.services.job_service import JobService

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/operations", tags=["operations"])


@router.post("/{job_type}", response_model=JobResponse, status_code=status.HTTP_201_CREATED)
@limiter.limit(settings.operation_rate_limit)
def submit_operation(
    request: Request,
    job_type: str,
    body: OperationRequest,
    user_id: str = Depends(get_current_user_id),
    db: DBSession = Depends(get_db),
) -> JobResponse:
    """
    Run an operation on the caller's files and return the finished job.

    The job runs inline on a worker thread: the response carries the
    COMPLETED job, or the error that moved it to FAILED.

    Raises:
        InvalidRequestError: Unknown job type, bad options or no input files
        JobLimitExceededError: The caller already has too many active jobs
        NotFoundError / ForbiddenError: An input file is missing or foreign
        ProcessingError: The operation itself failed
    """
    parsed_type = parse_job_type(job_type)
    options = parse_options(parsed_type, body.options)

    ensure_job_capacity(db, user_id)

    spec = JobSpec(
        owner_id=user_id,
        job_type=parsed_type,
        input_file_ids=body.file_ids,
        options=options.model_dump(mode="json", exclude_none=True),
    )

    with processing_errors():
        job = JobService.execute_job(db, spec, build_processor(db, parsed_type))

    return JobService.to_response(db, job)
