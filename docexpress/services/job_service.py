"""Job execution engine: state machine, execution wrapper, retry and history."""

import logging
from datetime import timedelta
from typing import Any, Callable, Dict, List, Optional, Sequence, Tuple, Union
from uuid import UUID

from sqlalchemy import func
from sqlalchemy.orm import Session

from docexpress.core.config import settings
from docexpress.core.errors import (
    ConflictError,
    ForbiddenError,
    InvalidRequestError,
    NotFoundError,
    ProcessingError,
)
from docexpress.db.models import Job, utcnow
from docexpress.models.job import (
    ACTIVE_STATUSES,
    CANCELLED_MESSAGE,
    TERMINAL_STATUSES,
    JobResponse,
    JobSpec,
    JobStats,
    JobStatus,
    JobType,
)
from docexpress.models.options import parse_job_type
from docexpress.services.file_service import FileService

logger = logging.getLogger(__name__)

JobId = Union[UUID, str]

# A processor receives the RUNNING job and returns the ids of the files it produced.
Processor = Callable[[Job], Sequence[UUID]]

SORTABLE_FIELDS = {"created_at", "updated_at", "completed_at", "status", "job_type"}


def _as_job_uuid(value: JobId) -> UUID:
    if isinstance(value, UUID):
        return value
    try:
        return UUID(str(value))
    except ValueError:
        raise NotFoundError("Job not found") from None


class JobService:
    """Service owning the job lifecycle."""

    # ------------------------------------------------------------------
    # Transitions
    # ------------------------------------------------------------------

    @staticmethod
    def create_job(
        db: Session,
        owner_id: str,
        job_type: Union[JobType, str],
        input_file_ids: Sequence[Union[UUID, str]],
        options: Optional[Dict[str, Any]] = None,
    ) -> Job:
        """
        Admit a new job in PENDING.

        Input files are not checked here; the processor resolves them.

        Raises:
            InvalidRequestError: If there are no input files or the type is unknown
        """
        if not input_file_ids:
            raise InvalidRequestError("At least one input file is required", code="no_input_files")
        job_type = parse_job_type(job_type)

        job = Job(
            owner_id=owner_id,
            job_type=job_type,
            status=JobStatus.PENDING,
            input_files=[str(file_id) for file_id in input_file_ids],
            output_files=[],
            options=dict(options or {}),
        )
        db.add(job)
        db.commit()
        db.refresh(job)

        logger.info(
            f"Created job {job.job_id} for owner {owner_id} "
            f"(type={job_type.value}, inputs={len(job.input_files)})"
        )

        return job

    @staticmethod
    def _load(db: Session, job_id: JobId) -> Job:
        job = db.query(Job).filter(Job.job_id == _as_job_uuid(job_id)).first()
        if not job:
            raise NotFoundError("Job not found")
        return job

    @staticmethod
    def _load_owned(db: Session, job_id: JobId, owner_id: Optional[str]) -> Job:
        job = JobService._load(db, job_id)
        if owner_id is not None and job.owner_id != owner_id:
            raise ForbiddenError("Access denied to this job")
        return job

    @staticmethod
    def start_job(db: Session, job_id: JobId) -> Job:
        """Move a job to RUNNING."""
        job = JobService._load(db, job_id)
        job.status = JobStatus.RUNNING
        db.commit()
        db.refresh(job)

        logger.info(f"Started job {job.job_id} ({job.job_type.value})")

        return job

    @staticmethod
    def complete_job(db: Session, job_id: JobId, output_file_ids: Sequence[Union[UUID, str]]) -> Job:
        """Move a job to COMPLETED with its outputs."""
        job = JobService._load(db, job_id)
        job.status = JobStatus.COMPLETED
        job.output_files = [str(file_id) for file_id in output_file_ids]
        job.error_message = None
        job.completed_at = utcnow()
        db.commit()
        db.refresh(job)

        logger.info(f"Completed job {job.job_id} with {len(job.output_files)} output file(s)")

        return job

    @staticmethod
    def fail_job(db: Session, job_id: JobId, error_message: str) -> Job:
        """Move a job to FAILED with a human-readable cause."""
        job = JobService._load(db, job_id)
        job.status = JobStatus.FAILED
        job.output_files = []
        job.error_message = error_message or "Unknown error"
        job.completed_at = utcnow()
        db.commit()
        db.refresh(job)

        logger.info(f"Failed job {job.job_id}: {job.error_message}")

        return job

    @staticmethod
    def execute_job(db: Session, spec: JobSpec, processor: Processor) -> Job:
        """
        Create a job and run it to a terminal state.

        create -> start -> processor(job) -> complete, or fail on any
        exception raised by the processor. The exception is recorded as the
        job's error message and then re-raised, so the caller gets both the
        error and a durable FAILED job.

        Args:
            db: Database session
            spec: Owner, type, input file ids and options
            processor: Callable doing the actual work

        Returns:
            The COMPLETED job
        """
        job = JobService.create_job(
            db,
            owner_id=spec.owner_id,
            job_type=spec.job_type,
            input_file_ids=spec.input_file_ids,
            options=spec.options,
        )
        return JobService._run(db, job, processor)

    @staticmethod
    def _run(db: Session, job: Job, processor: Processor) -> Job:
        job_id = job.job_id
        try:
            job = JobService.start_job(db, job_id)
            output_file_ids = list(processor(job))
            if not output_file_ids:
                raise ProcessingError("Operation produced no output files")
            return JobService.complete_job(db, job_id, output_file_ids)
        except Exception as e:
            logger.error(f"Job {job_id} failed: {e}")
            # The session may hold a failed flush from inside the processor.
            db.rollback()
            JobService.fail_job(db, job_id, str(e) or e.__class__.__name__)
            raise

    @staticmethod
    def cancel_job(db: Session, job_id: JobId, owner_id: str) -> Job:
        """
        Cancel a PENDING job by failing it with a fixed message.

        Raises:
            NotFoundError, ForbiddenError, ConflictError
        """
        job = JobService._load_owned(db, job_id, owner_id)
        if job.status != JobStatus.PENDING:
            raise ConflictError("Only pending jobs can be cancelled")

        job.status = JobStatus.FAILED
        job.error_message = CANCELLED_MESSAGE
        job.completed_at = utcnow()
        db.commit()
        db.refresh(job)

        logger.info(f"Cancelled job {job.job_id} for owner {owner_id}")

        return job

    @staticmethod
    def retry_job(db: Session, job_id: JobId, owner_id: str) -> Job:
        """
        Re-admit a FAILED job as a brand-new PENDING job.

        The failed job is left untouched and the new job is not run; see
        ``re_execute_job`` for the variant that also runs it.

        Raises:
            NotFoundError, ForbiddenError, ConflictError
        """
        original = JobService._load_owned(db, job_id, owner_id)
        if original.status != JobStatus.FAILED:
            raise ConflictError("Only failed jobs can be retried")

        job = JobService.create_job(
            db,
            owner_id=original.owner_id,
            job_type=original.job_type,
            input_file_ids=list(original.input_files),
            options=dict(original.options or {}),
        )

        logger.info(f"Re-queued failed job {original.job_id} as {job.job_id}")

        return job

    @staticmethod
    def re_execute_job(db: Session, job_id: JobId, owner_id: str, processor: Processor) -> Job:
        """Retry a FAILED job and run the new job immediately."""
        job = JobService.retry_job(db, job_id, owner_id)
        return JobService._run(db, job, processor)

    @staticmethod
    def delete_job(db: Session, job_id: JobId, owner_id: str) -> None:
        """Remove the job record. Referenced files are not touched."""
        job = JobService._load_owned(db, job_id, owner_id)
        db.delete(job)
        db.commit()

        logger.info(f"Deleted job {job_id} for owner {owner_id}")

    # ------------------------------------------------------------------
    # Admission control
    # ------------------------------------------------------------------

    @staticmethod
    def pending_jobs_count(db: Session, owner_id: str) -> int:
        """Jobs of ``owner_id`` still PENDING or RUNNING."""
        return (
            db.query(Job)
            .filter(Job.owner_id == owner_id, Job.status.in_(ACTIVE_STATUSES))
            .count()
        )

    @staticmethod
    def has_reached_job_limit(db: Session, owner_id: str, max_concurrent: Optional[int] = None) -> bool:
        """
        Whether the owner already holds ``max_concurrent`` active jobs.

        Advisory: recomputed from the store on every call and not atomic with
        job creation, so concurrent submissions can briefly exceed the limit.
        """
        if max_concurrent is None:
            max_concurrent = settings.max_concurrent_jobs
        return JobService.pending_jobs_count(db, owner_id) >= max_concurrent

    # ------------------------------------------------------------------
    # History
    # ------------------------------------------------------------------

    @staticmethod
    def get_job(db: Session, job_id: JobId, owner_id: Optional[str] = None) -> Job:
        """
        Get a job by id; ownership is checked when ``owner_id`` is given.

        Raises:
            NotFoundError, ForbiddenError
        """
        return JobService._load_owned(db, job_id, owner_id)

    @staticmethod
    def list_jobs(
        db: Session,
        owner_id: Optional[str] = None,
        page: int = 1,
        limit: Optional[int] = None,
        job_type: Optional[JobType] = None,
        status: Optional[JobStatus] = None,
        sort_by: str = "created_at",
        sort_order: str = "desc",
    ) -> Tuple[List[Job], int, int]:
        """
        Filtered, sorted page of jobs. Without ``owner_id`` this spans all owners.

        Returns:
            Tuple of (jobs, total, effective_limit)
        """
        page = max(page, 1)
        limit = min(limit or settings.default_page_limit, settings.max_page_limit)
        if sort_by not in SORTABLE_FIELDS:
            raise InvalidRequestError(f"Cannot sort jobs by {sort_by}")

        query = db.query(Job)
        if owner_id is not None:
            query = query.filter(Job.owner_id == owner_id)
        if job_type is not None:
            query = query.filter(Job.job_type == job_type)
        if status is not None:
            query = query.filter(Job.status == status)

        total = query.count()
        column = getattr(Job, sort_by)
        ordering = column.asc() if sort_order == "asc" else column.desc()
        jobs = query.order_by(ordering).offset((page - 1) * limit).limit(limit).all()

        return jobs, total, limit

    @staticmethod
    def list_all_jobs(
        db: Session,
        page: int = 1,
        limit: Optional[int] = None,
        owner_id: Optional[str] = None,
        job_type: Optional[JobType] = None,
        status: Optional[JobStatus] = None,
    ) -> Tuple[List[Job], int, int]:
        """Admin listing across owners, optionally narrowed to one owner."""
        return JobService.list_jobs(
            db, owner_id=owner_id, page=page, limit=limit, job_type=job_type, status=status
        )

    @staticmethod
    def recent_jobs(db: Session, owner_id: str, limit: int = 10) -> List[Job]:
        limit = min(max(limit, 1), settings.max_page_limit)
        return (
            db.query(Job)
            .filter(Job.owner_id == owner_id)
            .order_by(Job.created_at.desc())
            .limit(limit)
            .all()
        )

    @staticmethod
    def job_stats(db: Session, owner_id: str) -> JobStats:
        """Totals by status and by type for one owner."""
        by_status = (
            db.query(Job.status, func.count(Job.job_id))
            .filter(Job.owner_id == owner_id)
            .group_by(Job.status)
            .all()
        )
        by_type = (
            db.query(Job.job_type, func.count(Job.job_id))
            .filter(Job.owner_id == owner_id)
            .group_by(Job.job_type)
            .all()
        )

        return JobStats(
            total=sum(count for _, count in by_status),
            by_status={status.value: count for status, count in by_status},
            by_type={job_type.value: count for job_type, count in by_type},
        )

    @staticmethod
    def cleanup_old_jobs(db: Session, max_age_days: Optional[int] = None) -> int:
        """
        Delete terminal jobs completed more than ``max_age_days`` ago.

        PENDING and RUNNING jobs are never touched.

        Returns:
            Number of deleted jobs
        """
        if max_age_days is None:
            max_age_days = settings.job_retention_days
        cutoff = utcnow() - timedelta(days=max_age_days)

        deleted = (
            db.query(Job)
            .filter(Job.status.in_(TERMINAL_STATUSES), Job.completed_at < cutoff)
            .delete(synchronize_session=False)
        )
        db.commit()

        logger.info(f"Cleaned up {deleted} job(s) completed before {cutoff.isoformat()}")

        return deleted

    @staticmethod
    def to_response(db: Session, job: Job) -> JobResponse:
        """Convert Job ORM model to response, resolving file references."""
        return JobResponse(
            job_id=job.job_id,
            owner_id=job.owner_id,
            job_type=job.job_type,
            status=job.status,
            input_files=[FileService.to_response(f) for f in FileService.find_existing(db, job.input_files)],
            output_files=[FileService.to_response(f) for f in FileService.find_existing(db, job.output_files)],
            options=job.options or {},
            error_message=job.error_message,
            created_at=job.created_at,
            updated_at=job.updated_at,
            completed_at=job.completed_at,
            duration_seconds=job.duration_seconds,
        )
