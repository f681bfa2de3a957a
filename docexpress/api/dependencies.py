"""Shared helpers for route handlers."""

import logging
from contextlib import contextmanager
from typing import Iterator

from sqlalchemy.orm import Session as DBSession

from docexpress.core.config import settings
from docexpress.core.errors import AppError, JobLimitExceededError, ProcessingError
from docexpress.services.job_service import JobService

logger = logging.getLogger(__name__)


def ensure_job_capacity(db: DBSession, user_id: str) -> None:
    """
    Admission check run before anything that executes a job.

    Raises:
        JobLimitExceededError: The caller already has too many PENDING/RUNNING jobs
    """
    if JobService.has_reached_job_limit(db, user_id):
        raise JobLimitExceededError(
            f"Maximum of {settings.max_concurrent_jobs} concurrent jobs reached",
            current=JobService.pending_jobs_count(db, user_id),
            limit=settings.max_concurrent_jobs,
        )


@contextmanager
def processing_errors() -> Iterator[None]:
    """
    Surface unexpected processor failures as ProcessingError.

    The job engine has already recorded the failure on the job by the time
    the exception reaches the route; this only shapes the HTTP response.
    """
    try:
        yield
    except AppError:
        raise
    except Exception as e:
        logger.error(f"Operation failed with unexpected {e.__class__.__name__}: {e}")
        raise ProcessingError(str(e) or e.__class__.__name__) from e
