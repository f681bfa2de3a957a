"""Application error taxonomy.

Every error the services raise on purpose derives from ``AppError`` and carries
the HTTP status and machine-readable code the API layer reports. Anything else
escaping a service is treated as an unexpected failure.
"""

from typing import Optional


class AppError(Exception):
    """Base class for operational errors."""

    status_code: int = 500
    code: str = "internal_error"

    def __init__(self, message: str, code: Optional[str] = None):
        super().__init__(message)
        self.message = message
        if code is not None:
            self.code = code


class InvalidRequestError(AppError):
    """Malformed request shape: no input files, unknown job type, bad options."""

    status_code = 400
    code = "bad_request"


class AuthenticationError(AppError):
    """Missing or invalid credentials."""

    status_code = 401
    code = "unauthorized"


class ForbiddenError(AppError):
    """Caller does not own the record."""

    status_code = 403
    code = "forbidden"


class NotFoundError(AppError):
    """Record id does not resolve, or resolves to fewer records than requested."""

    status_code = 404
    code = "not_found"


class ConflictError(AppError):
    """Illegal state transition."""

    status_code = 409
    code = "conflict"


class FileTooLargeError(AppError):
    """Upload exceeds the size limit for its file type."""

    status_code = 413
    code = "file_too_large"


class UnsupportedMediaError(AppError):
    """Upload MIME type is not accepted."""

    status_code = 415
    code = "unsupported_media"


class ProcessingError(AppError):
    """An operation failed while transforming files."""

    status_code = 422
    code = "processing_failed"


class JobLimitExceededError(AppError):
    """Raised when an owner already holds the maximum number of active jobs."""

    status_code = 429
    code = "job_limit_reached"

    def __init__(self, message: str, current: int, limit: int):
        super().__init__(message)
        self.current = current
        self.limit = limit
