"""Global error handlers for FastAPI application."""

import logging
import uuid
from typing import Union

from fastapi import Request, status
from fastapi.encoders import jsonable_encoder
from fastapi.exceptions import RequestValidationError
from fastapi.responses import JSONResponse
from pydantic import ValidationError

from docexpress.core.config import settings
from docexpress.core.errors import AppError, JobLimitExceededError, ProcessingError

logger = logging.getLogger(__name__)


def _request_id(request: Request) -> str:
    return getattr(request.state, "request_id", str(uuid.uuid4()))


async def app_error_handler(request: Request, exc: AppError) -> JSONResponse:
    """
    Handle operational errors raised by the services.

    Client errors are logged at WARNING; processing failures at ERROR.
    """
    request_id = _request_id(request)
    log = logger.error if isinstance(exc, ProcessingError) else logger.warning
    log(
        f"{exc.__class__.__name__}: {exc.message}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "user_id": getattr(request.state, "user_id", None),
        },
    )

    return JSONResponse(
        status_code=exc.status_code,
        content={
            "error": exc.code,
            "message": exc.message,
            "request_id": request_id,
        },
    )


async def job_limit_exceeded_handler(request: Request, exc: JobLimitExceededError) -> JSONResponse:
    """
    Handle JobLimitExceededError exceptions.

    Returns HTTP 429 with the owner's active job count and the limit.
    """
    request_id = _request_id(request)

    logger.warning(
        f"Job limit reached: {exc.message}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "user_id": getattr(request.state, "user_id", None),
            "current": exc.current,
            "limit": exc.limit,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_429_TOO_MANY_REQUESTS,
        content={
            "error": exc.code,
            "message": exc.message,
            "current": exc.current,
            "limit": exc.limit,
            "request_id": request_id,
        },
    )


async def validation_exception_handler(
    request: Request, exc: Union[RequestValidationError, ValidationError]
) -> JSONResponse:
    """
    Handle Pydantic validation errors.

    Returns structured validation error details.
    """
    request_id = _request_id(request)
    errors = exc.errors() if hasattr(exc, "errors") else [{"msg": str(exc)}]

    logger.warning(
        f"Validation error: {exc}",
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
        },
    )

    return JSONResponse(
        status_code=status.HTTP_422_UNPROCESSABLE_ENTITY,
        content={
            "error": "validation_error",
            "message": "Invalid request data",
            "details": jsonable_encoder(errors),
            "request_id": request_id,
        },
    )


async def generic_exception_handler(request: Request, exc: Exception) -> JSONResponse:
    """
    Handle all unhandled exceptions.

    In production, returns a generic error message without exposing internal details.
    """
    request_id = _request_id(request)

    logger.error(
        f"Unhandled exception: {exc}",
        exc_info=True,
        extra={
            "request_id": request_id,
            "path": request.url.path,
            "method": request.method,
            "user_id": getattr(request.state, "user_id", None),
        },
    )

    if settings.app_env == "production":
        content = {
            "error": "internal_server_error",
            "message": "An unexpected error occurred. Please contact support if this persists.",
            "request_id": request_id,
        }
    else:
        content = {
            "error": "internal_server_error",
            "message": str(exc),
            "type": exc.__class__.__name__,
            "request_id": request_id,
        }

    return JSONResponse(status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, content=content)
