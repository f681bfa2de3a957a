"""Health check and system status routes."""

import logging
from datetime import datetime, timezone

from fastapi import APIRouter, Depends
from sqlalchemy import text
from sqlalchemy.orm import Session as DBSession

from docexpress.core.config import settings
from docexpress.db.models import Job, StoredFile
from docexpress.db.session import get_db
from docexpress.models.file import FileState
from docexpress.models.job import ACTIVE_STATUSES
from docexpress.operations.tools import find_binary
from docexpress.services.storage_service import StorageService

logger = logging.getLogger(__name__)

router = APIRouter(tags=["health"])


def _now() -> str:
    return datetime.now(timezone.utc).isoformat()


@router.get("/health")
async def health_check(db: DBSession = Depends(get_db)):
    """
    Health check endpoint with system statistics.

    Returns:
        System health status and statistics
    """
    try:
        return {
            "status": "healthy",
            "timestamp": _now(),
            "storage": {
                "root": str(StorageService.storage_root()),
                "exists": StorageService.storage_root().exists(),
            },
            "database": {
                "live_files": db.query(StoredFile).filter(StoredFile.state == FileState.LIVE).count(),
                "total_jobs": db.query(Job).count(),
                "active_jobs": db.query(Job).filter(Job.status.in_(ACTIVE_STATUSES)).count(),
            },
            "tools": {
                "ffmpeg": find_binary(settings.ffmpeg_binary) is not None,
                "soffice": find_binary(settings.soffice_binary) is not None,
                "tesseract": find_binary("tesseract") is not None,
            },
        }
    except Exception as e:
        logger.error(f"Health check error: {e}")
        return {
            "status": "unhealthy",
            "timestamp": _now(),
            "error": str(e),
        }


@router.get("/readiness")
async def readiness_check(db: DBSession = Depends(get_db)):
    """Readiness check for container orchestration."""
    try:
        db.execute(text("SELECT 1"))
        return {"status": "ready", "timestamp": _now()}
    except Exception as e:
        logger.error(f"Readiness check failed: {e}")
        return {"status": "not_ready", "timestamp": _now(), "error": str(e)}


@router.get("/liveness")
async def liveness_check():
    """Always 200 while the process is serving."""
    return {"status": "alive", "timestamp": _now()}
