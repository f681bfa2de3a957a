"""Service layer."""

from docexpress.services.auth_service import AuthService
from docexpress.services.file_service import FileService
from docexpress.services.job_service import JobService
from docexpress.services.storage_service import StorageService

__all__ = ["AuthService", "FileService", "JobService", "StorageService"]
