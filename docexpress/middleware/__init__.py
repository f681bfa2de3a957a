"""Middleware package."""

from docexpress.middleware.auth import get_current_user_id, require_admin
from docexpress.middleware.rate_limit import limiter

__all__ = ["get_current_user_id", "require_admin", "limiter"]
