"""Rate limiting keyed by caller."""

from fastapi import Request
from slowapi import Limiter
from slowapi.util import get_remote_address

from docexpress.core.config import settings


def get_user_key(request: Request) -> str:
    """
    Generate rate limit key based on the authenticated user.

    Falls back to IP address if no user is authenticated.
    """
    user_id = getattr(request.state, "user_id", None)
    if user_id:
        return f"user:{user_id}"
    return f"ip:{get_remote_address(request)}"


limiter = Limiter(key_func=get_user_key, enabled=settings.rate_limit_enabled)
