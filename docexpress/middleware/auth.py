"""Caller identity extraction."""

from typing import Optional

from fastapi import Depends, Header, HTTPException, Request, status

from docexpress.services.auth_service import ROLE_ADMIN, AuthService


async def get_token_payload(
    request: Request,
    authorization: Optional[str] = Header(None),
) -> dict:
    """
    Validate the bearer token and expose the caller on ``request.state``.

    Raises:
        HTTPException: 401 if the token is missing, invalid or expired
    """
    if not authorization or not authorization.startswith("Bearer "):
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Missing authentication. Provide an Authorization: Bearer header",
            headers={"WWW-Authenticate": "Bearer"},
        )

    payload = AuthService.verify_access_token(authorization[len("Bearer "):])
    if payload is None:
        raise HTTPException(
            status_code=status.HTTP_401_UNAUTHORIZED,
            detail="Invalid or expired token",
            headers={"WWW-Authenticate": "Bearer"},
        )

    request.state.user_id = str(payload["sub"])
    request.state.role = payload.get("role")
    return payload


async def get_current_user_id(payload: dict = Depends(get_token_payload)) -> str:
    """Owner id of the authenticated caller."""
    return str(payload["sub"])


async def require_admin(payload: dict = Depends(get_token_payload)) -> str:
    """
    Require the ``admin`` role.

    Returns:
        Admin user id

    Raises:
        HTTPException: 403 for non-admin callers
    """
    if payload.get("role") != ROLE_ADMIN:
        raise HTTPException(status_code=status.HTTP_403_FORBIDDEN, detail="Admin access required")
    return str(payload["sub"])
