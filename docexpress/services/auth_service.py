"""Bearer token issuing and verification."""

from datetime import datetime, timedelta, timezone
from typing import Optional

from jose import JWTError, jwt

from docexpress.core.config import settings

# JWT settings
ALGORITHM = "HS256"

ROLE_USER = "user"
ROLE_ADMIN = "admin"


class AuthService:
    """Service for access tokens. Identity itself is managed elsewhere."""

    @staticmethod
    def create_access_token(
        subject: str,
        role: str = ROLE_USER,
        expires_delta: Optional[timedelta] = None,
    ) -> str:
        """
        Create a JWT access token.

        Args:
            subject: Owner id, stored in the ``sub`` claim
            role: ``user`` or ``admin``
            expires_delta: Token lifetime; defaults to the configured expiry

        Returns:
            Encoded JWT token
        """
        if expires_delta is None:
            expires_delta = timedelta(minutes=settings.access_token_expire_minutes)

        to_encode = {
            "sub": subject,
            "role": role,
            "exp": datetime.now(timezone.utc) + expires_delta,
        }
        return jwt.encode(to_encode, settings.secret_key, algorithm=ALGORITHM)

    @staticmethod
    def verify_access_token(token: str) -> Optional[dict]:
        """
        Verify and decode a JWT access token.

        Returns:
            Decoded token payload, or None if invalid, expired or missing ``sub``
        """
        try:
            payload = jwt.decode(token, settings.secret_key, algorithms=[ALGORITHM])
        except JWTError:
            return None

        if not payload.get("sub"):
            return None
        return payload
