# control_panel/core/security.py
"""Password hashing and access tokens."""

from datetime import datetime, timedelta, timezone
from typing import Optional
from uuid import UUID

import bcrypt
from jose import JWTError, jwt

from control_panel.config import settings
from control_panel.core.errors import AuthenticationError


def hash_password(password: str) -> str:
    return bcrypt.hashpw(password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Malformed stored hash
        return False


def create_access_token(user_id: UUID, expires_days: Optional[int] = None) -> str:
    """Issue a signed token carrying the user id."""
    expire = datetime.now(timezone.utc) + timedelta(days=expires_days or settings.jwt_expire_days)
    payload = {"sub": str(user_id), "exp": expire}
    return jwt.encode(payload, settings.jwt_secret, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> UUID:
    """Return the user id in token, raising AuthenticationError if invalid or expired."""
    try:
        payload = jwt.decode(token, settings.jwt_secret, algorithms=[settings.jwt_algorithm])
        subject = payload.get("sub")
        if not subject:
            raise AuthenticationError("Invalid token")
        return UUID(subject)
    except (JWTError, ValueError) as e:
        raise AuthenticationError("Invalid or expired token") from e
