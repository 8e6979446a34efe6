"""Password hashing (bcrypt) and session tokens (JWT via python-jose)."""

import secrets
from datetime import datetime, timedelta, timezone
from typing import Any, Dict, Optional, Tuple
from uuid import UUID

import bcrypt
from jose import JWTError, jwt

from schoolhub.core.config import settings


def hash_password(plain_password: str) -> str:
    return bcrypt.hashpw(plain_password.encode("utf-8"), bcrypt.gensalt()).decode("utf-8")


def verify_password(plain_password: str, password_hash: str) -> bool:
    try:
        return bcrypt.checkpw(plain_password.encode("utf-8"), password_hash.encode("utf-8"))
    except ValueError:
        # Stored hash is not a bcrypt hash
        return False


def create_access_token(
    *,
    user_id: UUID,
    role: str,
    session_id: UUID,
    issued_at: datetime,
    expires_minutes: Optional[int] = None,
) -> str:
    """Bearer token naming the user, their role and the server-side session it belongs to."""
    lifetime = timedelta(minutes=expires_minutes or settings.access_token_expire_minutes)
    claims: Dict[str, Any] = {
        "sub": str(user_id),
        "role": role,
        "sid": str(session_id),
        "iat": int(issued_at.timestamp()),
        "exp": issued_at + lifetime,
    }
    return jwt.encode(claims, settings.jwt_secret_key, algorithm=settings.jwt_algorithm)


def decode_access_token(token: str) -> Optional[Dict[str, Any]]:
    """Claims of a well-signed, unexpired token; None otherwise."""
    try:
        return jwt.decode(token, settings.jwt_secret_key, algorithms=[settings.jwt_algorithm])
    except JWTError:
        return None


def new_session_secret(*, expires_days: Optional[int] = None) -> Tuple[str, datetime]:
    """Opaque refresh secret stored with the session row, and when that session lapses."""
    lifetime = timedelta(days=expires_days or settings.refresh_token_expire_days)
    return secrets.token_urlsafe(48), datetime.now(timezone.utc) + lifetime
