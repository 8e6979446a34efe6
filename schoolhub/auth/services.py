import logging
from datetime import datetime, timezone
from typing import Optional
from uuid import UUID

from fastapi import status
from sqlalchemy import delete, func, select
from sqlalchemy.exc import IntegrityError, SQLAlchemyError
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.auth.guard import home_for
from schoolhub.auth.models import RefreshToken, User
from schoolhub.auth.schemas import Identity, LoginResponse, SignUpRequest
from schoolhub.auth.security import (
    create_access_token,
    decode_access_token,
    hash_password,
    new_session_secret,
    verify_password,
)
from schoolhub.core.exceptions import AuthError, ServiceError

logger = logging.getLogger(__name__)


def to_identity(user: User) -> Identity:
    return Identity(
        id=user.id,
        first_name=user.first_name,
        last_name=user.last_name,
        email=user.email,
        role=user.role,
    )


async def _find_user_by_email(db: AsyncSession, email: str) -> Optional[User]:
    result = await db.execute(select(User).where(func.lower(User.email) == func.lower(email)))
    return result.scalar_one_or_none()


async def sign_up(db: AsyncSession, payload: SignUpRequest) -> User:
    """Create the account and its profile row in one commit."""
    email = payload.email.strip()
    if await _find_user_by_email(db, email):
        raise ServiceError("A user with this email is already registered", status.HTTP_409_CONFLICT)
    user = User(
        email=email,
        first_name=payload.first_name.strip(),
        last_name=payload.last_name.strip(),
        role=payload.role.value,
        password_hash=hash_password(payload.password),
    )
    db.add(user)
    try:
        await db.commit()
    except IntegrityError as e:
        await db.rollback()
        raise ServiceError("A user with this email is already registered", status.HTTP_409_CONFLICT) from e
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to register %s", email)
        raise ServiceError("Failed to register user. Please try again.") from e
    await db.refresh(user)
    logger.info("Registered %s as %s", user.email, user.role)
    return user


async def sign_in(db: AsyncSession, email: str, password: str) -> LoginResponse:
    # 1. Check credentials
    user = await _find_user_by_email(db, email)
    if not user or not verify_password(password, user.password_hash):
        logger.info("Rejected sign-in for %s", email)
        raise AuthError()

    # 2. Open a server-side session
    refresh_token_str, refresh_expires_at = new_session_secret()
    session_row = RefreshToken(
        user_id=user.id,
        token=refresh_token_str,
        expires_at=refresh_expires_at,
    )
    db.add(session_row)
    try:
        await db.commit()
    except SQLAlchemyError as e:
        await db.rollback()
        logger.exception("Failed to persist session for %s", email)
        raise ServiceError(
            "Failed to persist authentication state",
            status.HTTP_500_INTERNAL_SERVER_ERROR,
        ) from e

    # 3. Populate identity from the profile row
    identity = await load_identity(db, user.id)
    if identity is None:
        raise AuthError("No profile found for this account")

    issued_at = datetime.now(timezone.utc)
    access_token = create_access_token(
        user_id=user.id,
        role=identity.role.value,
        session_id=session_row.id,
        issued_at=issued_at,
    )
    logger.info("Signed in %s (%s)", identity.email, identity.role.value)
    return LoginResponse(
        access_token=access_token,
        refresh_token=refresh_token_str,
        user=identity,
        home=home_for(identity.role),
        issued_at=issued_at,
    )


async def sign_out(db: AsyncSession, session_id: UUID) -> None:
    await db.execute(delete(RefreshToken).where(RefreshToken.id == session_id))
    await db.commit()


async def load_identity(db: AsyncSession, user_id: UUID) -> Optional[Identity]:
    user = await db.get(User, user_id)
    return to_identity(user) if user else None


async def resolve_session(db: AsyncSession, token: str) -> Optional[Identity]:
    """Identity for a token whose server-side session is still open, else None."""
    claims = decode_access_token(token)
    if not claims:
        return None
    try:
        user_id = UUID(claims.get("sub", ""))
        session_id = UUID(claims.get("sid", ""))
    except ValueError:
        return None
    session_row = await db.get(RefreshToken, session_id)
    if session_row is None or session_row.user_id != user_id:
        return None
    return await load_identity(db, user_id)


def session_id_from_token(token: str) -> Optional[UUID]:
    claims = decode_access_token(token) or {}
    try:
        return UUID(claims.get("sid", ""))
    except ValueError:
        return None
