from typing import Optional

from fastapi import Depends, Request
from fastapi.security import OAuth2PasswordBearer
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.auth.schemas import SessionState
from schoolhub.auth.session import SessionStore
from schoolhub.core.config import settings
from schoolhub.db.session import get_db


oauth2_scheme = OAuth2PasswordBearer(tokenUrl="/api/v1/auth/login-oauth", auto_error=False)


def request_token(request: Request, bearer: Optional[str]) -> Optional[str]:
    """Bearer header first, then the session cookie set at login."""
    return bearer or request.cookies.get(settings.session_cookie_name)


async def get_session_store(
    request: Request,
    bearer: Optional[str] = Depends(oauth2_scheme),
    db: AsyncSession = Depends(get_db),
) -> SessionStore:
    """A session store restored from the request's token."""
    store = SessionStore(db)
    await store.restore(request_token(request, bearer))
    return store


async def get_session_state(store: SessionStore = Depends(get_session_store)) -> SessionState:
    return store.state
