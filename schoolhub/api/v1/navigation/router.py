"""Entry routes: the index redirect and the login page."""

from fastapi import APIRouter, Depends
from fastapi.responses import RedirectResponse

from schoolhub.auth.dependencies import get_session_state
from schoolhub.auth.guard import LOGIN_ROUTE, home_for
from schoolhub.auth.schemas import SessionState

router = APIRouter(tags=["navigation"])


@router.get("/", include_in_schema=False)
async def index(state: SessionState = Depends(get_session_state)) -> RedirectResponse:
    target = home_for(state.identity.role) if state.identity else LOGIN_ROUTE
    return RedirectResponse(target, status_code=303)


@router.get(LOGIN_ROUTE)
async def login_page(state: SessionState = Depends(get_session_state)):
    """Signed-in callers go straight to their dashboard."""
    if state.identity:
        return RedirectResponse(home_for(state.identity.role), status_code=303)
    return {
        "page": "login",
        "title": "School Management System",
        "action": "/api/v1/auth/login",
        "fields": ["email", "password"],
    }
