from fastapi import APIRouter, Depends, HTTPException, Response
from fastapi import status as http_status
from fastapi.security import OAuth2PasswordRequestForm

from schoolhub.auth.dependencies import get_session_store
from schoolhub.auth.guard import LOGIN_ROUTE
from schoolhub.auth.schemas import LoginRequest, LoginResponse, LogoutResponse, SessionState
from schoolhub.auth.session import SessionStore
from schoolhub.core.config import settings
from schoolhub.core.exceptions import ServiceError

router = APIRouter(prefix="/api/v1/auth", tags=["auth"])


def _set_session_cookie(response: Response, token: str) -> None:
    response.set_cookie(
        settings.session_cookie_name,
        token,
        httponly=True,
        samesite="lax",
        max_age=settings.access_token_expire_minutes * 60,
    )


@router.post(
    "/login",
    response_model=LoginResponse,
    status_code=http_status.HTTP_200_OK,
)
async def login(
    payload: LoginRequest,
    response: Response,
    store: SessionStore = Depends(get_session_store),
) -> LoginResponse:
    try:
        result = await store.sign_in(payload.email, payload.password)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    _set_session_cookie(response, result.access_token)
    return result


@router.post("/login-oauth")
async def login_oauth(
    form_data: OAuth2PasswordRequestForm = Depends(),
    store: SessionStore = Depends(get_session_store),
):
    try:
        result = await store.sign_in(form_data.username.strip(), form_data.password)
    except ServiceError as e:
        raise HTTPException(status_code=e.status_code, detail=e.message)
    return {
        "access_token": result.access_token,
        "token_type": "bearer",
    }


@router.post("/logout", response_model=LogoutResponse)
async def logout(
    response: Response,
    store: SessionStore = Depends(get_session_store),
) -> LogoutResponse:
    await store.sign_out()
    response.delete_cookie(settings.session_cookie_name)
    return LogoutResponse(success=True, redirect_to=LOGIN_ROUTE)


@router.get("/session", response_model=SessionState)
async def current_session(store: SessionStore = Depends(get_session_store)) -> SessionState:
    return store.state
