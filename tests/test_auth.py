import pytest
from httpx import AsyncClient
from sqlalchemy import select
from sqlalchemy.ext.asyncio import AsyncSession

from schoolhub.auth.models import RefreshToken
from schoolhub.auth.session import SessionStore
from schoolhub.core.enums import UserRole
from schoolhub.core.exceptions import AuthError


@pytest.mark.asyncio
async def test_login_success(client: AsyncClient, make_user) -> None:
    await make_user("mary.teacher@school.com", UserRole.TEACHER, first_name="Mary", last_name="Jones")

    response = await client.post(
        "/api/v1/auth/login",
        json={"email": "mary.teacher@school.com", "password": "secret123"},
    )
    assert response.status_code == 200
    data = response.json()

    assert "access_token" in data
    assert "refresh_token" in data
    assert data["token_type"] == "bearer"
    assert data["home"] == "/teacher"

    user = data["user"]
    assert user["email"] == "mary.teacher@school.com"
    assert user["role"] == "teacher"
    assert user["first_name"] == "Mary"
    assert "schoolhub_session" in response.cookies


@pytest.mark.asyncio
async def test_login_bad_password(client: AsyncClient, make_user) -> None:
    await make_user("admin@school.com", UserRole.ADMIN)

    response = await client.post("/api/v1/auth/login", json={"email": "admin@school.com", "password": "wrong"})
    assert response.status_code == 401
    assert response.json()["detail"] == "Invalid login credentials"

    response = await client.post("/api/v1/auth/login", json={"email": "nobody@school.com", "password": "wrong"})
    assert response.status_code == 401


@pytest.mark.asyncio
async def test_session_endpoint_reflects_token(client: AsyncClient, make_user, login) -> None:
    await make_user("sam.student@school.com", UserRole.STUDENT)

    anonymous = await client.get("/api/v1/auth/session")
    assert anonymous.status_code == 200
    assert anonymous.json() == {"identity": None, "loading": False}

    headers = await login("sam.student@school.com")
    response = await client.get("/api/v1/auth/session", headers=headers)
    body = response.json()
    assert body["loading"] is False
    assert body["identity"]["role"] == "student"


@pytest.mark.asyncio
async def test_logout_revokes_token(client: AsyncClient, db_session: AsyncSession, make_user, login) -> None:
    await make_user("admin@school.com", UserRole.ADMIN)
    headers = await login("admin@school.com")
    assert (await client.get("/admin", headers=headers)).status_code == 200

    response = await client.post("/api/v1/auth/logout", headers=headers)
    assert response.status_code == 200
    assert response.json() == {"success": True, "redirect_to": "/login"}

    sessions = (await db_session.execute(select(RefreshToken))).scalars().all()
    assert sessions == []

    # The old token no longer opens protected pages
    response = await client.get("/admin", headers=headers)
    assert response.status_code == 303
    assert response.headers["location"] == "/login"


@pytest.mark.asyncio
async def test_invalid_token_restores_signed_out(client: AsyncClient) -> None:
    response = await client.get("/api/v1/auth/session", headers={"Authorization": "Bearer not-a-jwt"})
    assert response.status_code == 200
    assert response.json()["identity"] is None


@pytest.mark.asyncio
async def test_session_store_transitions(db_session: AsyncSession, make_user) -> None:
    await make_user("mary.teacher@school.com", UserRole.TEACHER)
    store = SessionStore(db_session)
    seen = []
    unsubscribe = store.subscribe(lambda state: seen.append((state.loading, state.identity is not None)))

    assert store.state.loading is True

    await store.restore(None)
    assert store.state.loading is False
    assert store.identity is None

    with pytest.raises(AuthError):
        await store.sign_in("mary.teacher@school.com", "nope")
    assert store.identity is None

    result = await store.sign_in("mary.teacher@school.com", "secret123")
    assert store.identity.email == "mary.teacher@school.com"
    assert store.token == result.access_token

    # A second store restored from the token sees the same identity
    other = SessionStore(db_session)
    await other.restore(result.access_token)
    assert other.identity.id == store.identity.id

    await store.sign_out()
    assert store.identity is None
    assert store.token is None

    await other.restore(result.access_token)
    assert other.identity is None

    unsubscribe()
    await store.restore(None)
    assert seen == [
        (True, False),
        (False, False),
        (False, True),
        (False, False),
    ]


@pytest.mark.asyncio
async def test_index_redirects_by_session(client: AsyncClient, make_user, login) -> None:
    response = await client.get("/")
    assert response.status_code == 303
    assert response.headers["location"] == "/login"

    await make_user("sam.student@school.com", UserRole.STUDENT)
    headers = await login("sam.student@school.com")
    response = await client.get("/", headers=headers)
    assert response.headers["location"] == "/student"

    response = await client.get("/login", headers=headers)
    assert response.status_code == 303
    assert response.headers["location"] == "/student"


@pytest.mark.asyncio
async def test_login_page_for_signed_out_caller(client: AsyncClient) -> None:
    response = await client.get("/login")
    assert response.status_code == 200
    assert response.json()["fields"] == ["email", "password"]


@pytest.mark.asyncio
async def test_wrong_role_is_sent_home(client: AsyncClient, make_user, login) -> None:
    await make_user("mary.teacher@school.com", UserRole.TEACHER)
    headers = await login("mary.teacher@school.com")

    for path in ("/admin", "/admin/users", "/student/assignments"):
        response = await client.get(path, headers=headers)
        assert response.status_code == 303
        assert response.headers["location"] == "/teacher"


@pytest.mark.asyncio
async def test_unknown_path_is_not_found(client: AsyncClient) -> None:
    response = await client.get("/no/such/page")
    assert response.status_code == 404
    assert response.json() == {"detail": "Page not found"}
