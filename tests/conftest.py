import os
from typing import AsyncGenerator, Dict

# Settings are read at import time
os.environ.setdefault("DATABASE_URL", "sqlite+aiosqlite:///:memory:")
os.environ.setdefault("JWT_SECRET_KEY", "test-secret-key")

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine

import schoolhub.auth.models  # noqa: F401
import schoolhub.core.models  # noqa: F401
from schoolhub.auth.models import User
from schoolhub.auth.security import hash_password
from schoolhub.core.enums import UserRole
from schoolhub.db.session import Base, get_db, get_session_factory
from schoolhub.main import app

DEFAULT_PASSWORD = "secret123"


@pytest.fixture()
async def session_factory(tmp_path) -> AsyncGenerator[async_sessionmaker, None]:
    """A fresh SQLite file per test; concurrent fan-out sessions need a shared database, not :memory:."""
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'test.db'}", echo=False, future=True)
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield async_sessionmaker(bind=engine, class_=AsyncSession, expire_on_commit=False)
    await engine.dispose()


@pytest.fixture()
async def db_session(session_factory) -> AsyncGenerator[AsyncSession, None]:
    """Session for arranging and inspecting test data."""
    async with session_factory() as session:
        yield session


@pytest.fixture()
async def client(session_factory) -> AsyncGenerator[AsyncClient, None]:
    """Async HTTP client bound to the FastAPI app; every request gets its own session."""

    async def override_get_db() -> AsyncGenerator[AsyncSession, None]:
        async with session_factory() as session:
            yield session

    app.dependency_overrides[get_db] = override_get_db
    app.dependency_overrides[get_session_factory] = lambda: session_factory
    async with AsyncClient(transport=ASGITransport(app=app), base_url="http://test") as ac:
        yield ac
    app.dependency_overrides.clear()


@pytest.fixture()
def make_user(db_session: AsyncSession):
    """Insert a user directly; returns the ORM row."""

    async def _make_user(
        email: str,
        role: UserRole,
        first_name: str = "Test",
        last_name: str = "User",
        password: str = DEFAULT_PASSWORD,
    ) -> User:
        user = User(
            email=email,
            first_name=first_name,
            last_name=last_name,
            role=role.value,
            password_hash=hash_password(password),
        )
        db_session.add(user)
        await db_session.commit()
        await db_session.refresh(user)
        return user

    return _make_user


@pytest.fixture()
def login(client: AsyncClient):
    """Sign in through the API and return bearer headers."""

    async def _login(email: str, password: str = DEFAULT_PASSWORD) -> Dict[str, str]:
        response = await client.post("/api/v1/auth/login", json={"email": email, "password": password})
        assert response.status_code == 200, response.text
        # Tests authenticate with explicit headers only
        client.cookies.clear()
        return {"Authorization": f"Bearer {response.json()['access_token']}"}

    return _login
