from typing import Any, AsyncGenerator, Dict

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import declarative_base

from schoolhub.core.config import settings


def _engine_options(database_url: str) -> Dict[str, Any]:
    """Pool tuning for server databases; SQLite files and memory databases need none."""
    if make_url(database_url).get_backend_name() == "sqlite":
        return {}
    # Ping before checkout and recycle after 5 minutes so idle connections
    # dropped by the server or a proxy are never handed out.
    return {"pool_pre_ping": True, "pool_recycle": 300}


engine = create_async_engine(settings.database_url, echo=False, **_engine_options(settings.database_url))

AsyncSessionLocal = async_sessionmaker(
    bind=engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

Base = declarative_base()


async def get_db() -> AsyncGenerator[AsyncSession, None]:
    """Request-scoped session shared by the route, its guard and its services."""
    async with AsyncSessionLocal() as session:
        yield session


def get_session_factory() -> async_sessionmaker:
    """Sessions for concurrent fan-out queries; one AsyncSession cannot run two statements at once."""
    return AsyncSessionLocal
