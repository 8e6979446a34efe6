import asyncio
from typing import List

from sqlalchemy import inspect
from sqlalchemy.ext.asyncio import AsyncEngine

# Registers every table on Base.metadata
import schoolhub.auth.models  # noqa: F401
import schoolhub.core.models  # noqa: F401
from schoolhub.db.session import Base, engine


def _existing_tables(sync_conn) -> List[str]:
    return inspect(sync_conn).get_table_names()


async def ensure_tables(db_engine: AsyncEngine) -> List[str]:
    """Create any table the models declare but the database lacks. Returns the created names."""
    async with db_engine.begin() as conn:
        existing = set(await conn.run_sync(_existing_tables))
        missing = [name for name in Base.metadata.tables if name not in existing]
        await conn.run_sync(Base.metadata.create_all)
    return missing


async def main() -> None:
    missing = await ensure_tables(engine)
    if missing:
        print("Created missing tables: " + ", ".join(missing))
    else:
        print("All required tables already exist in the database.")


if __name__ == "__main__":
    asyncio.run(main())
