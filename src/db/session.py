"""Database session management.

The API talks to the database through the async engine. Celery workers are
synchronous, so they get their own engine built from the same settings.
"""

from collections.abc import AsyncGenerator

from sqlalchemy import create_engine
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker, create_async_engine
from sqlalchemy.orm import sessionmaker

from config import settings

# API engine (asyncpg); pre-ping drops connections Postgres closed on us
engine = create_async_engine(
    settings.database_url,
    pool_pre_ping=True,
    echo=settings.debug,
)

# Scans stay readable after commit, the routes return them
async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Worker engine (psycopg2)
sync_engine = create_engine(
    settings.sync_database_url,
    pool_pre_ping=True,
    echo=settings.debug,
)
SyncSessionLocal = sessionmaker(bind=sync_engine, expire_on_commit=False)


async def get_db_session() -> AsyncGenerator[AsyncSession, None]:
    """
    Request-scoped session for FastAPI routes.

    Commits when the handler returns and rolls back if it raises. Routes
    that must persist before a side effect (queueing a job) commit
    explicitly.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise
