"""
Async engine and session factory.

The session factory is created once per process and injected into the
orchestrators; each persistence step opens its own transaction.
"""

from collections.abc import AsyncIterator
from contextlib import asynccontextmanager

from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)

from worksim_assessment.config import get_settings
from worksim_assessment.db.models import Base


def create_engine(database_url: str | None = None, echo: bool | None = None) -> AsyncEngine:
    """
    Create the async SQLAlchemy engine.

    Args:
        database_url: Connection string (uses config if not provided).
        echo: Log SQL statements (defaults to the debug setting).

    Returns:
        The async engine.
    """
    settings = get_settings()
    return create_async_engine(
        database_url or settings.database_url,
        echo=settings.debug if echo is None else echo,
        pool_pre_ping=True,
    )


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Create a session factory whose objects stay usable after commit."""
    return async_sessionmaker(engine, expire_on_commit=False)


async def init_db(engine: AsyncEngine) -> None:
    """Create all tables that do not exist yet."""
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)


@asynccontextmanager
async def session_scope(
    session_factory: async_sessionmaker[AsyncSession],
) -> AsyncIterator[AsyncSession]:
    """Open a session and run the block in one transaction, committed on exit."""
    async with session_factory() as session:
        async with session.begin():
            yield session
