"""Database engine and sessions for the loyalty tables.

Request handlers get one session per request from `get_session()`. The
dispatch pipeline and the sweeps run outside a request and open their
own sessions from `get_session_factory()`.
"""

from collections.abc import AsyncGenerator
from typing import Any

from sqlalchemy.engine import make_url
from sqlalchemy.ext.asyncio import (
    AsyncEngine,
    AsyncSession,
    async_sessionmaker,
    create_async_engine,
)
from sqlalchemy.orm import declarative_base

from loyalty_engage.infrastructure.config import settings


def build_engine(database_url: str, echo: bool = False, **options: Any) -> AsyncEngine:
    """Create an async engine for the given URL.

    SQLite connections may be used from several threads (TestClient runs
    requests on a worker thread); server databases get pre-ping so that
    connections dropped while the scheduler idles are replaced.

    Args:
        database_url: SQLAlchemy async URL.
        echo: Log emitted SQL.
        **options: Extra `create_async_engine` options, e.g. `poolclass`.

    Returns:
        AsyncEngine instance.
    """
    if make_url(database_url).get_backend_name() == "sqlite":
        options.setdefault("connect_args", {"check_same_thread": False})
    else:
        options.setdefault("pool_pre_ping", True)
    return create_async_engine(database_url, echo=echo, **options)


engine = build_engine(settings.database_url, echo=settings.debug)

async_session_factory = async_sessionmaker(
    engine,
    class_=AsyncSession,
    expire_on_commit=False,
)

# Base class for models
Base = declarative_base()


async def get_session() -> AsyncGenerator[AsyncSession, None]:
    """Get a request-scoped session.

    Commits when the request handler returns and rolls back if it raised.

    Yields:
        AsyncSession for database operations.
    """
    async with async_session_factory() as session:
        try:
            yield session
            await session.commit()
        except Exception:
            await session.rollback()
            raise


def get_session_factory() -> async_sessionmaker[AsyncSession]:
    """Get the session factory used by background work.

    Returns:
        The module-level async session factory.
    """
    return async_session_factory
