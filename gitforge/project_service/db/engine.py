"""Async engine and session factory for the project store.

PostgreSQL is reached through psycopg3 (``postgresql+psycopg://``).  SQLite
URLs (``sqlite+aiosqlite://``) are accepted for local development; they get
SQLAlchemy's default pool since queue pool sizing does not apply to them.
"""

from __future__ import annotations

from sqlalchemy import make_url
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine


def create_engine(
    database_url: str,
    *,
    pool_size: int = 5,
    max_overflow: int = 10,
    **kwargs: object,
) -> AsyncEngine:
    """Create the async engine.

    Server databases get a bounded pool with pre-ping (survives PG restarts
    and idle disconnects) and hourly connection recycling.  Extra *kwargs*
    are passed through and win over these defaults.
    """
    options: dict[str, object] = {"echo": False}
    if make_url(database_url).get_backend_name() != "sqlite":
        options.update(
            pool_size=pool_size,
            max_overflow=max_overflow,
            pool_pre_ping=True,
            pool_recycle=3600,
        )
    options.update(kwargs)
    return create_async_engine(database_url, **options)


def create_session_factory(engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    """Session factory with ``expire_on_commit=False``.

    Managers commit after every state transition and the coordinator keeps
    using the same row objects across those commits.
    """
    return async_sessionmaker(engine, expire_on_commit=False)
