"""Shared test fixtures.

Two database flavours are provided:

- **SQLite** (aiosqlite, file in ``tmp_path``): schema created from
  ``Base.metadata``.  Used by the unit tests; no Docker required.
- **PostgreSQL** (testcontainers, session-scoped): schema created by the
  packaged Alembic migrations.  Tests needing it are marked with
  ``@pytest.mark.integration`` and are deselected by default.
"""

from __future__ import annotations

import os
from collections.abc import AsyncIterator, Iterator
from pathlib import Path

import pytest
from sqlalchemy.ext.asyncio import AsyncEngine, AsyncSession, async_sessionmaker, create_async_engine
from testcontainers.postgres import PostgresContainer

from gitforge.project_service.db.engine import create_session_factory
from gitforge.project_service.db.tables import Base
from gitforge.project_service.managers.users import create_user
from gitforge.project_service.repositories.memory import InMemoryRepositoryManager
from gitforge.project_service.settings import _get_settings_cached


def _set_env(key: str, value: str) -> None:
    """Set an env var and invalidate the settings cache."""
    os.environ[key] = value
    _get_settings_cached.cache_clear()


# ---------------------------------------------------------------------------
# SQLite: function-scoped engine with a fresh schema per test
# ---------------------------------------------------------------------------


@pytest.fixture
async def sqlite_engine(tmp_path: Path) -> AsyncIterator[AsyncEngine]:
    engine = create_async_engine(f"sqlite+aiosqlite:///{tmp_path / 'gitforge.db'}")
    async with engine.begin() as conn:
        await conn.run_sync(Base.metadata.create_all)
    yield engine
    await engine.dispose()


@pytest.fixture
def session_factory(sqlite_engine: AsyncEngine) -> async_sessionmaker[AsyncSession]:
    return create_session_factory(sqlite_engine)


@pytest.fixture
async def db(session_factory: async_sessionmaker[AsyncSession]) -> AsyncIterator[AsyncSession]:
    async with session_factory() as session:
        yield session


@pytest.fixture
async def users(session_factory: async_sessionmaker[AsyncSession]) -> dict[str, str]:
    """Two regular users and one admin, keyed by role."""
    async with session_factory() as session:
        await create_user(session, "alice", user_id="u1")
        await create_user(session, "bob", user_id="u2")
        await create_user(session, "root", user_id="admin", is_admin=True)
    return {"owner": "u1", "other": "u2", "admin": "admin"}


@pytest.fixture
def repositories() -> InMemoryRepositoryManager:
    return InMemoryRepositoryManager()


# ---------------------------------------------------------------------------
# PostgreSQL: session-scoped container with Alembic migrations applied
# ---------------------------------------------------------------------------


@pytest.fixture(scope="session")
def pg_container() -> Iterator[PostgresContainer]:
    """Start a PostgreSQL 17 container for the test session."""
    with PostgresContainer(
        image="postgres:17",
        username="test",
        password="test",
        dbname="gitforge_test",
        driver="psycopg",
    ) as pg:
        yield pg


@pytest.fixture(scope="session")
def pg_url(pg_container: PostgresContainer) -> str:
    """PostgreSQL URL (psycopg3 dialect) with Alembic migrations applied."""
    url = pg_container.get_connection_url()
    _set_env("GITFORGE_DATABASE_URL", url)

    from alembic import command
    from alembic.config import Config

    ini_path = Path(__file__).parent.parent / "gitforge" / "project_service" / "alembic.ini"
    command.upgrade(Config(str(ini_path)), "head")

    return url


@pytest.fixture
async def pg_engine(pg_url: str) -> AsyncIterator[AsyncEngine]:
    """Async engine against the container; all rows are removed afterwards."""
    engine = create_async_engine(pg_url)
    yield engine
    async with engine.begin() as conn:
        for table in reversed(Base.metadata.sorted_tables):
            await conn.execute(table.delete())
    await engine.dispose()


@pytest.fixture
async def pg_session(pg_engine: AsyncEngine) -> AsyncIterator[AsyncSession]:
    """Async SQLAlchemy session; all changes rolled back after the test.

    Uses ``join_transaction_mode="create_savepoint"`` so that session.commit()
    inside tested code only commits a savepoint, while the outer transaction
    is rolled back at teardown.
    """
    async with pg_engine.connect() as conn:
        await conn.begin()
        session = AsyncSession(bind=conn, join_transaction_mode="create_savepoint", expire_on_commit=False)
        yield session
        await session.close()
        await conn.rollback()
