"""Shared fixtures for project-service tests."""

from __future__ import annotations

from collections.abc import AsyncIterator

import pytest
from httpx import ASGITransport, AsyncClient
from sqlalchemy import func, select
from sqlalchemy.ext.asyncio import AsyncSession, async_sessionmaker

from gitforge.project_service.app import app
from gitforge.project_service.coordinator import ProjectCoordinator
from gitforge.project_service.db.tables import Project
from gitforge.project_service.managers.users import DatabaseIdentityDirectory
from gitforge.project_service.repositories.memory import InMemoryRepositoryManager


def make_coordinator(
    db: AsyncSession,
    repositories: InMemoryRepositoryManager,
    *,
    rpc_timeout: float | None = None,
) -> ProjectCoordinator:
    return ProjectCoordinator(db, repositories, DatabaseIdentityDirectory(db), rpc_timeout=rpc_timeout)


@pytest.fixture
def coordinator(db: AsyncSession, repositories: InMemoryRepositoryManager, users: dict[str, str]) -> ProjectCoordinator:
    return make_coordinator(db, repositories)


@pytest.fixture
async def coordinator_factory(
    session_factory: async_sessionmaker[AsyncSession],
    repositories: InMemoryRepositoryManager,
    users: dict[str, str],
):
    """Build coordinators with their own sessions (one per concurrent caller)."""
    sessions: list[AsyncSession] = []

    def _factory(*, rpc_timeout: float | None = None) -> ProjectCoordinator:
        session = session_factory()
        sessions.append(session)
        return make_coordinator(session, repositories, rpc_timeout=rpc_timeout)

    yield _factory

    for session in sessions:
        await session.close()


@pytest.fixture
def count_rows(session_factory: async_sessionmaker[AsyncSession]):
    """Count project rows (any status) through a fresh session."""

    async def _count(**filters: str) -> int:
        stmt = select(func.count()).select_from(Project)
        for column, value in filters.items():
            stmt = stmt.where(getattr(Project, column) == value)
        async with session_factory() as session:
            return await session.scalar(stmt) or 0

    return _count


@pytest.fixture
async def client(
    session_factory: async_sessionmaker[AsyncSession],
    repositories: InMemoryRepositoryManager,
    users: dict[str, str],
) -> AsyncIterator[AsyncClient]:
    """Async HTTP client wired to the app with the SQLite session factory.

    The app lifespan does NOT run under ``ASGITransport``, so state fields
    are pre-set here.
    """
    app.state.db_engine = None
    app.state.db_session_factory = session_factory
    app.state.repositories = repositories
    app.state.rpc_timeout = None

    transport = ASGITransport(app=app)
    async with AsyncClient(transport=transport, base_url="http://test") as ac:
        yield ac

    app.dependency_overrides.clear()
