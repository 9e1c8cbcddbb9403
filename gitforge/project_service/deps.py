"""FastAPI dependency injection for DB sessions, the repository manager and
the project coordinator.

Usage in route handlers::

    @router.get("/things")
    async def list_things(coordinator: Coordinator, caller_id: CallerId) -> list[Thing]:
        ...

Dependencies raise HTTP 503 if the backing service was not configured
(GITFORGE_DATABASE_URL unset).
"""

from __future__ import annotations

from collections.abc import AsyncIterator
from typing import Annotated

from fastapi import Depends, Header, HTTPException, Request, status
from sqlalchemy.ext.asyncio import AsyncSession

from gitforge.project_service.coordinator import ProjectCoordinator
from gitforge.project_service.managers.users import DatabaseIdentityDirectory
from gitforge.project_service.repositories.base import RepositoryManager


async def get_db(request: Request) -> AsyncIterator[AsyncSession]:
    """Yield an async SQLAlchemy session, closing it after the request.

    Managers commit their own short transactions.  If the handler raises,
    the session is simply closed and any open transaction is rolled back.
    """
    session_factory = request.app.state.db_session_factory
    if session_factory is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Database not configured (GITFORGE_DATABASE_URL is unset).",
        )
    session: AsyncSession = session_factory()
    try:
        yield session
    finally:
        await session.close()


def get_repositories(request: Request) -> RepositoryManager:
    """Return the shared repository manager client."""
    repositories: RepositoryManager | None = request.app.state.repositories
    if repositories is None:
        raise HTTPException(
            status_code=status.HTTP_503_SERVICE_UNAVAILABLE,
            detail="Repository manager not initialised.",
        )
    return repositories


def get_caller_id(x_user_id: Annotated[str, Header(min_length=1)]) -> str:
    """Caller id as asserted by the authenticating gateway in front of us."""
    return x_user_id


def get_coordinator(
    request: Request,
    db: Annotated[AsyncSession, Depends(get_db)],
    repositories: Annotated[RepositoryManager, Depends(get_repositories)],
) -> ProjectCoordinator:
    """Build a per-request coordinator bound to the request's DB session."""
    return ProjectCoordinator(
        db,
        repositories,
        DatabaseIdentityDirectory(db),
        rpc_timeout=request.app.state.rpc_timeout,
    )


# -- Annotated type aliases for concise route signatures ---------------------

DbSession = Annotated[AsyncSession, Depends(get_db)]
"""Annotated dependency: async SQLAlchemy session (auto-closed after request)."""

CallerId = Annotated[str, Depends(get_caller_id)]
"""Annotated dependency: id of the calling user (``X-User-Id`` header)."""

Coordinator = Annotated[ProjectCoordinator, Depends(get_coordinator)]
"""Annotated dependency: request-scoped project coordinator."""
