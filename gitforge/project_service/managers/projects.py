"""Project store operations.

Encapsulates all project row access.  Every function here runs (and commits)
its own short transaction; none of them ever spans a repository manager call.
The coordinator strings them together into the staged lifecycle::

    stage_project        -> row inserted as PROVISIONING
    activate_project     -> PROVISIONING -> ACTIVE
    discard_staged_project  (create failed: staged row removed)

    begin_deletion       -> ACTIVE -> DELETING
    restore_project      -> DELETING -> ACTIVE (remote delete failed)
    delete_project       (remote delete succeeded: row removed)

Reads only ever return ACTIVE rows.
"""

from __future__ import annotations

import uuid
from datetime import datetime

from loguru import logger
from sqlalchemy import ColumnElement, delete, select, update
from sqlalchemy.exc import IntegrityError
from sqlalchemy.ext.asyncio import AsyncSession

from gitforge.project_service.db.tables import Project
from gitforge.project_service.models.enums import TRANSIENT_STATUSES, ProjectStatus

_UNIQUE_VIOLATION = "23505"


class ProjectConflictError(ValueError):
    """Raised when a project with the given name already exists."""


class ProjectNotFoundError(LookupError):
    """Raised when a project is not found (or not visible to the caller)."""


# -- Create --------------------------------------------------------------------


async def stage_project(db: AsyncSession, name: str, owner_id: str) -> Project:
    """Insert a PROVISIONING row and commit.

    Raises ``ProjectConflictError`` if the name is taken, including when a
    concurrent insert wins the race and the unique constraint fires at commit.
    """
    existing = await db.scalar(select(Project.project_id).where(Project.name == name))
    if existing is not None:
        raise ProjectConflictError(name)

    project = Project(
        project_id=str(uuid.uuid4()),
        name=name,
        owner_id=owner_id,
        status=ProjectStatus.PROVISIONING,
    )
    db.add(project)
    try:
        await db.commit()
    except IntegrityError as exc:
        await db.rollback()
        if _is_unique_violation(exc):
            raise ProjectConflictError(name) from None
        raise
    await db.refresh(project)
    return project


async def activate_project(db: AsyncSession, project_id: str) -> Project:
    """Promote a staged row to ACTIVE.  Raises ``ProjectNotFoundError`` if not staged."""
    await _transition(db, project_id, ProjectStatus.PROVISIONING, ProjectStatus.ACTIVE)
    return await _reload(db, project_id)


async def discard_staged_project(db: AsyncSession, project_id: str) -> bool:
    """Remove a staged row.  Returns ``False`` if there was nothing to remove."""
    stmt = (
        delete(Project)
        .where(Project.project_id == project_id, Project.status == ProjectStatus.PROVISIONING)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()
    return result.rowcount > 0  # type: ignore[attr-defined]


# -- Read ----------------------------------------------------------------------


async def get_project(db: AsyncSession, project_id: str, *, owner_id: str | None = None) -> Project:
    """Get an active project by ID, optionally restricted to one owner.

    Raises ``ProjectNotFoundError`` if missing, not active, or owned by
    someone else -- the three cases are deliberately indistinguishable.
    """
    return await _get_active(db, Project.project_id == project_id, project_id, owner_id)


async def get_project_by_name(db: AsyncSession, name: str, *, owner_id: str | None = None) -> Project:
    """Get an active project by name.  Same visibility rules as ``get_project``."""
    return await _get_active(db, Project.name == name, name, owner_id)


async def list_projects(db: AsyncSession, *, owner_id: str | None = None) -> list[Project]:
    """List active projects, newest first.  ``owner_id=None`` lists everyone's."""
    stmt = select(Project).where(Project.status == ProjectStatus.ACTIVE)
    if owner_id is not None:
        stmt = stmt.where(Project.owner_id == owner_id)
    stmt = stmt.order_by(Project.created_at.desc()).execution_options(populate_existing=True)
    result = await db.execute(stmt)
    return list(result.scalars().all())


async def list_project_ids(db: AsyncSession, *, status: ProjectStatus | None = None) -> set[str]:
    """Return the IDs of every row (any status unless *status* is given)."""
    stmt = select(Project.project_id)
    if status is not None:
        stmt = stmt.where(Project.status == status)
    result = await db.execute(stmt)
    return set(result.scalars().all())


async def list_stale_projects(db: AsyncSession, older_than: datetime) -> list[Project]:
    """List rows stuck in PROVISIONING/DELETING since before *older_than*."""
    stmt = (
        select(Project)
        .where(Project.status.in_(TRANSIENT_STATUSES), Project.updated_at < older_than)
        .order_by(Project.updated_at.asc())
    )
    result = await db.execute(stmt)
    return list(result.scalars().all())


# -- Delete --------------------------------------------------------------------


async def begin_deletion(db: AsyncSession, project_id: str) -> Project:
    """Move an ACTIVE row to DELETING.

    Only one caller can win this transition; the others get
    ``ProjectNotFoundError`` exactly as if the row were already gone.
    """
    await _transition(db, project_id, ProjectStatus.ACTIVE, ProjectStatus.DELETING)
    return await _reload(db, project_id)


async def restore_project(db: AsyncSession, project_id: str) -> None:
    """Return a DELETING row to ACTIVE after a failed remote delete."""
    await _transition(db, project_id, ProjectStatus.DELETING, ProjectStatus.ACTIVE)


async def delete_project(db: AsyncSession, project_id: str) -> None:
    """Remove a project row.  Raises ``ProjectNotFoundError`` if missing."""
    stmt = delete(Project).where(Project.project_id == project_id).execution_options(synchronize_session=False)
    result = await db.execute(stmt)
    await db.commit()
    if result.rowcount == 0:  # type: ignore[attr-defined]
        raise ProjectNotFoundError(project_id)


# -- Helpers -------------------------------------------------------------------


async def _get_active(db: AsyncSession, clause: ColumnElement[bool], key: str, owner_id: str | None) -> Project:
    stmt = select(Project).where(clause, Project.status == ProjectStatus.ACTIVE)
    if owner_id is not None:
        stmt = stmt.where(Project.owner_id == owner_id)
    result = await db.execute(stmt.execution_options(populate_existing=True))
    project = result.scalar_one_or_none()
    if project is None:
        raise ProjectNotFoundError(key)
    return project


async def _transition(db: AsyncSession, project_id: str, current: ProjectStatus, target: ProjectStatus) -> None:
    stmt = (
        update(Project)
        .where(Project.project_id == project_id, Project.status == current)
        .values(status=target)
        .execution_options(synchronize_session=False)
    )
    result = await db.execute(stmt)
    await db.commit()
    if result.rowcount == 0:  # type: ignore[attr-defined]
        raise ProjectNotFoundError(project_id)
    logger.debug("Project {}: {} -> {}", project_id, current, target)


async def _reload(db: AsyncSession, project_id: str) -> Project:
    project = await db.get(Project, project_id, populate_existing=True)
    if project is None:
        raise ProjectNotFoundError(project_id)
    return project


def _is_unique_violation(exc: IntegrityError) -> bool:
    """Tell a unique-constraint failure apart from other integrity errors.

    psycopg exposes the SQLSTATE; SQLite only reports it in the message.
    """
    orig = exc.orig
    if getattr(orig, "sqlstate", None) == _UNIQUE_VIOLATION:
        return True
    return "unique" in str(orig).lower()
