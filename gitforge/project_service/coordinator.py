"""Project lifecycle coordinator.

Keeps the local project row and the remote repository in step.  A project is
created only as the joint outcome of a row insert and a remote ``create``, and
destroyed only as the joint outcome of a remote ``delete`` and a row removal.

No database transaction is held open across a repository manager call.
Instead each operation walks the row through a transient status:

- **create**: stage the row as ``provisioning`` (commit), call the remote,
  then promote to ``active``.  Any failure removes the staged row before the
  error propagates, so a failed create never leaves a row behind.
- **delete**: move the row to ``deleting`` (commit), call the remote, then
  remove the row.  Any failure restores ``active``, so the local row is always
  a superset of what exists remotely and a retry is safe.

Compensation runs inside a shielded cancel scope: a cancelled request still
drives its staged row to a definite outcome.  The one residual gap -- a crash
between the remote call and the follow-up commit -- leaves a transient row
for ``managers.reconcile`` to sweep.
"""

from __future__ import annotations

from collections.abc import Awaitable, Callable
from typing import TYPE_CHECKING

import anyio
from loguru import logger

from gitforge.project_service.managers import projects
from gitforge.project_service.managers.projects import ProjectNotFoundError
from gitforge.project_service.models.project import ProjectRecord
from gitforge.project_service.repositories.base import ProvisioningError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from gitforge.project_service.managers.users import IdentityDirectory
    from gitforge.project_service.repositories.base import RepositoryManager


class ProjectAccessDeniedError(PermissionError):
    """Raised when a caller may see a project but is not entitled to delete it."""


class ProjectCoordinator:
    """Create, read, list and delete projects for a given caller.

    Bound to one ``AsyncSession`` (one request).  The caller's admin flag is
    looked up afresh for every operation and never cached beyond it.
    """

    def __init__(
        self,
        db: AsyncSession,
        repositories: RepositoryManager,
        identity: IdentityDirectory,
        *,
        rpc_timeout: float | None = None,
    ) -> None:
        self._db = db
        self._repositories = repositories
        self._identity = identity
        self._rpc_timeout = rpc_timeout

    # -- Create ----------------------------------------------------------------

    async def create_project(self, caller_id: str, name: str) -> ProjectRecord:
        """Create a project owned by the caller and provision its repository.

        Raises ``ProjectConflictError`` for a taken name (before any remote
        call is made) and ``ProvisioningError`` if the remote create fails.
        """
        caller = await self._identity.get_user(caller_id)
        # Cancellation is deferred until the staged row is committed and
        # therefore covered by the compensation below.
        with anyio.CancelScope(shield=True):
            staged = await projects.stage_project(self._db, name, caller.user_id)
        project_id = staged.project_id
        logger.debug("Project staged: {} (name={}, owner={})", project_id, name, caller.user_id)

        try:
            await self._call_repository(self._repositories.create, project_id)
            row = await projects.activate_project(self._db, project_id)
        except ProvisioningError as exc:
            # A transient failure may still have provisioned the remote side.
            with anyio.CancelScope(shield=True):
                await self._abandon_create(project_id, release_remote=exc.transient)
            raise
        except BaseException:
            with anyio.CancelScope(shield=True):
                await self._abandon_create(project_id, release_remote=True)
            raise

        logger.info("Project created: {} (name={}, owner={})", project_id, name, caller.user_id)
        return ProjectRecord.for_caller(row, caller)

    async def _abandon_create(self, project_id: str, *, release_remote: bool) -> None:
        await self._db.rollback()
        if release_remote:
            try:
                await self._call_repository(self._repositories.delete, project_id)
            except ProvisioningError as exc:
                logger.error("Repository {} may be orphaned, left for reconciliation: {}", project_id, exc)
        await projects.discard_staged_project(self._db, project_id)
        logger.warning("Project creation rolled back: {}", project_id)

    # -- Read ------------------------------------------------------------------

    async def get_project(self, caller_id: str, id_or_name: str) -> ProjectRecord:
        """Look a project up by ID, falling back to name.

        Non-admins only ever see their own projects; anything else is
        ``ProjectNotFoundError``, never an access error.
        """
        caller = await self._identity.get_user(caller_id)
        owner_id = None if caller.is_admin else caller.user_id
        try:
            row = await projects.get_project(self._db, id_or_name, owner_id=owner_id)
        except ProjectNotFoundError:
            row = await projects.get_project_by_name(self._db, id_or_name, owner_id=owner_id)
        return ProjectRecord.for_caller(row, caller)

    async def list_projects(self, caller_id: str) -> list[ProjectRecord]:
        """Admins get every project; everyone else gets their own."""
        caller = await self._identity.get_user(caller_id)
        owner_id = None if caller.is_admin else caller.user_id
        rows = await projects.list_projects(self._db, owner_id=owner_id)
        return [ProjectRecord.for_caller(row, caller) for row in rows]

    # -- Delete ----------------------------------------------------------------

    async def delete_project(self, caller_id: str, project_id: str) -> ProjectRecord:
        """Remove the repository, then the row.

        Raises ``ProjectNotFoundError`` if the project does not exist (or a
        concurrent delete got there first), ``ProjectAccessDeniedError`` if the
        caller is neither owner nor admin, and ``ProvisioningError`` if the
        remote delete fails -- in which case the project stays active.
        """
        caller = await self._identity.get_user(caller_id)
        row = await projects.get_project(self._db, project_id)
        if not caller.can_manage(row.owner_id):
            raise ProjectAccessDeniedError(project_id)
        record = ProjectRecord.for_caller(row, caller)

        # Both commits around the remote call are shielded: a cancelled
        # request must not strand the row in DELETING.
        with anyio.CancelScope(shield=True):
            await projects.begin_deletion(self._db, project_id)
        try:
            await self._call_repository(self._repositories.delete, project_id)
        except BaseException:
            with anyio.CancelScope(shield=True):
                await self._db.rollback()
                try:
                    await projects.restore_project(self._db, project_id)
                except ProjectNotFoundError:
                    logger.warning("Project {} vanished while its deletion was failing", project_id)
                else:
                    logger.warning("Project deletion aborted, row restored: {}", project_id)
            raise

        with anyio.CancelScope(shield=True):
            await projects.delete_project(self._db, project_id)
        logger.info("Project deleted: {} (by={})", project_id, caller.user_id)
        return record

    # -- Helpers ---------------------------------------------------------------

    async def _call_repository(self, call: Callable[[str], Awaitable[None]], path: str) -> None:
        """Run one repository manager call under the configured deadline."""
        try:
            with anyio.fail_after(self._rpc_timeout):
                await call(path)
        except TimeoutError as exc:
            reason = f"{call.__name__} exceeded the {self._rpc_timeout}s deadline"
            raise ProvisioningError(path, reason, transient=True) from exc
