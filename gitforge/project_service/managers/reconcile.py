"""Out-of-band reconciliation between project rows and remote repositories.

The coordinator keeps both sides consistent for every operation that runs to
completion.  A crash between a remote call and the follow-up commit can still
leave divergence behind; this sweep finds it:

- **stale rows**: ``provisioning``/``deleting`` rows older than the grace
  period.  Repaired by releasing the remote path, then removing the row.
- **orphan paths**: remote repositories with no row of any status.
  Repaired by deleting the remote repository.
- **missing paths**: ``active`` rows whose repository is gone.  Repaired by
  re-provisioning (``create`` is idempotent).

The remote listing is taken *before* the rows are read, so a project created
concurrently with the sweep is never mistaken for an orphan.
"""

from __future__ import annotations

from datetime import UTC, datetime, timedelta
from typing import TYPE_CHECKING

from loguru import logger

from gitforge.project_service.managers import projects
from gitforge.project_service.managers.projects import ProjectNotFoundError
from gitforge.project_service.models.enums import ProjectStatus
from gitforge.project_service.models.project import ReconcileReport
from gitforge.project_service.repositories.base import ProvisioningError

if TYPE_CHECKING:
    from sqlalchemy.ext.asyncio import AsyncSession

    from gitforge.project_service.repositories.base import RepositoryManager


async def reconcile(
    db: AsyncSession,
    repositories: RepositoryManager,
    *,
    stale_after: timedelta,
    apply: bool = False,
) -> ReconcileReport:
    """Compare the store with the repository manager, optionally repairing.

    Individual repair failures are logged and listed in ``failed_paths``;
    the sweep carries on with the remaining items.
    """
    remote = set(await repositories.list_paths())
    known = await projects.list_project_ids(db)
    active = await projects.list_project_ids(db, status=ProjectStatus.ACTIVE)
    stale = await projects.list_stale_projects(db, datetime.now(UTC) - stale_after)

    report = ReconcileReport(
        stale_project_ids=[row.project_id for row in stale],
        orphan_paths=sorted(remote - known),
        missing_paths=sorted(active - remote),
        applied=apply,
    )
    if report.clean:
        logger.info("Reconcile: store and repository manager agree ({} projects)", len(active))
        return report

    logger.warning(
        "Reconcile: {} stale rows, {} orphan repositories, {} missing repositories",
        len(report.stale_project_ids),
        len(report.orphan_paths),
        len(report.missing_paths),
    )
    if not apply:
        return report

    for project_id in report.stale_project_ids:
        try:
            await repositories.delete(project_id)
        except ProvisioningError as exc:
            logger.error("Reconcile: could not release stale project {}: {}", project_id, exc)
            report.failed_paths.append(project_id)
            continue
        try:
            await projects.delete_project(db, project_id)
        except ProjectNotFoundError:
            logger.debug("Reconcile: stale project {} already removed", project_id)

    for path in report.orphan_paths:
        try:
            await repositories.delete(path)
        except ProvisioningError as exc:
            logger.error("Reconcile: could not delete orphan repository {}: {}", path, exc)
            report.failed_paths.append(path)

    for path in report.missing_paths:
        # The project may have been deleted since the rows were read.
        try:
            await projects.get_project(db, path)
        except ProjectNotFoundError:
            logger.debug("Reconcile: project {} no longer active, not re-provisioning", path)
            continue
        try:
            await repositories.create(path)
        except ProvisioningError as exc:
            logger.error("Reconcile: could not re-provision repository {}: {}", path, exc)
            report.failed_paths.append(path)

    logger.info("Reconcile: repairs applied ({} failed)", len(report.failed_paths))
    return report
