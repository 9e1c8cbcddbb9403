"""Project and caller identity domain models.

These are pure Pydantic models.  ``ProjectRecord`` is what the coordinator
hands back to callers: it is derived from a database row *for a specific
caller*, so ``owner_id`` is only filled in when that caller owns the project
or is an administrator.
"""

from __future__ import annotations

from datetime import datetime
from typing import TYPE_CHECKING

from pydantic import BaseModel, Field

if TYPE_CHECKING:
    from gitforge.project_service.db.tables import Project as ProjectRow


class UserIdentity(BaseModel):
    """Caller as resolved by the identity directory."""

    user_id: str
    is_admin: bool = False

    def can_manage(self, owner_id: str) -> bool:
        return self.is_admin or self.user_id == owner_id


class ProjectRecord(BaseModel):
    """A project as seen by one caller."""

    project_id: str
    name: str
    owner_id: str | None = Field(default=None, description="Only present for the owner or an admin.")
    created_at: datetime | None = None

    @classmethod
    def for_caller(cls, row: ProjectRow, caller: UserIdentity) -> ProjectRecord:
        return cls(
            project_id=row.project_id,
            name=row.name,
            owner_id=row.owner_id if caller.can_manage(row.owner_id) else None,
            created_at=row.created_at,
        )


class ReconcileReport(BaseModel):
    """Divergences found (and optionally repaired) by a reconciliation sweep."""

    stale_project_ids: list[str] = Field(default_factory=list, description="Rows stuck in provisioning/deleting.")
    orphan_paths: list[str] = Field(default_factory=list, description="Remote repositories with no local row.")
    missing_paths: list[str] = Field(default_factory=list, description="Active rows with no remote repository.")
    failed_paths: list[str] = Field(default_factory=list, description="Repairs that failed and need another run.")
    applied: bool = False

    @property
    def clean(self) -> bool:
        return not (self.stale_project_ids or self.orphan_paths or self.missing_paths)
