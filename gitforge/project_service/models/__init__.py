"""Data models for the project service."""

from gitforge.project_service.models.api import ProjectCreate, ProjectResponse
from gitforge.project_service.models.enums import TRANSIENT_STATUSES, ProjectStatus
from gitforge.project_service.models.project import ProjectRecord, ReconcileReport, UserIdentity

__all__ = [
    # API schemas
    "ProjectCreate",
    # Domain
    "ProjectRecord",
    "ProjectResponse",
    # Enums
    "ProjectStatus",
    "ReconcileReport",
    "TRANSIENT_STATUSES",
    "UserIdentity",
]
