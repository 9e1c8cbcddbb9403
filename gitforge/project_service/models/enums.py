"""Shared enumerations used across the project service."""

from __future__ import annotations

from enum import StrEnum


class ProjectStatus(StrEnum):
    """Lifecycle state persisted on the project row.

    Only ``ACTIVE`` rows are visible to callers.  ``PROVISIONING`` and
    ``DELETING`` span a single create/delete operation; a row left in either
    state after a crash is picked up by the reconciler.
    """

    PROVISIONING = "provisioning"
    ACTIVE = "active"
    DELETING = "deleting"


TRANSIENT_STATUSES = (ProjectStatus.PROVISIONING, ProjectStatus.DELETING)
