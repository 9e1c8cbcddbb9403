"""API request / response schemas for project endpoints.

These thin schemas sit between HTTP and the coordinator.  Responses are built
from ``ProjectRecord`` (already filtered for the caller), never directly from
ORM rows, so an owner id can not leak through ``from_attributes``.
"""

from __future__ import annotations

from datetime import datetime

from pydantic import BaseModel, ConfigDict, Field


class ProjectCreate(BaseModel):
    """Input for creating a new project."""

    name: str = Field(min_length=1, max_length=255, pattern=r"^[A-Za-z0-9][A-Za-z0-9._-]*$")


class ProjectResponse(BaseModel):
    """Serialized project returned to clients."""

    model_config = ConfigDict(from_attributes=True)

    project_id: str
    name: str
    owner_id: str | None = None
    created_at: datetime | None = None
