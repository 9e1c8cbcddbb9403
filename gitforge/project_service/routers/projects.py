"""Project endpoints (RPC-style).

All write operations use POST; reads use GET.  Every endpoint acts on behalf
of the caller named in the ``X-User-Id`` header.

Domain errors are translated here:

- conflict -> 409, not found -> 404, access denied -> 403
- provisioning failure -> 502 (503 when the failure is transient)
"""

from __future__ import annotations

from fastapi import APIRouter, HTTPException, status

from gitforge.project_service.coordinator import ProjectAccessDeniedError
from gitforge.project_service.deps import CallerId, Coordinator
from gitforge.project_service.managers.projects import ProjectConflictError, ProjectNotFoundError
from gitforge.project_service.managers.users import UserNotFoundError
from gitforge.project_service.models.api import ProjectCreate, ProjectResponse
from gitforge.project_service.models.project import ProjectRecord
from gitforge.project_service.repositories.base import ProvisioningError

router = APIRouter(prefix="/projects", tags=["projects"])


def _provisioning_failed(exc: ProvisioningError) -> HTTPException:
    code = status.HTTP_503_SERVICE_UNAVAILABLE if exc.transient else status.HTTP_502_BAD_GATEWAY
    return HTTPException(code, detail=f"Repository manager call failed for '{exc.path}': {exc.reason}")


@router.post("/create", response_model=ProjectResponse, status_code=status.HTTP_201_CREATED)
async def create_project(body: ProjectCreate, caller_id: CallerId, coordinator: Coordinator) -> ProjectRecord:
    """Create a project and provision its repository."""
    try:
        return await coordinator.create_project(caller_id, body.name)
    except UserNotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"User '{caller_id}' not found.") from None
    except ProjectConflictError:
        raise HTTPException(status.HTTP_409_CONFLICT, detail=f"Project '{body.name}' already exists.") from None
    except ProvisioningError as exc:
        raise _provisioning_failed(exc) from None


@router.get("/list", response_model=list[ProjectResponse])
async def list_projects(caller_id: CallerId, coordinator: Coordinator) -> list[ProjectRecord]:
    """List the projects visible to the caller, newest first."""
    try:
        return await coordinator.list_projects(caller_id)
    except UserNotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"User '{caller_id}' not found.") from None


@router.get("/{id_or_name}/get", response_model=ProjectResponse)
async def get_project(id_or_name: str, caller_id: CallerId, coordinator: Coordinator) -> ProjectRecord:
    """Get a single project by ID or name."""
    try:
        return await coordinator.get_project(caller_id, id_or_name)
    except LookupError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Project '{id_or_name}' not found.") from None


@router.post("/{project_id}/delete", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(project_id: str, caller_id: CallerId, coordinator: Coordinator) -> None:
    """Delete a project and its repository."""
    try:
        await coordinator.delete_project(caller_id, project_id)
    except UserNotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"User '{caller_id}' not found.") from None
    except ProjectNotFoundError:
        raise HTTPException(status.HTTP_404_NOT_FOUND, detail=f"Project '{project_id}' not found.") from None
    except ProjectAccessDeniedError:
        raise HTTPException(
            status.HTTP_403_FORBIDDEN, detail=f"Not allowed to delete project '{project_id}'."
        ) from None
    except ProvisioningError as exc:
        raise _provisioning_failed(exc) from None
