"""Project registry API routes: DB-backed."""

from fastapi import APIRouter, Depends, Path, Response, status

from devflow.core.clock import get_clock
from devflow.db.base import get_session_factory
from devflow.schemas.common import ApiResponse
from devflow.schemas.projects import ProjectCreate, ProjectResponse, ProjectUpdate
from devflow.services.project_service import ProjectService

router = APIRouter()


def get_project_service() -> ProjectService:
    """Dependency that provides a ProjectService.

    Override this dependency in tests via app.dependency_overrides.
    """
    return ProjectService(session_factory=get_session_factory(), clock=get_clock())


@router.post("", response_model=ApiResponse[ProjectResponse], status_code=status.HTTP_201_CREATED)
async def create_project(
    request: ProjectCreate,
    response: Response,
    service: ProjectService = Depends(get_project_service),
):
    """Create a project. Names are unique regardless of case."""
    project = await service.create_project(request.name, request.description)
    response.headers["Location"] = f"/api/projects/{project.id}"
    return ApiResponse[ProjectResponse](
        success=True,
        message="Project created successfully.",
        data=project,
    )


@router.get("", response_model=ApiResponse[list[ProjectResponse]])
async def list_projects(service: ProjectService = Depends(get_project_service)):
    """List all projects, newest first, with session count and total hours."""
    projects = await service.list_projects()
    return ApiResponse[list[ProjectResponse]](
        success=True,
        message=f"Retrieved {len(projects)} project(s).",
        data=projects,
    )


@router.get("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def get_project(
    project_id: int = Path(..., gt=0),
    service: ProjectService = Depends(get_project_service),
):
    project = await service.get_project(project_id)
    return ApiResponse[ProjectResponse](success=True, message="Project retrieved successfully.", data=project)


@router.put("/{project_id}", response_model=ApiResponse[ProjectResponse])
async def update_project(
    request: ProjectUpdate,
    project_id: int = Path(..., gt=0),
    service: ProjectService = Depends(get_project_service),
):
    """Replace a project's name and description."""
    project = await service.update_project(project_id, request.name, request.description)
    return ApiResponse[ProjectResponse](success=True, message="Project updated successfully.", data=project)


@router.delete("/{project_id}", response_model=ApiResponse[None])
async def delete_project(
    project_id: int = Path(..., gt=0),
    service: ProjectService = Depends(get_project_service),
):
    """Delete a project together with all of its sessions."""
    await service.delete_project(project_id)
    return ApiResponse[None](success=True, message="Project deleted successfully.")
