"""Project registry and loading routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from launchpad.api.deps import get_project_manager, get_session_registry
from launchpad.api.routes.common import require_project, require_session
from launchpad.api.schemas.projects import (
    CreateProjectRequest,
    DependenciesResponse,
    LoadProjectResponse,
    ProjectsResponse,
)
from launchpad.core.errors import ProjectLoadError, SetupAlreadyRunning
from launchpad.core.project_manager import CreateProjectInput, ProjectManager
from launchpad.core.sessions import SessionRegistry
from launchpad.models.project import Project, ProjectAnalysis

router = APIRouter(prefix="/api/v1/projects", tags=["projects"])


@router.get("", response_model=ProjectsResponse)
async def list_projects(manager: ProjectManager = Depends(get_project_manager)) -> ProjectsResponse:
    return ProjectsResponse(items=await manager.list())


@router.post("", status_code=status.HTTP_201_CREATED)
async def create_project(
    request: CreateProjectRequest,
    manager: ProjectManager = Depends(get_project_manager),
) -> dict[str, str]:
    try:
        project = await manager.create(CreateProjectInput(path=request.path, name=request.name))
    except ValueError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    return {"id": project.id}


@router.get("/{project_id}")
async def get_project(
    project_id: str, manager: ProjectManager = Depends(get_project_manager)
) -> dict[str, Project]:
    project = await require_project(project_id, manager)
    return {"project": project}


@router.delete("/{project_id}", status_code=status.HTTP_204_NO_CONTENT)
async def delete_project(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> None:
    await sessions.close(project_id)
    await manager.delete(project_id)


@router.post("/{project_id}/load", response_model=LoadProjectResponse)
async def load_project(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> LoadProjectResponse:
    project = await require_project(project_id, manager)
    try:
        session = sessions.open(project)
    except SetupAlreadyRunning as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ProjectLoadError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    analysis = session.context.analysis
    if analysis is None:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail="Analysis unavailable"
        )
    return LoadProjectResponse(
        project_id=project.id,
        status=session.context.status,
        analysis=analysis,
    )


@router.post("/{project_id}/unload")
async def unload_project(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> dict[str, bool]:
    await require_project(project_id, manager)
    return {"unloaded": await sessions.close(project_id)}


@router.get("/{project_id}/analysis", response_model=ProjectAnalysis)
async def project_analysis(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> ProjectAnalysis:
    session = await require_session(project_id, manager, sessions)
    analysis = session.context.analysis
    if analysis is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Project not analyzed")
    return analysis


@router.get("/{project_id}/dependencies", response_model=DependenciesResponse)
async def project_dependencies(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> DependenciesResponse:
    session = await require_session(project_id, manager, sessions)
    return DependenciesResponse(
        items=[record.model_copy() for record in session.context.dependencies],
        progress=session.context.progress,
    )
