"""Common route helpers."""

from __future__ import annotations

from fastapi import HTTPException, status

from launchpad.core.project_manager import ProjectManager
from launchpad.core.sessions import SessionRegistry, SetupSession
from launchpad.models.project import Project


async def require_project(project_id: str, manager: ProjectManager) -> Project:
    """Load project or return 404."""
    project = await manager.get(project_id)
    if project is None:
        raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Project not found")
    return project


async def require_session(
    project_id: str,
    manager: ProjectManager,
    sessions: SessionRegistry,
) -> SetupSession:
    """Return the open session, 404 for unknown projects, 409 when not loaded."""
    await require_project(project_id, manager)
    session = sessions.get(project_id)
    if session is None:
        raise HTTPException(
            status_code=status.HTTP_409_CONFLICT,
            detail="Project is not loaded",
        )
    return session
