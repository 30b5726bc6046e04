"""User-facing log and terminal output routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, status

from launchpad.api.deps import get_project_manager, get_session_registry
from launchpad.api.routes.common import require_session
from launchpad.api.schemas.setup import LogsResponse, TerminalResponse
from launchpad.core.project_manager import ProjectManager
from launchpad.core.sessions import SessionRegistry

router = APIRouter(prefix="/api/v1/projects/{project_id}", tags=["logs"])


@router.get("/logs", response_model=LogsResponse)
async def list_logs(
    project_id: str,
    limit: int | None = None,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> LogsResponse:
    session = await require_session(project_id, manager, sessions)
    logs = session.context.logs
    if limit is not None and limit >= 0:
        logs = logs[-limit:] if limit else []
    return LogsResponse(items=logs)


@router.delete("/logs", status_code=status.HTTP_204_NO_CONTENT)
async def clear_logs(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> None:
    session = await require_session(project_id, manager, sessions)
    session.context.clear_logs()


@router.get("/terminal", response_model=TerminalResponse)
async def list_terminal(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> TerminalResponse:
    session = await require_session(project_id, manager, sessions)
    return TerminalResponse(items=session.context.terminal)


@router.delete("/terminal", status_code=status.HTTP_204_NO_CONTENT)
async def clear_terminal(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> None:
    session = await require_session(project_id, manager, sessions)
    session.context.clear_terminal()
