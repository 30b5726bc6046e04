"""Setup orchestration routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from launchpad.api.deps import get_project_manager, get_session_registry
from launchpad.api.routes.common import require_session
from launchpad.api.schemas.setup import (
    ComposeResponse,
    EnvResponse,
    SetupRunResponse,
    SetupStatusResponse,
)
from launchpad.core.errors import ProjectLoadError, SetupAlreadyRunning, SetupError
from launchpad.core.project_manager import ProjectManager
from launchpad.core.sessions import SessionRegistry

router = APIRouter(prefix="/api/v1/projects/{project_id}/setup", tags=["setup"])


@router.post("/run")
async def run_setup(
    project_id: str,
    background: bool = False,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> SetupRunResponse | dict[str, bool | str]:
    session = await require_session(project_id, manager, sessions)
    try:
        if background:
            session.start_background_run()
            return {"started": True, "status": session.context.status.value}
        result = await session.orchestrator.run_full_setup()
    except SetupAlreadyRunning as exc:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail=str(exc)) from exc
    except ProjectLoadError as exc:
        raise HTTPException(
            status_code=status.HTTP_422_UNPROCESSABLE_ENTITY, detail=str(exc)
        ) from exc
    except SetupError as exc:
        raise HTTPException(
            status_code=status.HTTP_500_INTERNAL_SERVER_ERROR, detail=str(exc)
        ) from exc
    return SetupRunResponse.from_result(result)


@router.post("/stop")
async def stop_setup(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> dict[str, list[str] | str]:
    session = await require_session(project_id, manager, sessions)
    stopped = await session.orchestrator.stop()
    return {"stopped": stopped, "status": session.context.status.value}


@router.post("/complete")
async def complete_setup(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> dict[str, bool | str]:
    session = await require_session(project_id, manager, sessions)
    completed = session.orchestrator.mark_completed()
    return {"completed": completed, "status": session.context.status.value}


@router.get("/status", response_model=SetupStatusResponse)
async def setup_status(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> SetupStatusResponse:
    session = await require_session(project_id, manager, sessions)
    context = session.context
    return SetupStatusResponse(
        status=context.status,
        progress=context.progress,
        running_servers=context.running_servers.model_copy(),
        environment=context.environment.as_payload() if context.environment else None,
        processes=[handle.process_id for handle in context.handles.active()],
    )


@router.post("/env", response_model=EnvResponse)
async def create_env(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> EnvResponse:
    session = await require_session(project_id, manager, sessions)
    outcome = session.orchestrator.create_env()
    return EnvResponse(
        created=outcome.created,
        from_example=outcome.from_example,
        error=outcome.error,
    )


@router.post("/compose", response_model=ComposeResponse)
async def generate_compose(
    project_id: str,
    write: bool = False,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> ComposeResponse:
    session = await require_session(project_id, manager, sessions)
    config = session.orchestrator.generate_container_config(write=write)
    return ComposeResponse(content=config.content, written=config.written, error=config.error)
