"""Chat assistant routes."""

from __future__ import annotations

from fastapi import APIRouter, Depends, HTTPException, status

from launchpad.api.deps import get_project_manager, get_session_registry
from launchpad.api.routes.common import require_session
from launchpad.api.schemas.chat import (
    AIStatusResponse,
    ApiKeyRequest,
    ChatRequest,
    DiagnosesResponse,
    DiagnosisItem,
)
from launchpad.core.hybrid_agent import AIStatus, SetupPlan
from launchpad.core.project_manager import ProjectManager
from launchpad.core.sessions import SessionRegistry
from launchpad.models.chat import ChatResponse

router = APIRouter(prefix="/api/v1/projects/{project_id}/chat", tags=["chat"])
status_router = APIRouter(prefix="/api/v1/chat", tags=["chat"])


def _status_response(ai_status: AIStatus) -> AIStatusResponse:
    return AIStatusResponse(
        available=ai_status.available,
        model=ai_status.model,
        provider=ai_status.provider,
        instructions=ai_status.instructions,
    )


@router.post("", response_model=ChatResponse)
async def chat(
    project_id: str,
    request: ChatRequest,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> ChatResponse:
    session = await require_session(project_id, manager, sessions)
    return await session.agent.chat(request.message, session.context.snapshot())


@router.get("/plan", response_model=SetupPlan)
async def setup_plan(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> SetupPlan:
    session = await require_session(project_id, manager, sessions)
    analysis = session.context.analysis
    if analysis is None:
        raise HTTPException(status_code=status.HTTP_409_CONFLICT, detail="Project not analyzed")
    return session.agent.analyze_and_plan(analysis)


@router.get("/diagnoses", response_model=DiagnosesResponse)
async def diagnoses(
    project_id: str,
    manager: ProjectManager = Depends(get_project_manager),
    sessions: SessionRegistry = Depends(get_session_registry),
) -> DiagnosesResponse:
    session = await require_session(project_id, manager, sessions)
    result = session.agent.diagnose_errors(session.context.logs)
    return DiagnosesResponse(
        has_errors=result.has_errors,
        message=result.message,
        count=result.count,
        diagnoses=[
            DiagnosisItem(
                issue=item.issue,
                solution=item.solution,
                confidence=item.confidence,
                actions=list(item.actions),
            )
            for item in result.diagnoses
        ],
    )


@status_router.get("/status", response_model=AIStatusResponse)
async def ai_status(sessions: SessionRegistry = Depends(get_session_registry)) -> AIStatusResponse:
    return _status_response(sessions.agent.ai_status())


@status_router.put("/api-key", response_model=AIStatusResponse)
async def update_api_key(
    request: ApiKeyRequest,
    sessions: SessionRegistry = Depends(get_session_registry),
) -> AIStatusResponse:
    return _status_response(await sessions.agent.update_api_key(request.api_key))
