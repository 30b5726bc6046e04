"""Chat response models shared by the rule engine and the hybrid agent."""

from __future__ import annotations

from enum import StrEnum

from pydantic import BaseModel, Field

from launchpad.models.events import LogEntry
from launchpad.models.project import ProjectAnalysis
from launchpad.models.setup import DependencyRecord, RunningServers, SetupStatus


class Intent(StrEnum):
    INSTALL = "install"
    START = "start"
    STOP = "stop"
    STATUS = "status"
    ERROR = "error"
    CONFIGURE = "configure"
    CONTAINER = "container"
    ENVIRONMENT = "environment"
    HELP = "help"
    UNKNOWN = "unknown"


class ActionType(StrEnum):
    """Orchestration actions a response may suggest."""

    START_SETUP = "start_setup"
    CREATE_ENV = "create_env"
    GENERATE_CONTAINER_CONFIG = "generate_container_config"
    STOP_SETUP = "stop_setup"
    RETRY = "retry"
    SUGGESTION = "suggestion"


class ResponseSource(StrEnum):
    RULES = "rules"
    LLM = "llm"
    ERROR = "error"


class ChatAction(BaseModel):
    type: ActionType
    payload: dict[str, str] = Field(default_factory=dict)


class ChatResponse(BaseModel):
    """Message, suggested actions and confidence for one chat turn."""

    message: str
    actions: list[ChatAction] = Field(default_factory=list)
    confidence: float = Field(ge=0.0, le=1.0)
    source: ResponseSource = ResponseSource.RULES


class ChatContext(BaseModel):
    """Read-only view of an orchestration context handed to responders."""

    project_name: str | None = None
    analysis: ProjectAnalysis | None = None
    dependencies: list[DependencyRecord] = Field(default_factory=list)
    setup_status: SetupStatus = SetupStatus.IDLE
    logs: list[LogEntry] = Field(default_factory=list)
    running_servers: RunningServers = Field(default_factory=RunningServers)

    @property
    def has_project(self) -> bool:
        return self.project_name is not None
