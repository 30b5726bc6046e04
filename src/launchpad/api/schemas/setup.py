"""Setup API schemas."""

from __future__ import annotations

from pydantic import BaseModel

from launchpad.core.setup_orchestrator import SetupRunResult
from launchpad.models.events import LogEntry, TerminalLine
from launchpad.models.setup import InstallProgress, RunningServers, SetupStatus


class EnvResponse(BaseModel):
    created: bool
    from_example: bool
    error: str | None = None


class SetupRunResponse(BaseModel):
    mode: str
    install_strategy: str
    script: str | None = None
    frontend_url: str | None = None
    env: EnvResponse | None = None
    failed_dependencies: list[str] = []

    @classmethod
    def from_result(cls, result: SetupRunResult) -> SetupRunResponse:
        env = (
            EnvResponse(
                created=result.env.created,
                from_example=result.env.from_example,
                error=result.env.error,
            )
            if result.env is not None
            else None
        )
        return cls(
            mode=result.mode,
            install_strategy=result.install_strategy,
            script=result.script,
            frontend_url=result.frontend_url,
            env=env,
            failed_dependencies=list(result.failed_dependencies),
        )


class SetupStatusResponse(BaseModel):
    status: SetupStatus
    progress: InstallProgress
    running_servers: RunningServers
    environment: dict[str, str | bool] | None = None
    processes: list[str] = []


class ComposeResponse(BaseModel):
    content: str
    written: bool
    error: str | None = None


class LogsResponse(BaseModel):
    items: list[LogEntry]


class TerminalResponse(BaseModel):
    items: list[TerminalLine]
