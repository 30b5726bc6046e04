from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path

from fastapi import FastAPI

from launchpad.api.app import create_app
from launchpad.api.deps import get_project_manager, get_session_registry
from launchpad.config import Settings
from launchpad.core.hybrid_agent import HybridAgent
from launchpad.core.llm_client import LLMClient
from launchpad.core.project_manager import ProjectManager
from launchpad.core.sessions import SessionRegistry
from launchpad.db.store import SQLiteStore
from tests.support.fakes import FakeRunner, FakeTransport


@dataclass
class APIHarness:
    app: FastAPI
    registry: SessionRegistry
    transport: FakeTransport
    runners: list[FakeRunner] = field(default_factory=list)


def build_app(
    tmp_path: Path,
    *,
    tools: dict[str, str] | None = None,
    api_key: str = "",
    transport: FakeTransport | None = None,
    runner_type: type[FakeRunner] = FakeRunner,
) -> APIHarness:
    settings = Settings(  # type: ignore[call-arg]
        _env_file=None,
        install_retry_delay_seconds=0,
        readiness_timeout_seconds=0,
    )
    transport = transport or FakeTransport()
    runners: list[FakeRunner] = []

    def runner_factory() -> FakeRunner:
        runner = runner_type(tools=tools)
        runners.append(runner)
        return runner

    registry = SessionRegistry(
        settings,
        agent=HybridAgent(LLMClient(api_key, transport=transport)),
        runner_factory=runner_factory,  # type: ignore[arg-type]
    )
    app = create_app()
    app.dependency_overrides[get_project_manager] = lambda: ProjectManager(
        SQLiteStore(tmp_path / "launchpad.db")
    )
    app.dependency_overrides[get_session_registry] = lambda: registry
    return APIHarness(app=app, registry=registry, transport=transport, runners=runners)
