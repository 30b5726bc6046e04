"""Loaded-project sessions: one orchestration context per open project."""

from __future__ import annotations

from typing import TypeAlias

import asyncio
import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from launchpad.config import Settings
from launchpad.core.command_runner import CommandRunner
from launchpad.core.dependency_installer import DependencyInstaller
from launchpad.core.errors import SetupError
from launchpad.core.hybrid_agent import HybridAgent
from launchpad.core.llm_client import LLMClient
from launchpad.core.readiness_prober import ReadinessProber
from launchpad.core.setup_context import SetupContext
from launchpad.core.setup_orchestrator import SetupOrchestrator
from launchpad.models.project import Project

logger = logging.getLogger(__name__)

RunnerFactory: TypeAlias = Callable[[], CommandRunner]


@dataclass(slots=True)
class SetupSession:
    project: Project
    context: SetupContext
    orchestrator: SetupOrchestrator
    agent: HybridAgent
    run_task: asyncio.Task[object] | None = field(default=None, repr=False)

    def start_background_run(self) -> asyncio.Task[object]:
        """Schedule `run_full_setup` without awaiting it; failures land in the context."""
        # Claiming synchronously keeps a second request from slipping past the gate.
        self.orchestrator.claim_run()
        task: asyncio.Task[object] = asyncio.create_task(self._run_claimed())
        self.run_task = task
        return task

    async def _run_claimed(self) -> object:
        try:
            return await self.orchestrator.run_claimed()
        except SetupError:
            return None
        except Exception:
            logger.exception("Background setup run failed for %s", self.project.id)
            return None


def build_llm_client(settings: Settings) -> LLMClient:
    return LLMClient(
        settings.llm_api_key,
        api_url=settings.llm_api_url,
        model=settings.llm_model,
        timeout_seconds=settings.llm_timeout_seconds,
        probe_timeout_seconds=settings.llm_probe_timeout_seconds,
        max_tokens=settings.llm_max_tokens,
        temperature=settings.llm_temperature,
    )


def build_orchestrator(
    context: SetupContext,
    settings: Settings,
    runner: CommandRunner,
) -> SetupOrchestrator:
    installer = DependencyInstaller(
        runner,
        context.project_path,
        retry_count=settings.install_retry_count,
        retry_delay_seconds=settings.install_retry_delay_seconds,
        use_system_terminal=settings.use_system_terminal,
        shell_kind=settings.default_shell,
    )
    return SetupOrchestrator(
        context,
        runner=runner,
        installer=installer,
        readiness=ReadinessProber(interval_seconds=settings.readiness_interval_seconds),
        policy=settings.install_policy,
        use_system_terminal=settings.use_system_terminal,
        shell_kind=settings.default_shell,
        readiness_timeout_seconds=settings.readiness_timeout_seconds,
    )


class SessionRegistry:
    """Open, look up and close project sessions.

    The chat agent is shared so the language-model availability probe runs once.
    """

    def __init__(
        self,
        settings: Settings,
        *,
        agent: HybridAgent | None = None,
        runner_factory: RunnerFactory | None = None,
    ) -> None:
        self._settings = settings
        self._runner_factory = runner_factory or CommandRunner
        self.agent = agent or HybridAgent(
            build_llm_client(settings),
            confidence_threshold=settings.rule_confidence_threshold,
        )
        self._sessions: dict[str, SetupSession] = {}

    def open(self, project: Project) -> SetupSession:
        """Load `project` into a fresh context, replacing any previous session state.

        Raises `ProjectLoadError` when the manifest is missing or malformed and
        `SetupAlreadyRunning` when the open session is mid-run.
        """
        existing = self._sessions.get(project.id)
        if existing is not None:
            existing.context.load()
            return existing

        context = SetupContext(project.path)
        context.load()
        session = SetupSession(
            project=project,
            context=context,
            orchestrator=build_orchestrator(context, self._settings, self._runner_factory()),
            agent=self.agent,
        )
        self._sessions[project.id] = session
        logger.info("Opened session for project %s", project.id)
        return session

    def get(self, project_id: str) -> SetupSession | None:
        return self._sessions.get(project_id)

    def list(self) -> list[SetupSession]:
        return list(self._sessions.values())

    async def close(self, project_id: str) -> bool:
        """Stop tracked processes and discard the context."""
        session = self._sessions.pop(project_id, None)
        if session is None:
            return False
        if session.run_task is not None and not session.run_task.done():
            session.run_task.cancel()
        if session.context.handles.active():
            await session.orchestrator.stop()
        logger.info("Closed session for project %s", project_id)
        return True

    async def close_all(self) -> None:
        for project_id in list(self._sessions):
            await self.close(project_id)
