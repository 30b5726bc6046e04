"""Setup state machine: system checks, env file, install, launch, readiness."""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Literal, TypeAlias
from uuid import uuid4

from launchpad.config import InstallPolicy
from launchpad.core.command_runner import CommandRunner
from launchpad.core.compose_generator import generate_compose
from launchpad.core.dependency_installer import DependencyInstaller
from launchpad.core.env_materializer import EnvMaterialization, materialize_env
from launchpad.core.environment_prober import EnvironmentProber, EnvironmentReport
from launchpad.core.errors import ProjectLoadError, SetupAlreadyRunning, SetupError
from launchpad.core.project_analyzer import COMPOSE_FILE, LAUNCH_SCRIPTS, LOCKFILE
from launchpad.core.readiness_prober import ReadinessProber
from launchpad.core.setup_context import SetupContext
from launchpad.models.events import LogType, ProgressEvent, ProgressType
from launchpad.models.project import ProjectDescriptor
from launchpad.models.setup import ACTIVE_STATUSES, DependencyStatus, SetupStatus

logger = logging.getLogger(__name__)

SetupMode: TypeAlias = Literal["docker", "direct"]
InstallStrategy: TypeAlias = Literal["ci", "install", "per-package", "container"]

RUNTIME_MISSING_MESSAGE = (
    "Node.js is not installed. Please install Node.js from https://nodejs.org/"
)
LEGACY_COMPOSE_ARGV = ("docker-compose", ["up", "-d"])
INTEGRATED_COMPOSE_ARGV = ("docker", ["compose", "up", "-d"])


@dataclass(slots=True)
class SetupRunResult:
    """Summary of one orchestration run."""

    mode: SetupMode
    install_strategy: InstallStrategy
    script: str | None = None
    frontend_url: str | None = None
    env: EnvMaterialization | None = None
    failed_dependencies: list[str] = field(default_factory=list)


@dataclass(slots=True)
class ContainerConfig:
    content: str
    written: bool = False
    error: str | None = None


class SetupOrchestrator:
    """Sequence one setup run at a time for the project held by `context`."""

    def __init__(
        self,
        context: SetupContext,
        *,
        runner: CommandRunner,
        prober: EnvironmentProber | None = None,
        installer: DependencyInstaller | None = None,
        readiness: ReadinessProber | None = None,
        policy: InstallPolicy = InstallPolicy.BEST_EFFORT,
        use_system_terminal: bool = False,
        shell_kind: str = "powershell",
        readiness_timeout_seconds: float = 15.0,
    ) -> None:
        self._ctx = context
        self._runner = runner
        self._prober = prober or EnvironmentProber(runner)
        self._installer = installer or DependencyInstaller(
            runner,
            context.project_path,
            use_system_terminal=use_system_terminal,
            shell_kind=shell_kind,
        )
        self._readiness = readiness or ReadinessProber()
        self._policy = policy
        self._use_system_terminal = use_system_terminal
        self._shell_kind = shell_kind
        self._readiness_timeout_seconds = readiness_timeout_seconds

    @property
    def context(self) -> SetupContext:
        return self._ctx

    async def run_full_setup(self) -> SetupRunResult:
        """Run check -> env -> install -> launch. Raises `SetupError` on fatal failure."""
        self.claim_run()
        return await self.run_claimed()

    async def run_claimed(self) -> SetupRunResult:
        """Continue a run whose slot was taken by `claim_run`."""
        try:
            report = await self._check_system()
            env = self._prepare_env()
            if self._ctx.files.exists(COMPOSE_FILE) and report.container_engine_available:
                result = await self._run_with_containers()
            else:
                result = await self._run_direct()
        except SetupError as exc:
            self._fail(str(exc))
            raise
        except Exception as exc:
            self._fail(f"Unexpected setup failure: {exc}")
            raise

        result.env = env
        return result

    async def stop(self) -> list[str]:
        """Best-effort stop of tracked processes; package-manager subtrees may survive."""
        stopped: list[str] = []
        for handle in self._ctx.handles.active():
            if await self._runner.kill(handle.process_id):
                stopped.append(handle.process_id)
        self._ctx.handles.frontend = None
        self._ctx.handles.backend = None
        self._ctx.running_servers.frontend = None
        self._ctx.running_servers.backend = None
        if self._ctx.status is SetupStatus.RUNNING:
            self._ctx.set_status(SetupStatus.IDLE)
        self._ctx.add_log(LogType.INFO, f"Stopped {len(stopped)} process(es)")
        return stopped

    def mark_completed(self) -> bool:
        if self._ctx.status is not SetupStatus.RUNNING:
            return False
        self._ctx.set_status(SetupStatus.COMPLETED)
        return True

    def create_env(self) -> EnvMaterialization:
        outcome = materialize_env(self._ctx.files)
        self._log_env(outcome)
        self._ctx.refresh_analysis()
        return outcome

    def generate_container_config(self, *, write: bool = False) -> ContainerConfig:
        descriptor = self._require_descriptor()
        config = ContainerConfig(content=generate_compose(descriptor))
        if not write:
            return config
        written = self._ctx.files.write_text(COMPOSE_FILE, config.content)
        if written.success:
            config.written = True
            self._ctx.add_log(LogType.SUCCESS, f"Generated {COMPOSE_FILE}")
            self._ctx.refresh_analysis()
        else:
            config.error = written.error
            self._ctx.add_log(LogType.ERROR, f"Could not write {COMPOSE_FILE}: {written.error}")
        return config

    def claim_run(self) -> None:
        """Take the single run slot or raise `SetupAlreadyRunning`."""
        self._require_descriptor()
        status = self._ctx.status
        if status in ACTIVE_STATUSES:
            raise SetupAlreadyRunning(status.value)
        # No await between the check above and this transition.
        self._ctx.reset_dependencies()
        self._ctx.set_status(SetupStatus.CHECKING)

    def _require_descriptor(self) -> ProjectDescriptor:
        if self._ctx.descriptor is None:
            msg = "No project loaded"
            raise ProjectLoadError(msg)
        return self._ctx.descriptor

    def _fail(self, message: str) -> None:
        logger.warning("Setup failed for %s: %s", self._ctx.project_path, message)
        self._ctx.add_log(LogType.ERROR, message)
        self._ctx.set_status(SetupStatus.ERROR, message)

    async def _check_system(self) -> EnvironmentReport:
        self._ctx.add_log(LogType.INFO, "Checking system requirements")
        report = await self._prober.probe()
        self._ctx.environment = report
        if not report.runtime_version:
            raise SetupError(RUNTIME_MISSING_MESSAGE)
        self._ctx.add_log(LogType.SUCCESS, f"Node.js {report.runtime_version}")
        if report.package_manager_version:
            self._ctx.add_log(LogType.SUCCESS, f"npm {report.package_manager_version}")
        else:
            self._ctx.add_log(LogType.WARNING, "npm was not found on PATH")
        if report.container_engine_available:
            self._ctx.add_log(LogType.INFO, "Docker Compose is available")
        return report

    def _prepare_env(self) -> EnvMaterialization:
        outcome = materialize_env(self._ctx.files)
        self._log_env(outcome)
        if outcome.created:
            self._ctx.refresh_analysis()
        return outcome

    def _log_env(self, outcome: EnvMaterialization) -> None:
        if outcome.error is not None:
            self._ctx.add_log(LogType.WARNING, f"Could not create .env: {outcome.error}")
        elif outcome.created and outcome.from_example:
            self._ctx.add_log(LogType.SUCCESS, "Created .env from .env.example with placeholders")
        elif outcome.created:
            self._ctx.add_log(LogType.SUCCESS, "Created minimal .env file")

    async def _run_with_containers(self) -> SetupRunResult:
        self._ctx.set_status(SetupStatus.INSTALLING)
        self._ctx.add_log(LogType.INFO, "Starting services with Docker Compose")
        path = self._ctx.project_path

        if self._use_system_terminal:
            launched = await self._runner.run_in_visible_shell(
                "docker-compose up", path, self._shell_kind
            )
            if not launched.success:
                msg = f"Failed to run docker-compose: {launched.error}"
                raise SetupError(msg)
        else:
            command, args = LEGACY_COMPOSE_ARGV
            result = await self._runner.run(command, list(args), path)
            if not result.success:
                self._ctx.add_log(
                    LogType.WARNING, "docker-compose failed, retrying with 'docker compose'"
                )
                command, args = INTEGRATED_COMPOSE_ARGV
                retry = await self._runner.run(command, list(args), path)
                if not retry.success:
                    msg = "Failed to run docker-compose"
                    raise SetupError(msg)

        self._ctx.set_status(SetupStatus.RUNNING)
        self._ctx.add_log(LogType.SUCCESS, "Docker Compose services started")
        return SetupRunResult(mode="docker", install_strategy="container")

    async def _run_direct(self) -> SetupRunResult:
        self._ctx.set_status(SetupStatus.INSTALLING)
        strategy, failed = await self._install_dependencies()
        self._ctx.set_status(SetupStatus.RUNNING)
        script = await self._start_project()
        frontend_url = await self._await_ready()
        return SetupRunResult(
            mode="direct",
            install_strategy=strategy,
            script=script,
            frontend_url=frontend_url,
            failed_dependencies=failed,
        )

    async def _install_dependencies(self) -> tuple[InstallStrategy, list[str]]:
        if self._ctx.files.exists(LOCKFILE):
            self._ctx.add_log(LogType.INFO, "Lockfile found, running npm ci")
            locked = await self._installer.install_with_lockfile()
            if locked.success:
                self._ctx.add_log(LogType.SUCCESS, "Dependencies installed with npm ci")
                return "ci", []
            self._ctx.add_log(LogType.WARNING, f"npm ci failed ({locked.error}), trying npm install")
            await self._plain_install()
            return "install", []

        if self._ctx.dependencies:
            batch = await self._installer.install_all(self._ctx.dependencies, self._on_progress)
            failed = [outcome.package for outcome in batch.results if not outcome.success]
            if failed:
                if self._policy is InstallPolicy.STRICT:
                    msg = f"{len(failed)} of {batch.total} dependencies failed to install"
                    raise SetupError(msg)
                self._ctx.add_log(
                    LogType.WARNING, f"Installation completed with {len(failed)} failures"
                )
            return "per-package", failed

        await self._plain_install()
        return "install", []

    async def _plain_install(self) -> None:
        self._ctx.add_log(LogType.INFO, "Running npm install")
        result = await self._installer.install_with_plain_install()
        if not result.success:
            msg = "Dependency installation failed"
            raise SetupError(msg)
        self._ctx.add_log(LogType.SUCCESS, "Dependencies installed with npm install")

    def _on_progress(self, event: ProgressEvent) -> None:
        if event.type is ProgressType.INSTALLING:
            self._ctx.update_dependency_status(event.package, DependencyStatus.INSTALLING)
            self._ctx.add_log(
                LogType.INFO, f"Installing {event.package} ({event.current}/{event.total})"
            )
        elif event.type is ProgressType.INSTALLED:
            self._ctx.update_dependency_status(event.package, DependencyStatus.INSTALLED)
            self._ctx.add_log(LogType.SUCCESS, f"Installed {event.package}")
        else:
            self._ctx.update_dependency_status(event.package, DependencyStatus.FAILED, event.error)
            self._ctx.add_log(
                LogType.ERROR, f"Failed to install {event.package}: {event.error}"
            )
        self._ctx.publish(event)

    async def _start_project(self) -> str:
        scripts = self._require_descriptor().scripts
        script = next((name for name in LAUNCH_SCRIPTS if name in scripts), None)
        if script is None:
            msg = "No start/dev script found in package.json"
            raise SetupError(msg)

        path = self._ctx.project_path
        if self._use_system_terminal:
            launched = await self._runner.run_in_visible_shell(
                f"npm run {script}", path, self._shell_kind
            )
            if not launched.success:
                self._ctx.add_log(LogType.ERROR, f"Could not open a terminal: {launched.error}")
            return script

        process_id = f"npm-{script}-{uuid4().hex[:8]}"
        handle = await self._runner.spawn_long_running(
            "npm", ["run", script], path, process_id, self._ctx.handle_process_event
        )
        if not handle.started:
            msg = f"Failed to start npm run {script}: {handle.error}"
            raise SetupError(msg)
        self._ctx.handles.frontend = handle
        self._ctx.add_log(LogType.INFO, f"Started npm run {script} ({process_id})")
        return script

    async def _await_ready(self) -> str | None:
        analysis = self._ctx.analysis
        ports = analysis.ports if analysis is not None else []
        urls = [f"http://localhost:{port}" for port in ports]
        url = await self._readiness.first_ready(urls, self._readiness_timeout_seconds)
        if url is not None:
            self._ctx.running_servers.frontend = url
            self._ctx.add_log(LogType.SUCCESS, f"Server is ready at {url}")
            return url
        if ports:
            self._ctx.add_log(
                LogType.INFO, "No known port responded; the server may use a different port"
            )
        return None
