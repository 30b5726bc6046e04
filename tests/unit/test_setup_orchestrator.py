from __future__ import annotations

import asyncio
from pathlib import Path

import pytest

from launchpad.config import InstallPolicy
from launchpad.core.command_runner import CommandResult
from launchpad.core.dependency_installer import DependencyInstaller
from launchpad.core.errors import SetupAlreadyRunning, SetupError
from launchpad.core.readiness_prober import ReadinessProber
from launchpad.core.setup_context import SetupContext
from launchpad.core.setup_orchestrator import RUNTIME_MISSING_MESSAGE, SetupOrchestrator
from launchpad.models.events import LogType, ProgressEvent, SetupEvent, StatusEvent
from launchpad.models.setup import DependencyStatus, SetupStatus
from tests.support.fakes import (
    FakeHttp,
    FakeRunner,
    RecordingSleeper,
    SteppingClock,
    write_project,
)

VITE_URL = "http://localhost:5173"


def _orchestrator(
    root: Path,
    runner: FakeRunner,
    *,
    http: FakeHttp | None = None,
    policy: InstallPolicy = InstallPolicy.BEST_EFFORT,
    use_system_terminal: bool = False,
) -> SetupOrchestrator:
    context = SetupContext(root)
    context.load()
    installer = DependencyInstaller(
        runner,
        root,
        retry_count=0,
        use_system_terminal=use_system_terminal,
        shell_kind="bash",
        sleeper=RecordingSleeper(),
    )
    readiness = ReadinessProber(
        http_getter=http or FakeHttp({VITE_URL}),
        sleeper=RecordingSleeper(),
        clock=SteppingClock(),
    )
    return SetupOrchestrator(
        context,
        runner=runner,  # type: ignore[arg-type]
        installer=installer,
        readiness=readiness,
        policy=policy,
        use_system_terminal=use_system_terminal,
        shell_kind="bash",
    )


def _vite_project(tmp_path: Path, **kwargs: object) -> Path:
    return write_project(
        tmp_path / "app",
        dependencies={"react": "^18.2.0", "broken-pkg": "1.0.0"},
        dev_dependencies={"vite": "^5.0.0"},
        **kwargs,  # type: ignore[arg-type]
    )


@pytest.mark.asyncio
async def test_direct_run_installs_per_package_and_launches(tmp_path: Path) -> None:
    runner = FakeRunner()
    runner.script("npm install broken-pkg --save", 1)
    orchestrator = _orchestrator(_vite_project(tmp_path), runner)
    events: list[SetupEvent] = []
    orchestrator.context.subscribe(events.append)

    result = await orchestrator.run_full_setup()

    context = orchestrator.context
    assert result.mode == "direct"
    assert result.install_strategy == "per-package"
    assert result.failed_dependencies == ["broken-pkg"]
    assert result.script == "dev"
    assert result.frontend_url == VITE_URL
    assert context.status is SetupStatus.RUNNING
    assert context.running_servers.frontend == VITE_URL
    assert context.handles.frontend is not None
    assert runner.spawned == ["npm run dev"]
    assert {record.name: record.status for record in context.dependencies} == {
        "react": DependencyStatus.INSTALLED,
        "broken-pkg": DependencyStatus.FAILED,
        "vite": DependencyStatus.INSTALLED,
    }
    assert context.progress.percentage == 100
    progress = [event for event in events if isinstance(event, ProgressEvent)]
    assert len(progress) == 6
    statuses = [event.status for event in events if isinstance(event, StatusEvent)]
    assert statuses == [SetupStatus.CHECKING, SetupStatus.INSTALLING, SetupStatus.RUNNING]
    assert any(entry.type is LogType.WARNING for entry in context.logs)


@pytest.mark.asyncio
async def test_strict_policy_fails_on_any_dependency(tmp_path: Path) -> None:
    runner = FakeRunner()
    runner.script("npm install broken-pkg --save", 1)
    orchestrator = _orchestrator(
        _vite_project(tmp_path), runner, policy=InstallPolicy.STRICT
    )

    with pytest.raises(SetupError, match="1 of 3 dependencies failed to install"):
        await orchestrator.run_full_setup()

    assert orchestrator.context.status is SetupStatus.ERROR
    assert orchestrator.context.logs[-1].type is LogType.ERROR
    assert runner.spawned == []


@pytest.mark.asyncio
async def test_lockfile_falls_back_to_plain_install(tmp_path: Path) -> None:
    runner = FakeRunner()
    runner.script("npm ci", 1)
    root = _vite_project(tmp_path, files={"package-lock.json": "{}"})
    orchestrator = _orchestrator(root, runner)

    result = await orchestrator.run_full_setup()

    assert result.install_strategy == "install"
    npm_calls = [call for call in runner.calls if call.startswith("npm")]
    assert npm_calls == ["npm ci", "npm install"]


@pytest.mark.asyncio
async def test_both_bulk_installs_failing_is_fatal(tmp_path: Path) -> None:
    runner = FakeRunner()
    runner.script("npm ci", 1)
    runner.script("npm install", 1)
    root = _vite_project(tmp_path, files={"package-lock.json": "{}"})
    orchestrator = _orchestrator(root, runner)

    with pytest.raises(SetupError, match="Dependency installation failed"):
        await orchestrator.run_full_setup()

    assert orchestrator.context.status is SetupStatus.ERROR


@pytest.mark.asyncio
async def test_no_dependencies_runs_plain_install(tmp_path: Path) -> None:
    runner = FakeRunner()
    root = write_project(tmp_path / "empty", scripts={"start": "node index.js"})
    orchestrator = _orchestrator(root, runner)

    result = await orchestrator.run_full_setup()

    assert result.install_strategy == "install"
    assert result.script == "start"
    assert result.frontend_url is None
    assert "npm install" in runner.calls


@pytest.mark.asyncio
async def test_missing_runtime_is_fatal(tmp_path: Path) -> None:
    runner = FakeRunner(tools={"npm": "10.2.4"})
    orchestrator = _orchestrator(_vite_project(tmp_path), runner)

    with pytest.raises(SetupError) as exc_info:
        await orchestrator.run_full_setup()

    assert str(exc_info.value) == RUNTIME_MISSING_MESSAGE
    assert orchestrator.context.status is SetupStatus.ERROR
    assert not any(call.startswith("npm") for call in runner.calls)


@pytest.mark.asyncio
async def test_missing_launch_script_is_fatal(tmp_path: Path) -> None:
    runner = FakeRunner()
    root = write_project(tmp_path / "lib", dependencies={"lodash": "^4.0.0"}, scripts={})
    orchestrator = _orchestrator(root, runner)

    with pytest.raises(SetupError, match="No start/dev script found in package.json"):
        await orchestrator.run_full_setup()

    assert runner.spawned == []


@pytest.mark.asyncio
async def test_container_path_requires_compose_file_and_engine(tmp_path: Path) -> None:
    runner = FakeRunner(tools={"node": "v20", "npm": "10", "docker-compose": "2.24"})
    root = _vite_project(tmp_path, files={"docker-compose.yml": "services: {}\n"})
    orchestrator = _orchestrator(root, runner)

    result = await orchestrator.run_full_setup()

    assert result.mode == "docker"
    assert result.install_strategy == "container"
    assert "docker-compose up -d" in runner.calls
    assert not any(call.startswith("npm") for call in runner.calls)
    assert orchestrator.context.status is SetupStatus.RUNNING


@pytest.mark.asyncio
async def test_container_path_retries_with_integrated_compose(tmp_path: Path) -> None:
    runner = FakeRunner(tools={"node": "v20", "npm": "10", "docker-compose": "1.29", "docker": "24"})
    runner.script("docker-compose up -d", 1)
    root = _vite_project(tmp_path, files={"docker-compose.yml": "services: {}\n"})
    orchestrator = _orchestrator(root, runner)

    result = await orchestrator.run_full_setup()

    assert result.mode == "docker"
    assert runner.calls[-2:] == ["docker-compose up -d", "docker compose up -d"]


@pytest.mark.asyncio
async def test_container_path_fails_when_both_engines_fail(tmp_path: Path) -> None:
    runner = FakeRunner(tools={"node": "v20", "npm": "10", "docker-compose": "1.29"})
    runner.script("docker-compose up -d", 1)
    root = _vite_project(tmp_path, files={"docker-compose.yml": "services: {}\n"})
    orchestrator = _orchestrator(root, runner)

    with pytest.raises(SetupError, match="Failed to run docker-compose"):
        await orchestrator.run_full_setup()


@pytest.mark.asyncio
async def test_compose_file_without_engine_runs_direct(tmp_path: Path) -> None:
    runner = FakeRunner()
    root = _vite_project(tmp_path, files={"docker-compose.yml": "services: {}\n"})
    orchestrator = _orchestrator(root, runner)

    result = await orchestrator.run_full_setup()

    assert result.mode == "direct"
    assert "docker-compose up -d" not in runner.calls


@pytest.mark.asyncio
async def test_engine_without_compose_file_runs_direct(tmp_path: Path) -> None:
    runner = FakeRunner(tools={"node": "v20", "npm": "10", "docker-compose": "2.24"})
    orchestrator = _orchestrator(_vite_project(tmp_path), runner)

    result = await orchestrator.run_full_setup()

    assert result.mode == "direct"


@pytest.mark.asyncio
async def test_run_rejected_while_installing(tmp_path: Path) -> None:
    release = asyncio.Event()

    class _BlockingRunner(FakeRunner):
        async def run(
            self,
            command: str,
            args: list[str],
            cwd: Path | None,
            *,
            timeout_seconds: float | None = None,
        ) -> CommandResult:
            if command == "npm":
                await release.wait()
            return await super().run(command, args, cwd, timeout_seconds=timeout_seconds)

    runner = _BlockingRunner()
    orchestrator = _orchestrator(_vite_project(tmp_path), runner)
    statuses: list[SetupStatus] = []
    orchestrator.context.subscribe(
        lambda event: statuses.append(event.status) if isinstance(event, StatusEvent) else None
    )

    first = asyncio.create_task(orchestrator.run_full_setup())
    while orchestrator.context.status is not SetupStatus.INSTALLING:
        await asyncio.sleep(0)

    with pytest.raises(SetupAlreadyRunning):
        await orchestrator.run_full_setup()

    release.set()
    await first
    assert statuses.count(SetupStatus.CHECKING) == 1


@pytest.mark.asyncio
async def test_visible_terminal_mode_never_calls_run_for_npm(tmp_path: Path) -> None:
    runner = FakeRunner()
    orchestrator = _orchestrator(_vite_project(tmp_path), runner, use_system_terminal=True)

    result = await orchestrator.run_full_setup()

    assert not any(call.startswith("npm") for call in runner.calls)
    assert runner.spawned == []
    assert ("npm run dev", "bash") in runner.visible_calls
    assert ("npm install react --save", "bash") in runner.visible_calls
    assert result.script == "dev"


@pytest.mark.asyncio
async def test_env_created_from_example_during_run(tmp_path: Path) -> None:
    runner = FakeRunner()
    root = _vite_project(tmp_path, files={".env.example": "API_URL=http://x\n"})
    orchestrator = _orchestrator(root, runner)

    result = await orchestrator.run_full_setup()

    assert result.env is not None
    assert result.env.created is True
    assert (root / ".env").read_text(encoding="utf-8") == "API_URL=PLACEHOLDER_API_URL\n"
    assert orchestrator.context.analysis is not None
    assert orchestrator.context.analysis.has_env is True


@pytest.mark.asyncio
async def test_stop_and_complete_transitions(tmp_path: Path) -> None:
    runner = FakeRunner()
    orchestrator = _orchestrator(_vite_project(tmp_path), runner)
    await orchestrator.run_full_setup()
    handle = orchestrator.context.handles.frontend
    assert handle is not None

    stopped = await orchestrator.stop()

    assert stopped == [handle.process_id]
    assert orchestrator.context.status is SetupStatus.IDLE
    assert orchestrator.context.running_servers.frontend is None
    assert orchestrator.mark_completed() is False

    await orchestrator.run_full_setup()
    assert orchestrator.mark_completed() is True
    assert orchestrator.context.status is SetupStatus.COMPLETED


@pytest.mark.asyncio
async def test_process_exit_clears_handle(tmp_path: Path) -> None:
    runner = FakeRunner()
    orchestrator = _orchestrator(_vite_project(tmp_path), runner)
    await orchestrator.run_full_setup()
    handle = orchestrator.context.handles.frontend
    assert handle is not None

    runner.emit_output(handle.process_id, "Error: Cannot find module 'react'", stream="stderr")
    runner.emit_exit(handle.process_id, 1)

    context = orchestrator.context
    assert context.handles.frontend is None
    assert context.terminal[-1].data == "Error: Cannot find module 'react'"
    errors = [entry.message for entry in context.logs if entry.type is LogType.ERROR]
    assert errors[-2:] == [
        "Error: Cannot find module 'react'",
        f"Process {handle.process_id} exited with code 1",
    ]


@pytest.mark.asyncio
async def test_rerun_allowed_after_error(tmp_path: Path) -> None:
    runner = FakeRunner()
    runner.script("npm install broken-pkg --save", 1)
    orchestrator = _orchestrator(
        _vite_project(tmp_path), runner, policy=InstallPolicy.STRICT
    )
    with pytest.raises(SetupError):
        await orchestrator.run_full_setup()

    result = await orchestrator.run_full_setup()

    assert result.failed_dependencies == []
    assert orchestrator.context.status is SetupStatus.RUNNING


def test_generate_container_config_writes_file(tmp_path: Path) -> None:
    root = write_project(
        tmp_path / "api",
        dependencies={"express": "^4.18.0", "pg": "^8.0.0"},
        scripts={"start": "node server.js"},
    )
    orchestrator = _orchestrator(root, FakeRunner())

    preview = orchestrator.generate_container_config()
    written = orchestrator.generate_container_config(write=True)

    assert preview.written is False
    assert written.written is True
    assert (root / "docker-compose.yml").read_text(encoding="utf-8") == written.content
    assert orchestrator.context.analysis is not None
    assert orchestrator.context.analysis.has_compose is True
