from __future__ import annotations

import asyncio
import sys
from pathlib import Path

import pytest

from launchpad.core.command_runner import (
    EXIT_NOT_FOUND,
    EXIT_TIMEOUT,
    EXIT_UNSUPPORTED,
    CommandRunner,
)
from launchpad.models.events import ProcessExitEvent, TerminalLine


@pytest.mark.asyncio
async def test_run_captures_output(tmp_path: Path) -> None:
    result = await CommandRunner().run(
        sys.executable,
        ["-c", "import sys; print('out'); print('err', file=sys.stderr); sys.exit(3)"],
        tmp_path,
    )

    assert result.exit_code == 3
    assert result.success is False
    assert result.stdout.strip() == "out"
    assert result.stderr.strip() == "err"


@pytest.mark.asyncio
async def test_run_reports_missing_executable(tmp_path: Path) -> None:
    result = await CommandRunner().run("definitely-not-a-command-xyz", [], tmp_path)

    assert result.exit_code == EXIT_NOT_FOUND
    assert result.error


@pytest.mark.asyncio
async def test_run_times_out(tmp_path: Path) -> None:
    result = await CommandRunner().run(
        sys.executable, ["-c", "import time; time.sleep(5)"], tmp_path, timeout_seconds=0.2
    )

    assert result.exit_code == EXIT_TIMEOUT
    assert result.timed_out is True


@pytest.mark.asyncio
async def test_spawn_streams_lines_then_exit(tmp_path: Path) -> None:
    runner = CommandRunner()
    events: list[TerminalLine | ProcessExitEvent] = []
    finished = asyncio.Event()

    def listener(event: TerminalLine | ProcessExitEvent) -> None:
        events.append(event)
        if isinstance(event, ProcessExitEvent):
            finished.set()

    handle = await runner.spawn_long_running(
        sys.executable,
        ["-c", "import sys; print('ready'); print('warn', file=sys.stderr); sys.exit(2)"],
        tmp_path,
        "proc-1",
        listener,
    )
    await asyncio.wait_for(finished.wait(), timeout=10)

    assert handle.started is True
    lines = {(event.stream, event.data) for event in events if isinstance(event, TerminalLine)}
    assert lines == {("stdout", "ready"), ("stderr", "warn")}
    assert events[-1] == ProcessExitEvent(process_id="proc-1", exit_code=2)
    assert runner.running() == []


@pytest.mark.asyncio
async def test_kill_terminates_tracked_process(tmp_path: Path) -> None:
    runner = CommandRunner(stop_timeout_seconds=5)
    handle = await runner.spawn_long_running(
        sys.executable, ["-c", "import time; time.sleep(30)"], tmp_path, "sleeper", lambda _e: None
    )
    assert runner.running() == ["sleeper"]

    assert await runner.kill(handle.process_id) is True
    assert await runner.kill(handle.process_id) is False
    assert runner.running() == []


@pytest.mark.asyncio
async def test_visible_shell_rejects_unknown_shell(tmp_path: Path) -> None:
    result = await CommandRunner().run_in_visible_shell("npm install", tmp_path, "fish")

    assert result.exit_code == EXIT_UNSUPPORTED
    assert result.error == "unsupported shell: fish"
