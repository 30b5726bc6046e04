"""Subprocess execution for setup commands and long-running dev servers."""

from __future__ import annotations

import asyncio
import logging
import shutil
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path
from typing import Literal, TypeAlias

from launchpad.models.events import ProcessExitEvent, TerminalLine

logger = logging.getLogger(__name__)

ProcessListener: TypeAlias = Callable[[TerminalLine | ProcessExitEvent], None]

EXIT_NOT_FOUND = 127
EXIT_TIMEOUT = 124
EXIT_UNSUPPORTED = 2


@dataclass(slots=True)
class CommandResult:
    """Outcome of a command that ran to completion (or failed to start)."""

    command: str
    exit_code: int
    stdout: str = ""
    stderr: str = ""
    timed_out: bool = False
    error: str | None = None

    @property
    def success(self) -> bool:
        return self.exit_code == 0

    @property
    def output(self) -> str:
        return self.stdout + self.stderr


@dataclass(slots=True)
class CommandCheck:
    exists: bool
    version_output: str = ""


@dataclass(slots=True)
class ProcessHandle:
    """Identifier correlating a launched process with its output stream."""

    process_id: str
    command: str
    pid: int | None = None
    error: str | None = None

    @property
    def started(self) -> bool:
        return self.error is None


def _visible_shell_argv(shell_kind: str, command_line: str) -> list[str] | None:
    if shell_kind == "powershell":
        return ["cmd.exe", "/c", "start", "powershell.exe", "-NoExit", "-Command", command_line]
    if shell_kind == "cmd":
        return ["cmd.exe", "/c", "start", "cmd.exe", "/k", command_line]
    if shell_kind in {"bash", "zsh", "sh"}:
        return ["x-terminal-emulator", "-e", shell_kind, "-c", f"{command_line}; exec {shell_kind}"]
    if shell_kind == "terminal":
        escaped = command_line.replace("\\", "\\\\").replace('"', '\\"')
        return ["osascript", "-e", f'tell application "Terminal" to do script "{escaped}"']
    return None


class CommandRunner:
    """Run external programs and track long-running ones by id."""

    def __init__(self, *, stop_timeout_seconds: float = 10.0) -> None:
        self._processes: dict[str, asyncio.subprocess.Process] = {}
        self._tasks: set[asyncio.Task[None]] = set()
        self._stop_timeout_seconds = stop_timeout_seconds

    async def run(
        self,
        command: str,
        args: list[str],
        cwd: Path | None,
        *,
        timeout_seconds: float | None = None,
    ) -> CommandResult:
        command_text = " ".join([command, *args])
        executable = shutil.which(command) or command
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            logger.debug("Failed to start %s: %s", command_text, exc)
            return CommandResult(command=command_text, exit_code=EXIT_NOT_FOUND, error=str(exc))

        try:
            stdout, stderr = await asyncio.wait_for(process.communicate(), timeout=timeout_seconds)
        except TimeoutError:
            process.kill()
            await process.wait()
            return CommandResult(
                command=command_text,
                exit_code=EXIT_TIMEOUT,
                timed_out=True,
                error=f"timed out after {timeout_seconds}s",
            )

        returncode = process.returncode if process.returncode is not None else 1
        return CommandResult(
            command=command_text,
            exit_code=returncode,
            stdout=stdout.decode("utf-8", errors="replace"),
            stderr=stderr.decode("utf-8", errors="replace"),
        )

    async def check_command_exists(self, name: str) -> CommandCheck:
        if shutil.which(name) is None:
            return CommandCheck(exists=False)
        result = await self.run(name, ["--version"], None, timeout_seconds=30)
        if not result.success:
            return CommandCheck(exists=False)
        return CommandCheck(exists=True, version_output=(result.stdout or result.stderr).strip())

    async def spawn_long_running(
        self,
        command: str,
        args: list[str],
        cwd: Path,
        process_id: str,
        listener: ProcessListener,
    ) -> ProcessHandle:
        command_text = " ".join([command, *args])
        executable = shutil.which(command) or command
        try:
            process = await asyncio.create_subprocess_exec(
                executable,
                *args,
                cwd=cwd,
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except OSError as exc:
            return ProcessHandle(process_id=process_id, command=command_text, error=str(exc))

        self._processes[process_id] = process
        task = asyncio.create_task(self._watch(process_id, process, listener))
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)
        return ProcessHandle(process_id=process_id, command=command_text, pid=process.pid)

    async def kill(self, process_id: str) -> bool:
        """Terminate a tracked process. Child processes it spawned may survive."""
        process = self._processes.pop(process_id, None)
        if process is None or process.returncode is not None:
            return False
        process.terminate()
        try:
            await asyncio.wait_for(process.wait(), timeout=self._stop_timeout_seconds)
        except TimeoutError:
            process.kill()
            await process.wait()
        return True

    def running(self) -> list[str]:
        return [pid for pid, process in self._processes.items() if process.returncode is None]

    async def run_in_visible_shell(
        self,
        command_line: str,
        cwd: Path,
        shell_kind: str,
    ) -> CommandResult:
        argv = _visible_shell_argv(shell_kind, command_line)
        if argv is None:
            return CommandResult(
                command=command_line,
                exit_code=EXIT_UNSUPPORTED,
                error=f"unsupported shell: {shell_kind}",
            )
        try:
            await asyncio.create_subprocess_exec(*argv, cwd=cwd)
        except OSError as exc:
            return CommandResult(command=command_line, exit_code=EXIT_NOT_FOUND, error=str(exc))
        return CommandResult(command=command_line, exit_code=0)

    async def _watch(
        self,
        process_id: str,
        process: asyncio.subprocess.Process,
        listener: ProcessListener,
    ) -> None:
        readers = [
            self._drain(process_id, process.stdout, "stdout", listener),
            self._drain(process_id, process.stderr, "stderr", listener),
        ]
        await asyncio.gather(*readers)
        exit_code = await process.wait()
        if self._processes.get(process_id) is process:
            del self._processes[process_id]
        listener(ProcessExitEvent(process_id=process_id, exit_code=exit_code))

    @staticmethod
    async def _drain(
        process_id: str,
        stream: asyncio.StreamReader | None,
        name: Literal["stdout", "stderr"],
        listener: ProcessListener,
    ) -> None:
        if stream is None:
            return
        async for raw in stream:
            line = raw.decode("utf-8", errors="replace").rstrip("\r\n")
            listener(TerminalLine(process_id=process_id, stream=name, data=line))
