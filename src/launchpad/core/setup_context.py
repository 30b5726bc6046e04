"""Per-project orchestration state and its event channel."""

from __future__ import annotations

from typing import TypeAlias

import logging
from collections import deque
from collections.abc import Callable
from dataclasses import dataclass
from pathlib import Path

from launchpad.core.command_runner import ProcessHandle
from launchpad.core.environment_prober import EnvironmentReport
from launchpad.core.errors import ProjectLoadError, SetupAlreadyRunning
from launchpad.core.project_analyzer import analyze, extract_dependencies, load_descriptor
from launchpad.core.project_files import ProjectFiles
from launchpad.models.chat import ChatContext
from launchpad.models.events import (
    LogEntry,
    LogType,
    ProcessExitEvent,
    SetupEvent,
    StatusEvent,
    TerminalLine,
)
from launchpad.models.project import ProjectAnalysis, ProjectDescriptor
from launchpad.models.setup import (
    ACTIVE_STATUSES,
    DependencyRecord,
    DependencyStatus,
    InstallProgress,
    RunningServers,
    SetupStatus,
)

logger = logging.getLogger(__name__)

SetupListener: TypeAlias = Callable[[SetupEvent], None]

_STDERR_ERROR_TOKENS = ("error", "err!", "exception", "traceback")


@dataclass(slots=True)
class ProcessHandles:
    frontend: ProcessHandle | None = None
    backend: ProcessHandle | None = None

    def active(self) -> list[ProcessHandle]:
        return [handle for handle in (self.frontend, self.backend) if handle is not None]


class SetupContext:
    """State for one loaded project, passed explicitly to every component.

    Created when a project is loaded and discarded when it is unloaded.
    """

    def __init__(
        self,
        project_path: Path,
        *,
        files: ProjectFiles | None = None,
        max_terminal_lines: int = 5000,
    ) -> None:
        self.project_path = project_path
        self.files = files or ProjectFiles(project_path)
        self.descriptor: ProjectDescriptor | None = None
        self.analysis: ProjectAnalysis | None = None
        self.dependencies: list[DependencyRecord] = []
        self.environment: EnvironmentReport | None = None
        self.running_servers = RunningServers()
        self.handles = ProcessHandles()
        self._status = SetupStatus.IDLE
        self._logs: list[LogEntry] = []
        self._terminal: deque[TerminalLine] = deque(maxlen=max_terminal_lines)
        self._progress = InstallProgress()
        self._listeners: list[SetupListener] = []

    @property
    def status(self) -> SetupStatus:
        return self._status

    @property
    def logs(self) -> list[LogEntry]:
        return list(self._logs)

    @property
    def terminal(self) -> list[TerminalLine]:
        return list(self._terminal)

    @property
    def progress(self) -> InstallProgress:
        return self._progress

    def subscribe(self, listener: SetupListener) -> Callable[[], None]:
        """Register an event listener; returns a callable that removes it."""
        self._listeners.append(listener)

        def unsubscribe() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return unsubscribe

    def load(self) -> ProjectAnalysis:
        """Read the manifest and replace descriptor, analysis and records wholesale.

        Raises `SetupAlreadyRunning` while a run owns the context.
        """
        if self._status in ACTIVE_STATUSES:
            raise SetupAlreadyRunning(self._status.value)
        self.set_status(SetupStatus.ANALYZING)
        self.add_log(LogType.INFO, f"Loading project from {self.project_path}")
        try:
            descriptor = load_descriptor(self.files)
        except ProjectLoadError as exc:
            self.add_log(LogType.ERROR, f"Failed to load project: {exc}")
            self.set_status(SetupStatus.ERROR, str(exc))
            raise

        self.descriptor = descriptor
        self.analysis = analyze(descriptor, self.files)
        self.dependencies = extract_dependencies(descriptor)
        self._progress = InstallProgress.from_records(self.dependencies)
        self.add_log(LogType.SUCCESS, "Project loaded successfully")
        self.set_status(SetupStatus.IDLE)
        return self.analysis

    def refresh_analysis(self) -> None:
        if self.descriptor is not None:
            self.analysis = analyze(self.descriptor, self.files)

    def set_status(self, status: SetupStatus, message: str | None = None) -> None:
        if status is self._status and message is None:
            return
        logger.debug("%s: %s -> %s", self.project_path, self._status, status)
        self._status = status
        self.publish(StatusEvent(status=status, message=message))

    def add_log(self, log_type: LogType, message: str) -> LogEntry:
        entry = LogEntry(type=log_type, message=message)
        self._logs.append(entry)
        self.publish(entry)
        return entry

    def add_terminal_line(self, line: TerminalLine) -> None:
        self._terminal.append(line)
        self.publish(line)
        lowered = line.data.lower()
        if line.stream == "stderr" and any(token in lowered for token in _STDERR_ERROR_TOKENS):
            self.add_log(LogType.ERROR, line.data)

    def clear_logs(self) -> None:
        self._logs.clear()

    def clear_terminal(self) -> None:
        self._terminal.clear()

    def handle_process_event(self, event: TerminalLine | ProcessExitEvent) -> None:
        """Route asynchronous output of launched processes into the context."""
        if isinstance(event, TerminalLine):
            self.add_terminal_line(event)
            return

        self.publish(event)
        for role in ("frontend", "backend"):
            handle = getattr(self.handles, role)
            if handle is not None and handle.process_id == event.process_id:
                setattr(self.handles, role, None)
        log_type = LogType.INFO if event.exit_code in (0, None) else LogType.ERROR
        self.add_log(log_type, f"Process {event.process_id} exited with code {event.exit_code}")

    def update_dependency_status(
        self,
        name: str,
        status: DependencyStatus,
        error: str | None = None,
    ) -> None:
        for record in self.dependencies:
            if record.name == name:
                record.status = status
                record.error = error
        self._progress = InstallProgress.from_records(self.dependencies)

    def reset_dependencies(self) -> None:
        for record in self.dependencies:
            record.status = DependencyStatus.PENDING
            record.error = None
        self._progress = InstallProgress.from_records(self.dependencies)

    def snapshot(self) -> ChatContext:
        return ChatContext(
            project_name=self.descriptor.name if self.descriptor is not None else None,
            analysis=self.analysis,
            dependencies=[record.model_copy() for record in self.dependencies],
            setup_status=self._status,
            logs=list(self._logs),
            running_servers=self.running_servers.model_copy(),
        )

    def publish(self, event: SetupEvent) -> None:
        for listener in list(self._listeners):
            listener(event)
