"""Dependency installation through the npm CLI."""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Awaitable, Callable, Sequence
from dataclasses import dataclass, field
from pathlib import Path
from typing import Literal, TypeAlias

from launchpad.core.command_runner import CommandResult, CommandRunner
from launchpad.models.events import ProgressEvent, ProgressType
from launchpad.models.setup import DependencyRecord, percent_complete

logger = logging.getLogger(__name__)

Sleeper: TypeAlias = Callable[[float], Awaitable[None]]
ProgressListener: TypeAlias = Callable[[ProgressEvent], None]
InstallMode: TypeAlias = Literal["ci", "install"]

PACKAGE_MANAGER = "npm"
DEFAULT_RETRY_COUNT = 2
DEFAULT_RETRY_DELAY_SECONDS = 2.0


@dataclass(slots=True)
class InstallOutcome:
    package: str
    success: bool
    error: str | None = None
    attempts: int = 1


@dataclass(slots=True)
class BatchInstallResult:
    results: list[InstallOutcome] = field(default_factory=list)
    installed_count: int = 0
    failed_count: int = 0
    total: int = 0


@dataclass(slots=True)
class BulkInstallResult:
    success: bool
    mode: InstallMode
    error: str | None = None


class DependencyInstaller:
    """Install packages one at a time with retry, or in bulk.

    The installer never touches dependency records; callers apply the
    progress events it emits.
    """

    def __init__(
        self,
        runner: CommandRunner,
        project_path: Path,
        *,
        retry_count: int = DEFAULT_RETRY_COUNT,
        retry_delay_seconds: float = DEFAULT_RETRY_DELAY_SECONDS,
        use_system_terminal: bool = False,
        shell_kind: str = "powershell",
        sleeper: Sleeper | None = None,
    ) -> None:
        self._runner = runner
        self._project_path = project_path
        self._retry_count = max(0, retry_count)
        self._retry_delay_seconds = retry_delay_seconds
        self._use_system_terminal = use_system_terminal
        self._shell_kind = shell_kind
        self._sleep = sleeper or asyncio.sleep

    async def install_one(self, name: str) -> InstallOutcome:
        last_error = "Installation failed"
        attempts = self._retry_count + 1
        for attempt in range(1, attempts + 1):
            try:
                result = await self._npm("install", name, "--save")
            except OSError as exc:
                last_error = str(exc)
            else:
                if result.success:
                    return InstallOutcome(package=name, success=True, attempts=attempt)
                last_error = _failure_text(result)

            logger.debug("Install of %s failed (attempt %d/%d)", name, attempt, attempts)
            if attempt < attempts:
                await self._sleep(self._retry_delay_seconds)

        return InstallOutcome(package=name, success=False, error=last_error, attempts=attempts)

    async def install_all(
        self,
        dependencies: Sequence[DependencyRecord],
        on_progress: ProgressListener | None = None,
    ) -> BatchInstallResult:
        """Install sequentially in list order; a failure never stops the batch."""
        total = len(dependencies)
        batch = BatchInstallResult(total=total)

        for index, dependency in enumerate(dependencies):
            self._emit(
                on_progress,
                ProgressEvent(
                    type=ProgressType.INSTALLING,
                    package=dependency.name,
                    current=index + 1,
                    total=total,
                    percentage=percent_complete(index, total),
                ),
            )

            outcome = await self.install_one(dependency.name)
            batch.results.append(outcome)
            if outcome.success:
                batch.installed_count += 1
            else:
                batch.failed_count += 1

            self._emit(
                on_progress,
                ProgressEvent(
                    type=ProgressType.INSTALLED if outcome.success else ProgressType.FAILED,
                    package=dependency.name,
                    current=index + 1,
                    total=total,
                    percentage=percent_complete(index + 1, total),
                    error=outcome.error,
                ),
            )

        return batch

    async def install_with_lockfile(self) -> BulkInstallResult:
        return await self._bulk("ci")

    async def install_with_plain_install(self) -> BulkInstallResult:
        return await self._bulk("install")

    async def _bulk(self, mode: InstallMode) -> BulkInstallResult:
        try:
            result = await self._npm(mode)
        except OSError as exc:
            return BulkInstallResult(success=False, mode=mode, error=str(exc))
        if result.success:
            return BulkInstallResult(success=True, mode=mode)
        return BulkInstallResult(success=False, mode=mode, error=_failure_text(result))

    async def _npm(self, *args: str) -> CommandResult:
        if self._use_system_terminal:
            command_line = " ".join([PACKAGE_MANAGER, *args])
            return await self._runner.run_in_visible_shell(
                command_line, self._project_path, self._shell_kind
            )
        return await self._runner.run(PACKAGE_MANAGER, list(args), self._project_path)

    @staticmethod
    def _emit(listener: ProgressListener | None, event: ProgressEvent) -> None:
        if listener is not None:
            listener(event)


def _failure_text(result: CommandResult) -> str:
    if result.error:
        return result.error
    lines = [line.strip() for line in result.stderr.splitlines() if line.strip()]
    if lines:
        return lines[-1]
    return f"{result.command} exited with code {result.exit_code}"
