"""Tooling presence checks for the JavaScript runtime and container engine."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Literal

from launchpad.core.command_runner import CommandRunner

RUNTIME_COMMAND = "node"
PACKAGE_MANAGER_COMMAND = "npm"
LEGACY_COMPOSE_COMMAND = "docker-compose"
CONTAINER_ENGINE_COMMAND = "docker"


@dataclass(slots=True)
class EnvironmentReport:
    """Versions of required tooling; `False` marks a missing tool."""

    runtime_version: str | Literal[False]
    package_manager_version: str | Literal[False]
    container_engine_available: bool

    def as_payload(self) -> dict[str, str | bool]:
        return {
            "runtime_version": self.runtime_version,
            "package_manager_version": self.package_manager_version,
            "container_engine_available": self.container_engine_available,
        }


class EnvironmentProber:
    """Probe tool versions through the command runner."""

    def __init__(self, runner: CommandRunner) -> None:
        self._runner = runner

    async def probe(self) -> EnvironmentReport:
        return EnvironmentReport(
            runtime_version=await self._version(RUNTIME_COMMAND),
            package_manager_version=await self._version(PACKAGE_MANAGER_COMMAND),
            container_engine_available=await self._container_engine_available(),
        )

    async def _version(self, command: str) -> str | Literal[False]:
        check = await self._runner.check_command_exists(command)
        if not check.exists:
            return False
        return check.version_output.strip() or "unknown"

    async def _container_engine_available(self) -> bool:
        legacy = await self._runner.check_command_exists(LEGACY_COMPOSE_COMMAND)
        if legacy.exists:
            return True
        integrated = await self._runner.run(
            CONTAINER_ENGINE_COMMAND, ["compose", "version"], None, timeout_seconds=30
        )
        return integrated.success
