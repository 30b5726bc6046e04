"""Setup status and dependency models."""

from __future__ import annotations

import math
from enum import StrEnum

from pydantic import BaseModel, ConfigDict


class SetupStatus(StrEnum):
    """Process-wide orchestration status for one project."""

    IDLE = "idle"
    ANALYZING = "analyzing"
    CHECKING = "checking"
    INSTALLING = "installing"
    RUNNING = "running"
    COMPLETED = "completed"
    ERROR = "error"


ACTIVE_STATUSES = frozenset(
    {
        SetupStatus.ANALYZING,
        SetupStatus.CHECKING,
        SetupStatus.INSTALLING,
        SetupStatus.RUNNING,
    }
)


def percent_complete(done: int, total: int) -> int:
    """Whole percentage with halves rounded up; 0 for an empty total."""
    if not total:
        return 0
    return math.floor(100 * done / total + 0.5)


class DependencyKind(StrEnum):
    PRODUCTION = "production"
    DEV = "dev"


class DependencyStatus(StrEnum):
    PENDING = "pending"
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"


class DependencyRecord(BaseModel):
    """Declared dependency and its installation state."""

    name: str
    version: str
    kind: DependencyKind = DependencyKind.PRODUCTION
    status: DependencyStatus = DependencyStatus.PENDING
    error: str | None = None


class InstallProgress(BaseModel):
    """Aggregate progress derived from dependency records."""

    model_config = ConfigDict(frozen=True)

    current: int = 0
    total: int = 0
    percentage: int = 0
    installed: int = 0
    failed: int = 0
    installing: str | None = None

    @classmethod
    def from_records(cls, records: list[DependencyRecord]) -> InstallProgress:
        installed = sum(1 for record in records if record.status is DependencyStatus.INSTALLED)
        failed = sum(1 for record in records if record.status is DependencyStatus.FAILED)
        installing = next(
            (record.name for record in records if record.status is DependencyStatus.INSTALLING),
            None,
        )
        total = len(records)
        done = installed + failed
        return cls(
            current=done,
            total=total,
            percentage=percent_complete(done, total),
            installed=installed,
            failed=failed,
            installing=installing,
        )


class RunningServers(BaseModel):
    """Reachable endpoints of launched dev servers."""

    frontend: str | None = None
    backend: str | None = None
