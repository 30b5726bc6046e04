"""Event models emitted on a project's orchestration channel."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from typing import Literal, TypeAlias
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field

from launchpad.models.setup import SetupStatus


class LogType(StrEnum):
    """Categories of user-facing log entries."""

    INFO = "info"
    SUCCESS = "success"
    WARNING = "warning"
    ERROR = "error"
    STDOUT = "stdout"
    STDERR = "stderr"


class ProgressType(StrEnum):
    INSTALLING = "installing"
    INSTALLED = "installed"
    FAILED = "failed"


class LogEntry(BaseModel):
    """Append-only, timestamped log entry."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["log"] = "log"
    id: str = Field(default_factory=lambda: str(uuid4()))
    type: LogType
    message: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class TerminalLine(BaseModel):
    """One line of output from a launched process."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["terminal"] = "terminal"
    process_id: str
    stream: Literal["stdout", "stderr"]
    data: str
    timestamp: datetime = Field(default_factory=lambda: datetime.now(UTC))


class ProgressEvent(BaseModel):
    """Per-dependency installation progress."""

    model_config = ConfigDict(frozen=True)

    kind: Literal["progress"] = "progress"
    type: ProgressType
    package: str
    current: int
    total: int
    percentage: int
    error: str | None = None


class StatusEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["status"] = "status"
    status: SetupStatus
    message: str | None = None


class ProcessExitEvent(BaseModel):
    model_config = ConfigDict(frozen=True)

    kind: Literal["exit"] = "exit"
    process_id: str
    exit_code: int | None


SetupEvent: TypeAlias = LogEntry | TerminalLine | ProgressEvent | StatusEvent | ProcessExitEvent
