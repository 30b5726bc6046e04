"""Project domain models."""

from __future__ import annotations

from datetime import UTC, datetime
from enum import StrEnum
from pathlib import Path
from uuid import uuid4

from pydantic import BaseModel, ConfigDict, Field


class ProjectKind(StrEnum):
    """Coarse classification derived from the detected stack."""

    FRONTEND = "frontend"
    BACKEND = "backend"
    FULLSTACK = "fullstack"
    UNKNOWN = "unknown"


class Project(BaseModel):
    """Registered project metadata."""

    id: str = Field(default_factory=lambda: str(uuid4()))
    name: str
    path: Path
    created_at: datetime = Field(default_factory=lambda: datetime.now(UTC))
    updated_at: datetime = Field(default_factory=lambda: datetime.now(UTC))

    def touch(self) -> None:
        """Update mutation timestamp."""
        self.updated_at = datetime.now(UTC)


class ProjectDescriptor(BaseModel):
    """Parsed package manifest. Replaced wholesale on reload."""

    model_config = ConfigDict(frozen=True)

    name: str = "Unknown"
    dependencies: dict[str, str] = Field(default_factory=dict)
    dev_dependencies: dict[str, str] = Field(default_factory=dict)
    scripts: dict[str, str] = Field(default_factory=dict)
    node_version: str | None = None

    def all_dependencies(self) -> dict[str, str]:
        return {**self.dependencies, **self.dev_dependencies}


class ProjectAnalysis(BaseModel):
    """Read-only summary of a descriptor and the files around it."""

    model_config = ConfigDict(frozen=True)

    name: str
    kind: ProjectKind = ProjectKind.UNKNOWN
    stack: list[str] = Field(default_factory=list)
    ports: list[int] = Field(default_factory=list)
    scripts: dict[str, str] = Field(default_factory=dict)
    node_version: str | None = None
    has_compose: bool = False
    has_env: bool = False
    has_env_example: bool = False
    has_lockfile: bool = False
    is_monorepo: bool = False
    has_backend: bool = False
    has_frontend: bool = False
    has_database: bool = False
