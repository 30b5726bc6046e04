"""Project API schemas."""

from __future__ import annotations

from pathlib import Path

from pydantic import BaseModel

from launchpad.models.project import Project, ProjectAnalysis
from launchpad.models.setup import DependencyRecord, InstallProgress, SetupStatus


class CreateProjectRequest(BaseModel):
    """Payload for registering a project directory."""

    path: Path
    name: str | None = None


class ProjectsResponse(BaseModel):
    items: list[Project]


class LoadProjectResponse(BaseModel):
    project_id: str
    status: SetupStatus
    analysis: ProjectAnalysis


class DependenciesResponse(BaseModel):
    items: list[DependencyRecord]
    progress: InstallProgress
