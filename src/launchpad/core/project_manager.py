"""Registry of JavaScript projects known to launchpad."""

from __future__ import annotations

import logging
from dataclasses import dataclass
from pathlib import Path

from launchpad.db.store import SQLiteStore
from launchpad.models.project import Project

logger = logging.getLogger(__name__)


@dataclass(slots=True)
class CreateProjectInput:
    """Input payload for project registration."""

    path: Path
    name: str | None = None


class ProjectManager:
    """Manage registered projects."""

    def __init__(self, store: SQLiteStore) -> None:
        self._store = store

    async def create(self, payload: CreateProjectInput) -> Project:
        path = payload.path.expanduser().resolve()
        if not path.is_dir():
            msg = f"Project path does not exist: {path}"
            raise ValueError(msg)
        project = Project(name=payload.name or path.name, path=path)
        await self._store.upsert_project(project)
        logger.info("Registered project %s at %s", project.id, project.path)
        return project

    async def list(self) -> list[Project]:
        return await self._store.list_projects()

    async def get(self, project_id: str) -> Project | None:
        return await self._store.get_project(project_id)

    async def delete(self, project_id: str) -> bool:
        return await self._store.delete_project(project_id)
