"""Shared API dependency providers."""

from __future__ import annotations

from launchpad.config import Settings, get_settings
from launchpad.core.project_manager import ProjectManager
from launchpad.core.sessions import SessionRegistry
from launchpad.db.store import SQLiteStore

_SESSION_REGISTRY: SessionRegistry | None = None


def get_app_settings() -> Settings:
    return get_settings()


def get_store() -> SQLiteStore:
    db_path = get_settings().db_path
    db_path.parent.mkdir(parents=True, exist_ok=True)
    return SQLiteStore(db_path=db_path)


def get_project_manager() -> ProjectManager:
    return ProjectManager(store=get_store())


def get_session_registry() -> SessionRegistry:
    global _SESSION_REGISTRY
    if _SESSION_REGISTRY is None:
        _SESSION_REGISTRY = SessionRegistry(get_settings())
    return _SESSION_REGISTRY
