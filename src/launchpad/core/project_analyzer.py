"""Package manifest parsing and stack detection."""

from __future__ import annotations

import json
from typing import Any

from launchpad.core.errors import ProjectLoadError
from launchpad.core.project_files import ProjectFiles
from launchpad.models.project import ProjectAnalysis, ProjectDescriptor, ProjectKind
from launchpad.models.setup import DependencyKind, DependencyRecord

MANIFEST_FILE = "package.json"
LOCKFILE = "package-lock.json"
COMPOSE_FILE = "docker-compose.yml"
ENV_FILE = ".env"
ENV_EXAMPLE_FILE = ".env.example"
# Preferred first.
LAUNCH_SCRIPTS = ("dev", "start")
MONOREPO_MANIFESTS = (
    "client/package.json",
    "server/package.json",
    "frontend/package.json",
    "backend/package.json",
)

# Ordered: the first matching tag keeps its position in the stack list.
STACK_MARKERS: tuple[tuple[str, tuple[str, ...]], ...] = (
    ("React", ("react", "react-dom")),
    ("Next.js", ("next",)),
    ("Vite", ("vite",)),
    ("Vue", ("vue",)),
    ("Express", ("express",)),
    ("Fastify", ("fastify",)),
    ("NestJS", ("@nestjs/core",)),
    ("Koa", ("koa",)),
    ("MongoDB", ("mongodb", "mongoose")),
    ("PostgreSQL", ("pg",)),
    ("MySQL", ("mysql", "mysql2")),
)
FRONTEND_TAGS = frozenset({"React", "Next.js", "Vite", "Vue"})
BACKEND_TAGS = frozenset({"Express", "Fastify", "NestJS", "Koa"})
DATABASE_TAGS = frozenset({"MongoDB", "PostgreSQL", "MySQL"})

FRONTEND_DEV_PORT = 3000
VITE_DEV_PORT = 5173
BACKEND_DEV_PORT = 5000


def parse_manifest(content: str) -> ProjectDescriptor:
    try:
        payload = json.loads(content)
    except json.JSONDecodeError as exc:
        msg = f"package.json is not valid JSON: {exc.msg}"
        raise ProjectLoadError(msg) from exc
    if not isinstance(payload, dict):
        msg = "package.json must contain a JSON object"
        raise ProjectLoadError(msg)

    engines = payload.get("engines")
    node_version = engines.get("node") if isinstance(engines, dict) else None
    return ProjectDescriptor(
        name=str(payload.get("name") or "Unknown"),
        dependencies=_string_map(payload.get("dependencies")),
        dev_dependencies=_string_map(payload.get("devDependencies")),
        scripts=_string_map(payload.get("scripts")),
        node_version=str(node_version) if node_version else None,
    )


def load_descriptor(files: ProjectFiles) -> ProjectDescriptor:
    read = files.read_text(MANIFEST_FILE)
    if not read.success:
        msg = "package.json not found"
        raise ProjectLoadError(msg)
    return parse_manifest(read.content)


def detect_stack(descriptor: ProjectDescriptor) -> list[str]:
    deps = descriptor.all_dependencies()
    return [tag for tag, packages in STACK_MARKERS if any(name in deps for name in packages)]


def candidate_ports(stack: list[str], *, has_backend: bool) -> list[int]:
    ports: list[int] = []
    if "Next.js" in stack:
        ports.append(FRONTEND_DEV_PORT)
    if "Vite" in stack:
        ports.append(VITE_DEV_PORT)
    if has_backend:
        ports.append(BACKEND_DEV_PORT)
    if "React" in stack and "Next.js" not in stack and "Vite" not in stack:
        ports.append(FRONTEND_DEV_PORT)
    return list(dict.fromkeys(ports))


def analyze(descriptor: ProjectDescriptor, files: ProjectFiles) -> ProjectAnalysis:
    """Derive a fresh analysis from the descriptor and the project tree."""
    stack = detect_stack(descriptor)
    has_backend = any(tag in BACKEND_TAGS for tag in stack)
    has_frontend = any(tag in FRONTEND_TAGS for tag in stack)
    has_database = any(tag in DATABASE_TAGS for tag in stack)

    if has_backend and has_frontend:
        kind = ProjectKind.FULLSTACK
    elif has_backend:
        kind = ProjectKind.BACKEND
    elif has_frontend:
        kind = ProjectKind.FRONTEND
    else:
        kind = ProjectKind.UNKNOWN

    return ProjectAnalysis(
        name=descriptor.name,
        kind=kind,
        stack=stack,
        ports=candidate_ports(stack, has_backend=has_backend),
        scripts=dict(descriptor.scripts),
        node_version=descriptor.node_version,
        has_compose=files.exists(COMPOSE_FILE),
        has_env=files.exists(ENV_FILE),
        has_env_example=files.exists(ENV_EXAMPLE_FILE),
        has_lockfile=files.exists(LOCKFILE),
        is_monorepo=any(files.exists(path) for path in MONOREPO_MANIFESTS),
        has_backend=has_backend,
        has_frontend=has_frontend,
        has_database=has_database,
    )


def extract_dependencies(descriptor: ProjectDescriptor) -> list[DependencyRecord]:
    records = [
        DependencyRecord(name=name, version=version, kind=DependencyKind.PRODUCTION)
        for name, version in descriptor.dependencies.items()
    ]
    records.extend(
        DependencyRecord(name=name, version=version, kind=DependencyKind.DEV)
        for name, version in descriptor.dev_dependencies.items()
    )
    return records


def _string_map(value: Any) -> dict[str, str]:
    if not isinstance(value, dict):
        return {}
    return {str(key): str(item) for key, item in value.items()}
