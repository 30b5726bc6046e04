"""docker-compose descriptor generation from declared dependencies."""

from __future__ import annotations

import copy
from typing import Any

import yaml

from launchpad.models.project import ProjectDescriptor

NODE_IMAGE = "node:18"
APP_WORKDIR = "/usr/src/app"
BACKEND_PACKAGES = ("express", "fastify", "koa")
FRONTEND_PACKAGES = ("react", "react-dom", "next", "vite")

# name, trigger packages, service template, volume name
DATABASE_SERVICES: tuple[tuple[str, tuple[str, ...], dict[str, Any], str], ...] = (
    (
        "mongo",
        ("mongodb", "mongoose"),
        {
            "image": "mongo:6",
            "volumes": ["mongo_data:/data/db"],
            "ports": ["27017:27017"],
            "environment": [
                "MONGO_INITDB_ROOT_USERNAME=admin",
                "MONGO_INITDB_ROOT_PASSWORD=password",
            ],
        },
        "mongo_data",
    ),
    (
        "postgres",
        ("pg",),
        {
            "image": "postgres:15",
            "volumes": ["postgres_data:/var/lib/postgresql/data"],
            "ports": ["5432:5432"],
            "environment": [
                "POSTGRES_USER=postgres",
                "POSTGRES_PASSWORD=password",
                "POSTGRES_DB=mydb",
            ],
        },
        "postgres_data",
    ),
    (
        "mysql",
        ("mysql", "mysql2"),
        {
            "image": "mysql:8",
            "volumes": ["mysql_data:/var/lib/mysql"],
            "ports": ["3306:3306"],
            "environment": ["MYSQL_ROOT_PASSWORD=password", "MYSQL_DATABASE=mydb"],
        },
        "mysql_data",
    ),
)


def _node_service(port: int, environment: list[str]) -> dict[str, Any]:
    return {
        "image": NODE_IMAGE,
        "working_dir": APP_WORKDIR,
        "volumes": [f"./:{APP_WORKDIR}", f"{APP_WORKDIR}/node_modules"],
        "command": 'sh -c "npm install && npm run dev"',
        "ports": [f"{port}:{port}"],
        "environment": environment,
    }


def _frontend_port(deps: dict[str, str]) -> int:
    if "next" in deps:
        return 3000
    if "vite" in deps:
        return 5173
    return 3000


def generate_compose(descriptor: ProjectDescriptor) -> str:
    deps = descriptor.all_dependencies()
    databases = [
        (name, template, volume)
        for name, packages, template, volume in DATABASE_SERVICES
        if any(package in deps for package in packages)
    ]

    services: dict[str, Any] = {}
    if any(package in deps for package in BACKEND_PACKAGES):
        backend = _node_service(5000, ["NODE_ENV=development", "PORT=5000"])
        if databases:
            backend["depends_on"] = [databases[0][0]]
        services["backend"] = backend

    if any(package in deps for package in FRONTEND_PACKAGES):
        services["frontend"] = _node_service(_frontend_port(deps), ["NODE_ENV=development"])

    for name, template, _volume in databases:
        services[name] = copy.deepcopy(template)

    document: dict[str, Any] = {"version": "3.8", "services": services}
    if databases:
        document["volumes"] = {volume: None for _name, _template, volume in databases}
    return yaml.safe_dump(document, sort_keys=False, default_flow_style=False)
