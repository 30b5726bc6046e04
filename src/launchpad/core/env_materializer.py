"""Create a `.env` file for projects that ship only an example, or nothing."""

from __future__ import annotations

import logging
from dataclasses import dataclass

from launchpad.core.project_analyzer import ENV_EXAMPLE_FILE, ENV_FILE
from launchpad.core.project_files import ProjectFiles

logger = logging.getLogger(__name__)

MINIMAL_ENV = "# Environment variables\n# Add your configuration here\n"
PLACEHOLDER_PREFIX = "PLACEHOLDER_"


@dataclass(slots=True)
class EnvMaterialization:
    created: bool
    from_example: bool = False
    error: str | None = None


def generate_env_placeholders(example: str) -> str:
    """Replace every assignment value with a key-derived placeholder.

    Comment and blank lines are kept verbatim, and the line count never changes.
    """
    lines = example.split("\n")
    return "\n".join(_placeholder_line(line) for line in lines)


def _placeholder_line(line: str) -> str:
    stripped = line.strip()
    if not stripped or stripped.startswith("#"):
        return line
    key = line.split("=", 1)[0]
    if not key.strip():
        return line
    return f"{key}={PLACEHOLDER_PREFIX}{key.strip()}"


def materialize_env(files: ProjectFiles) -> EnvMaterialization:
    if files.exists(ENV_FILE):
        return EnvMaterialization(created=False)

    if files.exists(ENV_EXAMPLE_FILE):
        example = files.read_text(ENV_EXAMPLE_FILE)
        if not example.success:
            logger.warning("Could not read %s: %s", ENV_EXAMPLE_FILE, example.error)
            return EnvMaterialization(created=False, from_example=True, error=example.error)
        written = files.write_text(ENV_FILE, generate_env_placeholders(example.content))
        if not written.success:
            logger.warning("Could not write %s: %s", ENV_FILE, written.error)
            return EnvMaterialization(created=False, from_example=True, error=written.error)
        return EnvMaterialization(created=True, from_example=True)

    written = files.write_text(ENV_FILE, MINIMAL_ENV)
    if not written.success:
        logger.warning("Could not write %s: %s", ENV_FILE, written.error)
        return EnvMaterialization(created=False, error=written.error)
    return EnvMaterialization(created=True)
