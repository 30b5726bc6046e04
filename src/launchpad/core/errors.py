"""Domain exceptions raised by project loading and setup orchestration."""

from __future__ import annotations


class ProjectLoadError(ValueError):
    """The package manifest is missing or cannot be parsed."""


class SetupError(RuntimeError):
    """Unrecoverable setup failure; the message is shown to the user verbatim."""


class SetupAlreadyRunning(RuntimeError):
    """A run was requested while another run is active for the same project."""

    def __init__(self, status: str) -> None:
        super().__init__(f"Setup is already in progress (status: {status})")
        self.status = status
