"""File access confined to one project root."""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path


@dataclass(slots=True)
class FileRead:
    success: bool
    content: str = ""
    error: str | None = None


@dataclass(slots=True)
class FileWrite:
    success: bool
    error: str | None = None


class ProjectFiles:
    """Read and write project files, reporting I/O failures as values."""

    def __init__(self, root: Path) -> None:
        self.root = root

    def exists(self, rel_path: str) -> bool:
        return self._resolve(rel_path).exists()

    def read_text(self, rel_path: str) -> FileRead:
        path = self._resolve(rel_path)
        try:
            return FileRead(success=True, content=path.read_text(encoding="utf-8"))
        except (OSError, UnicodeDecodeError) as exc:
            return FileRead(success=False, error=str(exc))

    def write_text(self, rel_path: str, content: str) -> FileWrite:
        path = self._resolve(rel_path)
        try:
            path.parent.mkdir(parents=True, exist_ok=True)
            path.write_text(content, encoding="utf-8")
        except OSError as exc:
            return FileWrite(success=False, error=str(exc))
        return FileWrite(success=True)

    def _resolve(self, rel_path: str) -> Path:
        root = self.root.resolve()
        candidate = (root / rel_path).resolve()
        if root not in candidate.parents and candidate != root:
            msg = f"Path escapes project root: {rel_path}"
            raise ValueError(msg)
        return candidate
