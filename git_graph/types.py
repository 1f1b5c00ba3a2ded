from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Optional, Tuple


UNABLE_TO_FIND_GIT_MSG = (
    "Unable to find a Git executable. Either: Set the Visual Studio Code Setting "
    '"git.path" to the path and filename of an existing Git executable, or '
    "install Git and restart Visual Studio Code."
)


class ErrorCategory(str, Enum):
    NOT_FOUND = "not_found"
    INVALID_EXECUTABLE = "invalid_executable"
    TIMEOUT = "timeout"
    SCAN = "scan"
    UNKNOWN = "unknown"


@dataclass
class GitGraphError(Exception):
    category: ErrorCategory
    message: str
    path: Optional[str] = None

    def __str__(self) -> str:
        return f"{self.category.value}: {self.message}"


class NotFound(GitGraphError):
    """No usable git executable at the hint or any default location."""

    def __init__(self, message: str, attempted: Tuple[str, ...] = ()):
        super().__init__(ErrorCategory.NOT_FOUND, message)
        self.attempted = attempted


class InvalidExecutable(GitGraphError):
    """A path that does not reference a working git executable."""

    def __init__(self, path: str, message: str, category: ErrorCategory = ErrorCategory.INVALID_EXECUTABLE):
        super().__init__(category, message, path=path)


@dataclass(frozen=True)
class ExecutableIdentity:
    path: str
    version: str


@dataclass(frozen=True)
class RepositoryRecord:
    root_path: str
    workspace_root: str
    depth: int  # directory levels below workspace_root

    @property
    def name(self) -> str:
        return self.root_path.rstrip("/\\").replace("\\", "/").rsplit("/", 1)[-1]
