from __future__ import annotations

import asyncio
import contextlib
import os
import shutil
import sys
from abc import ABC, abstractmethod
from typing import Any, List, Optional, Sequence

from ._logging import get_component_logger
from .types import ErrorCategory, ExecutableIdentity, InvalidExecutable, NotFound

GIT_VERSION_PREFIX = "git version "


def parse_version(raw: str) -> str:
    raw = raw.strip()
    if raw.startswith(GIT_VERSION_PREFIX):
        return raw[len(GIT_VERSION_PREFIX):]
    return raw


def default_git_locations(platform: Optional[str] = None) -> List[str]:
    """Well-known install locations searched after PATH."""
    platform = platform or sys.platform
    if platform.startswith("win"):
        roots = [
            os.environ.get("ProgramW6432"),
            os.environ.get("ProgramFiles(x86)"),
            os.environ.get("ProgramFiles"),
            os.environ.get("LocalAppData") and os.path.join(os.environ["LocalAppData"], "Programs"),
        ]
        return [os.path.join(root, "Git", "cmd", "git.exe") for root in roots if root]
    if platform == "darwin":
        return ["/usr/bin/git", "/usr/local/bin/git", "/opt/homebrew/bin/git"]
    return ["/usr/bin/git", "/usr/local/bin/git", "/bin/git"]


class ExecutableResolver(ABC):
    @abstractmethod
    async def locate(self, path_hint: Optional[str] = None) -> ExecutableIdentity:
        """
        Find a usable git, trying *path_hint* first and then default locations.

        Raises NotFound when no candidate validates.
        """
        ...

    @abstractmethod
    async def validate(self, path: str) -> ExecutableIdentity:
        """
        Probe *path* and return its identity.

        Raises InvalidExecutable when the path is not a working git.
        """
        ...


class SubprocessExecutableResolver(ExecutableResolver):
    """
    Resolver that probes candidates by running ``<path> --version``.

    Usage:
        resolver = SubprocessExecutableResolver()
        identity = await resolver.locate(None)       # PATH, then default locations
        identity = await resolver.validate("/opt/git/bin/git")
    """

    def __init__(
        self,
        timeout: float = 10.0,
        search_locations: Optional[Sequence[str]] = None,
        use_path: bool = True,
        logger: Optional[Any] = None,
    ):
        self.timeout = timeout
        self._search_locations = list(search_locations) if search_locations is not None else None
        self._use_path = use_path
        self._logger = get_component_logger("ExecutableResolver", logger)

    def candidates(self, path_hint: Optional[str] = None) -> List[str]:
        found: List[str] = []
        if path_hint:
            found.append(path_hint)
        if self._use_path:
            on_path = shutil.which("git")
            if on_path:
                found.append(on_path)
        locations = self._search_locations
        if locations is None:
            locations = default_git_locations()
        found.extend(locations)

        unique: List[str] = []
        for candidate in found:
            if candidate not in unique:
                unique.append(candidate)
        return unique

    async def locate(self, path_hint: Optional[str] = None) -> ExecutableIdentity:
        attempted = self.candidates(path_hint)
        for candidate in attempted:
            try:
                return await self.validate(candidate)
            except InvalidExecutable as exc:
                self._logger.debug("candidate_rejected", path=candidate, reason=exc.message)
        raise NotFound("No usable git executable found", attempted=tuple(attempted))

    async def validate(self, path: str) -> ExecutableIdentity:
        try:
            proc = await asyncio.create_subprocess_exec(
                path,
                "--version",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
        except (OSError, ValueError) as exc:
            raise InvalidExecutable(path, f"cannot spawn: {exc}") from exc

        try:
            stdout, _ = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except asyncio.TimeoutError as exc:
            # the process may exit on its own between the timeout and the kill
            with contextlib.suppress(ProcessLookupError):
                proc.kill()
            await proc.wait()
            raise InvalidExecutable(
                path, f"timed out after {self.timeout}s", category=ErrorCategory.TIMEOUT
            ) from exc

        if proc.returncode != 0:
            raise InvalidExecutable(path, f"exited with code {proc.returncode}")

        version = parse_version(stdout.decode("utf-8", errors="replace"))
        if not version:
            raise InvalidExecutable(path, "no version reported")
        return ExecutableIdentity(path=path, version=version)
