"""Subsystems that depend on the current git executable.

Each one subscribes to the executable bus in its constructor and releases
that subscription exactly once in ``dispose()``. Until a value arrives
(and forever, if git is never found) ``executable`` is None and every
operation that needs git degrades instead of failing.
"""

from __future__ import annotations

import asyncio
from dataclasses import dataclass
from typing import Any, Awaitable, Callable, Dict, List, Mapping, Optional, Tuple

from ._logging import get_component_logger
from .config import (
    DATE_TYPE,
    SHOW_SIGNATURE_STATUS,
    SHOW_STATUS_BAR_ITEM,
    USE_MAILMAP,
    ConfigurationSource,
)
from .event import ChangeBus
from .notifications import NotificationSink
from .repo_manager import RepositoryDiscoveryManager
from .types import UNABLE_TO_FIND_GIT_MSG, ExecutableIdentity, RepositoryRecord

GIT_LOG_SEPARATOR = "XX7Nal-YARtTpjCikii9nJxER19D6diSyk-AWkPb"


class ExecutableDependent:
    component = "ExecutableDependent"

    def __init__(self, executable_bus: ChangeBus[ExecutableIdentity], logger: Optional[Any] = None):
        self._logger = get_component_logger(self.component, logger)
        self._executable: Optional[ExecutableIdentity] = None
        self._disposed = False
        self._subscription = executable_bus.subscribe(self._on_executable_changed)

    @property
    def executable(self) -> Optional[ExecutableIdentity]:
        return self._executable

    @property
    def is_available(self) -> bool:
        return self._executable is not None

    @property
    def disposed(self) -> bool:
        return self._disposed

    def _on_executable_changed(self, identity: ExecutableIdentity) -> None:
        self._executable = identity
        self._logger.debug("executable_received", path=identity.path, version=identity.version)
        self.executable_changed(identity)

    def executable_changed(self, identity: ExecutableIdentity) -> None:
        pass

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._subscription.dispose()
        self._logger.debug("disposed")


@dataclass(frozen=True)
class GitCommandFormats:
    log: str
    commit_details: str
    stash: str


class DataSource(ExecutableDependent):
    """Runs git on behalf of the host; output parsing lives elsewhere."""

    component = "DataSource"

    def __init__(
        self,
        executable_bus: ChangeBus[ExecutableIdentity],
        config: ConfigurationSource,
        logger: Optional[Any] = None,
        timeout: float = 30.0,
    ):
        super().__init__(executable_bus, logger)
        self._config = config
        self.timeout = timeout
        self.formats = self.generate_git_command_formats()

    def generate_git_command_formats(self) -> GitCommandFormats:
        mailmap = self._config.get(USE_MAILMAP)
        date = "%at" if self._config.get(DATE_TYPE) == "Author Date" else "%ct"
        author_name, author_email = ("%aN", "%aE") if mailmap else ("%an", "%ae")
        committer_name, committer_email = ("%cN", "%cE") if mailmap else ("%cn", "%ce")
        signature = ["%G?", "%GS", "%GK"] if self._config.get(SHOW_SIGNATURE_STATUS) else ["", "", ""]

        self.formats = GitCommandFormats(
            log=GIT_LOG_SEPARATOR.join(["%H", "%P", author_name, author_email, date, "%s"]),
            commit_details=GIT_LOG_SEPARATOR.join(
                ["%H", "%P", author_name, author_email, "%at", committer_name, committer_email, "%ct"]
                + signature
                + ["%B"]
            ),
            stash=GIT_LOG_SEPARATOR.join(["%H", "%P", "%gD", author_name, author_email, date, "%s"]),
        )
        self._logger.debug("git_command_formats_generated", mailmap=mailmap, date=date)
        return self.formats

    async def repo_root(self, path: str) -> Optional[str]:
        """Top-level directory of the repository containing *path*, via git."""
        if self._executable is None:
            return None
        try:
            proc = await asyncio.create_subprocess_exec(
                self._executable.path,
                "-C",
                path,
                "rev-parse",
                "--show-toplevel",
                stdout=asyncio.subprocess.PIPE,
                stderr=asyncio.subprocess.PIPE,
            )
            stdout, stderr = await asyncio.wait_for(proc.communicate(), timeout=self.timeout)
        except (OSError, asyncio.TimeoutError) as exc:
            self._logger.warning("git_command_failed", command="rev-parse", path=path, error=str(exc))
            return None

        if proc.returncode != 0:
            self._logger.debug(
                "not_a_repository", path=path, stderr=stderr.decode("utf-8", errors="replace").strip()
            )
            return None
        root = stdout.decode("utf-8", errors="replace").strip()
        return root or None


class AvatarManager(ExecutableDependent):
    """In-memory avatar URI cache keyed by commit author email."""

    component = "AvatarManager"

    def __init__(self, executable_bus: ChangeBus[ExecutableIdentity], logger: Optional[Any] = None):
        super().__init__(executable_bus, logger)
        self._avatars: Dict[str, str] = {}

    def remember(self, email: str, uri: str) -> None:
        self._avatars[email.lower()] = uri

    def get(self, email: str) -> Optional[str]:
        return self._avatars.get(email.lower())

    def clear_cache(self) -> None:
        self._avatars.clear()
        self._logger.info("avatar_cache_cleared")

    def dispose(self) -> None:
        self._avatars.clear()
        super().dispose()


CommandHandler = Callable[..., Awaitable[Any]]


class CommandManager(ExecutableDependent):
    component = "CommandManager"

    VIEW = "git-graph.view"
    RESCAN = "git-graph.rescanForRepos"
    CLEAR_AVATAR_CACHE = "git-graph.clearAvatarCache"

    def __init__(
        self,
        executable_bus: ChangeBus[ExecutableIdentity],
        notifications: NotificationSink,
        repo_manager: RepositoryDiscoveryManager,
        avatar_manager: AvatarManager,
        logger: Optional[Any] = None,
    ):
        super().__init__(executable_bus, logger)
        self._notifications = notifications
        self._repo_manager = repo_manager
        self._commands: Dict[str, Tuple[CommandHandler, bool]] = {}

        self.register(self.VIEW, self._view)
        self.register(self.RESCAN, self._rescan)
        self.register(self.CLEAR_AVATAR_CACHE, self._clear_avatar_cache(avatar_manager), requires_git=False)

    def register(self, name: str, handler: CommandHandler, requires_git: bool = True) -> None:
        self._commands[name] = (handler, requires_git)

    @property
    def commands(self) -> List[str]:
        return sorted(self._commands)

    async def execute(self, name: str, *args: Any, **kwargs: Any) -> Any:
        if self._disposed:
            self._logger.warning("command_after_dispose", command=name)
            return None
        try:
            handler, requires_git = self._commands[name]
        except KeyError:
            raise KeyError(f"Unknown command: {name}") from None

        if requires_git and self._executable is None:
            self._notifications.show_error(UNABLE_TO_FIND_GIT_MSG)
            self._logger.error("command_unavailable", command=name, message=UNABLE_TO_FIND_GIT_MSG)
            return None
        return await handler(*args, **kwargs)

    async def _view(self) -> list:
        return self._repo_manager.get_repos()

    async def _rescan(self) -> list:
        self._repo_manager.request_scan("command")
        await self._repo_manager.wait_for_scan()
        repos = self._repo_manager.get_repos()
        self._notifications.show_information(
            f"Git Graph found {len(repos)} repositor{'y' if len(repos) == 1 else 'ies'}."
        )
        return repos

    @staticmethod
    def _clear_avatar_cache(avatar_manager: AvatarManager) -> CommandHandler:
        async def clear() -> None:
            avatar_manager.clear_cache()
        return clear


class StatusBarItem(ExecutableDependent):
    """Shown when enabled in settings and the workspace has repositories."""

    component = "StatusBarItem"
    text = "Git Graph"

    def __init__(
        self,
        executable_bus: ChangeBus[ExecutableIdentity],
        config: ConfigurationSource,
        repo_manager: RepositoryDiscoveryManager,
        logger: Optional[Any] = None,
    ):
        super().__init__(executable_bus, logger)
        self._config = config
        self._num_repos = len(repo_manager.repos)
        self._enabled = bool(config.get(SHOW_STATUS_BAR_ITEM))
        self.visible = False
        self._repo_subscription = repo_manager.on_did_change_repos(self._on_repos_changed)
        self._update_visibility()

    @property
    def tooltip(self) -> str:
        if self._executable is None:
            return "View Git Graph (git not found)"
        return f"View Git Graph (git {self._executable.version})"

    def refresh(self) -> None:
        self._enabled = bool(self._config.get(SHOW_STATUS_BAR_ITEM))
        self._update_visibility()

    def _on_repos_changed(self, repos: Mapping[str, RepositoryRecord]) -> None:
        self._num_repos = len(repos)
        self._update_visibility()

    def _update_visibility(self) -> None:
        visible = self._enabled and self._num_repos > 0
        if visible != self.visible:
            self.visible = visible
            self._logger.debug("status_bar_visibility", visible=visible, repos=self._num_repos)

    def dispose(self) -> None:
        self._repo_subscription.dispose()
        self.visible = False
        super().dispose()
