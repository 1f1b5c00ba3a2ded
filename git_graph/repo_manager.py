"""Repository discovery for the active workspace.

The manager owns the mapping of known repository roots. Every scan
produces a complete replacement mapping; entries from an older scan never
survive a newer one.

Triggers (startup, workspace folder changes, ``maxDepthOfRepoSearch``
changes, a newly accepted git executable) all go through
``request_scan``. A new trigger cancels the scan in flight and starts
over, and only a scan that ran to completion may commit, so the visible
set always comes from exactly one scan at exactly one depth.
"""

from __future__ import annotations

import asyncio
import os
from types import MappingProxyType
from typing import Any, Callable, Dict, Iterable, List, Mapping, Optional, Tuple

from ._logging import get_component_logger
from .config import MAX_DEPTH_OF_REPO_SEARCH, ConfigurationSource
from .event import ChangeBus, Subscription
from .types import ExecutableIdentity, RepositoryRecord
from .workspace import WorkspaceSource

GIT_DIR = ".git"


def is_repository_root(directory: str) -> bool:
    # .git is a directory for normal clones and a file for worktrees/submodules
    return os.path.lexists(os.path.join(directory, GIT_DIR))


async def scan_workspace(
    roots: Iterable[str],
    max_depth: int,
    logger: Optional[Any] = None,
) -> Dict[str, RepositoryRecord]:
    """Find repository roots at most *max_depth* directory levels below each root.

    Unreadable directories are logged and skipped; the scan still completes
    with whatever could be read.
    """
    log = logger or get_component_logger("RepoScan")
    records: Dict[str, RepositoryRecord] = {}
    for root in roots:
        await _scan_directory(root, root, 0, max_depth, records, log)
    return records


def _within_known_repo(directory: str, records: Mapping[str, RepositoryRecord]) -> bool:
    for root in records:
        if directory == root or directory.startswith(root.rstrip(os.sep) + os.sep):
            return True
    return False


def _list_subdirectories(directory: str) -> Tuple[List[str], List[Tuple[str, str]]]:
    """Blocking listing of *directory*; runs in a worker thread.

    Returns the child directories sorted by name (symlinks and ``.git``
    excluded) and the entries that could not be inspected.
    """
    subdirectories: List[str] = []
    skipped: List[Tuple[str, str]] = []
    with os.scandir(directory) as it:
        entries = sorted(it, key=lambda e: e.name)
    for entry in entries:
        if entry.name == GIT_DIR:
            continue
        try:
            if entry.is_dir(follow_symlinks=False):
                subdirectories.append(entry.path)
        except OSError as exc:
            skipped.append((entry.path, str(exc)))
    return subdirectories, skipped


async def _scan_directory(
    directory: str,
    workspace_root: str,
    depth: int,
    max_depth: int,
    records: Dict[str, RepositoryRecord],
    log: Any,
) -> None:
    if _within_known_repo(directory, records):
        return

    if is_repository_root(directory):
        records[directory] = RepositoryRecord(
            root_path=directory, workspace_root=workspace_root, depth=depth
        )
        return

    if depth >= max_depth:
        return

    try:
        subdirectories, skipped = await asyncio.to_thread(_list_subdirectories, directory)
    except OSError as exc:
        log.warning("scan_entry_skipped", path=directory, error=str(exc))
        return

    for path, error in skipped:
        log.warning("scan_entry_skipped", path=path, error=error)

    for path in subdirectories:
        await _scan_directory(path, workspace_root, depth + 1, max_depth, records, log)


class RepositoryDiscoveryManager:
    def __init__(
        self,
        workspace: WorkspaceSource,
        config: ConfigurationSource,
        executable_bus: ChangeBus[ExecutableIdentity],
        logger: Optional[Any] = None,
    ):
        self._workspace = workspace
        self._config = config
        self._logger = get_component_logger("RepoManager", logger)
        self._repos: Dict[str, RepositoryRecord] = {}
        self._repo_changes: ChangeBus[Mapping[str, RepositoryRecord]] = ChangeBus(
            "repositories", logger=logger
        )
        self._scan_task: Optional[asyncio.Task] = None
        self._generation = 0
        self._executable: Optional[ExecutableIdentity] = None
        self._started = False
        self._disposed = False

        self.scans_completed = 0
        self.last_scan_depth: Optional[int] = None

        self._subscription = executable_bus.subscribe(self._on_executable_changed)

    # -- state -----------------------------------------------------------------

    @property
    def repos(self) -> Mapping[str, RepositoryRecord]:
        return MappingProxyType(self._repos)

    def get_repos(self) -> List[RepositoryRecord]:
        return [self._repos[root] for root in sorted(self._repos)]

    @property
    def max_depth(self) -> int:
        return self._config.get(MAX_DEPTH_OF_REPO_SEARCH)

    @property
    def can_issue_commands(self) -> bool:
        """True once a git executable has been published."""
        return self._executable is not None

    @property
    def scanning(self) -> bool:
        return self._scan_task is not None and not self._scan_task.done()

    def on_did_change_repos(
        self, listener: Callable[[Mapping[str, RepositoryRecord]], Any]
    ) -> Subscription:
        return self._repo_changes.subscribe(listener)

    # -- triggers ----------------------------------------------------------------

    def start(self) -> Optional[asyncio.Task]:
        self._started = True
        return self.request_scan("startup")

    def workspace_folders_changed(self, folders: Any = None) -> Optional[asyncio.Task]:
        return self.request_scan("workspace_folders_changed")

    def max_depth_of_repo_search_changed(self) -> Optional[asyncio.Task]:
        # Always rescan, even where the new depth cannot change the result.
        return self.request_scan("max_depth_changed")

    def _on_executable_changed(self, identity: ExecutableIdentity) -> None:
        self._executable = identity
        if self._started and not self._disposed:
            self.request_scan("executable_changed")

    def request_scan(self, reason: str) -> Optional[asyncio.Task]:
        if self._disposed:
            self._logger.debug("scan_request_ignored", reason=reason)
            return None

        if self.scanning:
            self._logger.debug("scan_superseded", reason=reason)
            self._scan_task.cancel()

        self._generation += 1
        roots = self._workspace.folders
        depth = self.max_depth
        self._scan_task = asyncio.create_task(
            self._run_scan(self._generation, roots, depth, reason)
        )
        return self._scan_task

    async def wait_for_scan(self) -> None:
        """Wait until no scan is in flight, following any supersessions."""
        while True:
            task = self._scan_task
            if task is None:
                return
            try:
                await asyncio.shield(task)
            except asyncio.CancelledError:
                if not task.cancelled():
                    raise
            if task is self._scan_task:
                return

    # -- scanning --------------------------------------------------------------

    async def _run_scan(self, generation: int, roots: Iterable[str], depth: int, reason: str) -> None:
        self._logger.info("repo_scan_started", reason=reason, max_depth=depth, roots=list(roots))
        try:
            records = await scan_workspace(roots, depth, self._logger)
        except asyncio.CancelledError:
            self._logger.debug("repo_scan_cancelled", reason=reason)
            raise
        except Exception as exc:
            self._logger.error("repo_scan_failed", reason=reason, error=str(exc))
            return

        if generation != self._generation or self._disposed:
            return
        self._commit(records, depth)

    def _commit(self, records: Dict[str, RepositoryRecord], depth: int) -> None:
        changed = records != self._repos
        self._repos = records
        self.scans_completed += 1
        self.last_scan_depth = depth
        self._logger.info(
            "repo_scan_completed", repos=len(records), max_depth=depth, changed=changed
        )
        if changed:
            self._repo_changes.emit(self.repos)

    def dispose(self) -> None:
        if self._disposed:
            return
        self._disposed = True
        self._subscription.dispose()
        if self._scan_task is not None and not self._scan_task.done():
            self._scan_task.cancel()
        self._repo_changes.dispose()
