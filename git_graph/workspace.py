from __future__ import annotations

import os
from typing import Any, Callable, Iterable, Optional, Tuple

from ._logging import get_component_logger
from .event import ChangeBus, Subscription


def _normalize_folder(path: str) -> str:
    return os.path.abspath(os.path.expanduser(str(path)))


class WorkspaceSource:
    """The set of workspace root folders, with a change stream."""

    def __init__(self, folders: Iterable[str] = (), logger: Optional[Any] = None):
        self._folders: Tuple[str, ...] = self._dedupe(folders)
        self._logger = get_component_logger("WorkspaceSource", logger)
        self._changes: ChangeBus[Tuple[str, ...]] = ChangeBus("workspace_folders", logger=logger)

    @staticmethod
    def _dedupe(folders: Iterable[str]) -> Tuple[str, ...]:
        seen = []
        for folder in folders:
            normalized = _normalize_folder(folder)
            if normalized not in seen:
                seen.append(normalized)
        return tuple(seen)

    @property
    def folders(self) -> Tuple[str, ...]:
        return self._folders

    def on_did_change_folders(self, listener: Callable[[Tuple[str, ...]], Any]) -> Subscription:
        return self._changes.subscribe(listener)

    def set_folders(self, folders: Iterable[str]) -> bool:
        new_folders = self._dedupe(folders)
        if set(new_folders) == set(self._folders):
            return False
        self._folders = new_folders
        self._logger.info("workspace_folders_changed", folders=list(new_folders))
        self._changes.emit(new_folders)
        return True

    def add_folder(self, folder: str) -> bool:
        return self.set_folders(self._folders + (folder,))

    def remove_folder(self, folder: str) -> bool:
        target = _normalize_folder(folder)
        return self.set_folders(f for f in self._folders if f != target)

    def dispose(self) -> None:
        self._changes.dispose()
