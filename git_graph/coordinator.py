"""ReconfigurationCoordinator: owner of the current git executable.

The coordinator is the only writer of ``current``. Every other component
learns about the executable solely through publications on the executable
ChangeBus. Two rules hold for the lifetime of the process:

- one publication per successful resolution, never more;
- ``current`` never goes back to ``None`` once it has held a value. A bad
  ``git.path`` leaves the previously working executable in place.

Resolutions are serialized with an ``asyncio.Lock`` so two configuration
changes can never race to set ``current``.
"""

from __future__ import annotations

import asyncio
from typing import Any, Optional

from ._logging import get_component_logger
from .event import ChangeBus
from .executable import ExecutableResolver
from .notifications import NotificationSink
from .types import UNABLE_TO_FIND_GIT_MSG, ExecutableIdentity, GitGraphError


def now_using_message(identity: ExecutableIdentity) -> str:
    return f"Git Graph is now using {identity.path} (version: {identity.version})"


def invalid_path_message(path: str) -> str:
    return (
        f'The new value of "git.path" ({path}) does not match the path and '
        "filename of a valid Git executable."
    )


class ReconfigurationCoordinator:
    def __init__(
        self,
        resolver: ExecutableResolver,
        bus: ChangeBus[ExecutableIdentity],
        notifications: NotificationSink,
        logger: Optional[Any] = None,
    ):
        self._resolver = resolver
        self._bus = bus
        self._notifications = notifications
        self._logger = get_component_logger("ReconfigurationCoordinator", logger)
        self._lock = asyncio.Lock()
        self._current: Optional[ExecutableIdentity] = None
        self._unannounced: Optional[ExecutableIdentity] = None
        self.emissions = 0

    @property
    def current(self) -> Optional[ExecutableIdentity]:
        return self._current

    async def resolve_initial(
        self, path_hint: Optional[str] = None, *, publish: bool = True
    ) -> Optional[ExecutableIdentity]:
        """
        Startup resolution: the configured path, else the default search.

        With ``publish=False`` the identity is held back until ``announce()``
        so that subscribers constructed after resolution still receive it.
        Returns None (and reports once) when no executable is found.
        """
        async with self._lock:
            try:
                identity = await self._resolver.locate(path_hint)
            except GitGraphError as exc:
                self._notifications.show_error(UNABLE_TO_FIND_GIT_MSG)
                self._logger.error(
                    "executable_not_found",
                    message=UNABLE_TO_FIND_GIT_MSG,
                    path_hint=path_hint,
                    reason=str(exc),
                )
                return None

            self._current = identity
            self._logger.info("executable_resolved", path=identity.path, version=identity.version)
            if publish:
                self._publish(identity)
            else:
                self._unannounced = identity
            return identity

    def announce(self) -> bool:
        """Publish a held-back initial identity. Returns True if one was published."""
        identity, self._unannounced = self._unannounced, None
        if identity is None:
            return False
        self._publish(identity)
        return True

    async def on_path_changed(self, path: Optional[str]) -> Optional[ExecutableIdentity]:
        """
        Re-resolve after the configured ``git.path`` changed.

        An unset path is ignored. On failure the previous executable is kept
        and an error naming *path* is surfaced; no publication happens.
        """
        if path is None:
            self._logger.debug("git_path_unset_ignored")
            return None

        async with self._lock:
            try:
                identity = await self._resolver.validate(path)
            except GitGraphError as exc:
                msg = invalid_path_message(path)
                self._notifications.show_error(msg)
                self._logger.error("executable_rejected", message=msg, path=path, reason=str(exc))
                return None

            self._current = identity
            # A newer identity supersedes one still waiting for announce().
            self._unannounced = None
            self._publish(identity)
            msg = now_using_message(identity)
            self._notifications.show_information(msg)
            self._logger.info("executable_changed", message=msg, path=identity.path, version=identity.version)
            return identity

    def _publish(self, identity: ExecutableIdentity) -> None:
        self.emissions += 1
        self._bus.emit(identity)
