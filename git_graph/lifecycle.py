"""GitGraphHost: startup/shutdown ordering and configuration dispatch.

Startup:
    resolve git (held back) -> construct dependents, each subscribing
    -> announce the resolved executable -> attach triggers -> first scan
    -> ready

Shutdown:
    detach triggers -> let in-flight resolutions finish -> dispose
    dependents in reverse construction order -> dispose the executable bus

Usage:
    host = GitGraphHost(ConfigurationSource(Settings.from_env()), WorkspaceSource(["~/src"]))
    await host.start()
    ...
    await host.stop()

    # or
    async with GitGraphHost(config, workspace) as host:
        await host.wait_idle()
"""

from __future__ import annotations

import asyncio
from typing import Any, Callable, Dict, List, Optional, Set, Tuple

from ._logging import get_component_logger
from .config import (
    DATE_TYPE,
    GIT_PATH,
    MAX_DEPTH_OF_REPO_SEARCH,
    SHOW_SIGNATURE_STATUS,
    SHOW_STATUS_BAR_ITEM,
    USE_MAILMAP,
    ConfigurationChangeEvent,
    ConfigurationSource,
)
from .coordinator import ReconfigurationCoordinator
from .dependents import AvatarManager, CommandManager, DataSource, StatusBarItem
from .event import ChangeBus, Subscription
from .executable import ExecutableResolver, SubprocessExecutableResolver
from .notifications import LoggingNotificationSink, NotificationSink
from .repo_manager import RepositoryDiscoveryManager
from .types import ExecutableIdentity
from .workspace import WorkspaceSource


class GitGraphHost:
    def __init__(
        self,
        config: ConfigurationSource,
        workspace: WorkspaceSource,
        resolver: Optional[ExecutableResolver] = None,
        notifications: Optional[NotificationSink] = None,
        logger: Optional[Any] = None,
    ):
        self.config = config
        self.workspace = workspace
        self.resolver = resolver or SubprocessExecutableResolver(logger=logger)
        self.notifications = notifications or LoggingNotificationSink(logger)
        self._logger_base = logger
        self._logger = get_component_logger("GitGraphHost", logger)

        self.executable_bus: Optional[ChangeBus[ExecutableIdentity]] = None
        self.coordinator: Optional[ReconfigurationCoordinator] = None
        self.data_source: Optional[DataSource] = None
        self.avatar_manager: Optional[AvatarManager] = None
        self.repo_manager: Optional[RepositoryDiscoveryManager] = None
        self.status_bar: Optional[StatusBarItem] = None
        self.command_manager: Optional[CommandManager] = None

        self._teardown: List[Any] = []
        self._triggers: List[Subscription] = []
        self._reconfigurations: Set[asyncio.Task] = set()
        self._dispatch: List[Tuple[Tuple[str, ...], Callable[[ConfigurationChangeEvent], None]]] = []
        self.ready = False
        self.stopped = False

    # -- startup ---------------------------------------------------------------

    async def start(self) -> "GitGraphHost":
        if self.ready:
            return self
        log = self._logger_base
        self._logger.info("starting_git_graph")

        self.executable_bus = ChangeBus("git_executable", logger=log)
        self.coordinator = ReconfigurationCoordinator(
            self.resolver, self.executable_bus, self.notifications, logger=log
        )
        await self.coordinator.resolve_initial(self.config.get(GIT_PATH), publish=False)

        self.data_source = self._own(DataSource(self.executable_bus, self.config, logger=log))
        self.avatar_manager = self._own(AvatarManager(self.executable_bus, logger=log))
        self.repo_manager = self._own(
            RepositoryDiscoveryManager(self.workspace, self.config, self.executable_bus, logger=log)
        )
        self.status_bar = self._own(
            StatusBarItem(self.executable_bus, self.config, self.repo_manager, logger=log)
        )
        self.command_manager = self._own(
            CommandManager(
                self.executable_bus,
                self.notifications,
                self.repo_manager,
                self.avatar_manager,
                logger=log,
            )
        )

        self.coordinator.announce()

        self._dispatch = self._build_dispatch()
        self._triggers = [
            self.config.on_did_change(self._on_configuration_changed),
            self.workspace.on_did_change_folders(self.repo_manager.workspace_folders_changed),
        ]
        self.repo_manager.start()

        self.ready = True
        current = self.coordinator.current
        self._logger.info(
            "git_graph_ready",
            git_path=current.path if current else None,
            git_version=current.version if current else None,
        )
        return self

    def _own(self, dependent: Any) -> Any:
        self._teardown.append(dependent)
        return dependent

    # -- configuration dispatch -------------------------------------------------

    def _build_dispatch(self) -> List[Tuple[Tuple[str, ...], Callable[[ConfigurationChangeEvent], None]]]:
        """Setting keys -> handler, in evaluation order.

        Every entry whose keys intersect a notification's changed keys runs
        once for that notification; keys sharing an entry run it once.
        """
        return [
            ((SHOW_STATUS_BAR_ITEM,), lambda event: self.status_bar.refresh()),
            (
                (DATE_TYPE, SHOW_SIGNATURE_STATUS, USE_MAILMAP),
                lambda event: self.data_source.generate_git_command_formats(),
            ),
            (
                (MAX_DEPTH_OF_REPO_SEARCH,),
                lambda event: self.repo_manager.max_depth_of_repo_search_changed(),
            ),
            ((GIT_PATH,), self._on_git_path_changed),
        ]

    def _on_configuration_changed(self, event: ConfigurationChangeEvent) -> None:
        if self.stopped:
            return
        for keys, handler in self._dispatch:
            if any(event.affects(key) for key in keys):
                handler(event)

    def _on_git_path_changed(self, event: ConfigurationChangeEvent) -> None:
        path = event.settings.git_path
        if path is None:
            self._logger.debug("git_path_cleared")
            return
        task = asyncio.create_task(self.coordinator.on_path_changed(path))
        self._reconfigurations.add(task)
        task.add_done_callback(self._reconfigurations.discard)

    async def wait_idle(self) -> None:
        """Wait for pending reconfigurations and the scans they trigger."""
        while self._reconfigurations:
            await asyncio.gather(*list(self._reconfigurations))
        if self.repo_manager is not None:
            await self.repo_manager.wait_for_scan()

    # -- shutdown --------------------------------------------------------------

    async def stop(self) -> None:
        if self.stopped:
            return
        self.stopped = True
        self._logger.info("stopping_git_graph")

        for subscription in self._triggers:
            subscription.dispose()
        self._triggers = []

        # Resolutions run to completion; they cannot be half-applied.
        while self._reconfigurations:
            await asyncio.gather(*list(self._reconfigurations), return_exceptions=True)

        for dependent in reversed(self._teardown):
            dependent.dispose()
        self._teardown = []

        if self.executable_bus is not None:
            self.executable_bus.dispose()
        self.ready = False
        self._logger.info("git_graph_stopped")

    async def __aenter__(self) -> "GitGraphHost":
        return await self.start()

    async def __aexit__(self, exc_type, exc, tb) -> None:
        await self.stop()
