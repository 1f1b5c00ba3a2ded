"""
git_graph - git executable tracking and repository discovery

Keeps a workspace host pointed at a working git executable and at the set
of repositories inside its workspace folders.

Architecture:
    ExecutableResolver -> ReconfigurationCoordinator -> ChangeBus
        -> DataSource, AvatarManager, RepositoryDiscoveryManager,
           StatusBarItem, CommandManager

Key components:
- event.py: ChangeBus, the non-buffering publish/subscribe primitive
- executable.py: locating and validating git via ``git --version``
- coordinator.py: the single owner of the current executable
- repo_manager.py: bounded, cancel-and-restart repository scans
- lifecycle.py: GitGraphHost, startup/shutdown ordering and config dispatch

Usage:
    from git_graph import ConfigurationSource, GitGraphHost, Settings, WorkspaceSource

    host = GitGraphHost(ConfigurationSource(Settings.from_env()), WorkspaceSource(["."]))
    await host.start()
    print(host.repo_manager.get_repos())
    await host.stop()
"""

from .types import (
    UNABLE_TO_FIND_GIT_MSG,
    ErrorCategory,
    ExecutableIdentity,
    GitGraphError,
    InvalidExecutable,
    NotFound,
    RepositoryRecord,
)
from .event import ChangeBus, Subscription
from .executable import ExecutableResolver, SubprocessExecutableResolver
from .config import ConfigurationChangeEvent, ConfigurationSource, Settings
from .workspace import WorkspaceSource
from .notifications import LoggingNotificationSink, MemoryNotificationSink, NotificationSink
from .coordinator import ReconfigurationCoordinator
from .repo_manager import RepositoryDiscoveryManager, scan_workspace
from .dependents import AvatarManager, CommandManager, DataSource, StatusBarItem
from .lifecycle import GitGraphHost

__version__ = "0.1.0"

__all__ = [
    # Types
    "UNABLE_TO_FIND_GIT_MSG",
    "ErrorCategory",
    "ExecutableIdentity",
    "GitGraphError",
    "InvalidExecutable",
    "NotFound",
    "RepositoryRecord",
    # Bus
    "ChangeBus",
    "Subscription",
    # Resolution
    "ExecutableResolver",
    "SubprocessExecutableResolver",
    "ReconfigurationCoordinator",
    # Sources and sinks
    "ConfigurationChangeEvent",
    "ConfigurationSource",
    "Settings",
    "WorkspaceSource",
    "NotificationSink",
    "LoggingNotificationSink",
    "MemoryNotificationSink",
    # Discovery
    "RepositoryDiscoveryManager",
    "scan_workspace",
    # Dependents
    "AvatarManager",
    "CommandManager",
    "DataSource",
    "StatusBarItem",
    # Host
    "GitGraphHost",
]
