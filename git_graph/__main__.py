"""Command-line entry point.

Usage:
    # Resolve git and list the repositories in the current directory
    python -m git_graph

    # Several workspace folders, searching two levels deep
    python -m git_graph --workspace ~/src --workspace ~/work --max-depth 2

    # Keep running until Ctrl+C (rescans when folders or settings change)
    python -m git_graph --watch

    # Dependency and git lookup check
    python -m git_graph --selftest
"""

import argparse
import asyncio
import signal
import sys
from dataclasses import replace
from typing import List, Optional

from ._logging import get_component_logger
from .config import ConfigurationSource, Settings
from .lifecycle import GitGraphHost
from .notifications import LoggingNotificationSink
from .workspace import WorkspaceSource


def parse_args(argv: Optional[List[str]] = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(prog="git_graph", description=__doc__.splitlines()[0])
    parser.add_argument(
        "--workspace",
        action="append",
        default=None,
        help="Workspace folder to search (repeatable, default: current directory)",
    )
    parser.add_argument("--git-path", default=None, help="Path to the git executable")
    parser.add_argument(
        "--max-depth", type=int, default=None, help="Subdirectory levels to search for repositories"
    )
    parser.add_argument("--watch", action="store_true", help="Keep running until interrupted")
    parser.add_argument("--selftest", action="store_true", help="Run the dependency self-test")
    return parser.parse_args(argv)


def build_settings(args: argparse.Namespace) -> Settings:
    settings = Settings.from_env()
    overrides = {}
    if args.git_path is not None:
        overrides["git_path"] = args.git_path
    if args.max_depth is not None:
        overrides["max_depth_of_repo_search"] = max(0, args.max_depth)
    return replace(settings, **overrides)


async def run(args: argparse.Namespace) -> int:
    logger = get_component_logger("cli")
    config = ConfigurationSource(build_settings(args), logger=logger)
    workspace = WorkspaceSource(args.workspace or ["."], logger=logger)
    host = GitGraphHost(config, workspace, notifications=LoggingNotificationSink(logger), logger=logger)

    await host.start()
    try:
        await host.wait_idle()
        current = host.coordinator.current
        if current is None:
            print("git: not found")
        else:
            print(f"git: {current.path} (version: {current.version})")
        for record in host.repo_manager.get_repos():
            print(f"repo: {record.root_path}")

        if args.watch:
            shutdown_event = asyncio.Event()

            def handle_signal(sig):
                logger.info("shutdown_signal_received", signal=sig)
                shutdown_event.set()

            loop = asyncio.get_running_loop()
            for sig in (signal.SIGTERM, signal.SIGINT):
                loop.add_signal_handler(sig, lambda s=sig: handle_signal(s))
            await shutdown_event.wait()
    finally:
        await host.stop()
    return 0


def main(argv: Optional[List[str]] = None) -> int:
    args = parse_args(argv)
    if args.selftest:
        from .selftest import run_selftest

        return 0 if run_selftest() else 1
    return asyncio.run(run(args))


if __name__ == "__main__":
    sys.exit(main())
