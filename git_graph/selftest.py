from __future__ import annotations

import asyncio
from importlib import metadata


def _version(pkg: str) -> str:
    try:
        return metadata.version(pkg)
    except Exception:
        return "unknown"


def run_selftest() -> bool:
    """
    Import/dependency check plus one real git lookup; no filesystem writes.
    """
    try:
        import structlog  # noqa: F401
        print(f"git_graph selftest: structlog {_version('structlog')}")
    except Exception as exc:
        print(f"git_graph selftest: missing structlog ({exc})")
        return False

    try:
        from git_graph.lifecycle import GitGraphHost  # noqa: F401
        from git_graph.executable import SubprocessExecutableResolver
        from git_graph.types import GitGraphError
        print("git_graph selftest: core imports ok")
    except Exception as exc:
        print(f"git_graph selftest: import failed ({exc})")
        return False

    try:
        identity = asyncio.run(SubprocessExecutableResolver().locate(None))
        print(f"git_graph selftest: git {identity.version} at {identity.path}")
    except GitGraphError as exc:
        print(f"git_graph selftest: git not found ({exc}) (ok, host runs degraded)")

    print("git_graph selftest: ok")
    return True


if __name__ == "__main__":
    run_selftest()
