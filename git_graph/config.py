"""Named settings consumed by the git_graph host.

Settings mirror the editor configuration keys of the original host. Values
come from the environment at startup (``Settings.from_env``) and change at
runtime through ``ConfigurationSource.update``, which announces the set of
changed keys to listeners.

Both paths parse values the same way: flags accept booleans or the strings
1/0, true/false, yes/no, on/off; the depth accepts integers or numeric
strings (negative values clamp to 0); the date type must be one of
``DATE_TYPES``. Invalid values are logged as ``invalid_setting`` and the
previous value is kept.

Environment:
    GIT_GRAPH_GIT_PATH: Path to the git executable (default: search)
    GIT_GRAPH_MAX_DEPTH: Subdirectory levels searched for repositories (default: 0)
    GIT_GRAPH_SHOW_STATUS_BAR: Show the status bar item (default: true)
    GIT_GRAPH_DATE_TYPE: "Author Date" or "Commit Date" (default: "Author Date")
    GIT_GRAPH_SHOW_SIGNATURE_STATUS: Include commit signature status (default: false)
    GIT_GRAPH_USE_MAILMAP: Respect .mailmap files (default: false)
"""

from __future__ import annotations

import os
from dataclasses import dataclass, replace
from typing import Any, Callable, Dict, FrozenSet, Mapping, Optional

from ._logging import get_component_logger
from .event import ChangeBus, Subscription

# =============================================================================
# SETTING KEYS
# =============================================================================

GIT_PATH = "git.path"
MAX_DEPTH_OF_REPO_SEARCH = "git-graph.maxDepthOfRepoSearch"
SHOW_STATUS_BAR_ITEM = "git-graph.showStatusBarItem"
DATE_TYPE = "git-graph.dateType"
SHOW_SIGNATURE_STATUS = "git-graph.showSignatureStatus"
USE_MAILMAP = "git-graph.useMailmap"

DATE_TYPES = ("Author Date", "Commit Date")

_TRUE_VALUES = {"1", "true", "yes", "on"}
_FALSE_VALUES = {"0", "false", "no", "off"}

# Setting key -> Settings field
SETTING_FIELDS: Dict[str, str] = {
    GIT_PATH: "git_path",
    MAX_DEPTH_OF_REPO_SEARCH: "max_depth_of_repo_search",
    SHOW_STATUS_BAR_ITEM: "show_status_bar_item",
    DATE_TYPE: "date_type",
    SHOW_SIGNATURE_STATUS: "show_signature_status",
    USE_MAILMAP: "use_mailmap",
}

# Setting key -> environment variable
ENV_VARS: Dict[str, str] = {
    GIT_PATH: "GIT_GRAPH_GIT_PATH",
    MAX_DEPTH_OF_REPO_SEARCH: "GIT_GRAPH_MAX_DEPTH",
    SHOW_STATUS_BAR_ITEM: "GIT_GRAPH_SHOW_STATUS_BAR",
    DATE_TYPE: "GIT_GRAPH_DATE_TYPE",
    SHOW_SIGNATURE_STATUS: "GIT_GRAPH_SHOW_SIGNATURE_STATUS",
    USE_MAILMAP: "GIT_GRAPH_USE_MAILMAP",
}


# =============================================================================
# VALUE PARSING
# =============================================================================

def _normalize_path(value: Any) -> Optional[str]:
    if value is None:
        return None
    if not isinstance(value, str):
        raise ValueError(f"expected a path string, got {value!r}")
    return value.strip() or None


def _normalize_depth(value: Any) -> int:
    if isinstance(value, bool):
        raise ValueError(f"expected an integer, got {value!r}")
    if isinstance(value, int):
        depth = value
    elif isinstance(value, str):
        depth = int(value.strip())
    else:
        raise ValueError(f"expected an integer, got {value!r}")
    return max(0, depth)


def _normalize_flag(value: Any) -> bool:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        flag = value.strip().lower()
        if flag in _TRUE_VALUES:
            return True
        if flag in _FALSE_VALUES:
            return False
    raise ValueError(f"expected a boolean, got {value!r}")


def _normalize_date_type(value: Any) -> str:
    if value not in DATE_TYPES:
        raise ValueError(f"expected one of {', '.join(DATE_TYPES)}, got {value!r}")
    return value


_NORMALIZERS: Dict[str, Callable[[Any], Any]] = {
    GIT_PATH: _normalize_path,
    MAX_DEPTH_OF_REPO_SEARCH: _normalize_depth,
    SHOW_STATUS_BAR_ITEM: _normalize_flag,
    DATE_TYPE: _normalize_date_type,
    SHOW_SIGNATURE_STATUS: _normalize_flag,
    USE_MAILMAP: _normalize_flag,
}


def normalize_setting(key: str, value: Any) -> Any:
    """Parse *value* for setting *key*.

    Raises:
        KeyError: unknown setting key
        ValueError: value cannot be read as that setting's type
    """
    if key not in SETTING_FIELDS:
        raise KeyError(f"Unknown setting: {key}")
    return _NORMALIZERS[key](value)


@dataclass(frozen=True)
class Settings:
    git_path: Optional[str] = None
    max_depth_of_repo_search: int = 0
    show_status_bar_item: bool = True
    date_type: str = "Author Date"
    show_signature_status: bool = False
    use_mailmap: bool = False

    @classmethod
    def from_env(cls, environ: Optional[Mapping[str, str]] = None) -> "Settings":
        env = os.environ if environ is None else environ
        log = get_component_logger("Settings")
        values: Dict[str, Any] = {}
        for key, var in ENV_VARS.items():
            raw = env.get(var)
            if raw is None:
                continue
            try:
                values[SETTING_FIELDS[key]] = normalize_setting(key, raw)
            except ValueError as exc:
                log.warning("invalid_setting", key=key, env=var, value=raw, error=str(exc))
        return cls(**values)


@dataclass(frozen=True)
class ConfigurationChangeEvent:
    changed: FrozenSet[str]
    settings: Settings

    def affects(self, key: str) -> bool:
        return key in self.changed


class ConfigurationSource:
    """Holds the current Settings and announces which keys changed."""

    def __init__(self, settings: Optional[Settings] = None, logger: Optional[Any] = None):
        self._settings = settings or Settings()
        self._logger = get_component_logger("ConfigurationSource", logger)
        self._changes: ChangeBus[ConfigurationChangeEvent] = ChangeBus(
            "configuration", logger=logger
        )

    @property
    def settings(self) -> Settings:
        return self._settings

    def get(self, key: str) -> Any:
        try:
            return getattr(self._settings, SETTING_FIELDS[key])
        except KeyError:
            raise KeyError(f"Unknown setting: {key}") from None

    def on_did_change(self, listener: Callable[[ConfigurationChangeEvent], Any]) -> Subscription:
        return self._changes.subscribe(listener)

    def update(self, **changes: Any) -> FrozenSet[str]:
        """Update settings by field name, e.g. ``update(git_path="/usr/bin/git")``."""
        by_key = {}
        reverse = {field_name: key for key, field_name in SETTING_FIELDS.items()}
        for field_name, value in changes.items():
            if field_name not in reverse:
                raise KeyError(f"Unknown setting field: {field_name}")
            by_key[reverse[field_name]] = value
        return self.apply(by_key)

    def apply(self, values: Mapping[str, Any]) -> FrozenSet[str]:
        """Update settings by key; one notification covers every changed key.

        Unknown keys raise ``KeyError`` before anything is applied. Values
        that do not parse are logged and leave that setting unchanged; the
        remaining keys still apply.
        """
        unknown = [key for key in values if key not in SETTING_FIELDS]
        if unknown:
            raise KeyError(f"Unknown setting: {unknown[0]}")

        updates: Dict[str, Any] = {}
        changed = set()
        for key, raw in values.items():
            try:
                value = normalize_setting(key, raw)
            except ValueError as exc:
                self._logger.warning("invalid_setting", key=key, value=raw, error=str(exc))
                continue
            field_name = SETTING_FIELDS[key]
            if getattr(self._settings, field_name) != value:
                updates[field_name] = value
                changed.add(key)

        if not changed:
            return frozenset()

        self._settings = replace(self._settings, **updates)
        event = ConfigurationChangeEvent(changed=frozenset(changed), settings=self._settings)
        self._logger.debug("configuration_changed", keys=sorted(changed))
        self._changes.emit(event)
        return event.changed

    def dispose(self) -> None:
        self._changes.dispose()
