"""Structured logging for git_graph components.

Components never create module-level loggers. Each one accepts an optional
injected structlog logger and binds its component name (plus any
per-instance context such as a bus name) once, at construction:

    self._logger = get_component_logger("ChangeBus", logger, bus=name)
"""

from typing import Any, Optional

import structlog


def get_component_logger(component: str, logger: Optional[Any] = None, **context: Any) -> Any:
    """Bind *component* and *context* on *logger* (default: structlog's)."""
    base = logger if logger is not None else structlog.get_logger()
    return base.bind(component=component, **context)
