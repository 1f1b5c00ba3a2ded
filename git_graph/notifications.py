from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, List, Optional

from ._logging import get_component_logger


class NotificationSink(ABC):
    """User-visible messages. Fire-and-forget; no acknowledgement."""

    @abstractmethod
    def show_information(self, message: str) -> None:
        ...

    @abstractmethod
    def show_error(self, message: str) -> None:
        ...


class LoggingNotificationSink(NotificationSink):
    def __init__(self, logger: Optional[Any] = None):
        self._logger = get_component_logger("Notifications", logger)

    def show_information(self, message: str) -> None:
        self._logger.info("notification", level="information", message=message)

    def show_error(self, message: str) -> None:
        self._logger.error("notification", level="error", message=message)


@dataclass
class Notification:
    level: str  # information | error
    message: str


class MemoryNotificationSink(NotificationSink):
    """Keeps every message in order; used by the CLI and in tests."""

    def __init__(self):
        self.notifications: List[Notification] = []

    def show_information(self, message: str) -> None:
        self.notifications.append(Notification("information", message))

    def show_error(self, message: str) -> None:
        self.notifications.append(Notification("error", message))

    @property
    def errors(self) -> List[str]:
        return [n.message for n in self.notifications if n.level == "error"]

    @property
    def information(self) -> List[str]:
        return [n.message for n in self.notifications if n.level == "information"]
