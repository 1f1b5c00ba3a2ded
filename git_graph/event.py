"""In-process, non-buffering publish/subscribe primitive.

A ChangeBus carries values (the current git executable, configuration
changes, repository sets) to an unknown number of subscribers. It never
replays past values: a subscriber only sees emissions made after it
subscribed.
"""

from __future__ import annotations

import itertools
from typing import Any, Callable, Dict, Generic, Optional, TypeVar

from ._logging import get_component_logger

T = TypeVar("T")

_subscription_ids = itertools.count(1)


class Subscription:
    """Opaque handle returned by ChangeBus.subscribe."""

    __slots__ = ("_id", "_bus")

    def __init__(self, bus: "ChangeBus[Any]"):
        self._id = next(_subscription_ids)
        self._bus = bus

    @property
    def active(self) -> bool:
        return self._bus.is_subscribed(self)

    def dispose(self) -> None:
        self._bus.unsubscribe(self)

    def __repr__(self) -> str:
        return f"Subscription(id={self._id}, active={self.active})"


class ChangeBus(Generic[T]):
    def __init__(self, name: str = "change_bus", logger: Optional[Any] = None):
        self.name = name
        self._subscribers: Dict[Subscription, Callable[[T], Any]] = {}
        self._disposed = False
        self._logger = get_component_logger("ChangeBus", logger, bus=name)

    @property
    def disposed(self) -> bool:
        return self._disposed

    def __len__(self) -> int:
        return len(self._subscribers)

    def subscribe(self, callback: Callable[[T], Any]) -> Subscription:
        subscription = Subscription(self)
        if self._disposed:
            # Handle is born released; emit is a no-op anyway.
            self._logger.warning("subscribe_after_dispose")
            return subscription
        self._subscribers[subscription] = callback
        return subscription

    def is_subscribed(self, subscription: Subscription) -> bool:
        return subscription in self._subscribers

    def unsubscribe(self, subscription: Subscription) -> None:
        self._subscribers.pop(subscription, None)

    def emit(self, value: T) -> None:
        """Deliver *value* to every current subscriber, in subscription order.

        A subscriber that raises is logged and skipped; delivery continues
        with the next subscriber and nothing propagates to the caller.
        Subscribers added during delivery are not called for this value.
        """
        if self._disposed:
            return
        for subscription, callback in list(self._subscribers.items()):
            if subscription not in self._subscribers:
                continue
            try:
                callback(value)
            except Exception as exc:
                self._logger.error(
                    "subscriber_error",
                    subscription=subscription._id,
                    error=str(exc),
                    error_type=type(exc).__name__,
                )

    def dispose(self) -> None:
        self._subscribers.clear()
        self._disposed = True
