"""
Notification channels.

A channel is an ordered list of subscribers for one kind of notification.
add() returns a Subscription handle; cancelling it is the only way a
single subscriber is removed.

Rules:
- Delivery is synchronous and in subscription order.
- emit() iterates a snapshot, so subscribing/unsubscribing from inside a
  handler is safe (an unsubscribed handler not yet reached is skipped).
- A handler that raises is logged and does not stop delivery.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable, Generic, TypeVar

from observability.logger import Logger

T = TypeVar("T")


@dataclass(eq=False)
class Subscription:
    """Handle returned by EventChannel.add()."""

    _remove: Callable[["Subscription"], None] = field(repr=False)
    active: bool = True

    def cancel(self) -> None:
        """Idempotent."""
        if self.active:
            self.active = False
            self._remove(self)


class EventChannel(Generic[T]):
    """
    Subscription list for a single notification type.
    """

    def __init__(self, name: str, *, logger: Logger | None = None) -> None:
        self._name = name
        self._logger = logger
        self._handlers: dict[Subscription, Callable[[T], None]] = {}

    @property
    def name(self) -> str:
        return self._name

    def __len__(self) -> int:
        return len(self._handlers)

    def add(self, handler: Callable[[T], None]) -> Subscription:
        sub = Subscription(_remove=self._discard)
        self._handlers[sub] = handler
        return sub

    def emit(self, payload: T) -> None:
        for sub, handler in list(self._handlers.items()):
            if not sub.active:
                continue
            try:
                handler(payload)
            except Exception as e:  # pylint: disable=broad-exception-caught
                if self._logger is not None:
                    self._logger.error(
                        "Subscriber for %s raised: %r", self._name, e
                    )

    def clear(self) -> None:
        """Deactivate and drop every subscription."""
        for sub in list(self._handlers):
            sub.active = False
        self._handlers.clear()

    def _discard(self, sub: Subscription) -> None:
        self._handlers.pop(sub, None)
