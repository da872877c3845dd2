"""In-process publish/subscribe for store state changes.

One ``EventBus`` per session, passed by reference to whatever needs it.
Dispatch is synchronous and in registration order; a failing handler is
logged and skipped, never propagated to the publisher.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Callable, Mapping, Union

from .types import Interaction

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ConnectionAdded:
    connection_id: str
    name: str


@dataclass(frozen=True)
class ConnectionUpdated:
    connection_id: str
    changes: Mapping[str, Any] = field(default_factory=dict)  # field -> new value


@dataclass(frozen=True)
class ConnectionDeleted:
    connection_id: str


@dataclass(frozen=True)
class InteractionAdded:
    connection_id: str
    interaction: Interaction


@dataclass(frozen=True)
class StrengthUpdated:
    connection_id: str
    previous: int
    strength: int

    @property
    def changed(self) -> bool:
        return self.previous != self.strength


Event = Union[
    ConnectionAdded,
    ConnectionUpdated,
    ConnectionDeleted,
    InteractionAdded,
    StrengthUpdated,
]

Handler = Callable[[Event], None]


class EventBus:
    """Synchronous, same-tick notification channel.

    Usage:
        bus = EventBus()
        unsubscribe = bus.subscribe(print)
        bus.publish(ConnectionDeleted("c1"))
        unsubscribe()

    No persistence, no replay.
    """

    def __init__(self) -> None:
        self._handlers: list[tuple[Handler, tuple[type, ...] | None]] = []

    def subscribe(
        self,
        handler: Handler,
        *,
        event_types: tuple[type, ...] | None = None,
    ) -> Callable[[], None]:
        """Register ``handler``; returns a callable that removes it.

        ``event_types`` narrows delivery to those event classes.
        """
        entry = (handler, event_types)
        self._handlers.append(entry)

        def unsubscribe() -> None:
            try:
                self._handlers.remove(entry)
            except ValueError:
                pass  # already removed

        return unsubscribe

    def publish(self, event: Event) -> int:
        """Deliver ``event`` to every current handler. Returns failure count."""
        failures = 0
        # snapshot: handlers may unsubscribe while we iterate
        for handler, event_types in tuple(self._handlers):
            if event_types is not None and not isinstance(event, event_types):
                continue
            try:
                handler(event)
            except Exception:
                failures += 1
                logger.exception(
                    "event handler %r failed on %s", handler, type(event).__name__
                )
        return failures

    def __len__(self) -> int:
        return len(self._handlers)
