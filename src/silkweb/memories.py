"""Contextual memories attached to connections.

Append-only. Interactions that carry notes are captured automatically
once the log is attached to the session's ``EventBus``.
"""

from __future__ import annotations

import logging
import uuid
from datetime import datetime
from typing import Callable, Iterable

from .errors import ValidationError
from .events import ConnectionDeleted, Event, EventBus, InteractionAdded
from .types import Memory, MemoryType, as_utc, utcnow

logger = logging.getLogger(__name__)

AUTO_LOGGED_IMPORTANCE = 7


class MemoryLog:
    """In-memory, append-only list of ``Memory`` annotations."""

    def __init__(self, *, clock: Callable[[], datetime] = utcnow) -> None:
        self._clock = clock
        self._memories: list[Memory] = []

    def add(
        self,
        connection_id: str,
        type: MemoryType | str,
        content: str,
        *,
        importance: int = 5,
        tags: Iterable[str] = (),
        context: str | None = None,
    ) -> Memory:
        content = (content or "").strip()
        if not content:
            raise ValidationError("memory content must not be empty")
        try:
            kind = MemoryType(type)
        except ValueError:
            raise ValidationError(f"invalid memory type: {type!r}") from None

        memory = Memory(
            id=uuid.uuid4().hex,
            connection_id=connection_id,
            type=kind,
            content=content,
            importance=importance,
            tags=list(tags),
            timestamp=as_utc(self._clock()),
            context=context,
        )
        self._memories.append(memory)
        return memory

    def for_connection(self, connection_id: str) -> list[Memory]:
        """Memories for one connection, newest first."""
        found = [m for m in self._memories if m.connection_id == connection_id]
        found.sort(key=lambda m: m.timestamp, reverse=True)
        return found

    def latest(self, connection_id: str) -> Memory | None:
        found = self.for_connection(connection_id)
        return found[0] if found else None

    def restore(self, memories: Iterable[Memory]) -> None:
        self._memories = list(memories)

    def __iter__(self):
        return iter(list(self._memories))

    def __len__(self) -> int:
        return len(self._memories)

    # ────────────────────────────────────────────────────────────────
    # Event capture
    # ────────────────────────────────────────────────────────────────

    def attach(self, bus: EventBus) -> Callable[[], None]:
        """Capture notes from logged interactions. Returns the unsubscriber."""
        return bus.subscribe(
            self._on_event, event_types=(InteractionAdded, ConnectionDeleted)
        )

    def _on_event(self, event: Event) -> None:
        if isinstance(event, InteractionAdded):
            interaction = event.interaction
            if interaction.notes:
                self.add(
                    event.connection_id,
                    MemoryType.CONVERSATION,
                    interaction.notes,
                    importance=AUTO_LOGGED_IMPORTANCE,
                    tags=[interaction.type.value, "auto-logged"],
                )
        elif isinstance(event, ConnectionDeleted):
            before = len(self._memories)
            self._memories = [
                m for m in self._memories if m.connection_id != event.connection_id
            ]
            dropped = before - len(self._memories)
            if dropped:
                logger.debug("dropped %d memories for %s", dropped, event.connection_id)
