"""Reminder feed.

Reminders are derived, never stored: ``ReminderSynthesizer.synthesize``
recomputes the list from the current store state plus the latest batch
of AI suggestion strings. Three signals feed it:

    overdue        days since contact > the connection's own frequency
    due_soon       days since contact >= frequency - 2 (and not overdue)
    ai_suggestion  free text that resolves to a known connection

Each connection gets at most one reminder. The list is totally ordered
by (priority desc, due date asc), then type and name.
"""

from __future__ import annotations

import enum
import logging
import re
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Callable, Iterable, Sequence

from .events import Event, EventBus
from .insights import WEAK_STRENGTH
from .memories import MemoryLog
from .store import ConnectionStore
from .types import Connection, MemoryType, Priority, as_utc, utcnow

logger = logging.getLogger(__name__)

DUE_SOON_WINDOW = 2  # days before the frequency is reached

# Captured names must start with a capital letter.
_SUGGESTION_PATTERNS = (
    re.compile(r"(?i:reach\s+out\s+to)\s+([A-Z][\w'-]*)"),
    re.compile(r"\b([A-Z][\w'-]*)\s+\("),
    re.compile(r"(?i:\bwith)\s+([A-Z][\w'-]*)"),
    re.compile(r"(?i:\b(?:call|text|message|email)(?:ing)?)\s+([A-Z][\w'-]*)"),
)


class ReminderType(str, enum.Enum):
    OVERDUE = "overdue"
    DUE_SOON = "due_soon"
    AI_SUGGESTION = "ai_suggestion"


class ReminderPriority(str, enum.Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"

    @property
    def rank(self) -> int:
        return _RANK[self]


_RANK = {ReminderPriority.HIGH: 3, ReminderPriority.MEDIUM: 2, ReminderPriority.LOW: 1}

# overdue > AI suggestion > due soon, all else equal
_TYPE_WEIGHT = {
    ReminderType.OVERDUE: 2,
    ReminderType.AI_SUGGESTION: 1,
    ReminderType.DUE_SOON: 0,
}
_TYPE_ORDER = list(_TYPE_WEIGHT)


class ReminderView(str, enum.Enum):
    ALL = "all"
    OVERDUE = "overdue"
    TODAY = "today"
    UPCOMING = "upcoming"
    AI = "ai"


@dataclass
class Reminder:
    id: str
    connection_id: str
    connection_name: str
    type: ReminderType
    message: str
    due_date: datetime
    priority: ReminderPriority
    action_suggestion: str | None = None
    ai_rationale: str | None = None  # AI text naming this person, if any

    def sort_key(self) -> tuple:
        return (
            -self.priority.rank,
            self.due_date,
            _TYPE_ORDER.index(self.type),
            self.connection_name.lower(),
        )


def reminder_priority(type: ReminderType, connection: Connection) -> ReminderPriority:
    """Combine the reminder type with the connection's tier and health."""
    score = _TYPE_WEIGHT[type]
    if connection.priority == Priority.P1:
        score += 1
    if connection.strength <= WEAK_STRENGTH:
        score += 1
    if score >= 3:
        return ReminderPriority.HIGH
    if score == 2:
        return ReminderPriority.MEDIUM
    return ReminderPriority.LOW


class ReminderSynthesizer:
    """Builds the ranked reminder feed for a store.

    Usage:
        reminders = ReminderSynthesizer(store, memories)
        reminders.set_suggestions(["Reach out to Sarah - it's been 10 days!"])
        for r in reminders.synthesize():
            print(r.priority.value, r.message)
    """

    def __init__(self, store: ConnectionStore, memories: MemoryLog | None = None):
        self._store = store
        self._memories = memories
        self._suggestions: list[str] = []

    @property
    def suggestions(self) -> list[str]:
        return list(self._suggestions)

    def set_suggestions(self, suggestions: Iterable[str]) -> None:
        """Replace the latest AI suggestion batch."""
        self._suggestions = [s for s in suggestions if s and s.strip()]

    def synthesize(
        self,
        ai_suggestions: Sequence[str] | None = None,
        *,
        now: datetime | None = None,
    ) -> list[Reminder]:
        now = as_utc(now) if now is not None else self._store.now()
        suggestions = self._suggestions if ai_suggestions is None else list(ai_suggestions)

        best: dict[str, Reminder] = {}
        for connection in self._store:
            reminder = self._structural(connection, now)
            if reminder is not None:
                best[connection.id] = reminder

        for index, text in enumerate(suggestions):
            connection = self.resolve_suggestion(text)
            if connection is None:
                logger.debug("synthesize: dropping unresolved suggestion %r", text)
                continue
            current = best.get(connection.id)
            if current is not None and current.type is not ReminderType.AI_SUGGESTION:
                candidate = self._from_suggestion(connection, text, index, now)
                if candidate.sort_key() < current.sort_key():
                    best[connection.id] = candidate
                else:
                    current.ai_rationale = current.ai_rationale or text
            elif current is None:
                best[connection.id] = self._from_suggestion(connection, text, index, now)

        return sorted(best.values(), key=Reminder.sort_key)

    def resolve_suggestion(self, text: str) -> Connection | None:
        """Find the connection a free-text suggestion is about, if any."""
        for pattern in _SUGGESTION_PATTERNS:
            for match in pattern.finditer(text):
                found = self._by_name_token(match.group(1))
                if found is not None:
                    return found

        lowered = text.lower()
        people = self._store.connections
        for connection in people:
            if re.search(rf"\b{re.escape(connection.name.lower())}\b", lowered):
                return connection
        for connection in people:
            first = connection.name.split()[0].lower()
            if re.search(rf"\b{re.escape(first)}\b", lowered):
                return connection
        return None

    def _by_name_token(self, word: str) -> Connection | None:
        # whole-word only: "The" must not resolve to "Heather"
        needle = word.lower()
        for connection in self._store:
            if needle in connection.name.lower().split():
                return connection
        return None

    def watch(self, bus: EventBus, listener: Callable[[list[Reminder]], None]) -> Callable[[], None]:
        """Recompute the feed on every store event. Returns the unsubscriber."""
        def on_event(event: Event) -> None:
            listener(self.synthesize())

        return bus.subscribe(on_event)

    # ────────────────────────────────────────────────────────────────
    # Internals
    # ────────────────────────────────────────────────────────────────

    def _structural(self, connection: Connection, now: datetime) -> Reminder | None:
        days = connection.days_since_contact(now)
        frequency = connection.contact_frequency
        due = connection.last_contact + timedelta(days=frequency)

        if days > frequency:
            message = f"You haven't contacted {connection.name} in {days} days."
            action = "Give them a call" if connection.priority == Priority.P1 else "Send a quick text"
            memory = self._memories.latest(connection.id) if self._memories is not None else None
            if memory is not None and memory.type is MemoryType.LIFE_EVENT:
                message += f" Last time you talked about: {memory.content}"
                action = "Follow up on their situation"
            elif memory is not None and memory.type is MemoryType.INTEREST and memory.tags:
                action = f"Talk about {memory.tags[0]}"
            kind = ReminderType.OVERDUE
        elif days >= frequency - DUE_SOON_WINDOW:
            left = frequency - days
            message = f"Time to reach out to {connection.name} in {left} day{'s' if left != 1 else ''}"
            action = "Plan something fun"
            kind = ReminderType.DUE_SOON
        else:
            return None

        return Reminder(
            id=f"{kind.value}-{connection.id}",
            connection_id=connection.id,
            connection_name=connection.name,
            type=kind,
            message=message,
            due_date=due,
            priority=reminder_priority(kind, connection),
            action_suggestion=action,
        )

    def _from_suggestion(self, connection: Connection, text: str, index: int, now: datetime) -> Reminder:
        return Reminder(
            id=f"ai-{index}-{connection.id}",
            connection_id=connection.id,
            connection_name=connection.name,
            type=ReminderType.AI_SUGGESTION,
            message=text,
            due_date=now,
            priority=reminder_priority(ReminderType.AI_SUGGESTION, connection),
            action_suggestion="Follow the suggestion",
            ai_rationale=text,
        )


def filter_reminders(
    reminders: Iterable[Reminder],
    view: ReminderView | str = ReminderView.ALL,
    now: datetime | None = None,
) -> list[Reminder]:
    """Narrow a feed to one of the standard views."""
    view = ReminderView(view)
    now = as_utc(now) if now is not None else utcnow()
    if view is ReminderView.OVERDUE:
        return [r for r in reminders if r.type is ReminderType.OVERDUE]
    if view is ReminderView.TODAY:
        return [r for r in reminders if r.due_date.date() == now.date()]
    if view is ReminderView.UPCOMING:
        return [r for r in reminders if r.due_date > now]
    if view is ReminderView.AI:
        return [r for r in reminders if r.type is ReminderType.AI_SUGGESTION]
    return list(reminders)
