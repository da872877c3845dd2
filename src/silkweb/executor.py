"""Realize parsed intents against the store.

The executor resolves name fragments, performs the mutation or query
through ``ConnectionStore``, and reports a typed ``Outcome``. Expected
failures (unknown person, empty name) come back as outcomes, not
exceptions. All mutations go through the store, so each produces the
store's own event cascade and nothing else.
"""

from __future__ import annotations

import enum
import logging
import random
from dataclasses import dataclass, field
from typing import Any, Callable

from .errors import ValidationError
from .insights import (
    WEAK_STRENGTH,
    count_by_relationship,
    network_balance,
    network_stats,
    overdue,
)
from .intents import (
    AddConnection,
    DescribeConnection,
    Intent,
    LogInteraction,
    MoveCategory,
    QueryByFilter,
    QueryOverdue,
    QueryStats,
    Unrecognized,
    UpdatePriority,
)
from .memories import MemoryLog
from .store import ConnectionStore
from .strength import describe as describe_strength
from .types import Connection, ConnectionDraft, InteractionDraft, InteractionType

logger = logging.getLogger(__name__)

HELP_TEXT = """\
I can help with things like:
- "I hung out with Sarah yesterday"
- "Add my friend Sarah to my web, priority 1"
- "Who haven't I talked to in a while?"
- "Move Marcus to P1"
- "Move Alex from friends to work"
- "Show me my work connections"
- "Tell me about Jeremy"
- "Show me my stats\""""


class OutcomeStatus(str, enum.Enum):
    OK = "ok"
    NOT_FOUND = "not_found"
    INVALID = "invalid"
    HELP = "help"


@dataclass
class Outcome:
    """What happened when an intent was executed."""

    status: OutcomeStatus
    intent: Intent
    message: str
    connection: Connection | None = None          # the resolved person, if any
    candidates: list[Connection] = field(default_factory=list)   # every name match
    connections: list[Connection] = field(default_factory=list)  # query results
    data: dict[str, Any] = field(default_factory=dict)
    mutated: bool = False

    @property
    def ok(self) -> bool:
        return self.status is OutcomeStatus.OK


class CommandExecutor:
    """Executes intents against a ``ConnectionStore``.

    Name fragments resolve by case-insensitive, two-way substring match.
    When several people match, the first in store order is used and the
    full list is returned in ``Outcome.candidates`` so a caller can offer
    disambiguation.
    """

    def __init__(
        self,
        store: ConnectionStore,
        *,
        memories: MemoryLog | None = None,
        rng: random.Random | None = None,
    ):
        self._store = store
        self._memories = memories
        self._rng = rng or random.Random()
        self._handlers: dict[type, Callable[[Any], Outcome]] = {
            AddConnection: self._add,
            LogInteraction: self._log,
            UpdatePriority: self._update_priority,
            MoveCategory: self._move,
            QueryOverdue: self._overdue,
            QueryByFilter: self._filter,
            DescribeConnection: self._describe,
            QueryStats: self._stats,
            Unrecognized: self._help,
        }

    def execute(self, intent: Intent) -> Outcome:
        handler = self._handlers.get(type(intent))
        if handler is None:
            raise TypeError(f"not an intent: {intent!r}")
        outcome = handler(intent)
        logger.debug("execute: %s -> %s", type(intent).__name__, outcome.status.value)
        return outcome

    def resolve(self, fragment: str) -> list[Connection]:
        return self._store.find_by_name(fragment)

    def _not_found(self, intent: Intent, fragment: str) -> Outcome:
        return Outcome(
            OutcomeStatus.NOT_FOUND,
            intent,
            f'I couldn\'t find anyone named "{fragment}" in your connections. '
            "Check the spelling or add them first.",
            data={"fragment": fragment},
        )

    # ────────────────────────────────────────────────────────────────
    # Mutations
    # ────────────────────────────────────────────────────────────────

    def _add(self, intent: AddConnection) -> Outcome:
        when = intent.when.resolve(self._store.now(), self._rng) if intent.had_interaction else None

        notes = "Added via natural language."
        if intent.location:
            notes += f" From {intent.location}."
        if intent.interests:
            notes += f" Interests: {', '.join(intent.interests)}."

        try:
            connection = self._store.add(ConnectionDraft(
                name=intent.name,
                relationship=intent.relationship,
                priority=intent.priority,
                last_contact=when,
                notes=notes,
                tags=list(intent.interests),
                phone=intent.phone,
                email=intent.email,
            ))
        except ValidationError as exc:
            return Outcome(
                OutcomeStatus.INVALID,
                intent,
                "I need a name to add someone. Try something like: "
                '"Add my friend Sarah to my web, priority 1".',
                data={"error": str(exc)},
            )

        message = (
            f"Added {connection.name} to your web as {connection.relationship.value} "
            f"with {connection.priority.value} priority."
        )
        if when is not None:
            self._store.log_interaction(connection.id, InteractionDraft(
                type=InteractionType.SOCIAL,
                date=when,
                notes=f'Added via natural language: "{intent.text}"',
                quality=8,
            ))
            message += " I also logged your recent interaction."

        return Outcome(OutcomeStatus.OK, intent, message, connection=connection, mutated=True)

    def _log(self, intent: LogInteraction) -> Outcome:
        candidates = self.resolve(intent.name)
        if not candidates:
            return self._not_found(intent, intent.name)
        connection = candidates[0]

        date = intent.when.resolve(self._store.now(), self._rng)
        self._store.log_interaction(connection.id, InteractionDraft(
            type=intent.interaction_type,
            date=date,
            notes=f'Logged from chat: "{intent.text}"' if intent.text else None,
            quality=8,
        ))
        return Outcome(
            OutcomeStatus.OK,
            intent,
            f"Logged your {intent.interaction_type.value} with {connection.name}. "
            f"Strength is now {connection.strength}/5.",
            connection=connection,
            candidates=candidates,
            mutated=True,
        )

    def _update_priority(self, intent: UpdatePriority) -> Outcome:
        candidates = self.resolve(intent.name)
        if not candidates:
            return self._not_found(intent, intent.name)
        connection = candidates[0]

        if connection.priority == intent.priority:
            return Outcome(
                OutcomeStatus.OK,
                intent,
                f"{connection.name} is already {intent.priority.value}.",
                connection=connection,
                candidates=candidates,
            )

        self._store.update(connection.id, priority=intent.priority)
        return Outcome(
            OutcomeStatus.OK,
            intent,
            f"Moved {connection.name} to {intent.priority.value} priority. "
            f"You'll aim to contact them {intent.priority.cadence}.",
            connection=connection,
            candidates=candidates,
            mutated=True,
        )

    def _move(self, intent: MoveCategory) -> Outcome:
        candidates = self.resolve(intent.name)
        if not candidates:
            return self._not_found(intent, intent.name)
        connection = candidates[0]

        fields: dict[str, Any] = {}
        if connection.relationship != intent.relationship:
            fields["relationship"] = intent.relationship
        if intent.priority is not None and connection.priority != intent.priority:
            fields["priority"] = intent.priority

        if not fields:
            return Outcome(
                OutcomeStatus.OK,
                intent,
                f"{connection.name} is already in {intent.relationship.value}.",
                connection=connection,
                candidates=candidates,
            )

        self._store.update(connection.id, **fields)
        message = f"Moved {connection.name} to the {intent.relationship.value} category."
        if "priority" in fields:
            message += f" Priority is now {intent.priority.value}."
        return Outcome(
            OutcomeStatus.OK,
            intent,
            message,
            connection=connection,
            candidates=candidates,
            mutated=True,
        )

    # ────────────────────────────────────────────────────────────────
    # Read-only
    # ────────────────────────────────────────────────────────────────

    def _overdue(self, intent: QueryOverdue) -> Outcome:
        now = self._store.now()
        people = self._store.connections
        late = overdue(people, now)
        weak = [c for c in people if c.strength <= WEAK_STRENGTH and c not in late][:5]

        if not late and not weak:
            return Outcome(
                OutcomeStatus.OK,
                intent,
                "Your connections are in good shape. P1 people are weekly, "
                "P2 bi-weekly and P3 monthly. Keep it up!",
            )

        lines = ["Here are some people you should reach out to:"]
        if late:
            lines.append("Overdue:")
            lines += [
                f"- {c.name} ({c.priority.value}, {c.days_since_contact(now)} days ago)"
                for c in late[:5]
            ]
        if weak:
            lines.append("Low strength:")
            lines += [f"- {c.name} ({c.strength}/5)" for c in weak]

        return Outcome(
            OutcomeStatus.OK,
            intent,
            "\n".join(lines),
            connections=late + weak,
            data={"overdue": [c.id for c in late], "low_strength": [c.id for c in weak]},
        )

    def _filter(self, intent: QueryByFilter) -> Outcome:
        found = self._store.connections
        labels = []
        if intent.relationship is not None:
            found = [c for c in found if c.relationship == intent.relationship]
            labels.append(intent.relationship.value)
        if intent.priority is not None:
            found = [c for c in found if c.priority == intent.priority]
            labels.append(intent.priority.value)
        if intent.max_strength is not None:
            found = [c for c in found if c.strength <= intent.max_strength]
            labels.append("low-strength")
        if intent.min_strength is not None:
            found = [c for c in found if c.strength >= intent.min_strength]
            labels.append("strong")

        label = " ".join(labels) or "matching"
        if not found:
            message = f"You don't have any {label} connections yet."
        else:
            people = ", ".join(f"{c.name} ({c.strength}/5, {c.priority.value})" for c in found)
            message = f"Your {label} connections: {people}. That's {len(found)} in total."
        return Outcome(OutcomeStatus.OK, intent, message, connections=found)

    def _describe(self, intent: DescribeConnection) -> Outcome:
        candidates = self.resolve(intent.name)
        if not candidates:
            return self._not_found(intent, intent.name)
        c = candidates[0]

        days = self._store.days_since_contact(c)
        lines = [
            f"Here's what I know about {c.name}:",
            f"- Relationship: {c.relationship.value}",
            f"- Priority: {c.priority.value} ({c.priority.cadence} contact)",
            f"- Strength: {c.strength}/5 ({describe_strength(c.strength)})",
            f"- Last contact: {'today' if days == 0 else f'{days} days ago'}",
            f"- Total interactions: {len(c.interactions)}",
        ]
        if c.phone:
            lines.append(f"- Phone: {c.phone}")
        if c.email:
            lines.append(f"- Email: {c.email}")
        if c.tags:
            lines.append(f"- Tags: {', '.join(c.tags)}")
        if self._memories is not None:
            for memory in self._memories.for_connection(c.id)[:3]:
                lines.append(f"- Remember ({memory.type.value}): {memory.content}")
        lines.append("")
        lines.append(c.notes or "No notes yet.")

        return Outcome(
            OutcomeStatus.OK,
            intent,
            "\n".join(lines),
            connection=c,
            candidates=candidates,
            data={"days_since_contact": days},
        )

    def _stats(self, intent: QueryStats) -> Outcome:
        people = self._store.connections
        stats = network_stats(people)
        message = stats.format()
        if intent.relationship is not None:
            count = count_by_relationship(people, intent.relationship)
            message = f"You have {count} {intent.relationship.value} connection(s).\n\n{message}"
        return Outcome(
            OutcomeStatus.OK,
            intent,
            message,
            data={"stats": stats, "recommendations": network_balance(stats)},
        )

    def _help(self, intent: Unrecognized) -> Outcome:
        return Outcome(OutcomeStatus.HELP, intent, HELP_TEXT)
