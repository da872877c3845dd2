"""The connection store.

Single authoritative in-memory collection of connections and their
interactions for a session. Every mutation re-grades strength where
needed and publishes to the ``EventBus`` before returning, so a
subscriber always sees the fully-updated state.
"""

from __future__ import annotations

import enum
import logging
import random
import uuid
from contextlib import contextmanager
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Any, Callable, Iterable, Iterator, Mapping

from .errors import NotFoundError, ValidationError
from .events import (
    ConnectionAdded,
    ConnectionDeleted,
    ConnectionUpdated,
    EventBus,
    InteractionAdded,
    StrengthUpdated,
)
from .strength import strength
from .types import (
    Connection,
    ConnectionDraft,
    Interaction,
    InteractionDraft,
    InteractionRecord,
    InteractionType,
    Mood,
    Priority,
    Relationship,
    as_utc,
    days_between,
    utcnow,
)

logger = logging.getLogger(__name__)

UPDATABLE_FIELDS = frozenset({
    "name",
    "relationship",
    "priority",
    "last_contact",
    "contact_frequency",
    "notes",
    "tags",
    "phone",
    "email",
})

_ONBOARDING_NOTES = (
    "Great catch-up conversation",
    "Quick check-in call",
    "Coffee meetup",
    "Lunch together",
    "Hung out and had fun",
)
_ONBOARDING_TYPES = (
    InteractionType.CALL,
    InteractionType.TEXT,
    InteractionType.MEETING,
    InteractionType.SOCIAL,
)
_ONBOARDING_BLURB = {
    Relationship.FAMILY: "Family member",
    Relationship.FRIEND: "Good friend",
}


def _new_id() -> str:
    return uuid.uuid4().hex


@dataclass
class OnboardingPerson:
    """One person collected during onboarding."""

    name: str
    priority: Priority | None = None
    relationship: Relationship | None = None
    recent_interaction: str | None = None  # "this-week", "this-month", or None

    @classmethod
    def from_mapping(cls, data: Mapping[str, Any]) -> OnboardingPerson:
        """Accept snake_case or the session JSON's camelCase keys."""
        hint = data.get("recent_interaction", data.get("recentInteraction"))
        priority = data.get("priority")
        relationship = data.get("relationship")
        return cls(
            name=str(data.get("name") or ""),
            priority=_coerce(Priority, priority, "priority") if priority else None,
            relationship=_coerce(Relationship, relationship, "relationship") if relationship else None,
            recent_interaction=hint or None,
        )


class ConnectionStore:
    """In-memory connection collection with evented mutations.

    Usage:
        bus = EventBus()
        store = ConnectionStore(bus)

        sarah = store.add(ConnectionDraft(name="Sarah Chen", priority=Priority.P1))
        store.log_interaction(sarah.id, InteractionDraft(type=InteractionType.CALL))
        store.update(sarah.id, relationship=Relationship.WORK)

        store.find_by_name("sar")        # -> [sarah]
        store.all_interactions()         # newest first
    """

    def __init__(
        self,
        bus: EventBus | None = None,
        *,
        clock: Callable[[], datetime] = utcnow,
        id_factory: Callable[[], str] = _new_id,
    ):
        self._bus = bus if bus is not None else EventBus()
        self._clock = clock
        self._new_id = id_factory
        self._connections: dict[str, Connection] = {}
        self._mutating = False

    @property
    def bus(self) -> EventBus:
        return self._bus

    def now(self) -> datetime:
        return as_utc(self._clock())

    def days_since_contact(self, connection: Connection) -> int:
        return days_between(connection.last_contact, self.now())

    def _grade(self, connection: Connection) -> int:
        return strength(self.days_since_contact(connection), connection.priority)

    @contextmanager
    def _mutation(self, operation: str) -> Iterator[None]:
        # Handlers run inside the mutation; writing back from one would
        # expose a half-dispatched state to later handlers.
        if self._mutating:
            raise RuntimeError(f"{operation}: store mutated from inside an event handler")
        self._mutating = True
        try:
            yield
        finally:
            self._mutating = False

    # ────────────────────────────────────────────────────────────────
    # Write operations
    # ────────────────────────────────────────────────────────────────

    def add(self, draft: ConnectionDraft) -> Connection:
        """Create a connection from ``draft``. Emits ``ConnectionAdded``."""
        name = (draft.name or "").strip()
        if not name:
            raise ValidationError("connection name must not be empty")
        frequency = _check_frequency(draft.contact_frequency)

        with self._mutation("add"):
            now = self.now()
            connection = Connection(
                id=self._new_id(),
                name=name,
                relationship=_coerce(Relationship, draft.relationship, "relationship"),
                priority=_coerce(Priority, draft.priority, "priority"),
                last_contact=as_utc(draft.last_contact) if draft.last_contact else now,
                custom_frequency=frequency,
                created_at=now,
                notes=draft.notes,
                tags=list(draft.tags),
                phone=draft.phone or None,
                email=draft.email or None,
            )
            connection.strength = self._grade(connection)
            self._connections[connection.id] = connection
            logger.debug("add: %s (%s) strength=%d", connection.name, connection.id, connection.strength)
            self._bus.publish(ConnectionAdded(connection.id, connection.name))
        return connection

    def update(self, connection_id: str, **fields: Any) -> Connection:
        """Merge ``fields`` into a connection.

        Emits ``ConnectionUpdated``, then ``StrengthUpdated`` when
        ``last_contact`` or ``priority`` changed. Raises ``NotFoundError``
        for an unknown id.
        """
        unknown = set(fields) - UPDATABLE_FIELDS
        if unknown:
            raise ValidationError(f"cannot update field(s): {', '.join(sorted(unknown))}")

        connection = self._connections.get(connection_id)
        if connection is None:
            raise NotFoundError(connection_id)

        values = self._validated(fields)

        with self._mutation("update"):
            changes: dict[str, Any] = {}
            for key, value in values.items():
                attr = "custom_frequency" if key == "contact_frequency" else key
                if getattr(connection, attr) != value:
                    setattr(connection, attr, value)
                    changes[key] = value

            regrade = "priority" in changes or "last_contact" in changes
            previous = connection.strength
            if regrade:
                connection.strength = self._grade(connection)

            self._bus.publish(ConnectionUpdated(connection_id, changes))
            if regrade:
                self._bus.publish(StrengthUpdated(connection_id, previous, connection.strength))
        return connection

    def remove(self, connection_id: str) -> bool:
        """Delete a connection and its interactions. Idempotent.

        Returns False (and emits nothing) when the id is unknown.
        """
        with self._mutation("remove"):
            connection = self._connections.pop(connection_id, None)
            if connection is None:
                return False
            logger.debug("remove: %s (%d interactions)", connection.name, len(connection.interactions))
            self._bus.publish(ConnectionDeleted(connection_id))
        return True

    def log_interaction(self, connection_id: str, draft: InteractionDraft) -> Interaction:
        """Record an interaction.

        ``last_contact`` becomes the later of its current value and the
        newest interaction on record, so back-dated entries never pull it
        backwards. Emits ``InteractionAdded`` then ``StrengthUpdated``.
        """
        connection = self._connections.get(connection_id)
        if connection is None:
            raise NotFoundError(connection_id)
        if draft.quality is not None and not 1 <= draft.quality <= 10:
            raise ValidationError(f"quality must be 1-10, got {draft.quality}")
        if draft.duration is not None and draft.duration < 0:
            raise ValidationError(f"duration must be >= 0, got {draft.duration}")

        with self._mutation("log_interaction"):
            interaction = Interaction(
                id=self._new_id(),
                connection_id=connection_id,
                type=_coerce(InteractionType, draft.type, "type"),
                date=as_utc(draft.date) if draft.date else self.now(),
                notes=draft.notes or None,
                quality=draft.quality,
                mood=_coerce(Mood, draft.mood, "mood") if draft.mood else None,
                topics=tuple(draft.topics),
                duration=draft.duration,
            )
            connection.interactions.insert(0, interaction)
            newest = max(i.date for i in connection.interactions)
            connection.last_contact = max(connection.last_contact, newest)

            previous = connection.strength
            connection.strength = self._grade(connection)

            self._bus.publish(InteractionAdded(connection_id, interaction))
            self._bus.publish(StrengthUpdated(connection_id, previous, connection.strength))
        return interaction

    def refresh_strengths(self) -> int:
        """Re-grade everyone against the current clock.

        Emits ``StrengthUpdated`` only for grades that moved. Returns how
        many moved.
        """
        with self._mutation("refresh_strengths"):
            moved = []
            for connection in self._connections.values():
                previous = connection.strength
                connection.strength = self._grade(connection)
                if connection.strength != previous:
                    moved.append((connection.id, previous, connection.strength))
            for connection_id, previous, grade in moved:
                self._bus.publish(StrengthUpdated(connection_id, previous, grade))
        if moved:
            logger.info("refresh_strengths: %d of %d grades changed", len(moved), len(self._connections))
        return len(moved)

    # ────────────────────────────────────────────────────────────────
    # Seeding
    # ────────────────────────────────────────────────────────────────

    def initialize_from(
        self,
        people: Iterable[OnboardingPerson | Mapping[str, Any]],
        *,
        rng: random.Random | None = None,
    ) -> list[Connection]:
        """Seed the store from onboarding answers.

        Unset priority is P3, unset relationship is "other". A
        "this-week" hint places one interaction 0-6 days ago, "this-month"
        7-29 days ago; no hint puts last contact 30 days back.
        """
        rng = rng or random.Random()
        created = []
        for raw in people:
            person = raw if isinstance(raw, OnboardingPerson) else OnboardingPerson.from_mapping(raw)
            if not person.name.strip():
                logger.warning("initialize_from: skipping onboarding entry with no name")
                continue

            priority = person.priority or Priority.P3
            relationship = person.relationship or Relationship.OTHER
            hint = (person.recent_interaction or "").replace("_", "-").replace(" ", "-").lower()

            if hint == "this-week":
                days_ago = rng.randint(0, 6)
            elif hint == "this-month":
                days_ago = rng.randint(7, 29)
            else:
                hint = ""
                days_ago = 30
            contact = self.now() - timedelta(days=days_ago)

            blurb = _ONBOARDING_BLURB.get(relationship, "Someone important")
            connection = self.add(ConnectionDraft(
                name=person.name,
                relationship=relationship,
                priority=priority,
                last_contact=contact,
                notes=f"Added during onboarding. {blurb} in my life.",
                tags=[relationship.value, priority.value.lower()],
            ))
            if hint:
                self.log_interaction(connection.id, InteractionDraft(
                    type=rng.choice(_ONBOARDING_TYPES),
                    date=contact,
                    notes=rng.choice(_ONBOARDING_NOTES),
                    quality=rng.randint(8, 10),
                ))
            created.append(connection)

        logger.info("initialize_from: seeded %d connections", len(created))
        return created

    def restore(self, connections: Iterable[Connection]) -> int:
        """Replace the collection with previously persisted connections.

        Strength is re-graded against the current clock. Emits
        ``ConnectionAdded`` per connection.
        """
        with self._mutation("restore"):
            self._connections = {}
            for connection in connections:
                connection.strength = self._grade(connection)
                self._connections[connection.id] = connection
            for connection in self._connections.values():
                self._bus.publish(ConnectionAdded(connection.id, connection.name))
        return len(self._connections)

    # ────────────────────────────────────────────────────────────────
    # Queries
    # ────────────────────────────────────────────────────────────────

    def get(self, connection_id: str) -> Connection | None:
        return self._connections.get(connection_id)

    def find_by_name(self, fragment: str) -> list[Connection]:
        """All connections matching ``fragment``, in store order.

        Case-insensitive substring match in both directions: "sar"
        finds "Sarah Chen", and "Sarah Chen" finds a stored "Sarah".
        """
        needle = " ".join(fragment.lower().split())
        if not needle:
            return []
        return [
            c for c in self._connections.values()
            if needle in c.name.lower() or c.name.lower() in needle
        ]

    def find_one_by_name(self, fragment: str) -> Connection | None:
        """First match in store order. Ambiguity is not resolved here."""
        matches = self.find_by_name(fragment)
        return matches[0] if matches else None

    def by_relationship(self, relationship: Relationship | str) -> list[Connection]:
        rel = Relationship(relationship)
        return [c for c in self._connections.values() if c.relationship == rel]

    def by_priority(self, priority: Priority | str) -> list[Connection]:
        tier = Priority(priority)
        return [c for c in self._connections.values() if c.priority == tier]

    def by_strength(self, grade: int) -> list[Connection]:
        return [c for c in self._connections.values() if c.strength == grade]

    def all_interactions(self) -> list[InteractionRecord]:
        """Every interaction across every connection, newest first."""
        records = [
            InteractionRecord(interaction=i, connection_id=c.id, connection_name=c.name)
            for c in self._connections.values()
            for i in c.interactions
        ]
        records.sort(key=lambda r: r.date, reverse=True)
        return records

    @property
    def connections(self) -> list[Connection]:
        return list(self._connections.values())

    def __iter__(self) -> Iterator[Connection]:
        return iter(list(self._connections.values()))

    def __len__(self) -> int:
        return len(self._connections)

    def __contains__(self, connection_id: object) -> bool:
        return connection_id in self._connections

    # ────────────────────────────────────────────────────────────────
    # Validation
    # ────────────────────────────────────────────────────────────────

    def _validated(self, fields: Mapping[str, Any]) -> dict[str, Any]:
        values: dict[str, Any] = {}
        for key, value in fields.items():
            if key == "name":
                value = (value or "").strip()
                if not value:
                    raise ValidationError("connection name must not be empty")
            elif key == "relationship":
                value = _coerce(Relationship, value, key)
            elif key == "priority":
                value = _coerce(Priority, value, key)
            elif key == "last_contact":
                if not isinstance(value, datetime):
                    raise ValidationError("last_contact must be a datetime")
                value = as_utc(value)
            elif key == "contact_frequency":
                value = _check_frequency(value)
            elif key == "tags":
                value = list(value)
            values[key] = value
        return values


def _coerce(enum_cls: type, value: Any, label: str) -> Any:
    if isinstance(value, str) and not isinstance(value, enum.Enum):
        value = value.strip()
        value = value.upper() if enum_cls is Priority else value.lower()
    try:
        return enum_cls(value)
    except ValueError:
        raise ValidationError(f"invalid {label}: {value!r}") from None


def _check_frequency(value: int | None) -> int | None:
    if value is not None and value < 1:
        raise ValidationError(f"contact_frequency must be >= 1 day, got {value}")
    return value
