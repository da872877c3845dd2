"""Core domain types for silkweb.

These are plain Python objects with no framework dependencies.
They are the lingua franca between the store, the parser, the
reminder feed, and your code.
"""

from __future__ import annotations

import enum
from dataclasses import dataclass, field
from datetime import datetime, timezone


def utcnow() -> datetime:
    return datetime.now(timezone.utc)


def as_utc(value: datetime) -> datetime:
    """Naive datetimes are taken to be UTC."""
    if value.tzinfo is None:
        return value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc)


def days_between(earlier: datetime, later: datetime) -> int:
    """Whole days elapsed from ``earlier`` to ``later``, never negative."""
    delta = as_utc(later) - as_utc(earlier)
    return max(0, delta.days)


class Priority(str, enum.Enum):
    """Target contact cadence bucket."""

    P1 = "P1"  # weekly
    P2 = "P2"  # bi-weekly
    P3 = "P3"  # monthly

    @property
    def interval_days(self) -> int:
        return _INTERVALS[self]

    @property
    def cadence(self) -> str:
        return _CADENCE[self]


_INTERVALS = {Priority.P1: 7, Priority.P2: 14, Priority.P3: 30}
_CADENCE = {Priority.P1: "weekly", Priority.P2: "bi-weekly", Priority.P3: "monthly"}


class Relationship(str, enum.Enum):
    FAMILY = "family"
    FRIEND = "friend"
    WORK = "work"
    SCHOOL = "school"
    OTHER = "other"


class InteractionType(str, enum.Enum):
    CALL = "call"
    TEXT = "text"
    EMAIL = "email"
    MEETING = "meeting"
    SOCIAL = "social"


class Mood(str, enum.Enum):
    GREAT = "great"
    GOOD = "good"
    NEUTRAL = "neutral"
    DIFFICULT = "difficult"


class MemoryType(str, enum.Enum):
    """What kind of annotation a memory is."""

    CONVERSATION = "conversation"  # something that was talked about
    INTEREST = "interest"          # hobbies, topics they care about
    LIFE_EVENT = "life_event"      # moves, new jobs, births
    PREFERENCE = "preference"      # how they like to be contacted
    GOAL = "goal"                  # something they are working towards
    PATTERN = "pattern"            # recurring behaviour


@dataclass(frozen=True)
class Interaction:
    """A discrete contact event. Never mutated after creation."""

    id: str
    connection_id: str
    type: InteractionType
    date: datetime
    notes: str | None = None
    quality: int | None = None       # 1-10
    mood: Mood | None = None
    topics: tuple[str, ...] = ()
    duration: int | None = None      # minutes


@dataclass
class Connection:
    """A tracked person.

    ``strength`` is owned by the store: it is re-graded from
    ``last_contact`` and ``priority`` on every mutation that touches
    either, and is not an init argument.
    """

    # ── identity ────────────────────────────────────────────────────
    id: str
    name: str

    # ── classification ──────────────────────────────────────────────
    relationship: Relationship = Relationship.OTHER
    priority: Priority = Priority.P3

    # ── temporal ────────────────────────────────────────────────────
    last_contact: datetime = field(default_factory=utcnow)
    custom_frequency: int | None = None   # None = derived from priority
    created_at: datetime = field(default_factory=utcnow)

    # ── free-form ───────────────────────────────────────────────────
    notes: str = ""
    tags: list[str] = field(default_factory=list)
    phone: str | None = None
    email: str | None = None

    # ── owned ───────────────────────────────────────────────────────
    interactions: list[Interaction] = field(default_factory=list)

    # ── derived ─────────────────────────────────────────────────────
    strength: int = field(default=3, init=False)

    @property
    def contact_frequency(self) -> int:
        if self.custom_frequency is not None:
            return self.custom_frequency
        return self.priority.interval_days

    @property
    def history(self) -> list[Interaction]:
        """Interactions, most recent first."""
        return sorted(self.interactions, key=lambda i: i.date, reverse=True)

    def days_since_contact(self, now: datetime) -> int:
        return days_between(self.last_contact, now)


@dataclass(frozen=True)
class InteractionRecord:
    """An interaction flattened with its owner, for cross-connection views."""

    interaction: Interaction
    connection_id: str
    connection_name: str

    @property
    def date(self) -> datetime:
        return self.interaction.date


@dataclass
class Memory:
    """A short append-only annotation tied to a connection."""

    id: str
    connection_id: str
    type: MemoryType
    content: str
    importance: int = 5
    tags: list[str] = field(default_factory=list)
    timestamp: datetime = field(default_factory=utcnow)
    context: str | None = None


@dataclass
class ConnectionDraft:
    """Caller-supplied fields for ``ConnectionStore.add``."""

    name: str
    relationship: Relationship = Relationship.FRIEND
    priority: Priority = Priority.P3
    last_contact: datetime | None = None   # None = now
    contact_frequency: int | None = None   # explicit override
    notes: str = ""
    tags: list[str] = field(default_factory=list)
    phone: str | None = None
    email: str | None = None


@dataclass
class InteractionDraft:
    """Caller-supplied fields for ``ConnectionStore.log_interaction``."""

    type: InteractionType = InteractionType.SOCIAL
    date: datetime | None = None           # None = now
    notes: str | None = None
    quality: int | None = None
    mood: Mood | None = None
    topics: list[str] = field(default_factory=list)
    duration: int | None = None
