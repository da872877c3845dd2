"""Structured intents produced by ``IntentParser``.

Each variant carries only what could be pulled out of the text. Intents
are transient: produced and consumed within one request.
"""

from __future__ import annotations

import enum
import random
from dataclasses import dataclass
from datetime import datetime, timedelta
from typing import Union

from .types import InteractionType, Priority, Relationship


class DateQualifier(str, enum.Enum):
    """Coarse "when" slot. Resolved to a date at execution time."""

    TODAY = "today"
    YESTERDAY = "yesterday"
    THIS_WEEK = "this week"    # some day 0-6 days ago
    THIS_MONTH = "this month"  # some day 7-29 days ago

    def resolve(self, now: datetime, rng: random.Random | None = None) -> datetime:
        rng = rng or random.Random()
        if self is DateQualifier.YESTERDAY:
            return now - timedelta(days=1)
        if self is DateQualifier.THIS_WEEK:
            return now - timedelta(days=rng.randint(0, 6))
        if self is DateQualifier.THIS_MONTH:
            return now - timedelta(days=rng.randint(7, 29))
        return now


@dataclass(frozen=True)
class AddConnection:
    name: str
    relationship: Relationship = Relationship.FRIEND
    priority: Priority = Priority.P3
    phone: str | None = None
    email: str | None = None
    location: str | None = None
    interests: tuple[str, ...] = ()
    had_interaction: bool = False
    when: DateQualifier = DateQualifier.TODAY
    text: str = ""


@dataclass(frozen=True)
class LogInteraction:
    name: str
    when: DateQualifier = DateQualifier.TODAY
    interaction_type: InteractionType = InteractionType.SOCIAL
    text: str = ""


@dataclass(frozen=True)
class UpdatePriority:
    name: str
    priority: Priority
    text: str = ""


@dataclass(frozen=True)
class MoveCategory:
    """Category move. ``priority`` is set when the same phrase also names a tier."""

    name: str
    relationship: Relationship
    from_relationship: Relationship | None = None
    priority: Priority | None = None
    text: str = ""


@dataclass(frozen=True)
class QueryOverdue:
    text: str = ""


@dataclass(frozen=True)
class QueryByFilter:
    relationship: Relationship | None = None
    priority: Priority | None = None
    min_strength: int | None = None
    max_strength: int | None = None
    text: str = ""


@dataclass(frozen=True)
class DescribeConnection:
    name: str
    text: str = ""


@dataclass(frozen=True)
class QueryStats:
    relationship: Relationship | None = None
    text: str = ""


@dataclass(frozen=True)
class Unrecognized:
    text: str = ""


Intent = Union[
    AddConnection,
    LogInteraction,
    UpdatePriority,
    MoveCategory,
    QueryOverdue,
    QueryByFilter,
    DescribeConnection,
    QueryStats,
    Unrecognized,
]

MUTATING_INTENTS = (AddConnection, LogInteraction, UpdatePriority, MoveCategory)
