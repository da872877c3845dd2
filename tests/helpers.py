"""Test utilities — fixed clock, fake completion providers, store builders."""

from __future__ import annotations

from datetime import datetime, timedelta, timezone

from silkweb.ai import CompletionProvider
from silkweb.errors import ExternalServiceError
from silkweb.events import EventBus
from silkweb.store import ConnectionStore
from silkweb.types import ConnectionDraft, Priority, Relationship

NOW = datetime(2024, 6, 15, 12, 0, tzinfo=timezone.utc)


class FixedClock:
    """Settable clock. Call it to read, ``advance`` to move forward."""

    def __init__(self, now: datetime = NOW):
        self.now = now

    def __call__(self) -> datetime:
        return self.now

    def advance(self, days: int = 0, **kwargs) -> None:
        self.now += timedelta(days=days, **kwargs)


class Recorder:
    """Event handler that keeps everything it is sent."""

    def __init__(self):
        self.events = []

    def __call__(self, event) -> None:
        self.events.append(event)

    def types(self) -> list[str]:
        return [type(e).__name__ for e in self.events]


class FakeCompletionProvider(CompletionProvider):
    """Canned replies. Records every call. No external calls."""

    def __init__(self, reply: str = "Sounds great!"):
        self.reply = reply
        self.calls = []

    @property
    def name(self) -> str:
        return "fake"

    async def ask(self, message, summaries, history=()):
        self.calls.append((message, list(summaries), list(history)))
        return self.reply


class FailingCompletionProvider(CompletionProvider):
    """Always fails the way a real provider does on an outage."""

    def __init__(self):
        self.calls = 0

    @property
    def name(self) -> str:
        return "failing"

    async def ask(self, message, summaries, history=()):
        self.calls += 1
        raise ExternalServiceError(self.name, "service unavailable")


def make_store(clock: FixedClock | None = None, bus: EventBus | None = None) -> ConnectionStore:
    return ConnectionStore(bus or EventBus(), clock=clock or FixedClock())


def add_person(
    store: ConnectionStore,
    name: str,
    *,
    priority: Priority = Priority.P3,
    relationship: Relationship = Relationship.FRIEND,
    days_ago: int = 0,
    **kwargs,
):
    return store.add(ConnectionDraft(
        name=name,
        priority=priority,
        relationship=relationship,
        last_contact=store.now() - timedelta(days=days_ago),
        **kwargs,
    ))
