"""CommandExecutor — resolution, outcomes, one event cascade per mutation."""

import random

import pytest

from silkweb.executor import HELP_TEXT, CommandExecutor, OutcomeStatus
from silkweb.intents import (
    AddConnection,
    DateQualifier,
    DescribeConnection,
    LogInteraction,
    MoveCategory,
    QueryByFilter,
    QueryOverdue,
    QueryStats,
    Unrecognized,
    UpdatePriority,
)
from silkweb.memories import MemoryLog
from silkweb.types import InteractionType, MemoryType, Priority, Relationship
from tests.helpers import FixedClock, Recorder, add_person, make_store


@pytest.fixture
def store():
    return make_store(FixedClock())


@pytest.fixture
def memories(store):
    log = MemoryLog(clock=store.now)
    log.attach(store.bus)
    return log


@pytest.fixture
def executor(store, memories):
    return CommandExecutor(store, memories=memories, rng=random.Random(0))


@pytest.fixture
def rec(store):
    r = Recorder()
    store.bus.subscribe(r)
    return r


class TestUpdatePriority:
    def test_fragment_resolves_and_regrades(self, store, executor, rec):
        sarah = add_person(store, "Sarah Chen", priority=Priority.P3, days_ago=10)
        assert sarah.strength == 5
        rec.events.clear()

        outcome = executor.execute(UpdatePriority("sar", Priority.P1))

        assert outcome.ok
        assert outcome.mutated
        assert outcome.connection is sarah
        assert sarah.priority is Priority.P1
        assert rec.types() == ["ConnectionUpdated", "StrengthUpdated"]
        assert rec.events[1].previous == 5
        assert rec.events[1].strength == 3
        assert "weekly" in outcome.message

    def test_unknown_name(self, store, executor, rec):
        add_person(store, "Sarah Chen")
        rec.events.clear()
        outcome = executor.execute(UpdatePriority("Zed", Priority.P1))
        assert outcome.status is OutcomeStatus.NOT_FOUND
        assert "Zed" in outcome.message
        assert outcome.data["fragment"] == "Zed"
        assert rec.events == []

    def test_already_at_priority_is_not_a_mutation(self, store, executor, rec):
        add_person(store, "Sarah", priority=Priority.P1)
        rec.events.clear()
        outcome = executor.execute(UpdatePriority("Sarah", Priority.P1))
        assert outcome.ok
        assert not outcome.mutated
        assert rec.events == []

    def test_ambiguous_picks_first_and_exposes_candidates(self, store, executor):
        first = add_person(store, "Sarah Chen")
        second = add_person(store, "Sarah Park")
        outcome = executor.execute(UpdatePriority("sarah", Priority.P2))
        assert outcome.connection is first
        assert outcome.candidates == [first, second]
        assert second.priority is Priority.P3


class TestMoveCategory:
    def test_moves_relationship(self, store, executor, rec):
        alex = add_person(store, "Alex", relationship=Relationship.FRIEND)
        rec.events.clear()
        outcome = executor.execute(MoveCategory("Alex", Relationship.WORK, Relationship.FRIEND))
        assert outcome.ok
        assert alex.relationship is Relationship.WORK
        assert rec.types() == ["ConnectionUpdated"]

    def test_tier_applied_in_one_update(self, store, executor, rec):
        alex = add_person(store, "Alex")
        rec.events.clear()
        executor.execute(MoveCategory("Alex", Relationship.WORK, priority=Priority.P1))
        assert alex.priority is Priority.P1
        assert rec.types() == ["ConnectionUpdated", "StrengthUpdated"]
        assert set(rec.events[0].changes) == {"relationship", "priority"}

    def test_not_found(self, executor):
        outcome = executor.execute(MoveCategory("Ghost", Relationship.WORK))
        assert outcome.status is OutcomeStatus.NOT_FOUND


class TestLogInteraction:
    def test_logs_and_captures_memory(self, store, executor, memories, rec):
        sarah = add_person(store, "Sarah", priority=Priority.P1, days_ago=20)
        rec.events.clear()

        outcome = executor.execute(LogInteraction(
            "Sarah", DateQualifier.YESTERDAY, InteractionType.CALL, text="I called Sarah yesterday",
        ))

        assert outcome.ok
        assert rec.types() == ["InteractionAdded", "StrengthUpdated"]
        [interaction] = sarah.interactions
        assert interaction.type is InteractionType.CALL
        assert interaction.quality == 8
        assert store.days_since_contact(sarah) == 1
        assert sarah.strength == 5

        [memory] = memories.for_connection(sarah.id)
        assert memory.type is MemoryType.CONVERSATION
        assert "I called Sarah yesterday" in memory.content
        assert memory.tags == ["call", "auto-logged"]

    def test_not_found(self, executor):
        outcome = executor.execute(LogInteraction("Nobody"))
        assert outcome.status is OutcomeStatus.NOT_FOUND


class TestAddConnection:
    def test_adds_with_defaults(self, store, executor, rec):
        outcome = executor.execute(AddConnection("Sarah", text="Add Sarah to my web"))
        assert outcome.ok and outcome.mutated
        c = outcome.connection
        assert c.priority is Priority.P3
        assert c.relationship is Relationship.FRIEND
        assert c.strength == 3
        assert c.interactions == []
        assert rec.types() == ["ConnectionAdded"]

    def test_recent_interaction_is_logged_after_add(self, store, executor, rec):
        outcome = executor.execute(AddConnection(
            "Priya",
            relationship=Relationship.WORK,
            priority=Priority.P1,
            interests=("climbing",),
            location="Boston",
            had_interaction=True,
            when=DateQualifier.YESTERDAY,
            text="Add my colleague Priya, met her yesterday",
        ))
        c = outcome.connection
        assert rec.types() == ["ConnectionAdded", "InteractionAdded", "StrengthUpdated"]
        assert len(c.interactions) == 1
        assert c.interactions[0].type is InteractionType.SOCIAL
        assert store.days_since_contact(c) == 1
        assert c.tags == ["climbing"]
        assert "Boston" in c.notes

    def test_empty_name_is_invalid(self, store, executor, rec):
        outcome = executor.execute(AddConnection(""))
        assert outcome.status is OutcomeStatus.INVALID
        assert not outcome.mutated
        assert len(store) == 0
        assert rec.events == []


class TestReadOnly:
    @pytest.fixture
    def network(self, store):
        return [
            add_person(store, "Sarah Chen", priority=Priority.P1, relationship=Relationship.WORK, days_ago=10),
            add_person(store, "Marcus", priority=Priority.P2, days_ago=40),
            add_person(store, "Jeremy", relationship=Relationship.FAMILY, days_ago=2),
        ]

    def test_queries_never_emit(self, store, executor, network, rec):
        rec.events.clear()
        for intent in (
            QueryOverdue(),
            QueryByFilter(relationship=Relationship.WORK),
            DescribeConnection("Jeremy"),
            QueryStats(),
            Unrecognized("asdkfj"),
        ):
            outcome = executor.execute(intent)
            assert not outcome.mutated
        assert rec.events == []

    def test_overdue(self, executor, network):
        sarah, marcus, _ = network
        outcome = executor.execute(QueryOverdue())
        assert outcome.connections[:2] == [marcus, sarah]
        assert "Marcus" in outcome.message
        assert outcome.data["overdue"] == [marcus.id, sarah.id]

    def test_nobody_overdue(self, store, executor):
        add_person(store, "Jeremy", days_ago=1)
        outcome = executor.execute(QueryOverdue())
        assert outcome.connections == []
        assert "good shape" in outcome.message

    def test_filter(self, executor, network):
        outcome = executor.execute(QueryByFilter(relationship=Relationship.WORK))
        assert outcome.connections == [network[0]]
        assert "Sarah Chen" in outcome.message

    def test_filter_empty(self, executor, network):
        outcome = executor.execute(QueryByFilter(relationship=Relationship.SCHOOL))
        assert outcome.connections == []
        assert "don't have any school" in outcome.message

    def test_filter_by_strength(self, executor, network):
        outcome = executor.execute(QueryByFilter(max_strength=2))
        assert outcome.connections == [network[1]]

    def test_describe_includes_memories(self, store, executor, memories, network):
        jeremy = network[2]
        memories.add(jeremy.id, MemoryType.LIFE_EVENT, "Moving to Seattle")
        outcome = executor.execute(DescribeConnection("jer"))
        assert outcome.connection is jeremy
        assert "family" in outcome.message
        assert "Moving to Seattle" in outcome.message
        assert outcome.data["days_since_contact"] == 2

    def test_stats(self, executor, network):
        outcome = executor.execute(QueryStats(relationship=Relationship.FAMILY))
        assert outcome.message.startswith("You have 1 family connection(s).")
        assert "Total connections: 3" in outcome.message
        assert outcome.data["stats"].total == 3

    def test_help(self, executor):
        outcome = executor.execute(Unrecognized("asdkfj qwoeiru"))
        assert outcome.status is OutcomeStatus.HELP
        assert outcome.message == HELP_TEXT

    def test_not_an_intent(self, executor):
        with pytest.raises(TypeError):
            executor.execute("Move Marcus to P1")
