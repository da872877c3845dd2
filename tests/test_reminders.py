"""ReminderSynthesizer — classification, ranking, dedup, suggestion resolution."""

from datetime import timedelta

import pytest

from silkweb.memories import MemoryLog
from silkweb.reminders import (
    ReminderPriority,
    ReminderSynthesizer,
    ReminderType,
    ReminderView,
    filter_reminders,
)
from silkweb.types import ConnectionDraft, InteractionDraft, MemoryType, Priority
from tests.helpers import NOW, FixedClock, add_person, make_store


@pytest.fixture
def clock():
    return FixedClock()


@pytest.fixture
def store(clock):
    return make_store(clock)


@pytest.fixture
def memories(clock):
    return MemoryLog(clock=clock)


@pytest.fixture
def synth(store, memories):
    return ReminderSynthesizer(store, memories)


class TestStructural:
    def test_overdue_p1_is_high(self, store, synth):
        sarah = add_person(store, "Sarah Chen", priority=Priority.P1, days_ago=10)
        [reminder] = synth.synthesize()
        assert reminder.type is ReminderType.OVERDUE
        assert reminder.priority is ReminderPriority.HIGH
        assert reminder.connection_id == sarah.id
        assert reminder.message == "You haven't contacted Sarah Chen in 10 days."
        assert reminder.due_date == sarah.last_contact + timedelta(days=7)

    def test_due_soon_uses_own_frequency(self, store, synth):
        add_person(store, "Jeremy", priority=Priority.P3, days_ago=28)
        [reminder] = synth.synthesize()
        assert reminder.type is ReminderType.DUE_SOON
        assert reminder.priority is ReminderPriority.LOW
        assert reminder.message == "Time to reach out to Jeremy in 2 days"

    def test_custom_frequency_respected(self, store, synth):
        store.add(ConnectionDraft(
            name="Dana", contact_frequency=3, last_contact=store.now() - timedelta(days=4),
        ))
        [reminder] = synth.synthesize()
        assert reminder.type is ReminderType.OVERDUE

    def test_healthy_connection_has_no_reminder(self, store, synth):
        add_person(store, "Jeremy", days_ago=3)
        assert synth.synthesize() == []

    def test_weak_overdue_is_high(self, store, synth):
        add_person(store, "Marcus", priority=Priority.P3, days_ago=70)
        [reminder] = synth.synthesize()
        assert reminder.priority is ReminderPriority.HIGH

    def test_overdue_p3_is_medium(self, store, synth):
        add_person(store, "Marcus", priority=Priority.P3, days_ago=35)
        [reminder] = synth.synthesize()
        assert reminder.priority is ReminderPriority.MEDIUM


class TestMemoryContext:
    def test_life_event(self, store, memories, synth):
        sarah = add_person(store, "Sarah", priority=Priority.P1, days_ago=10)
        memories.add(sarah.id, MemoryType.LIFE_EVENT, "Started a new job")
        [reminder] = synth.synthesize()
        assert reminder.message.endswith("Last time you talked about: Started a new job")
        assert reminder.action_suggestion == "Follow up on their situation"

    def test_interest(self, store, memories, synth):
        sarah = add_person(store, "Sarah", days_ago=40)
        memories.add(sarah.id, MemoryType.INTEREST, "Bouldering most weekends", tags=["climbing"])
        [reminder] = synth.synthesize()
        assert reminder.action_suggestion == "Talk about climbing"


class TestSuggestions:
    def test_resolved_suggestion_becomes_reminder(self, store, synth):
        jeremy = add_person(store, "Jeremy", days_ago=2)
        [reminder] = synth.synthesize(["Reach out to Jeremy - it's been 2 days!"])
        assert reminder.type is ReminderType.AI_SUGGESTION
        assert reminder.connection_id == jeremy.id
        assert reminder.due_date == store.now()
        assert reminder.ai_rationale == "Reach out to Jeremy - it's been 2 days!"

    def test_unresolved_suggestion_dropped(self, store, synth):
        add_person(store, "Jeremy", days_ago=2)
        assert synth.synthesize(["Reach out to Zed soon", "Drink more water"]) == []

    @pytest.mark.parametrize("text", [
        "Maybe plan a dinner with Sarah this weekend",
        "Sarah (P1) would love to hear from you",
        "Try calling Sarah tonight",
        "sarah chen mentioned a new job, check in!",
        "sarah would enjoy a postcard",
    ])
    def test_resolution_forms(self, store, synth, text):
        sarah = add_person(store, "Sarah Chen", days_ago=2)
        add_person(store, "Marcus", days_ago=2)
        assert synth.resolve_suggestion(text) is sarah

    @pytest.mark.parametrize("text", [
        "Catch up with The climbing crew this weekend",
        "Call A friend you miss",
        "Reach out to Your old roommate",
    ])
    def test_function_words_do_not_match_names(self, store, synth, text):
        add_person(store, "Heather", days_ago=2)
        assert synth.resolve_suggestion(text) is None
        assert synth.synthesize([text]) == []

    def test_one_reminder_per_connection_keeps_higher(self, store, synth):
        sarah = add_person(store, "Sarah Chen", priority=Priority.P1, days_ago=10)
        reminders = synth.synthesize(["Reach out to Sarah, she'd love a call"])
        assert len(reminders) == 1
        [reminder] = reminders
        assert reminder.type is ReminderType.OVERDUE
        assert reminder.connection_id == sarah.id
        assert reminder.ai_rationale == "Reach out to Sarah, she'd love a call"

    def test_suggestion_outranks_due_soon(self, store, synth):
        add_person(store, "Sarah", priority=Priority.P1, days_ago=5)
        [reminder] = synth.synthesize(["Reach out to Sarah"])
        assert reminder.type is ReminderType.AI_SUGGESTION
        assert reminder.priority is ReminderPriority.MEDIUM

    def test_latest_batch_used_by_default(self, store, synth):
        add_person(store, "Jeremy", days_ago=2)
        synth.set_suggestions(["Reach out to Jeremy", "  "])
        assert synth.suggestions == ["Reach out to Jeremy"]
        assert [r.type for r in synth.synthesize()] == [ReminderType.AI_SUGGESTION]
        assert synth.synthesize([]) == []


class TestOrdering:
    def test_total_order(self, store, synth):
        add_person(store, "Jeremy", priority=Priority.P3, days_ago=28)        # due soon, low
        add_person(store, "Sarah Chen", priority=Priority.P1, days_ago=10)    # overdue, high
        add_person(store, "Marcus", priority=Priority.P3, days_ago=35)        # overdue, medium
        add_person(store, "Alex", priority=Priority.P3, days_ago=1)           # ai, low

        reminders = synth.synthesize(["Reach out to Alex about the trip"])

        assert [r.connection_name for r in reminders] == ["Sarah Chen", "Marcus", "Alex", "Jeremy"]
        ranks = [r.priority.rank for r in reminders]
        assert ranks == sorted(ranks, reverse=True)

    def test_ties_broken_by_due_date(self, store, synth):
        add_person(store, "Later", priority=Priority.P3, days_ago=33)
        add_person(store, "Earlier", priority=Priority.P3, days_ago=40)
        reminders = synth.synthesize()
        assert [r.connection_name for r in reminders] == ["Earlier", "Later"]

    def test_derived_not_stored(self, store, synth):
        sarah = add_person(store, "Sarah", priority=Priority.P1, days_ago=10)
        assert len(synth.synthesize()) == 1
        store.log_interaction(sarah.id, InteractionDraft())
        assert synth.synthesize() == []


class TestWatch:
    def test_recomputes_on_every_event(self, store, synth):
        feeds = []
        unsubscribe = synth.watch(store.bus, feeds.append)
        sarah = add_person(store, "Sarah", priority=Priority.P1, days_ago=10)
        assert len(feeds) == 1
        assert feeds[-1][0].connection_id == sarah.id

        store.log_interaction(sarah.id, InteractionDraft())
        assert feeds[-1] == []

        unsubscribe()
        store.remove(sarah.id)
        assert len(feeds) == 3


class TestFilterReminders:
    @pytest.fixture
    def feed(self, store, synth):
        add_person(store, "Sarah", priority=Priority.P1, days_ago=10)   # overdue
        add_person(store, "Jeremy", priority=Priority.P3, days_ago=28)  # due in 2 days
        add_person(store, "Alex", days_ago=1)
        return synth.synthesize(["Reach out to Alex"])

    def test_views(self, feed):
        names = lambda rs: [r.connection_name for r in rs]
        assert names(filter_reminders(feed, "all", NOW)) == names(feed)
        assert names(filter_reminders(feed, ReminderView.OVERDUE, NOW)) == ["Sarah"]
        assert names(filter_reminders(feed, "today", NOW)) == ["Alex"]
        assert names(filter_reminders(feed, "upcoming", NOW)) == ["Jeremy"]
        assert names(filter_reminders(feed, "ai", NOW)) == ["Alex"]

    def test_unknown_view(self, feed):
        with pytest.raises(ValueError):
            filter_reminders(feed, "someday", NOW)
