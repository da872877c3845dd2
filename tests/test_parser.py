"""IntentParser — rule order, slot extraction, fallthrough."""

import random
from datetime import timedelta

import pytest

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
from silkweb.parser import DEFAULT_RULES, IntentParser, clean_name
from silkweb.types import InteractionType, Priority, Relationship
from tests.helpers import NOW


@pytest.fixture
def parser():
    return IntentParser()


class TestLogInteraction:
    def test_hung_out_yesterday(self, parser):
        intent = parser.parse("I hung out with Sarah yesterday")
        assert isinstance(intent, LogInteraction)
        assert intent.name == "Sarah"
        assert intent.when is DateQualifier.YESTERDAY
        assert intent.interaction_type is InteractionType.SOCIAL

    def test_call_defaults_to_today(self, parser):
        intent = parser.parse("I called Marcus this morning")
        assert intent == LogInteraction(
            name="Marcus",
            when=DateQualifier.TODAY,
            interaction_type=InteractionType.CALL,
            text="I called Marcus this morning",
        )

    def test_meal_this_week(self, parser):
        intent = parser.parse("Had coffee with Jeremy this week")
        assert isinstance(intent, LogInteraction)
        assert intent.name == "Jeremy"
        assert intent.when is DateQualifier.THIS_WEEK
        assert intent.interaction_type is InteractionType.MEETING

    def test_text_keeps_original(self, parser):
        assert parser.parse("I texted Alex").text == "I texted Alex"

    def test_bare_met(self, parser):
        intent = parser.parse("I met Sarah yesterday")
        assert isinstance(intent, LogInteraction)
        assert intent.name == "Sarah"
        assert intent.when is DateQualifier.YESTERDAY

    def test_met_for_coffee(self, parser):
        intent = parser.parse("Sarah and I met for coffee")
        assert isinstance(intent, LogInteraction)
        assert intent.name == "Sarah"
        assert intent.interaction_type is InteractionType.MEETING


class TestPriorityAndMove:
    def test_move_to_tier_is_priority_change(self, parser):
        intent = parser.parse("Move Marcus to P1")
        assert isinstance(intent, UpdatePriority)
        assert intent.name == "Marcus"
        assert intent.priority is Priority.P1

    def test_set_priority_words(self, parser):
        intent = parser.parse("Set Marcus as priority 2")
        assert intent == UpdatePriority("Marcus", Priority.P2, text="Set Marcus as priority 2")

    def test_category_move(self, parser):
        intent = parser.parse("Move Alex from friends to work")
        assert isinstance(intent, MoveCategory)
        assert intent.name == "Alex"
        assert intent.relationship is Relationship.WORK
        assert intent.from_relationship is Relationship.FRIEND
        assert intent.priority is None

    def test_category_wins_and_carries_tier(self, parser):
        intent = parser.parse("Move Sarah to work, P1")
        assert isinstance(intent, MoveCategory)
        assert intent.relationship is Relationship.WORK
        assert intent.priority is Priority.P1


class TestAdd:
    def test_add_friend_with_priority(self, parser):
        intent = parser.parse("Add my friend Sarah to my web, priority 1")
        assert isinstance(intent, AddConnection)
        assert intent.name == "Sarah"
        assert intent.relationship is Relationship.FRIEND
        assert intent.priority is Priority.P1
        assert not intent.had_interaction

    def test_add_colleague_with_location(self, parser):
        intent = parser.parse("Add my colleague Priya from Boston, priority 2")
        assert intent.name == "Priya"
        assert intent.relationship is Relationship.WORK
        assert intent.priority is Priority.P2
        assert intent.location == "Boston"

    def test_add_defaults(self, parser):
        intent = parser.parse("Add Sarah to my web")
        assert intent == AddConnection(name="Sarah", text="Add Sarah to my web")

    def test_add_email(self, parser):
        intent = parser.parse("Add my friend Dana to my web, email dana@example.com")
        assert intent.email == "dana@example.com"

    def test_add_checked_before_show(self, parser):
        assert parser.match("Add my friend Sarah to my web")[0] == "add_connection"

    @pytest.mark.parametrize("text", [
        "How do I add a new connection?",
        "Can you add a contact for me?",
        "What happens when I add someone to my web?",
    ])
    def test_questions_about_adding_are_not_adds(self, parser, text):
        assert isinstance(parser.parse(text), Unrecognized)

    def test_polite_prefix(self, parser):
        intent = parser.parse("Can you add my friend Sarah to my web?")
        assert isinstance(intent, AddConnection)
        assert intent.name == "Sarah"

    def test_relationship_after_from_is_not_a_location(self, parser):
        intent = parser.parse("Add Sarah from work to my web")
        assert intent.name == "Sarah"
        assert intent.relationship is Relationship.WORK
        assert intent.location is None

    def test_location_stops_before_web(self, parser):
        intent = parser.parse("Add my friend Leo from Denver to my web")
        assert intent.location == "Denver"


class TestQueries:
    @pytest.mark.parametrize("text", [
        "Who should I reach out to?",
        "Who haven't I talked to in a while?",
        "Who is overdue?",
    ])
    def test_overdue(self, parser, text):
        assert isinstance(parser.parse(text), QueryOverdue)

    def test_filter_by_relationship(self, parser):
        intent = parser.parse("Show me my work connections")
        assert intent == QueryByFilter(relationship=Relationship.WORK, text="Show me my work connections")

    def test_filter_by_priority(self, parser):
        intent = parser.parse("Show me my P1 connections")
        assert isinstance(intent, QueryByFilter)
        assert intent.priority is Priority.P1
        assert intent.relationship is None

    def test_filter_by_weakness(self, parser):
        intent = parser.parse("Show me my fading connections")
        assert intent.max_strength == 2

    @pytest.mark.parametrize("text,name", [
        ("Tell me about Jeremy", "Jeremy"),
        ("How's Sarah doing?", "Sarah"),
    ])
    def test_describe(self, parser, text, name):
        intent = parser.parse(text)
        assert isinstance(intent, DescribeConnection)
        assert intent.name == name

    def test_stats(self, parser):
        assert parser.parse("Show me my stats") == QueryStats(text="Show me my stats")

    def test_stats_by_relationship(self, parser):
        intent = parser.parse("How many work connections do I have?")
        assert isinstance(intent, QueryStats)
        assert intent.relationship is Relationship.WORK


class TestUnrecognized:
    @pytest.mark.parametrize("text", ["asdkfj qwoeiru", "", "   ", "hello there"])
    def test_fallthrough(self, parser, text):
        intent = parser.parse(text)
        assert isinstance(intent, Unrecognized)
        assert intent.text == text

    def test_match_reports_no_rule(self, parser):
        assert parser.match("asdkfj qwoeiru")[0] is None


class TestParserContract:
    def test_deterministic(self, parser):
        text = "I hung out with Sarah this week"
        assert parser.parse(text) == parser.parse(text)

    def test_rule_order(self):
        assert [r.name for r in DEFAULT_RULES] == [
            "add_connection",
            "move_category",
            "update_priority",
            "query_overdue",
            "log_interaction",
            "query_by_filter",
            "describe",
            "query_stats",
        ]

    def test_custom_rules(self):
        only_stats = IntentParser([r for r in DEFAULT_RULES if r.name == "query_stats"])
        assert isinstance(only_stats.parse("Tell me about Jeremy"), Unrecognized)


class TestCleanName:
    @pytest.mark.parametrize("raw,expected", [
        ("Sarah yesterday", "Sarah"),
        ("my Sarah and", "Sarah"),
        ("Sarah Chen", "Sarah Chen"),
        ("the", ""),
    ])
    def test_strips_filler(self, raw, expected):
        assert clean_name(raw) == expected


class TestDateQualifier:
    def test_resolve(self):
        rng = random.Random(3)
        assert DateQualifier.TODAY.resolve(NOW) == NOW
        assert DateQualifier.YESTERDAY.resolve(NOW) == NOW - timedelta(days=1)
        for _ in range(50):
            week = (NOW - DateQualifier.THIS_WEEK.resolve(NOW, rng)).days
            month = (NOW - DateQualifier.THIS_MONTH.resolve(NOW, rng)).days
            assert 0 <= week <= 6
            assert 7 <= month <= 29
