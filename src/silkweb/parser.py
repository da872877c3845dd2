"""Natural-language command parsing.

An ordered list of ``IntentRule`` matchers, each a trigger pattern plus
an extractor that builds the intent. The first rule whose trigger fires
*and* whose extractor accepts the text wins, so order matters:

    add_connection   "Add my friend Sarah to my web, priority 1"
    move_category    "Move Alex from friends to work"
    update_priority  "Move Marcus to P1"
    query_overdue    "Who haven't I talked to in a while?"
    log_interaction  "I hung out with Sarah yesterday"
    query_by_filter  "Show me my work connections"
    describe         "Tell me about Jeremy"
    query_stats      "How many work connections do I have?"

Anything else is ``Unrecognized``. Parsing never touches the store.

When a move names both a category and a priority tier ("Move Sarah to
work, P1") the category rule wins and carries the tier along in
``MoveCategory.priority``.
"""

from __future__ import annotations

import logging
import re
from dataclasses import dataclass
from typing import Callable, Sequence

from .intents import (
    AddConnection,
    DateQualifier,
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
from .types import InteractionType, Priority, Relationship

logger = logging.getLogger(__name__)

# Lazy run of words; callers bound it with a lookahead.
_NAME = r"[A-Za-z][A-Za-z'\-]*(?:\s+[A-Za-z][A-Za-z'\-]*)*?"

_PRIORITY_RE = re.compile(r"\b(?:p|priority\s*(?:level\s*)?)([123])\b", re.IGNORECASE)

_RELATIONSHIP_WORDS: dict[str, Relationship] = {
    **dict.fromkeys(
        ["family", "sister", "brother", "mom", "mum", "dad", "mother", "father",
         "cousin", "aunt", "uncle", "grandma", "grandpa", "parent", "parents",
         "sibling", "siblings", "relative", "relatives"],
        Relationship.FAMILY,
    ),
    **dict.fromkeys(
        ["work", "colleague", "colleagues", "coworker", "coworkers", "co-worker",
         "co-workers", "office", "professional", "boss", "client", "clients"],
        Relationship.WORK,
    ),
    **dict.fromkeys(
        ["school", "college", "university", "uni", "classmate", "classmates"],
        Relationship.SCHOOL,
    ),
    **dict.fromkeys(
        ["friend", "friends", "buddy", "buddies", "pal", "pals"],
        Relationship.FRIEND,
    ),
    **dict.fromkeys(
        ["other", "others", "acquaintance", "acquaintances"],
        Relationship.OTHER,
    ),
}

_LEADING_FILLER = frozenset(
    "my the with to a an our me so then yesterday today".split()
)
_TRAILING_FILLER = frozenset(
    "yesterday today tonight and to the this week month last for at on with "
    "from sometime again earlier recently as priority category doing please "
    "now too a an in into web".split()
)


def clean_name(raw: str) -> str:
    """Strip filler words off both ends of a captured name span."""
    words = raw.strip(" ,.!?;:\"'").split()
    while words and words[0].lower() in _LEADING_FILLER:
        words.pop(0)
    while words and words[-1].lower() in _TRAILING_FILLER:
        words.pop()
    return " ".join(words)


def _words(lowered: str) -> list[str]:
    return re.findall(r"[a-z][a-z\-]*", lowered)


def first_relationship(lowered: str) -> Relationship | None:
    """First relationship word in reading order."""
    for word in _words(lowered):
        if word in _RELATIONSHIP_WORDS:
            return _RELATIONSHIP_WORDS[word]
    return None


def find_priority(text: str) -> Priority | None:
    match = _PRIORITY_RE.search(text)
    return Priority(f"P{match.group(1)}") if match else None


def date_qualifier(lowered: str) -> DateQualifier:
    if "yesterday" in lowered:
        return DateQualifier.YESTERDAY
    if "this month" in lowered:
        return DateQualifier.THIS_MONTH
    if "this week" in lowered or "sometime" in lowered:
        return DateQualifier.THIS_WEEK
    return DateQualifier.TODAY


@dataclass(frozen=True)
class IntentRule:
    """One matcher: a trigger pattern plus an extractor.

    The extractor gets the normalised text and the trigger match, and
    returns an intent or None to let later rules try.
    """

    name: str
    trigger: re.Pattern[str]
    extract: Callable[[str, re.Match[str]], Intent | None]

    def apply(self, text: str) -> Intent | None:
        match = self.trigger.search(text)
        if match is None:
            return None
        return self.extract(text, match)


# ── add ─────────────────────────────────────────────────────────────

_ADD_TRIGGER = re.compile(
    # "add" opens the clause, optionally after a politeness prefix
    r"(?:^|[.!?;]\s*)(?:(?:please|hey|ok|okay|silk|can you|could you|would you)[,\s]+)*"
    r"add\b(?=.*\b(?:web|friend|colleague|co-?worker|family|contact|connection|"
    r"classmate|mentor|sister|brother|mom|dad|cousin|p[123]|priority)\b)",
    re.IGNORECASE,
)
_ADD_NAME = re.compile(
    r"\badd\s+(?:my\s+|a\s+|an\s+)?(?:new\s+)?"
    r"(?:(?:friend|colleague|co-?worker|family member|sister|brother|mom|dad|cousin|"
    r"mentor|classmate|contact)\s+)?(?:named\s+|called\s+)?"
    rf"(?P<name>{_NAME})"
    r"(?=\s+(?:from|to|as|who|with|and|at|on|in|priority|p[123]|yesterday|today|this)\b"
    r"|\s*[,.!?;]|\s*$)",
    re.IGNORECASE,
)
_PHONE = re.compile(r"(?:phone|number|call|cell|mobile)\D*?(\+?\d[\d\s\-().]{8,}\d)", re.IGNORECASE)
_EMAIL = re.compile(r"([A-Za-z0-9._%+-]+@[A-Za-z0-9.-]+\.[A-Za-z]{2,})")
_LOCATION = re.compile(
    r"\b(?:from|hometown|lives in|based in)\s+([A-Za-z\s]+?)"
    r"(?=\s+(?:and|to|into|as|priority|p[123])\b|\s*[,.;!?]|\s*$)",
    re.IGNORECASE,
)
_INTERESTS = re.compile(
    r"\b(?:likes|enjoys|loves|is into)\s+([A-Za-z\s]+?)(?=\s+and\b|\s*[,.]|\s*$)",
    re.IGNORECASE,
)
# Words that can follow "add a" without being anyone's name.
_NOT_A_NAME = frozenset(
    "connection connections contact contacts person people someone somebody anyone "
    "new friend friends for me them him her one".split()
)
_MET_RECENTLY = re.compile(r"\b(?:hung out|met|saw|today|yesterday|this week)\b")


def _extract_add(text: str, _: re.Match[str]) -> Intent | None:
    lowered = text.lower()
    m = _ADD_NAME.search(text)
    name = clean_name(m.group("name")) if m else ""
    if name and all(w in _NOT_A_NAME for w in name.lower().split()):
        return None

    # family beats work beats school; a bare "friend" is the default anyway
    words = set(_words(lowered))
    found = {_RELATIONSHIP_WORDS[w] for w in words if w in _RELATIONSHIP_WORDS}
    relationship = Relationship.FRIEND
    for candidate in (Relationship.FAMILY, Relationship.WORK, Relationship.SCHOOL):
        if candidate in found:
            relationship = candidate
            break

    phone = _PHONE.search(text)
    email = _EMAIL.search(text)
    location = _LOCATION.search(text)
    place = location.group(1).strip() if location else None
    if place and place.split()[0].lower() in _RELATIONSHIP_WORDS:
        place = None
    interest = _INTERESTS.search(text)
    had_interaction = bool(_MET_RECENTLY.search(lowered))

    return AddConnection(
        name=name,
        relationship=relationship,
        priority=find_priority(text) or Priority.P3,
        phone=phone.group(1).strip() if phone else None,
        email=email.group(1) if email else None,
        location=place,
        interests=(interest.group(1).strip(),) if interest else (),
        had_interaction=had_interaction,
        when=date_qualifier(lowered) if had_interaction else DateQualifier.TODAY,
        text=text,
    )


# ── move category ───────────────────────────────────────────────────

_MOVE_TRIGGER = re.compile(r"\b(?:move|put|switch|change|recategori[sz]e)\b", re.IGNORECASE)
_MOVE = re.compile(
    rf"\b(?:move|put|switch|change|recategori[sz]e)\s+(?P<name>{_NAME})\s+"
    r"(?:from\s+(?:my\s+|the\s+)?(?P<src>[a-z\-]+)(?:\s+(?:category|group|list))?\s+)?"
    r"(?:to|into|in|under)\s+(?:my\s+|the\s+|a\s+)?(?P<dst>[a-z\-]+)\b",
    re.IGNORECASE,
)


def _extract_move(text: str, _: re.Match[str]) -> Intent | None:
    m = _MOVE.search(text)
    if m is None:
        return None
    target = _RELATIONSHIP_WORDS.get(m.group("dst").lower())
    if target is None:
        return None
    name = clean_name(m.group("name"))
    if not name:
        return None
    source = _RELATIONSHIP_WORDS.get((m.group("src") or "").lower())
    return MoveCategory(
        name=name,
        relationship=target,
        from_relationship=source,
        priority=find_priority(text),
        text=text,
    )


# ── priority ────────────────────────────────────────────────────────

_PRIORITY_CHANGE = re.compile(
    r"\b(?:move|set|change|make|put|bump|switch|mark|upgrade|downgrade)\s+"
    rf"(?P<name>{_NAME})\s+(?:to\s+|as\s+|at\s+|into\s+|in\s+)?(?:an?\s+)?"
    r"(?:p|priority\s*(?:level\s*)?)(?P<level>[123])\b",
    re.IGNORECASE,
)


def _extract_priority(text: str, _: re.Match[str]) -> Intent | None:
    m = _PRIORITY_CHANGE.search(text)
    if m is None:
        return None
    name = clean_name(m.group("name"))
    if not name:
        return None
    return UpdatePriority(name=name, priority=Priority(f"P{m.group('level')}"), text=text)


# ── overdue ─────────────────────────────────────────────────────────

_OVERDUE_TRIGGER = re.compile(
    r"\bwho\b.*\b(?:haven'?t|have not)\b.*\b(?:talked|spoken|seen|contacted|heard|reached|called)\b"
    r"|\bwho\b.*\blongest\b"
    r"|\bwho should i (?:reach out to|contact|call|text|see|catch up with)\b"
    r"|\bwho (?:needs|need) (?:attention|a check-?in)\b"
    r"|\boverdue\b|\bneeds? attention\b|\bneglect",
    re.IGNORECASE,
)


def _extract_overdue(text: str, _: re.Match[str]) -> Intent:
    return QueryOverdue(text=text)


# ── log interaction ─────────────────────────────────────────────────

_MEAL_WORDS = "coffee|lunch|dinner|drinks|breakfast|brunch"
_MEALS = f"(?:{_MEAL_WORDS})"
_LOG_VERBS = (
    r"(?:hung out with|hang out with|hanging out with|met up with|met with|"
    r"met(?!\s+(?:for|up|at|on|in|over|to|by)\b)|"
    r"caught up with|catch up with|"
    rf"had {_MEALS} with|grabbed {_MEALS} with|{_MEALS} with|"
    r"talked (?:to|with)|spoke (?:to|with)|chatted with|"
    r"called|phoned|texted|messaged|emailed|e-mailed|visited|saw|"
    r"went (?:\w+\s+){0,4}?with)"
)
_NAME_END = (
    r"(?=\s+(?:yesterday|today|tonight|this|last|earlier|sometime|and|for|at|on|"
    r"about|over|in|after|before|from|to|while|because|again)\b|\s*[,.!?;]|\s*$)"
)
_LOG_TRIGGER = re.compile(
    rf"\b{_LOG_VERBS}\s|\band (?:i|me) (?:hung out|went|had|met|grabbed|caught up|talked)\b",
    re.IGNORECASE,
)
_LOG_PATTERNS = (
    re.compile(rf"\b{_LOG_VERBS}\s+(?P<name>{_NAME}){_NAME_END}", re.IGNORECASE),
    re.compile(
        rf"\b(?P<name>{_NAME})\s+and\s+(?:i|me)\s+"
        r"(?:hung out|went|had|met|grabbed|caught up|talked)\b",
        re.IGNORECASE,
    ),
)


def interaction_type(lowered: str) -> InteractionType:
    if re.search(r"\b(?:called|phoned|phone)\b", lowered):
        return InteractionType.CALL
    if re.search(r"\b(?:texted|messaged)\b", lowered):
        return InteractionType.TEXT
    if re.search(r"\be-?mailed\b", lowered):
        return InteractionType.EMAIL
    if re.search(rf"\b(?:{_MEAL_WORDS}|met with|meeting)\b", lowered):
        return InteractionType.MEETING
    return InteractionType.SOCIAL


def _extract_log(text: str, _: re.Match[str]) -> Intent | None:
    lowered = text.lower()
    for pattern in _LOG_PATTERNS:
        m = pattern.search(text)
        if m is None:
            continue
        name = clean_name(m.group("name"))
        if name:
            return LogInteraction(
                name=name,
                when=date_qualifier(lowered),
                interaction_type=interaction_type(lowered),
                text=text,
            )
    return None


# ── filters ─────────────────────────────────────────────────────────

_FILTER_TRIGGER = re.compile(r"\b(?:show|list|display|who are|which of|give me)\b", re.IGNORECASE)
_WEAK = re.compile(r"\b(?:low(?:est)? strength|weak|fading|at risk)\b")
_STRONG = re.compile(r"\b(?:strong(?:est)?|high strength|best)\b")


def _extract_filter(text: str, _: re.Match[str]) -> Intent | None:
    lowered = text.lower()
    relationship = first_relationship(lowered)
    priority = find_priority(text)
    max_strength = 2 if _WEAK.search(lowered) else None
    min_strength = 4 if max_strength is None and _STRONG.search(lowered) else None
    if relationship is None and priority is None and max_strength is None and min_strength is None:
        return None
    return QueryByFilter(
        relationship=relationship,
        priority=priority,
        min_strength=min_strength,
        max_strength=max_strength,
        text=text,
    )


# ── describe ────────────────────────────────────────────────────────

_DESCRIBE = re.compile(
    r"\b(?:tell me about|info(?:rmation)? (?:about|on)|details (?:about|on|for)|"
    r"how is|how's|what do (?:i|you) know about)\s+"
    rf"(?P<name>{_NAME})(?=\s+doing\b|\s*[?.!,]|\s*$)",
    re.IGNORECASE,
)


def _extract_describe(text: str, m: re.Match[str]) -> Intent | None:
    name = clean_name(m.group("name"))
    if not name:
        return None
    return DescribeConnection(name=name, text=text)


# ── stats ───────────────────────────────────────────────────────────

_STATS_TRIGGER = re.compile(
    r"\b(?:stats|statistics|how many|summary|overview|network health)\b", re.IGNORECASE
)


def _extract_stats(text: str, _: re.Match[str]) -> Intent:
    return QueryStats(relationship=first_relationship(text.lower()), text=text)


DEFAULT_RULES: tuple[IntentRule, ...] = (
    IntentRule("add_connection", _ADD_TRIGGER, _extract_add),
    IntentRule("move_category", _MOVE_TRIGGER, _extract_move),
    IntentRule("update_priority", _PRIORITY_RE, _extract_priority),
    IntentRule("query_overdue", _OVERDUE_TRIGGER, _extract_overdue),
    IntentRule("log_interaction", _LOG_TRIGGER, _extract_log),
    IntentRule("query_by_filter", _FILTER_TRIGGER, _extract_filter),
    IntentRule("describe", _DESCRIBE, _extract_describe),
    IntentRule("query_stats", _STATS_TRIGGER, _extract_stats),
)


def normalize(text: str) -> str:
    text = text.replace("’", "'").replace("‘", "'")
    return " ".join(text.split())


class IntentParser:
    """Maps an utterance to exactly one intent. Deterministic, never raises."""

    def __init__(self, rules: Sequence[IntentRule] = DEFAULT_RULES):
        self._rules = tuple(rules)

    @property
    def rules(self) -> tuple[IntentRule, ...]:
        return self._rules

    def parse(self, text: str) -> Intent:
        return self.match(text)[1]

    def match(self, text: str) -> tuple[str | None, Intent]:
        """Like ``parse`` but also returns the winning rule's name."""
        normalized = normalize(text or "")
        if normalized:
            for rule in self._rules:
                intent = rule.apply(normalized)
                if intent is not None:
                    logger.debug("parse: rule %s matched %r", rule.name, normalized[:60])
                    return rule.name, intent
        logger.debug("parse: no rule matched %r", normalized[:60])
        return None, Unrecognized(text=text or "")
