"""Network statistics and plain-language insights."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import datetime
from typing import Sequence

from .types import Connection, Priority, Relationship

STRONG_STRENGTH = 4
WEAK_STRENGTH = 2


@dataclass
class NetworkStats:
    total: int = 0
    average_strength: float = 0.0
    strong: int = 0            # strength >= 4
    needs_attention: int = 0   # strength <= 2
    by_priority: dict[str, int] = field(default_factory=dict)
    by_relationship: dict[str, int] = field(default_factory=dict)
    by_strength: dict[int, int] = field(default_factory=dict)

    def format(self) -> str:
        """Human-readable summary."""
        tiers = ", ".join(f"{p.value}: {self.by_priority.get(p.value, 0)}" for p in Priority)
        return (
            "Your network stats:\n"
            f"- Total connections: {self.total}\n"
            f"- Average strength: {self.average_strength:.1f}/5\n"
            f"- Strong relationships (4-5): {self.strong}\n"
            f"- Need attention (1-2): {self.needs_attention}\n"
            f"- Priority breakdown: {tiers}"
        )


def network_stats(connections: Sequence[Connection]) -> NetworkStats:
    if not connections:
        return NetworkStats(
            by_priority={p.value: 0 for p in Priority},
            by_strength={g: 0 for g in range(1, 6)},
        )

    grades = [c.strength for c in connections]
    by_strength = {g: 0 for g in range(1, 6)}
    by_strength.update(Counter(grades))
    by_priority = {p.value: 0 for p in Priority}
    by_priority.update(Counter(c.priority.value for c in connections))

    return NetworkStats(
        total=len(connections),
        average_strength=round(sum(grades) / len(grades), 1),
        strong=sum(1 for g in grades if g >= STRONG_STRENGTH),
        needs_attention=sum(1 for g in grades if g <= WEAK_STRENGTH),
        by_priority=by_priority,
        by_relationship=dict(Counter(c.relationship.value for c in connections)),
        by_strength=by_strength,
    )


def network_balance(stats: NetworkStats) -> list[str]:
    """Recommendations for a lopsided network."""
    recommendations = []
    if stats.by_priority.get(Priority.P1.value, 0) > 10:
        recommendations.append(
            "You have many P1 (weekly) connections. Consider if all are truly high priority."
        )
    if stats.total and len(stats.by_relationship) < 3:
        recommendations.append(
            "Consider diversifying your network across different relationship types."
        )
    if stats.total and stats.needs_attention > stats.total * 0.3:
        recommendations.append(
            "30%+ of your connections are weak. Focus on strengthening key relationships."
        )
    return recommendations


def overdue(connections: Sequence[Connection], now: datetime) -> list[Connection]:
    """Connections past their own contact frequency, longest-waiting first."""
    late = [c for c in connections if c.days_since_contact(now) > c.contact_frequency]
    late.sort(key=lambda c: c.days_since_contact(now), reverse=True)
    return late


def daily_insights(connections: Sequence[Connection], now: datetime) -> list[str]:
    insights = []

    late_p1 = [c for c in overdue(connections, now) if c.priority == Priority.P1]
    if late_p1:
        names = ", ".join(c.name for c in late_p1[:3])
        insights.append(f"You have {len(late_p1)} P1 connection(s) that need attention: {names}")

    fading = [c for c in connections if c.strength <= WEAK_STRENGTH]
    if fading:
        names = ", ".join(c.name for c in fading[:3])
        insights.append(f"{len(fading)} connection(s) are at risk of fading: {names}")

    strong = [c for c in connections if c.strength >= STRONG_STRENGTH]
    if strong:
        insights.append(f"You're maintaining {len(strong)} strong relationships - keep it up!")

    return insights


def count_by_relationship(connections: Sequence[Connection], relationship: Relationship) -> int:
    return sum(1 for c in connections if c.relationship == relationship)


@dataclass
class WeeklyReport:
    summary: str
    strengths: list[str] = field(default_factory=list)
    improvements: list[str] = field(default_factory=list)
    suggestions: list[str] = field(default_factory=list)


def weekly_report(
    connections: Sequence[Connection],
    now: datetime,
    suggestions: Sequence[str] = (),
    *,
    count: int = 3,
) -> WeeklyReport:
    """Week-in-review over the network.

    ``suggestions`` are used as-is when given (e.g. an AI batch);
    otherwise the ``count`` longest-overdue people get a plain
    reach-out line.
    """
    stats = network_stats(connections)
    active = sum(1 for c in connections if c.days_since_contact(now) <= 7)

    if suggestions:
        picks = [s for s in suggestions if s.strip()][:count]
    else:
        picks = [
            f"Reach out to {c.name} - it's been {c.days_since_contact(now)} days!"
            for c in overdue(connections, now)[:count]
        ]

    return WeeklyReport(
        summary=(
            f"This week you connected with {active} people out of {stats.total} total "
            f"connections. Your average relationship strength is {stats.average_strength:.1f}/5."
        ),
        strengths=[
            f"Maintained {active} active connections this week",
            f"{stats.strong} strong relationships",
        ],
        improvements=[
            f"{stats.needs_attention} connections need attention",
            "Consider reaching out to P1 connections weekly",
        ],
        suggestions=picks,
    )
