"""Relationship strength grading.

Strength is a narrow, explainable signal: how recently you were in
touch, measured against the cadence the priority tier asks for.
Nothing else (quality, mood, notes) feeds it.
"""

from __future__ import annotations

from .types import Priority

NEUTRAL_STRENGTH = 3

# Day breakpoints for grades 5..1. Anything past the grade-2 bound grades 1.
THRESHOLDS: dict[Priority, tuple[int, int, int, int, int]] = {
    Priority.P1: (3, 7, 10, 14, 21),
    Priority.P2: (7, 14, 21, 28, 35),
    Priority.P3: (15, 30, 45, 60, 90),
}


def strength(days_since_contact: int, priority: Priority | str) -> int:
    """Grade 1..5 for ``days_since_contact`` at ``priority``.

    Day zero is neutral (3): a brand-new contact has not earned
    "excellent" yet. Non-increasing in ``days_since_contact``.
    """
    if days_since_contact < 0:
        raise ValueError(f"days_since_contact must be >= 0, got {days_since_contact}")
    if days_since_contact == 0:
        return NEUTRAL_STRENGTH

    bounds = THRESHOLDS[Priority(priority)]
    for grade, bound in zip((5, 4, 3, 2), bounds):
        if days_since_contact <= bound:
            return grade
    return 1


def describe(grade: int) -> str:
    return _LABELS.get(grade, _LABELS[1])


_LABELS = {
    5: "excellent",
    4: "good",
    3: "neutral",
    2: "fading",
    1: "critical",
}
