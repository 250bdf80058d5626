"""Score to grade mapping."""

import math

# Descending, contiguous, inclusive integer ranges.
GRADE_TABLE: tuple[tuple[str, int, int], ...] = (
    ("A+", 95, 100),
    ("A", 90, 94),
    ("A-", 85, 89),
    ("B+", 80, 84),
    ("B", 75, 79),
    ("B-", 70, 74),
    ("C+", 65, 69),
    ("C", 60, 64),
    ("C-", 55, 59),
    ("D", 40, 54),
    ("F", 0, 39),
)

GRADES = tuple(grade for grade, _, _ in GRADE_TABLE)
LOWEST_GRADE = GRADE_TABLE[-1][0]

_OPTIMIZATION_LEVELS = (
    (90, "exceptional"),
    (80, "excellent"),
    (70, "good"),
    (60, "adequate"),
    (40, "poor"),
)


def clamp_score(value: float) -> float:
    """Clamp a numeric score into [0, 100]."""
    return max(0.0, min(100.0, float(value)))


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def grade_for_score(score: float) -> str:
    """First matching range in descending order; lowest grade otherwise."""
    for grade, low, high in GRADE_TABLE:
        if low <= score <= high:
            return grade
    return LOWEST_GRADE


def optimization_level(score: float) -> str:
    for threshold, label in _OPTIMIZATION_LEVELS:
        if score >= threshold:
            return label
    return "critical"
