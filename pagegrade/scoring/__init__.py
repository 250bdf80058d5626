"""Rules and scoring engine."""

from .engine import ScoringEngine
from .framework import DEFAULT_FRAMEWORK, CategorySpec, FrameworkError, group, leaf
from .grading import GRADES, grade_for_score
from .rules import DEFAULT_RULES, ComplianceRule
from .types import (
    CategoryScoreNode,
    ComplianceFinding,
    Priority,
    Recommendation,
    ScoreResult,
    Tier,
)

__all__ = [
    "CategoryScoreNode",
    "CategorySpec",
    "ComplianceFinding",
    "ComplianceRule",
    "DEFAULT_FRAMEWORK",
    "DEFAULT_RULES",
    "FrameworkError",
    "GRADES",
    "Priority",
    "Recommendation",
    "ScoreResult",
    "ScoringEngine",
    "Tier",
    "grade_for_score",
    "group",
    "leaf",
]
