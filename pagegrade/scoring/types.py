"""Typed contracts for the rules and scoring engine."""

from dataclasses import dataclass, field
from enum import Enum


class Tier(Enum):
    """Compliance rule severity."""

    CRITICAL = "critical"
    IMPORTANT = "important"
    ENHANCEMENT = "enhancement"


class Priority(Enum):
    HIGH = "high"
    MEDIUM = "medium"
    LOW = "low"


PRIORITY_ORDER = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}


@dataclass(frozen=True)
class Recommendation:
    priority: Priority
    category: str
    title: str
    description: str
    estimated_effort: str | None = None
    source: str = "score"


@dataclass(frozen=True)
class CategoryScoreNode:
    name: str
    weight: float
    score: float | None
    children: tuple["CategoryScoreNode", ...] = ()
    issues: tuple[str, ...] = ()
    recommendations: tuple[Recommendation, ...] = ()
    source: str | None = None

    @property
    def is_leaf(self) -> bool:
        return not self.children

    def find(self, name: str) -> "CategoryScoreNode | None":
        """Depth-first lookup by category name."""
        if self.name == name:
            return self
        for child in self.children:
            found = child.find(name)
            if found is not None:
                return found
        return None

    def leaves(self) -> list["CategoryScoreNode"]:
        if self.is_leaf:
            return [self]
        collected: list[CategoryScoreNode] = []
        for child in self.children:
            collected.extend(child.leaves())
        return collected


@dataclass(frozen=True)
class ComplianceFinding:
    rule_id: str
    tier: Tier
    passed: bool
    impact: str
    fix_suggestion: str
    description: str = ""
    category: str = ""
    data_available: bool = True


@dataclass(frozen=True)
class ScoreResult:
    score_tree: CategoryScoreNode
    overall_score: int
    grade: str
    findings: tuple[ComplianceFinding, ...]
    recommendations: tuple[Recommendation, ...]
    compliance: dict[str, dict[str, int]] = field(default_factory=dict)
    optimization_level: str = "critical"
