"""Recommendation priority derivation and merging."""

from typing import Iterable

from .types import PRIORITY_ORDER, ComplianceFinding, Priority, Recommendation, Tier

_TIER_PRIORITY = {
    Tier.CRITICAL: Priority.HIGH,
    Tier.IMPORTANT: Priority.MEDIUM,
}


def priority_for_impact(
    impact_points: float,
    *,
    high_threshold: float,
    medium_threshold: float,
) -> Priority:
    """Map overall-score points at stake to a priority."""
    if impact_points >= high_threshold:
        return Priority.HIGH
    if impact_points >= medium_threshold:
        return Priority.MEDIUM
    return Priority.LOW


def from_finding(finding: ComplianceFinding) -> Recommendation | None:
    """Recommendation for a failed critical/important finding with data."""
    priority = _TIER_PRIORITY.get(finding.tier)
    if priority is None or finding.passed or not finding.data_available:
        return None
    return Recommendation(
        priority=priority,
        category=finding.category,
        title=finding.description,
        description=finding.fix_suggestion,
        estimated_effort="low",
        source="rules",
    )


def merge_recommendations(
    *groups: Iterable[Recommendation],
) -> tuple[Recommendation, ...]:
    """Deduplicate on (category, title), first wins, then stable-sort by priority."""
    seen: set[tuple[str, str]] = set()
    merged: list[Recommendation] = []
    for recs in groups:
        for rec in recs:
            key = (rec.category, rec.title)
            if key in seen:
                continue
            seen.add(key)
            merged.append(rec)
    return tuple(sorted(merged, key=lambda r: PRIORITY_ORDER[r.priority]))
