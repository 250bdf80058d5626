"""Best-practices compliance catalog and validation."""

from dataclasses import dataclass
import logging
from typing import Callable

from ..aggregation.aggregator import AggregatedSignals
from .framework import FrameworkError
from .types import ComplianceFinding, Tier

log = logging.getLogger(__name__)

Validator = Callable[[AggregatedSignals], bool]


@dataclass(frozen=True)
class ComplianceRule:
    rule_id: str
    tier: Tier
    description: str
    category: str
    detector: str
    validator: Validator
    impact: str
    fix: str


def validate_catalog(rules: tuple[ComplianceRule, ...]) -> None:
    """Reject duplicate rule ids.

    Raises:
        FrameworkError: if two rules share an id.
    """
    seen: set[str] = set()
    for rule in rules:
        if rule.rule_id in seen:
            raise FrameworkError(f"Duplicate compliance rule id: {rule.rule_id}")
        seen.add(rule.rule_id)


def evaluate_rules(
    rules: tuple[ComplianceRule, ...],
    aggregated: AggregatedSignals,
) -> tuple[ComplianceFinding, ...]:
    """Produce exactly one finding per rule, in catalog order."""
    findings: list[ComplianceFinding] = []
    for rule in rules:
        data_available = aggregated.available(rule.detector)
        passed = False
        if data_available:
            try:
                passed = bool(rule.validator(aggregated))
            except Exception as e:
                log.warning(f"Rule {rule.rule_id} could not read {rule.detector} payload: {e}")
                data_available = False
        findings.append(
            ComplianceFinding(
                rule_id=rule.rule_id,
                tier=rule.tier,
                passed=passed,
                impact=rule.impact,
                fix_suggestion=rule.fix,
                description=rule.description,
                category=rule.category,
                data_available=data_available,
            )
        )
    return tuple(findings)


def compliance_summary(findings: tuple[ComplianceFinding, ...]) -> dict[str, dict[str, int]]:
    """Passed/failed counts per tier plus an overall percentage."""
    summary = {tier.value: {"passed": 0, "failed": 0} for tier in Tier}
    for finding in findings:
        summary[finding.tier.value]["passed" if finding.passed else "failed"] += 1
    total = len(findings)
    passed = sum(1 for f in findings if f.passed)
    summary["overall"] = {
        "passed": passed,
        "failed": total - passed,
        "percent": round(passed / total * 100) if total else 100,
    }
    return summary


def _length_between(agg: AggregatedSignals, field: str, low: int, high: int) -> bool:
    length = agg.value("meta_tags", field, "length", default=0) or 0
    return low <= length <= high


DEFAULT_RULES: tuple[ComplianceRule, ...] = (
    ComplianceRule(
        rule_id="title_tag_present",
        tier=Tier.CRITICAL,
        description="Page must have a title tag",
        category="basic_seo",
        detector="meta_tags",
        validator=lambda agg: agg.value("meta_tags", "title", "present") is True,
        impact="high",
        fix="Add a descriptive title tag to the page",
    ),
    ComplianceRule(
        rule_id="meta_description_present",
        tier=Tier.CRITICAL,
        description="Page should have a meta description",
        category="basic_seo",
        detector="meta_tags",
        validator=lambda agg: agg.value("meta_tags", "meta_description", "present") is True,
        impact="medium",
        fix="Add a compelling meta description tag",
    ),
    ComplianceRule(
        rule_id="h1_tag_present",
        tier=Tier.CRITICAL,
        description="Page must have exactly one H1 tag",
        category="content_structure",
        detector="headings",
        validator=lambda agg: agg.value("headings", "h1", "count") == 1,
        impact="high",
        fix="Add a single H1 tag with the primary keyword",
    ),
    ComplianceRule(
        rule_id="title_length_optimal",
        tier=Tier.IMPORTANT,
        description="Title tag should be 30-60 characters",
        category="optimization",
        detector="meta_tags",
        validator=lambda agg: _length_between(agg, "title", 30, 60),
        impact="medium",
        fix="Optimize title length to 30-60 characters",
    ),
    ComplianceRule(
        rule_id="meta_description_length_optimal",
        tier=Tier.IMPORTANT,
        description="Meta description should be 120-160 characters",
        category="optimization",
        detector="meta_tags",
        validator=lambda agg: _length_between(agg, "meta_description", 120, 160),
        impact="medium",
        fix="Optimize meta description length to 120-160 characters",
    ),
    ComplianceRule(
        rule_id="canonical_url_present",
        tier=Tier.IMPORTANT,
        description="Page should have a canonical URL",
        category="technical_seo",
        detector="meta_tags",
        validator=lambda agg: agg.value("meta_tags", "canonical", "present") is True,
        impact="medium",
        fix="Add a canonical URL to prevent duplicate content issues",
    ),
    ComplianceRule(
        rule_id="viewport_configured",
        tier=Tier.IMPORTANT,
        description="Page should declare a responsive viewport",
        category="mobile",
        detector="meta_tags",
        validator=lambda agg: agg.value("meta_tags", "viewport", "present") is True,
        impact="medium",
        fix="Add a viewport meta tag with width=device-width",
    ),
    ComplianceRule(
        rule_id="structured_data_present",
        tier=Tier.ENHANCEMENT,
        description="Page should include structured data",
        category="advanced_seo",
        detector="structured_data",
        validator=lambda agg: (agg.value("structured_data", "count", default=0) or 0) > 0,
        impact="low",
        fix="Add relevant schema markup for rich snippets",
    ),
    ComplianceRule(
        rule_id="open_graph_complete",
        tier=Tier.ENHANCEMENT,
        description="Complete Open Graph tags should be present",
        category="social_media",
        detector="social",
        validator=lambda agg: agg.value("social", "open_graph_present", default=0) == 4,
        impact="low",
        fix="Add complete Open Graph meta tags for social sharing",
    ),
    ComplianceRule(
        rule_id="html_lang_declared",
        tier=Tier.ENHANCEMENT,
        description="The html element should declare a language",
        category="international_seo",
        detector="meta_tags",
        validator=lambda agg: bool(agg.value("meta_tags", "lang")),
        impact="low",
        fix="Set the lang attribute on the html element",
    ),
)
