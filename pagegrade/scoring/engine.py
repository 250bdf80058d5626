"""Weighted hierarchical scoring and compliance validation."""

import logging
import math

from ..aggregation.aggregator import AggregatedSignals
from ..aggregation.result import Gap
from .framework import DEFAULT_FRAMEWORK, CategorySpec, validate_framework
from .grading import clamp_score, grade_for_score, optimization_level, round_half_up
from .recommendations import from_finding, merge_recommendations, priority_for_impact
from .rules import DEFAULT_RULES, ComplianceRule, compliance_summary, evaluate_rules, validate_catalog
from .types import CategoryScoreNode, Recommendation, ScoreResult

log = logging.getLogger(__name__)


class ScoringEngine:
    """Turns aggregated signals into a score tree, grade and findings.

    The framework and rule catalog are validated once here; ``score`` itself
    performs only null-safe arithmetic over them.
    """

    def __init__(
        self,
        framework: CategorySpec = DEFAULT_FRAMEWORK,
        rules: tuple[ComplianceRule, ...] = DEFAULT_RULES,
        *,
        acceptable: float = 70.0,
        high_impact: float = 5.0,
        medium_impact: float = 2.0,
    ):
        validate_framework(framework)
        validate_catalog(rules)
        self.framework = framework
        self.rules = rules
        self.acceptable = acceptable
        self.high_impact = high_impact
        self.medium_impact = medium_impact

    def score(self, aggregated: AggregatedSignals) -> ScoreResult:
        tree = self._build(
            self.framework,
            aggregated,
            effective_weight=self.framework.weight,
            category=self.framework.name,
        )
        overall = 0 if tree.score is None else round_half_up(clamp_score(tree.score))
        grade = grade_for_score(overall)

        findings = evaluate_rules(self.rules, aggregated)
        rule_recs = [from_finding(finding) for finding in findings]
        leaf_recs = [rec for node in tree.leaves() for rec in node.recommendations]
        recommendations = merge_recommendations(
            [rec for rec in rule_recs if rec is not None], leaf_recs
        )

        log.info(
            f"Scored {len(tree.leaves())} leaves: overall={overall} grade={grade} "
            f"failed_rules={sum(1 for f in findings if not f.passed)}"
        )
        return ScoreResult(
            score_tree=tree,
            overall_score=overall,
            grade=grade,
            findings=findings,
            recommendations=recommendations,
            compliance=compliance_summary(findings),
            optimization_level=optimization_level(overall),
        )

    def _build(
        self,
        spec: CategorySpec,
        aggregated: AggregatedSignals,
        *,
        effective_weight: float,
        category: str,
    ) -> CategoryScoreNode:
        if spec.is_leaf:
            return self._score_leaf(spec, aggregated, effective_weight, category)

        children = tuple(
            self._build(
                child,
                aggregated,
                effective_weight=effective_weight * child.weight,
                category=spec.name,
            )
            for child in spec.children
        )
        scored = [child for child in children if child.score is not None]
        if not scored:
            return CategoryScoreNode(
                name=spec.name,
                weight=spec.weight,
                score=None,
                children=children,
                issues=("no signal reached this category",),
            )

        total_weight = math.fsum(child.weight for child in scored)
        weighted = math.fsum(child.weight * child.score for child in scored)
        return CategoryScoreNode(
            name=spec.name,
            weight=spec.weight,
            score=round(clamp_score(weighted / total_weight), 2),
            children=children,
        )

    def _score_leaf(
        self,
        spec: CategorySpec,
        aggregated: AggregatedSignals,
        effective_weight: float,
        category: str,
    ) -> CategoryScoreNode:
        signal = aggregated.signal(spec.detector)
        if isinstance(signal, Gap):
            return CategoryScoreNode(
                name=spec.name,
                weight=spec.weight,
                score=None,
                issues=(f"signal unavailable: {signal.detector_id} ({signal.reason})",),
                source=spec.detector,
            )

        try:
            raw = spec.measure(signal.value)
        except Exception as e:
            log.warning(f"Measure for {spec.name} failed on {spec.detector} payload: {e}")
            return CategoryScoreNode(
                name=spec.name,
                weight=spec.weight,
                score=None,
                issues=(f"measure error: {type(e).__name__}",),
                source=spec.detector,
            )
        # non-finite measures count as missing
        if raw is None or not math.isfinite(raw):
            return CategoryScoreNode(
                name=spec.name,
                weight=spec.weight,
                score=None,
                issues=("no applicable signal",),
                source=spec.detector,
            )

        score = round(clamp_score(raw), 2)
        threshold = self.acceptable if spec.acceptable is None else spec.acceptable
        if score >= threshold:
            return CategoryScoreNode(
                name=spec.name, weight=spec.weight, score=score, source=spec.detector
            )

        impact = effective_weight * (100.0 - score)
        recommendation = Recommendation(
            priority=priority_for_impact(
                impact,
                high_threshold=self.high_impact,
                medium_threshold=self.medium_impact,
            ),
            category=category,
            title=spec.advice or f"Improve {spec.name}",
            description=(
                f"{spec.name} scored {score:g}/100 (acceptable >= {threshold:g}); "
                f"about {impact:.1f} overall points at stake."
            ),
            estimated_effort=spec.effort,
            source="score",
        )
        return CategoryScoreNode(
            name=spec.name,
            weight=spec.weight,
            score=score,
            issues=(f"{spec.name} below acceptable ({score:g} < {threshold:g})",),
            recommendations=(recommendation,),
            source=spec.detector,
        )
