"""Confidence-gated enhancement with graceful degradation."""

import asyncio
import logging
import math
from typing import Any

from ..aggregation.aggregator import AggregatedSignals
from ..scoring.types import Priority, Recommendation, ScoreResult
from .types import EnhancementResult, InsightProvider

log = logging.getLogger(__name__)


def build_enhancement_input(
    aggregated: AggregatedSignals,
    score_result: ScoreResult,
) -> dict[str, Any]:
    """Plain-data view of a scored run for insight providers."""
    tree = score_result.score_tree
    return {
        "overall_score": score_result.overall_score,
        "grade": score_result.grade,
        "categories": {
            node.name: node.score
            for child in tree.children
            for node in (child, *child.children)
        },
        "leaves": {node.name: node.score for node in tree.leaves()},
        "failed_rules": [
            {"rule_id": f.rule_id, "tier": f.tier.value}
            for f in score_result.findings
            if not f.passed
        ],
        "gaps": list(aggregated.gaps),
        "domains": {domain: list(ids) for domain, ids in aggregated.domains.items()},
    }


def _parse_recommendation(raw: Any, provider: str) -> Recommendation | None:
    if not isinstance(raw, dict):
        return None
    title = str(raw.get("title") or "").strip()
    if not title:
        return None
    try:
        priority = Priority(str(raw.get("priority") or "low").lower())
    except ValueError:
        priority = Priority.LOW
    return Recommendation(
        priority=priority,
        category=str(raw.get("category") or "general"),
        title=title,
        description=str(raw.get("description") or ""),
        estimated_effort=raw.get("estimated_effort") or raw.get("effort"),
        source=provider,
    )


def _parse_confidence(raw: Any) -> float | None:
    if isinstance(raw, bool):
        return None
    try:
        confidence = float(raw)
    except (TypeError, ValueError):
        return None
    if math.isnan(confidence) or not 0.0 <= confidence <= 1.0:
        return None
    return confidence


class EnhancementStage:
    """Runs one insight provider and keeps its output only above threshold."""

    def __init__(
        self,
        provider: InsightProvider,
        *,
        threshold: float = 0.7,
        timeout: float = 10.0,
    ):
        self.provider = provider
        self.threshold = threshold
        self.timeout = timeout

    async def enhance(
        self,
        aggregated: AggregatedSignals,
        score_result: ScoreResult,
        *,
        timeout: float | None = None,
    ) -> EnhancementResult | None:
        """Return accepted insights, or None on low confidence or any failure."""
        name = getattr(self.provider, "name", type(self.provider).__name__)
        budget = self.timeout if timeout is None else min(self.timeout, timeout)
        if budget <= 0:
            log.warning(f"Enhancement skipped: no time left for {name}")
            return None

        try:
            raw = await asyncio.wait_for(
                self.provider.produce_insights(
                    build_enhancement_input(aggregated, score_result)
                ),
                budget,
            )
        except asyncio.TimeoutError:
            log.warning(f"Enhancement provider {name} timed out after {budget}s")
            return None
        except Exception as e:
            log.warning(f"Enhancement provider {name} failed: {e}")
            return None

        if not isinstance(raw, dict):
            log.warning(f"Enhancement provider {name} returned {type(raw).__name__}")
            return None

        confidence = _parse_confidence(raw.get("confidence"))
        if confidence is None or confidence < self.threshold:
            log.info(
                f"Enhancement from {name} rejected: confidence {raw.get('confidence')} "
                f"below {self.threshold}"
            )
            return None

        insights = tuple(
            str(item) for item in raw.get("insights") or [] if str(item).strip()
        )
        recommendations = tuple(
            rec
            for rec in (
                _parse_recommendation(item, name)
                for item in raw.get("recommendations") or []
            )
            if rec is not None
        )
        log.info(f"Enhancement from {name} accepted with confidence {confidence}")
        return EnhancementResult(
            provider=name,
            confidence=confidence,
            insights=insights,
            recommendations=recommendations,
        )
