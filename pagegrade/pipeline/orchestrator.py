"""Staged page analysis orchestration."""

import asyncio
from dataclasses import replace
from datetime import datetime, timezone
import logging
import time
from typing import Callable, Iterable

from ..aggregation.aggregator import AggregatedSignals, aggregate
from ..cache.fingerprint import Fingerprint, build_fingerprint
from ..cache.store import ResultCache
from ..detection.context import AnalysisContext
from ..detection.registry import DetectorRegistry, default_registry
from ..detection.runner import run_detectors
from ..detection.types import Detector
from ..enhancement.gate import EnhancementStage
from ..enhancement.providers import HeuristicInsightProvider, HttpInsightProvider
from ..enhancement.types import EnhancementResult
from ..scoring.engine import ScoringEngine
from ..scoring.grading import LOWEST_GRADE
from ..scoring.recommendations import merge_recommendations
from ..scoring.types import ScoreResult
from .config import DEFAULT_PIPELINE_CONFIG, PipelineConfig
from .metrics import MetricsAccumulator
from .types import PipelineMetadata, PipelineResult, PipelineState

log = logging.getLogger(__name__)


def _now_utc() -> str:
    return datetime.now(timezone.utc).isoformat()


def _ms_since(started: float) -> float:
    return round((time.perf_counter() - started) * 1000, 2)


class Orchestrator:
    """Runs Detection, Aggregation, Scoring and optional Enhancement.

    ``run_analysis`` never raises: an unexpected error in any stage yields a
    degraded result with ``status="failed"`` and ``overall_score=0``.
    ``state`` reflects the most recent run.
    """

    def __init__(
        self,
        detectors: DetectorRegistry | Iterable[Detector] | None = None,
        *,
        engine: ScoringEngine | None = None,
        enhancer: EnhancementStage | None = None,
        cache: ResultCache | None = None,
        metrics: MetricsAccumulator | None = None,
        config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
        clock: Callable[[], float] = time.time,
    ):
        if detectors is None:
            self.registry = default_registry()
        elif isinstance(detectors, DetectorRegistry):
            self.registry = detectors
        else:
            self.registry = DetectorRegistry(list(detectors))

        self.config = config
        self.engine = engine or ScoringEngine(
            acceptable=config.acceptable_score,
            high_impact=config.high_priority_impact,
            medium_impact=config.medium_priority_impact,
        )
        self.enhancer = enhancer
        if cache is None and config.cache_enabled:
            cache = ResultCache(config.cache_max_entries)
        self.cache = cache if config.cache_enabled else None
        self.metrics = metrics if metrics is not None else MetricsAccumulator()
        self.clock = clock
        self.state = PipelineState.IDLE

    @classmethod
    def from_config(
        cls,
        config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
        *,
        detectors: DetectorRegistry | Iterable[Detector] | None = None,
        metrics: MetricsAccumulator | None = None,
    ) -> "Orchestrator":
        """Wire the bundled detectors and insight provider from ``config``."""
        enhancer = None
        if config.enhancement_enabled:
            if config.enhancement_endpoint:
                provider = HttpInsightProvider(
                    config.enhancement_endpoint, timeout=config.enhancement_timeout
                )
            else:
                provider = HeuristicInsightProvider()
            enhancer = EnhancementStage(
                provider,
                threshold=config.confidence_threshold,
                timeout=config.enhancement_timeout,
            )
        return cls(detectors, enhancer=enhancer, metrics=metrics, config=config)

    def analyze(self, context: AnalysisContext) -> PipelineResult:
        """Synchronous entry point."""
        return asyncio.run(self.run_analysis(context))

    async def run_analysis(self, context: AnalysisContext) -> PipelineResult:
        started = time.perf_counter()
        started_at = _now_utc()
        loop = asyncio.get_running_loop()
        deadline = loop.time() + self.config.pipeline_timeout
        trace: list[str] = []
        durations: dict[str, float] = {}

        def transition(state: PipelineState) -> None:
            self.state = state
            trace.append(state.value)
            log.debug(f"Pipeline -> {state.value}")

        transition(PipelineState.IDLE)
        fingerprint: Fingerprint | None = None

        try:
            if self.cache is not None:
                fingerprint = build_fingerprint(
                    context,
                    bucket_seconds=self.config.cache_bucket_seconds,
                    now=self.clock(),
                )
                cached = self.cache.get(fingerprint)
                if cached is not None:
                    transition(PipelineState.DONE)
                    self.metrics.record(_ms_since(started), success=True, cache_hit=True)
                    log.info(f"Cache hit for {fingerprint.key}")
                    return replace(cached, metadata=replace(cached.metadata, cache_hit=True))

            transition(PipelineState.DETECTING)
            stage = time.perf_counter()
            bundles = await run_detectors(
                context,
                self.registry,
                timeout=self.config.detector_timeout,
                stage_timeout=max(0.0, deadline - loop.time()),
            )
            durations["detection"] = _ms_since(stage)

            transition(PipelineState.AGGREGATING)
            stage = time.perf_counter()
            aggregated = aggregate(bundles)
            durations["aggregation"] = _ms_since(stage)

            transition(PipelineState.SCORING)
            stage = time.perf_counter()
            score = self.engine.score(aggregated)
            durations["scoring"] = _ms_since(stage)

            enhancement = None
            if self.enhancer is not None:
                transition(PipelineState.ENHANCING)
                stage = time.perf_counter()
                enhancement = await self.enhancer.enhance(
                    aggregated, score, timeout=max(0.0, deadline - loop.time())
                )
                durations["enhancement"] = _ms_since(stage)

            transition(PipelineState.COMPILING)
            stage = time.perf_counter()
            recommendations = merge_recommendations(
                score.recommendations,
                enhancement.recommendations if enhancement else (),
            )
            durations["compiling"] = _ms_since(stage)
            transition(PipelineState.DONE)
            result = self._compile(
                score,
                aggregated,
                enhancement,
                recommendations,
                self._metadata(started, started_at, durations, fingerprint, trace, len(bundles), len(aggregated.gaps)),
            )
        except Exception as e:
            failed_stage = self.state.value
            transition(PipelineState.FAILED)
            log.error(f"Pipeline failed during {failed_stage}: {e}", exc_info=True)
            self.metrics.record(_ms_since(started), success=False)
            return PipelineResult(
                overall_score=0,
                grade=LOWEST_GRADE,
                score_tree=None,
                findings=(),
                recommendations=(),
                enhancement=None,
                metadata=self._metadata(started, started_at, durations, fingerprint, trace, 0, 0),
                status=PipelineState.FAILED.value,
                error=f"{failed_stage}: {type(e).__name__}: {e}",
            )

        if self.cache is not None and fingerprint is not None:
            self.cache.put(fingerprint, result)
        self.metrics.record(result.metadata.total_ms, success=True)
        log.info(
            f"Analysis of {context.url} done in {result.metadata.total_ms}ms: "
            f"{result.overall_score} ({result.grade})"
        )
        return result

    def _metadata(
        self,
        started: float,
        started_at: str,
        durations: dict[str, float],
        fingerprint: Fingerprint | None,
        trace: list[str],
        detectors_run: int,
        detectors_failed: int,
    ) -> PipelineMetadata:
        return PipelineMetadata(
            started_at=started_at,
            finished_at=_now_utc(),
            stage_durations_ms=dict(durations),
            total_ms=_ms_since(started),
            fingerprint=fingerprint.key if fingerprint else None,
            detectors_run=detectors_run,
            detectors_failed=detectors_failed,
            state_trace=tuple(trace),
        )

    @staticmethod
    def _compile(
        score: ScoreResult,
        aggregated: AggregatedSignals,
        enhancement: EnhancementResult | None,
        recommendations: tuple,
        metadata: PipelineMetadata,
    ) -> PipelineResult:
        return PipelineResult(
            overall_score=score.overall_score,
            grade=score.grade,
            score_tree=score.score_tree,
            findings=score.findings,
            recommendations=recommendations,
            enhancement=enhancement,
            metadata=metadata,
            gaps=aggregated.gaps,
            compliance=score.compliance,
            optimization_level=score.optimization_level,
        )
