"""Tests for the pipeline orchestrator."""

import asyncio
from dataclasses import replace
import json

import pytest

from pagegrade.detection.context import build_context
from pagegrade.detection.runner import DEADLINE_ERROR
from pagegrade.enhancement.gate import EnhancementStage
from pagegrade.enhancement.providers import HeuristicInsightProvider, HttpInsightProvider
from pagegrade.pipeline.config import DEFAULT_PIPELINE_CONFIG
from pagegrade.pipeline.metrics import MetricsAccumulator
from pagegrade.pipeline.orchestrator import Orchestrator
from pagegrade.pipeline.types import PipelineState
from pagegrade.scoring.engine import ScoringEngine
from pagegrade.scoring.framework import group, leaf
from pagegrade.scoring.types import Priority

SCENARIO = group(
    "overall",
    1.0,
    leaf("a", 0.5, "det_a", lambda p: p.get("score"), "Improve a"),
    leaf("b", 0.3, "det_b", lambda p: p.get("score"), "Improve b"),
    leaf("c", 0.2, "det_c", lambda p: p.get("score"), "Improve c"),
)

HTML = "<html><head><title>Shoes</title></head><body><h1>Shoes</h1></body></html>"


class _Detector:
    def __init__(self, detector_id: str, payload: dict | None = None, *, delay: float = 0.0, error: str | None = None):
        self.detector_id = detector_id
        self.domain = "content"
        self.payload = payload or {}
        self.delay = delay
        self.error = error
        self.calls = 0

    async def detect(self, context):
        self.calls += 1
        if self.delay:
            await asyncio.sleep(self.delay)
        if self.error:
            raise RuntimeError(self.error)
        return self.payload


class _Provider:
    name = "fake"

    def __init__(self, confidence: float, *, delay: float = 0.0):
        self.confidence = confidence
        self.delay = delay

    async def produce_insights(self, payload):
        if self.delay:
            await asyncio.sleep(self.delay)
        return {
            "insights": ["Score is " + str(payload["overall_score"])],
            "confidence": self.confidence,
            "recommendations": [
                {"priority": "low", "category": "overall", "title": "Improve b", "description": "dup"},
                {"priority": "medium", "category": "content", "title": "Add FAQ", "description": ""},
            ],
        }


class _BrokenEngine:
    def score(self, aggregated):
        raise RuntimeError("bad tree")


def _detectors(**overrides):
    detectors = {
        "det_a": _Detector("det_a", {"score": 80.0}),
        "det_b": _Detector("det_b", {"score": 60.0}),
        "det_c": _Detector("det_c", error="unreachable"),
        "det_d": _Detector("det_d"),
        "det_e": _Detector("det_e", error="parse error"),
    }
    detectors.update(overrides)
    return detectors


def _orchestrator(detectors=None, *, enhancer=None, config=DEFAULT_PIPELINE_CONFIG, clock=lambda: 1000.0, **kwargs):
    detectors = detectors or _detectors()
    return Orchestrator(
        list(detectors.values()),
        engine=kwargs.pop("engine", ScoringEngine(SCENARIO, rules=())),
        enhancer=enhancer,
        config=config,
        clock=clock,
        **kwargs,
    )


@pytest.fixture
def context():
    return build_context("https://example.com/shoes", HTML)


class TestScenario:
    def test_null_leaf_renormalized(self, context):
        result = _orchestrator().analyze(context)

        assert result.status == "done"
        assert result.score_tree.score == 72.5
        assert result.overall_score == 73
        assert result.grade == "B-"
        assert result.gaps == ("det_c", "det_e")
        assert result.metadata.detectors_run == 5
        assert result.metadata.detectors_failed == 2

    def test_state_trace(self, context):
        orchestrator = _orchestrator()
        result = orchestrator.analyze(context)

        assert result.metadata.state_trace == (
            "idle",
            "detecting",
            "aggregating",
            "scoring",
            "compiling",
            "done",
        )
        assert orchestrator.state.value == "done"
        assert set(result.metadata.stage_durations_ms) == {
            "detection",
            "aggregation",
            "scoring",
            "compiling",
        }

    def test_all_detectors_fail(self, context):
        detectors = {
            name: _Detector(name, error="down") for name in ("det_a", "det_b", "det_c")
        }
        result = _orchestrator(detectors).analyze(context)

        assert result.status == "done"
        assert result.overall_score == 0
        assert result.grade == "F"
        assert all(node.score is None for node in result.score_tree.leaves())
        assert result.gaps == ("det_a", "det_b", "det_c")

    def test_result_is_json_serializable(self, context):
        payload = _orchestrator().analyze(context).to_dict()

        assert json.loads(json.dumps(payload))["overall_score"] == 73
        assert payload["recommendations"][0]["priority"] == "high"


class TestEnhancement:
    def test_low_confidence_leaves_result_unenhanced(self, context):
        plain = _orchestrator().analyze(context)
        gated = _orchestrator(enhancer=EnhancementStage(_Provider(0.5), threshold=0.7)).analyze(context)

        assert gated.enhancement is None
        assert gated.recommendations == plain.recommendations
        assert "enhancing" in gated.metadata.state_trace

    def test_high_confidence_merges_recommendations(self, context):
        result = _orchestrator(enhancer=EnhancementStage(_Provider(0.9), threshold=0.7)).analyze(context)

        assert result.enhancement.confidence == 0.9
        assert result.enhancement.insights == ("Score is 73",)
        titles = [(r.title, r.priority) for r in result.recommendations]
        # The scored "Improve b" wins over the provider's duplicate.
        assert titles == [("Improve b", Priority.HIGH), ("Add FAQ", Priority.MEDIUM)]


class TestCache:
    def test_repeat_within_bucket_is_served_from_cache(self, context):
        detectors = _detectors()
        metrics = MetricsAccumulator()
        orchestrator = _orchestrator(detectors, metrics=metrics)

        first = orchestrator.analyze(context)
        second = orchestrator.analyze(context)

        assert second == first
        assert second.metadata.cache_hit is True
        assert first.metadata.cache_hit is False
        assert detectors["det_a"].calls == 1
        assert metrics.cache_hits == 1
        assert metrics.runs == 2

    def test_cache_hit_ends_in_done_state(self, context):
        orchestrator = _orchestrator()
        orchestrator.analyze(context)

        result = orchestrator.analyze(context)

        assert result.metadata.cache_hit is True
        assert orchestrator.state is PipelineState.DONE

    def test_new_bucket_recomputes(self, context):
        detectors = _detectors()
        now = iter([1000.0, 1400.0])
        orchestrator = _orchestrator(detectors, clock=lambda: next(now))

        orchestrator.analyze(context)
        second = orchestrator.analyze(context)

        assert second.metadata.cache_hit is False
        assert detectors["det_a"].calls == 2
        assert len(orchestrator.cache) == 1

    def test_cache_disabled(self, context):
        detectors = _detectors()
        config = replace(DEFAULT_PIPELINE_CONFIG, cache_enabled=False)
        orchestrator = _orchestrator(detectors, config=config)

        orchestrator.analyze(context)
        result = orchestrator.analyze(context)

        assert orchestrator.cache is None
        assert result.metadata.fingerprint is None
        assert detectors["det_a"].calls == 2


class TestFailures:
    def test_stage_error_yields_degraded_result(self, context):
        metrics = MetricsAccumulator()
        orchestrator = _orchestrator(engine=_BrokenEngine(), metrics=metrics)

        result = orchestrator.analyze(context)

        assert result.failed
        assert result.status == "failed"
        assert result.error == "scoring: RuntimeError: bad tree"
        assert result.overall_score == 0
        assert result.grade == "F"
        assert result.score_tree is None
        assert result.metadata.state_trace[-1] == "failed"
        assert metrics.failures == 1
        assert len(orchestrator.cache) == 0

    def test_pipeline_deadline_cancels_slow_detectors(self, context):
        detectors = _detectors(det_a=_Detector("det_a", {"score": 80.0}, delay=2.0))
        config = replace(DEFAULT_PIPELINE_CONFIG, pipeline_timeout=0.05)
        orchestrator = _orchestrator(
            detectors,
            config=config,
            enhancer=EnhancementStage(_Provider(1.0, delay=1.0)),
        )

        result = orchestrator.analyze(context)

        assert result.status == "done"
        assert "det_a" in result.gaps
        assert result.score_tree.find("a").issues == (f"signal unavailable: det_a ({DEADLINE_ERROR})",)
        assert result.enhancement is None

    def test_malformed_detector_payload_still_completes(self, context):
        detectors = {"meta_tags": _Detector("meta_tags", {"title": "Shoes", "meta_description": "x"})}
        metrics = MetricsAccumulator()
        orchestrator = _orchestrator(detectors, engine=ScoringEngine(), metrics=metrics)

        result = orchestrator.analyze(context)

        assert result.status == "done"
        assert result.score_tree.find("title_present").issues == ("measure error: AttributeError",)
        assert metrics.failures == 0

    def test_duplicate_detector_ids_rejected(self):
        with pytest.raises(ValueError):
            Orchestrator([_Detector("det_a"), _Detector("det_a")])


class TestFromConfig:
    def test_default_uses_heuristic_provider(self):
        orchestrator = Orchestrator.from_config()

        assert isinstance(orchestrator.enhancer.provider, HeuristicInsightProvider)
        assert orchestrator.enhancer.threshold == 0.7
        assert len(orchestrator.registry) == 8

    def test_endpoint_uses_http_provider(self):
        config = replace(DEFAULT_PIPELINE_CONFIG, enhancement_endpoint="https://insights.example/api")

        orchestrator = Orchestrator.from_config(config)

        assert isinstance(orchestrator.enhancer.provider, HttpInsightProvider)

    def test_enhancement_disabled(self):
        config = replace(DEFAULT_PIPELINE_CONFIG, enhancement_enabled=False, cache_max_entries=3)

        orchestrator = Orchestrator.from_config(config)

        assert orchestrator.enhancer is None
        assert orchestrator.cache.max_entries == 3


def test_concurrent_runs_are_independent():
    orchestrator = _orchestrator(config=replace(DEFAULT_PIPELINE_CONFIG, cache_enabled=False))
    contexts = [
        build_context(f"https://example.com/{i}", HTML) for i in range(3)
    ]

    async def run_all():
        return await asyncio.gather(*(orchestrator.run_analysis(c) for c in contexts))

    results = asyncio.run(run_all())

    assert [r.overall_score for r in results] == [73, 73, 73]
    assert all(r.metadata.state_trace[-1] == "done" for r in results)
