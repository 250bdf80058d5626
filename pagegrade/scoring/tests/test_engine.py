"""Tests for the scoring engine."""

import pytest

from pagegrade.aggregation.aggregator import aggregate
from pagegrade.detection.types import SignalBundle
from pagegrade.scoring.engine import ScoringEngine
from pagegrade.scoring.framework import DEFAULT_FRAMEWORK, group, iter_leaves, leaf
from pagegrade.scoring.grading import GRADES
from pagegrade.scoring.rules import DEFAULT_RULES, ComplianceRule
from pagegrade.scoring.types import Priority, Tier


def _score_of(payload: dict):
    return payload.get("score")


SCENARIO = group(
    "overall",
    1.0,
    leaf("a", 0.5, "det_a", _score_of, "Improve a"),
    leaf("b", 0.3, "det_b", _score_of, "Improve b"),
    leaf("c", 0.2, "det_c", _score_of, "Improve c"),
)


def _scenario_signals():
    return aggregate(
        [
            SignalBundle.ok("det_a", "content", {"score": 80.0}, 1.0),
            SignalBundle.ok("det_b", "content", {"score": 60.0}, 1.0),
            SignalBundle.failed("det_c", "technical", "timeout after 5.0s", 5000.0),
            SignalBundle.ok("det_d", "social", {}, 1.0),
            SignalBundle.failed("det_e", "social", "parse error", 2.0),
        ]
    )


class TestNullRenormalization:
    def test_missing_leaf_is_excluded_not_zeroed(self):
        result = ScoringEngine(SCENARIO, rules=()).score(_scenario_signals())

        assert result.score_tree.score == 72.5
        assert result.overall_score == 73
        assert result.grade == "B-"

    def test_missing_leaf_reports_gap(self):
        tree = ScoringEngine(SCENARIO, rules=()).score(_scenario_signals()).score_tree
        node_c = tree.find("c")

        assert node_c.score is None
        assert node_c.issues == ("signal unavailable: det_c (timeout after 5.0s)",)
        assert node_c.recommendations == ()

    def test_low_leaf_gets_impact_priority(self):
        result = ScoringEngine(SCENARIO, rules=()).score(_scenario_signals())
        node_b = result.score_tree.find("b")

        assert node_b.issues == ("b below acceptable (60 < 70)",)
        assert len(result.recommendations) == 1
        rec = result.recommendations[0]
        # 0.3 * (100 - 60) = 12 points at stake
        assert rec.priority is Priority.HIGH
        assert rec.category == "overall"
        assert rec.title == "Improve b"

    def test_measure_without_signal(self):
        framework = group(
            "overall",
            1.0,
            leaf("a", 0.5, "det_a", lambda p: None, "a"),
            leaf("b", 0.5, "det_b", _score_of, "b"),
        )
        tree = ScoringEngine(framework, rules=()).score(_scenario_signals()).score_tree

        assert tree.find("a").issues == ("no applicable signal",)
        assert tree.score == 60.0

    def test_all_null_group(self):
        framework = group(
            "overall",
            1.0,
            group("present", 0.5, leaf("a", 1.0, "det_a", _score_of, "a")),
            group("missing", 0.5, leaf("c", 1.0, "det_c", _score_of, "c")),
        )
        tree = ScoringEngine(framework, rules=()).score(_scenario_signals()).score_tree

        assert tree.find("missing").score is None
        assert tree.find("missing").issues == ("no signal reached this category",)
        assert tree.score == 80.0

    def test_raising_measure_is_null_leaf(self):
        framework = group(
            "overall",
            1.0,
            leaf("a", 0.5, "det_a", lambda p: p["missing"], "a"),
            leaf("b", 0.5, "det_b", _score_of, "b"),
        )
        tree = ScoringEngine(framework, rules=()).score(_scenario_signals()).score_tree

        assert tree.find("a").score is None
        assert tree.find("a").issues == ("measure error: KeyError",)
        assert tree.score == 60.0

    def test_nan_measure_is_null_leaf(self):
        framework = group(
            "overall",
            1.0,
            leaf("a", 0.5, "det_a", lambda p: float("nan"), "a"),
            leaf("b", 0.5, "det_b", _score_of, "b"),
        )
        tree = ScoringEngine(framework, rules=()).score(_scenario_signals()).score_tree

        assert tree.find("a").score is None
        assert tree.find("a").issues == ("no applicable signal",)
        assert tree.score == 60.0

    def test_only_nan_measure_scores_zero(self):
        framework = group("overall", 1.0, leaf("a", 1.0, "det_a", lambda p: float("nan"), "a"))
        result = ScoringEngine(framework, rules=()).score(_scenario_signals())

        assert result.score_tree.score is None
        assert result.overall_score == 0
        assert result.grade == "F"


def test_all_detectors_failed_scores_zero():
    bundles = [
        SignalBundle.failed(detector_id, "technical", "RuntimeError: down", 1.0)
        for detector_id in {spec.detector for spec in iter_leaves(DEFAULT_FRAMEWORK)}
    ]

    result = ScoringEngine().score(aggregate(bundles))

    assert result.overall_score == 0
    assert result.grade == "F"
    assert result.score_tree.score is None
    assert all(node.score is None for node in result.score_tree.leaves())
    assert result.recommendations == ()
    assert all(not f.passed and not f.data_available for f in result.findings)


@pytest.mark.parametrize("raw", [-25.0, 0.0, 39.5, 72.5, 99.6, 140.0])
def test_overall_score_stays_in_range(raw):
    framework = group("overall", 1.0, leaf("a", 1.0, "det_a", lambda p: raw, "a"))
    result = ScoringEngine(framework, rules=()).score(_scenario_signals())

    assert 0 <= result.overall_score <= 100
    assert result.grade in GRADES


class TestCompliance:
    def _signals(self):
        return aggregate(
            [
                SignalBundle.ok(
                    "meta_tags",
                    "technical",
                    {
                        "title": {"present": True, "text": "x" * 40, "length": 40},
                        "meta_description": {"present": False, "text": None, "length": 0},
                        "canonical": {"present": True, "href": "https://example.com/"},
                        "viewport": {"present": True, "device_width": True},
                        "lang": "en",
                    },
                    1.0,
                ),
                SignalBundle.failed("headings", "structure", "RuntimeError: parse", 1.0),
            ]
        )

    def test_one_finding_per_rule(self):
        result = ScoringEngine().score(self._signals())

        assert [f.rule_id for f in result.findings] == [r.rule_id for r in DEFAULT_RULES]

    def test_missing_data_fails_without_recommendation(self):
        result = ScoringEngine().score(self._signals())
        h1 = next(f for f in result.findings if f.rule_id == "h1_tag_present")

        assert h1.passed is False
        assert h1.data_available is False
        assert all(r.title != h1.description for r in result.recommendations)

    def test_failed_rule_with_data_is_recommended_by_tier(self):
        result = ScoringEngine().score(self._signals())
        by_title = {r.title: r for r in result.recommendations if r.source == "rules"}

        description = by_title["Page should have a meta description"]
        assert description.priority is Priority.HIGH
        assert description.category == "basic_seo"
        meta_length = by_title["Meta description should be 120-160 characters"]
        assert meta_length.priority is Priority.MEDIUM
        assert all(
            f.tier is not Tier.ENHANCEMENT or f.description not in by_title
            for f in result.findings
        )

    def test_compliance_does_not_change_score(self):
        signals = self._signals()
        with_rules = ScoringEngine().score(signals)
        without_rules = ScoringEngine(rules=()).score(signals)

        assert with_rules.score_tree == without_rules.score_tree
        assert with_rules.overall_score == without_rules.overall_score

    def test_summary_counts(self):
        summary = ScoringEngine().score(self._signals()).compliance

        assert summary["critical"] == {"passed": 1, "failed": 2}
        assert summary["important"] == {"passed": 3, "failed": 1}
        assert summary["overall"]["passed"] + summary["overall"]["failed"] == len(DEFAULT_RULES)

    def test_malformed_payload_does_not_abort_scoring(self):
        signals = aggregate(
            [
                SignalBundle.ok(
                    "meta_tags",
                    "technical",
                    {"title": "Shoes", "meta_description": {"present": True, "length": "140"}},
                    1.0,
                )
            ]
        )

        result = ScoringEngine().score(signals)

        assert result.score_tree.find("title_present").issues == ("measure error: AttributeError",)
        assert result.score_tree.find("meta_description_length").issues == ("measure error: TypeError",)
        by_id = {f.rule_id: f for f in result.findings}
        assert by_id["meta_description_present"].passed is True
        length = by_id["meta_description_length_optimal"]
        assert length.passed is False
        assert length.data_available is False
        assert all(r.title != length.description for r in result.recommendations)

    def test_raising_validator_is_unavailable_finding(self):
        rule = ComplianceRule(
            rule_id="broken",
            tier=Tier.CRITICAL,
            description="Broken rule",
            category="basic_seo",
            detector="det_a",
            validator=lambda agg: 1 / 0,
            impact="high",
            fix="n/a",
        )

        result = ScoringEngine(SCENARIO, rules=(rule,)).score(_scenario_signals())

        assert result.findings[0].passed is False
        assert result.findings[0].data_available is False
        assert result.score_tree.score == 72.5


def test_recommendations_sorted_by_priority():
    result = ScoringEngine().score(TestCompliance()._signals())
    order = {Priority.HIGH: 0, Priority.MEDIUM: 1, Priority.LOW: 2}
    ranks = [order[r.priority] for r in result.recommendations]

    assert ranks == sorted(ranks)
