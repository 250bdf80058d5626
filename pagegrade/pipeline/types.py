"""Typed contracts for pipeline orchestration."""

from dataclasses import asdict, dataclass, field
from enum import Enum
from typing import Any

from ..enhancement.types import EnhancementResult
from ..scoring.types import CategoryScoreNode, ComplianceFinding, Recommendation


class PipelineState(Enum):
    IDLE = "idle"
    DETECTING = "detecting"
    AGGREGATING = "aggregating"
    SCORING = "scoring"
    ENHANCING = "enhancing"
    COMPILING = "compiling"
    DONE = "done"
    FAILED = "failed"


TERMINAL_STATES = frozenset({PipelineState.DONE, PipelineState.FAILED})


@dataclass(frozen=True)
class PipelineMetadata:
    started_at: str
    finished_at: str
    stage_durations_ms: dict[str, float]
    total_ms: float
    fingerprint: str | None
    detectors_run: int
    detectors_failed: int
    state_trace: tuple[str, ...]
    # A cache hit returns the stored result deep-equal to the original run.
    cache_hit: bool = field(default=False, compare=False)


@dataclass(frozen=True)
class PipelineResult:
    overall_score: int
    grade: str
    score_tree: CategoryScoreNode | None
    findings: tuple[ComplianceFinding, ...]
    recommendations: tuple[Recommendation, ...]
    enhancement: EnhancementResult | None
    metadata: PipelineMetadata
    status: str = PipelineState.DONE.value
    error: str | None = None
    gaps: tuple[str, ...] = ()
    compliance: dict[str, dict[str, int]] = field(default_factory=dict)
    optimization_level: str = "critical"

    @property
    def failed(self) -> bool:
        return self.status == PipelineState.FAILED.value

    def to_dict(self) -> dict[str, Any]:
        return _jsonable(asdict(self))


def _jsonable(value: Any) -> Any:
    if isinstance(value, Enum):
        return value.value
    if isinstance(value, dict):
        return {key: _jsonable(item) for key, item in value.items()}
    if isinstance(value, (list, tuple)):
        return [_jsonable(item) for item in value]
    return value
