"""Typed contracts for the detection stage."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Protocol

from .context import AnalysisContext


class BundleStatus(Enum):
    """Outcome of one detector call."""

    OK = "ok"
    FAILED = "failed"


@dataclass(frozen=True)
class SignalBundle:
    """One detector's output for one run.

    Exactly one of ``payload`` (status OK) and ``error`` (status FAILED)
    is set.
    """

    detector_id: str
    domain: str
    status: BundleStatus
    payload: dict[str, Any] | None = None
    error: str | None = None
    timing_ms: float = 0.0

    def __post_init__(self) -> None:
        if self.timing_ms < 0:
            raise ValueError(f"timing_ms must be non-negative: {self.timing_ms}")
        if self.status is BundleStatus.OK:
            if self.payload is None or self.error is not None:
                raise ValueError("ok bundle requires a payload and no error")
        elif self.payload is not None or not self.error:
            raise ValueError("failed bundle requires an error and no payload")

    @property
    def succeeded(self) -> bool:
        return self.status is BundleStatus.OK

    @classmethod
    def ok(
        cls,
        detector_id: str,
        domain: str,
        payload: dict[str, Any],
        timing_ms: float,
    ) -> "SignalBundle":
        return cls(
            detector_id=detector_id,
            domain=domain,
            status=BundleStatus.OK,
            payload=payload,
            timing_ms=max(0.0, timing_ms),
        )

    @classmethod
    def failed(
        cls,
        detector_id: str,
        domain: str,
        error: str,
        timing_ms: float,
    ) -> "SignalBundle":
        return cls(
            detector_id=detector_id,
            domain=domain,
            status=BundleStatus.FAILED,
            error=error or "unknown error",
            timing_ms=max(0.0, timing_ms),
        )


class Detector(Protocol):
    """Capability every signal detector satisfies."""

    detector_id: str
    domain: str

    async def detect(self, context: AnalysisContext) -> dict[str, Any]: ...
