"""Group detector bundles by domain for the scoring engine."""

from dataclasses import dataclass, field
from typing import Any, Iterable

from ..detection.types import SignalBundle
from .result import Gap, Ok, Signal

_MISSING = object()


@dataclass(frozen=True)
class AggregatedSignals:
    """Per-run view of every detector outcome, keyed by detector id."""

    signals: dict[str, Signal] = field(default_factory=dict)
    domains: dict[str, tuple[str, ...]] = field(default_factory=dict)
    gaps: tuple[str, ...] = ()
    coverage: dict[str, dict[str, int]] = field(default_factory=dict)

    def signal(self, detector_id: str) -> Signal:
        """Result for ``detector_id``; unknown ids are gaps too."""
        found = self.signals.get(detector_id)
        if found is None:
            return Gap(detector_id, "not registered")
        return found

    def payload(self, detector_id: str) -> dict[str, Any]:
        found = self.signal(detector_id)
        return found.value if isinstance(found, Ok) else {}

    def available(self, detector_id: str) -> bool:
        return isinstance(self.signal(detector_id), Ok)

    def value(self, detector_id: str, *path: str, default: Any = None) -> Any:
        """Walk nested payload keys, returning ``default`` on any miss."""
        current: Any = self.payload(detector_id)
        for key in path:
            if not isinstance(current, dict):
                return default
            current = current.get(key, _MISSING)
            if current is _MISSING:
                return default
        return current

    def domain_payloads(self, domain: str) -> dict[str, dict[str, Any]]:
        return {
            detector_id: self.payload(detector_id)
            for detector_id in self.domains.get(domain, ())
        }


def aggregate(bundles: Iterable[SignalBundle]) -> AggregatedSignals:
    """Reduce bundles into AggregatedSignals.

    Total over any input: failed bundles become gaps, and the output depends
    only on detector ids, never on arrival order.
    """
    ordered = sorted(bundles, key=lambda b: b.detector_id)

    signals: dict[str, Signal] = {}
    domain_ids: dict[str, list[str]] = {}
    coverage: dict[str, dict[str, int]] = {}
    gaps: list[str] = []

    for bundle in ordered:
        counts = coverage.setdefault(bundle.domain, {"ok": 0, "failed": 0})
        if bundle.succeeded:
            signals[bundle.detector_id] = Ok(bundle.payload or {})
            domain_ids.setdefault(bundle.domain, []).append(bundle.detector_id)
            counts["ok"] += 1
        else:
            signals[bundle.detector_id] = Gap(
                bundle.detector_id, bundle.error or "unknown error"
            )
            gaps.append(bundle.detector_id)
            counts["failed"] += 1

    return AggregatedSignals(
        signals=signals,
        domains={domain: tuple(ids) for domain, ids in sorted(domain_ids.items())},
        gaps=tuple(gaps),
        coverage=dict(sorted(coverage.items())),
    )
