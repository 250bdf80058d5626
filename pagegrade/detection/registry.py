"""Explicit detector registration."""

from typing import Iterator

from .detectors import BUNDLED_DETECTORS
from .types import Detector


class DetectorRegistry:
    """Ordered set of detectors keyed by unique ``detector_id``."""

    def __init__(self, detectors: list[Detector] | None = None):
        self._detectors: dict[str, Detector] = {}
        for detector in detectors or []:
            self.register(detector)

    def register(self, detector: Detector) -> None:
        detector_id = getattr(detector, "detector_id", None)
        if not isinstance(detector_id, str) or not detector_id.strip():
            raise ValueError(f"Detector has no detector_id: {detector!r}")
        if not isinstance(getattr(detector, "domain", None), str):
            raise ValueError(f"Detector {detector_id} has no domain")
        if detector_id in self._detectors:
            raise ValueError(f"Duplicate detector id: {detector_id}")
        self._detectors[detector_id] = detector

    def ids(self) -> list[str]:
        return list(self._detectors)

    def __iter__(self) -> Iterator[Detector]:
        return iter(list(self._detectors.values()))

    def __len__(self) -> int:
        return len(self._detectors)


def default_registry() -> DetectorRegistry:
    """Registry holding one instance of every bundled detector."""
    return DetectorRegistry([cls() for cls in BUNDLED_DETECTORS])
