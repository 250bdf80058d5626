"""Detection stage: detectors, registry and concurrent runner."""

from .context import AnalysisContext, build_context
from .registry import DetectorRegistry, default_registry
from .runner import run_detectors
from .types import BundleStatus, Detector, SignalBundle

__all__ = [
    "AnalysisContext",
    "BundleStatus",
    "Detector",
    "DetectorRegistry",
    "SignalBundle",
    "build_context",
    "default_registry",
    "run_detectors",
]
