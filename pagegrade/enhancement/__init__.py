"""Optional enhancement stage."""

from .gate import EnhancementStage, build_enhancement_input
from .providers import HeuristicInsightProvider, HttpInsightProvider
from .types import EnhancementResult, InsightProvider

__all__ = [
    "EnhancementResult",
    "EnhancementStage",
    "HeuristicInsightProvider",
    "HttpInsightProvider",
    "InsightProvider",
    "build_enhancement_input",
]
