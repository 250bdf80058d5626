"""Typed contracts for the optional enhancement stage."""

from dataclasses import dataclass
from typing import Any, Protocol

from ..scoring.types import Recommendation


class InsightProvider(Protocol):
    """External enrichment capability.

    ``produce_insights`` returns a mapping with ``insights`` (list of str),
    ``confidence`` (float in [0, 1]) and optionally ``recommendations``
    (list of dicts with priority/category/title/description).
    """

    name: str

    async def produce_insights(self, payload: dict[str, Any]) -> dict[str, Any]: ...


@dataclass(frozen=True)
class EnhancementResult:
    provider: str
    confidence: float
    insights: tuple[str, ...]
    recommendations: tuple[Recommendation, ...] = ()
