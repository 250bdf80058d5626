"""Bundled insight providers."""

import asyncio
import logging
from typing import Any

import requests

log = logging.getLogger(__name__)

_STRENGTH_SCORE = 85.0
_OPPORTUNITY_SCORE = 70.0

# Categories whose low scores call out a specific opportunity area.
_OPPORTUNITY_AREAS = {
    "content_quality": (
        "medium",
        "Content optimization improvements could boost search visibility",
    ),
    "technical_seo": (
        "high",
        "Technical SEO improvements could significantly improve search performance",
    ),
}


class HeuristicInsightProvider:
    """Local insights derived from the score tree.

    Confidence is the share of leaves that received a signal, so sparse runs
    are gated out by the stage threshold.
    """

    name = "heuristic"

    async def produce_insights(self, payload: dict[str, Any]) -> dict[str, Any]:
        leaves = payload.get("leaves") or {}
        categories = payload.get("categories") or {}
        measured = [score for score in leaves.values() if score is not None]
        confidence = round(len(measured) / len(leaves), 4) if leaves else 0.0

        insights: list[str] = []
        recommendations: list[dict[str, Any]] = []
        for name, score in sorted(categories.items()):
            if score is None:
                continue
            if score >= _STRENGTH_SCORE:
                insights.append(f"Strength: {name} scores {score:g}/100")
            elif score < _OPPORTUNITY_SCORE:
                insights.append(f"Opportunity: {name} scores {score:g}/100")
                area = _OPPORTUNITY_AREAS.get(name)
                if area:
                    priority, description = area
                    recommendations.append(
                        {
                            "priority": priority,
                            "category": name,
                            "title": f"Prioritize {name.replace('_', ' ')}",
                            "description": description,
                            "estimated_effort": "medium",
                        }
                    )

        if payload.get("gaps"):
            insights.append(
                "Signals missing from: " + ", ".join(sorted(payload["gaps"]))
            )
        return {
            "insights": insights,
            "confidence": confidence,
            "recommendations": recommendations,
        }


class HttpInsightProvider:
    """POSTs the enhancement input as JSON to an external endpoint."""

    name = "http"

    def __init__(self, endpoint: str, *, api_key: str | None = None, timeout: float = 10.0):
        self.endpoint = endpoint
        self.api_key = api_key
        self.timeout = timeout

    def _post(self, payload: dict[str, Any]) -> dict[str, Any]:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"
        resp = requests.post(
            self.endpoint, json=payload, headers=headers, timeout=self.timeout
        )
        resp.raise_for_status()
        data = resp.json()
        if not isinstance(data, dict):
            raise ValueError(f"Unexpected response type: {type(data).__name__}")
        return data

    async def produce_insights(self, payload: dict[str, Any]) -> dict[str, Any]:
        log.info(f"Requesting insights from {self.endpoint}")
        return await asyncio.to_thread(self._post, payload)
