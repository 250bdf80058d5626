"""High-level entry points wiring fetch, orchestration and rendering."""

import logging
from typing import Any, Mapping

import requests

from ..detection.context import build_context
from ..detection.page import FetchError, load_page_context
from .config import DEFAULT_PIPELINE_CONFIG, PipelineConfig
from .orchestrator import Orchestrator
from .renderer import render_report
from .types import PipelineResult

log = logging.getLogger(__name__)


def run_analysis(
    url: str,
    html: str,
    *,
    metadata: Mapping[str, Any] | None = None,
    orchestrator: Orchestrator | None = None,
    config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
) -> PipelineResult:
    """Analyze already-acquired HTML."""
    orch = orchestrator or Orchestrator.from_config(config)
    return orch.analyze(build_context(url, html, metadata))


def audit_url(
    url: str,
    *,
    orchestrator: Orchestrator | None = None,
    config: PipelineConfig = DEFAULT_PIPELINE_CONFIG,
    session: requests.Session | None = None,
) -> dict:
    """Fetch ``url``, run the pipeline and return a structured payload."""
    orch = orchestrator or Orchestrator.from_config(config)
    try:
        context = load_page_context(url, timeout=orch.config.fetch_timeout, session=session)
    except FetchError as e:
        log.warning(f"Fetch failed for {url}: {e}")
        return {"success": False, "url": url, "error": f"fetch_failed: {e}"}

    result = orch.analyze(context)
    return {
        "success": not result.failed,
        "url": context.url,
        "result": result.to_dict(),
        "markdown": render_report(result),
    }
