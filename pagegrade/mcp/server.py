"""Page Grade MCP Server.

Exposes page audits and scoring metadata as MCP tools.
"""

import asyncio

from mcp.server.fastmcp import FastMCP

from ..detection.page import FetchError, load_page_context
from ..pipeline.config import DEFAULT_PIPELINE_CONFIG, PipelineConfig
from ..pipeline.orchestrator import Orchestrator
from ..pipeline.renderer import render_report
from ..scoring.framework import framework_outline
from ..scoring.rules import DEFAULT_RULES

mcp = FastMCP(
    "Page Grade",
    instructions="""
Explainable single-page quality audits.

Use audit_page to fetch a public URL and score it (0-100 with a letter grade,
category tree, compliance findings and prioritized recommendations).
Use scoring_framework to inspect category weights and compliance rules.
Use pipeline_metrics for run counts, success rate and cache hit rate.
""",
)

orchestrator: Orchestrator | None = None


def init_server(config: PipelineConfig = DEFAULT_PIPELINE_CONFIG):
    """Initialize server with a shared orchestrator."""
    global orchestrator
    orchestrator = Orchestrator.from_config(config)


def _require_orchestrator() -> Orchestrator:
    """Get orchestrator or raise error."""
    if orchestrator is None:
        raise RuntimeError("Server not initialized. Call init_server() first.")
    return orchestrator


@mcp.tool()
async def audit_page(url: str, include_markdown: bool = True) -> dict:
    """Audit a single public web page.

    Args:
        url: Page URL (scheme optional, https assumed)
        include_markdown: Include the rendered markdown report

    Returns:
        Dict with score, grade, gaps and the full structured result
    """
    orch = _require_orchestrator()
    try:
        context = await asyncio.to_thread(
            load_page_context, url, orch.config.fetch_timeout
        )
    except FetchError as exc:
        return {"success": False, "error": f"fetch_failed: {exc}"}

    result = await orch.run_analysis(context)
    response = {
        "success": not result.failed,
        "url": context.url,
        "overall_score": result.overall_score,
        "grade": result.grade,
        "gaps": list(result.gaps),
        "result": result.to_dict(),
    }
    if result.error:
        response["error"] = result.error
    if include_markdown:
        response["markdown"] = render_report(result)
    return response


@mcp.tool()
def pipeline_metrics() -> dict:
    """Get accumulated pipeline metrics.

    Returns:
        Dict with runs, successes, failures, cache hits and rates
    """
    orch = _require_orchestrator()
    response = {"success": True, **orch.metrics.snapshot()}
    if orch.cache is not None:
        response["cache"] = orch.cache.stats()
    return response


@mcp.tool()
def scoring_framework() -> dict:
    """Get the category tree and compliance rule catalog.

    Returns:
        Dict with nested categories (name, weight, detector) and rules
    """
    orch = _require_orchestrator()
    return {
        "success": True,
        "framework": framework_outline(orch.engine.framework),
        "rules": [
            {
                "rule_id": rule.rule_id,
                "tier": rule.tier.value,
                "category": rule.category,
                "detector": rule.detector,
                "description": rule.description,
            }
            for rule in orch.engine.rules
        ],
    }


def main():
    """Entry point for MCP server."""
    init_server()
    mcp.run()


if __name__ == "__main__":
    main()
