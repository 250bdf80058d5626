"""Deterministic markdown renderer for audit results."""

from ..scoring.types import CategoryScoreNode
from .types import PipelineResult

_BAR_WIDTH = 20
_MAX_ISSUE_LEN = 160


def _truncate(text: str, max_len: int = _MAX_ISSUE_LEN) -> str:
    cleaned = " ".join(str(text).split())
    if len(cleaned) <= max_len:
        return cleaned
    return cleaned[: max_len - 3].rstrip() + "..."


def score_bar(score: float | None, width: int = _BAR_WIDTH) -> str:
    if score is None:
        return "[" + "?" * width + "]"
    filled = int(round(max(0.0, min(100.0, score)) / 100 * width))
    return "[" + "#" * filled + "." * (width - filled) + "]"


def _format_node(node: CategoryScoreNode, depth: int) -> list[str]:
    indent = "  " * depth
    score = "n/a" if node.score is None else f"{node.score:.2f}"
    lines = [f"{indent}- {node.name} (w={node.weight:.2f}) {score_bar(node.score)} {score}"]
    for issue in node.issues:
        lines.append(f"{indent}  - ! {_truncate(issue)}")
    for child in node.children:
        lines.extend(_format_node(child, depth + 1))
    return lines


def render_report(result: PipelineResult) -> str:
    """Render a pipeline result as markdown with a fixed section order."""
    meta = result.metadata
    parts = [
        "## Summary",
        f"- score: {result.overall_score}/100",
        f"- grade: {result.grade}",
        f"- optimization: {result.optimization_level}",
        f"- status: {result.status}",
    ]
    if result.error:
        parts.append(f"- error: {_truncate(result.error)}")
    parts.append(
        f"- detectors: {meta.detectors_run} run, {meta.detectors_failed} failed"
        + (" (cached)" if meta.cache_hit else "")
    )
    parts.append(f"- gaps: {', '.join(result.gaps) if result.gaps else '(none)'}")

    parts += ["", "## Categories"]
    if result.score_tree is None:
        parts.append("- (none)")
    else:
        parts.extend(_format_node(result.score_tree, 0))

    parts += ["", "## Compliance"]
    if not result.findings:
        parts.append("- (none)")
    for finding in result.findings:
        if not finding.data_available:
            mark = "?"
        else:
            mark = "x" if finding.passed else " "
        parts.append(f"- [{mark}] {finding.tier.value} | {finding.rule_id} | {finding.impact}")
    overall = result.compliance.get("overall")
    if overall:
        parts.append(f"- compliance: {overall['percent']}% ({overall['passed']} passed, {overall['failed']} failed)")

    parts += ["", "## Recommendations"]
    if not result.recommendations:
        parts.append("- (none)")
    for rec in result.recommendations:
        effort = f" | effort={rec.estimated_effort}" if rec.estimated_effort else ""
        parts.append(
            f"- [{rec.priority.value}] {rec.category}: {_truncate(rec.title)}{effort}"
        )

    parts += ["", "## Insights"]
    if result.enhancement is None or not result.enhancement.insights:
        parts.append("- (none)")
    else:
        parts.append(
            f"- provider={result.enhancement.provider} confidence={result.enhancement.confidence:.2f}"
        )
        parts.extend(f"- {_truncate(insight)}" for insight in result.enhancement.insights)

    return "\n".join(parts)
