"""Tests for MCP server tools."""

import asyncio

import pytest

from pagegrade.detection.context import build_context
from pagegrade.detection.page import FetchError
from pagegrade.mcp import server as mcp_server
from pagegrade.pipeline.orchestrator import Orchestrator

PAGE = (
    "<html lang='en'><head><title>Trail Running Shoes Guide</title></head>"
    "<body><h1>Trail Running Shoes</h1><p>Grip matters on trails.</p></body></html>"
)


@pytest.fixture
def orchestrator(monkeypatch):
    orch = Orchestrator.from_config()
    monkeypatch.setattr(mcp_server, "orchestrator", orch)
    return orch


def _load(url, timeout=20.0, session=None):
    return build_context("https://example.com/shoes", PAGE, {"status_code": 200})


class TestMCPTools:
    def test_audit_page(self, orchestrator, monkeypatch):
        monkeypatch.setattr(mcp_server, "load_page_context", _load)

        result = asyncio.run(mcp_server.audit_page("example.com/shoes"))

        assert result["success"] is True
        assert 0 <= result["overall_score"] <= 100
        assert result["result"]["metadata"]["state_trace"][-1] == "done"
        assert result["markdown"].startswith("## Summary")

    def test_audit_page_without_markdown(self, orchestrator, monkeypatch):
        monkeypatch.setattr(mcp_server, "load_page_context", _load)

        result = asyncio.run(mcp_server.audit_page("example.com/shoes", include_markdown=False))

        assert "markdown" not in result

    def test_audit_page_fetch_failure(self, orchestrator, monkeypatch):
        def _fail(url, timeout=20.0, session=None):
            raise FetchError("Target resolves to non-public or invalid host: http://10.0.0.1/")

        monkeypatch.setattr(mcp_server, "load_page_context", _fail)

        result = asyncio.run(mcp_server.audit_page("http://10.0.0.1/"))

        assert result["success"] is False
        assert result["error"].startswith("fetch_failed:")

    def test_pipeline_metrics_counts_runs(self, orchestrator, monkeypatch):
        monkeypatch.setattr(mcp_server, "load_page_context", _load)
        asyncio.run(mcp_server.audit_page("example.com/shoes"))
        asyncio.run(mcp_server.audit_page("example.com/shoes"))

        metrics = mcp_server.pipeline_metrics()

        assert metrics["success"] is True
        assert metrics["runs"] == 2
        assert metrics["cache_hits"] == 1
        assert metrics["cache"]["size"] == 1

    def test_scoring_framework(self, orchestrator):
        result = mcp_server.scoring_framework()

        assert result["framework"]["name"] == "overall"
        assert len(result["rules"]) == 10
        assert result["rules"][0] == {
            "rule_id": "title_tag_present",
            "tier": "critical",
            "category": "basic_seo",
            "detector": "meta_tags",
            "description": "Page must have a title tag",
        }

    def test_requires_initialization(self, monkeypatch):
        monkeypatch.setattr(mcp_server, "orchestrator", None)

        with pytest.raises(RuntimeError, match="not initialized"):
            mcp_server.pipeline_metrics()


class TestCLIEntrypoint:
    def test_framework_command(self):
        from click.testing import CliRunner

        from pagegrade.cli import cli

        result = CliRunner().invoke(cli, ["framework"])

        assert result.exit_code == 0
        assert "overall (1.00)" in result.output
        assert "title_present (0.30)  <- meta_tags" in result.output

    def test_rules_command(self):
        from click.testing import CliRunner

        from pagegrade.cli import cli

        result = CliRunner().invoke(cli, ["rules"])

        assert result.exit_code == 0
        assert "[critical] title_tag_present: Page must have a title tag" in result.output

    def test_audit_json_without_enhancement(self, monkeypatch):
        import json

        from click.testing import CliRunner

        from pagegrade.cli import cli
        from pagegrade.pipeline import service

        monkeypatch.setattr(service, "load_page_context", _load)

        result = CliRunner().invoke(cli, ["audit", "example.com/shoes", "--json", "--no-enhance"])

        assert result.exit_code == 0
        payload = json.loads(result.output)
        assert payload["enhancement"] is None
        assert "enhancing" not in payload["metadata"]["state_trace"]

    def test_audit_fetch_failure(self, monkeypatch):
        from click.testing import CliRunner

        from pagegrade.cli import cli
        from pagegrade.pipeline import service

        def _fail(url, timeout=20.0, session=None):
            raise FetchError("Non-success HTTP status from target: 500")

        monkeypatch.setattr(service, "load_page_context", _fail)

        result = CliRunner().invoke(cli, ["audit", "example.com"])

        assert result.exit_code == 1
        assert "fetch_failed" in result.output

    def test_audit_rejects_bad_config(self, tmp_path):
        from click.testing import CliRunner

        from pagegrade.cli import cli

        path = tmp_path / "pagegrade.yaml"
        path.write_text("nope: 1\n", encoding="utf-8")

        result = CliRunner().invoke(cli, ["audit", "example.com", "--config", str(path)])

        assert result.exit_code == 1
        assert "Unknown config keys: nope" in result.output
