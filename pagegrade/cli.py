"""CLI for pagegrade."""

import asyncio
import json
import logging
from dataclasses import replace
from pathlib import Path

import click

from .pipeline.config import ConfigError, load_pipeline_config
from .pipeline.orchestrator import Orchestrator
from .pipeline.service import audit_url
from .scoring.framework import DEFAULT_FRAMEWORK, framework_outline
from .scoring.rules import DEFAULT_RULES


@click.group()
@click.option("--verbose", "-v", is_flag=True, help="Enable debug logging")
def cli(verbose: bool):
    """Page Grade - explainable quality audits for a single web page."""
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


def _load_config(config_path: Path | None):
    try:
        return load_pipeline_config(config_path)
    except ConfigError as e:
        raise click.ClickException(str(e)) from e


def _print_outline(node: dict, depth: int = 0):
    indent = "  " * depth
    detector = f"  <- {node['detector']}" if "detector" in node else ""
    click.echo(f"{indent}{node['name']} ({node['weight']:.2f}){detector}")
    for child in node.get("children", []):
        _print_outline(child, depth + 1)


@cli.command()
@click.argument("url", type=str)
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML pipeline config",
)
@click.option("--json", "as_json", is_flag=True, help="Print the structured result as JSON")
@click.option("--no-enhance", is_flag=True, help="Skip the enhancement stage")
def audit(url: str, config_path: Path | None, as_json: bool, no_enhance: bool):
    """Fetch URL and print its audit report."""
    config = _load_config(config_path)
    if no_enhance:
        config = replace(config, enhancement_enabled=False)

    payload = audit_url(url, orchestrator=Orchestrator.from_config(config))
    if "result" not in payload:
        raise click.ClickException(payload["error"])

    if as_json:
        click.echo(json.dumps(payload["result"], indent=2))
    else:
        click.echo(payload["markdown"])

    if not payload["success"]:
        raise SystemExit(1)


@cli.command()
def framework():
    """Show the scoring category tree and weights."""
    _print_outline(framework_outline(DEFAULT_FRAMEWORK))


@cli.command()
def rules():
    """List compliance rules by tier."""
    for rule in DEFAULT_RULES:
        click.echo(f"[{rule.tier.value}] {rule.rule_id}: {rule.description}")


@cli.command("mcp-server")
@click.option(
    "--config",
    "config_path",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="YAML pipeline config",
)
@click.option(
    "--transport",
    type=click.Choice(["stdio", "sse"]),
    default="stdio",
    help="MCP transport type",
)
def mcp_server(config_path: Path | None, transport: str):
    """Run the Page Grade MCP server."""
    from .mcp import init_server, mcp

    init_server(_load_config(config_path))

    click.echo(f"Starting MCP server ({transport} transport)...", err=True)

    if transport == "stdio":
        asyncio.run(mcp.run_stdio_async())
    else:
        asyncio.run(mcp.run_sse_async())


if __name__ == "__main__":
    cli()
