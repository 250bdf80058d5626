"""MCP server exposing page audits."""

from .server import init_server, mcp

__all__ = ["init_server", "mcp"]
