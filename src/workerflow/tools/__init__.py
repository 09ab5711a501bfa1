"""MCP tool registration - modular tool definitions."""

from mcp.server.fastmcp import FastMCP

from ..config import Config
from .runs import register_run_tools
from .workflows import register_workflow_tools


def register_all_tools(mcp: FastMCP, config: Config) -> None:
	"""Register all MCP tools."""
	register_workflow_tools(mcp, config)
	register_run_tools(mcp, config)
