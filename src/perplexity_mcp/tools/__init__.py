"""Tool layer — declarations and the dispatch router."""

from perplexity_mcp.tools.definitions import TOOL_NAMES, TOOLS, ToolDefinition
from perplexity_mcp.tools.router import ToolRouter, dispatch

__all__ = ["TOOLS", "TOOL_NAMES", "ToolDefinition", "ToolRouter", "dispatch"]
