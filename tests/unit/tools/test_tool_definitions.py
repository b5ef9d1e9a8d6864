"""Tests for tool declarations and the stdio server wiring."""

from __future__ import annotations

import re

from mcp import types

from perplexity_mcp.config.settings import Settings
from perplexity_mcp.server import create_server, list_tool_declarations
from perplexity_mcp.tools.definitions import DATE_PATTERN, TOOL_NAMES, TOOLS, get_tool
from perplexity_mcp.tools.router import ToolRouter

EXPECTED_TOOLS = {
    "perplexity_ask",
    "perplexity_research",
    "perplexity_reason",
    "perplexity_search",
    "perplexity_research_async",
    "perplexity_research_status",
    "perplexity_agent",
    "perplexity_embed",
}


class TestDefinitions:
    def test_all_tools_declared(self) -> None:
        assert TOOL_NAMES == EXPECTED_TOOLS
        assert len(TOOLS) == len(EXPECTED_TOOLS)

    def test_required_fields(self) -> None:
        required = {tool.name: tool.input_schema["required"] for tool in TOOLS}
        assert required["perplexity_ask"] == ["messages"]
        assert required["perplexity_search"] == ["query"]
        assert required["perplexity_research_status"] == ["request_id"]
        assert required["perplexity_agent"] == ["query"]
        assert required["perplexity_embed"] == ["input"]

    def test_shared_constraints(self) -> None:
        ask = get_tool("perplexity_ask")
        assert ask is not None
        props = ask.input_schema["properties"]
        assert props["search_domain_filter"]["maxItems"] == 20
        assert props["search_language_filter"]["maxItems"] == 10
        assert props["model"]["enum"] == ["sonar", "sonar-pro"]
        assert props["search_after_date"]["pattern"] == DATE_PATTERN
        assert re.match(DATE_PATTERN, "04/01/2025")

    def test_wire_alias(self) -> None:
        dumped = TOOLS[0].model_dump(by_alias=True)
        assert set(dumped) == {"name", "description", "inputSchema"}

    def test_unknown_tool(self) -> None:
        assert get_tool("perplexity_magic") is None


class TestServer:
    def test_declarations_convert(self) -> None:
        declared = list_tool_declarations()
        assert all(isinstance(tool, types.Tool) for tool in declared)
        assert {tool.name for tool in declared} == EXPECTED_TOOLS

    async def test_registers_handlers(self, settings: Settings) -> None:
        router = ToolRouter.from_settings(settings)
        server = create_server(settings, router)
        await router.close()

        assert types.ListToolsRequest in server.request_handlers
        assert types.CallToolRequest in server.request_handlers
