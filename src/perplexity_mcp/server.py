"""stdio protocol server — exposes the tool router over MCP.

The low-level ``mcp`` server handles JSON-RPC framing on stdin/stdout; this
module only wires ``tools/list`` and ``tools/call`` to the declarations and
the ``ToolRouter``.
"""

from __future__ import annotations

import logging
from typing import Any

from mcp import types
from mcp.server.lowlevel import Server
from mcp.server.stdio import stdio_server

from perplexity_mcp.config.settings import Settings
from perplexity_mcp.tools.definitions import TOOLS
from perplexity_mcp.tools.router import ToolRouter

logger = logging.getLogger(__name__)


class ToolCallFailed(Exception):
    """Carries an error result's text to the protocol layer, which marks it ``isError``."""


def list_tool_declarations() -> list[types.Tool]:
    return [
        types.Tool(name=tool.name, description=tool.description, inputSchema=tool.input_schema) for tool in TOOLS
    ]


def create_server(settings: Settings, router: ToolRouter) -> Server:
    """Build the protocol server around an existing router.

    Input schemas are advertised to clients but not enforced by the protocol
    layer; the router applies its own validation and messages.
    """
    server: Server = Server(settings.server.name, version=settings.server.version)

    @server.list_tools()
    async def _list_tools() -> list[types.Tool]:
        return list_tool_declarations()

    @server.call_tool(validate_input=False)
    async def _call_tool(name: str, arguments: dict[str, Any] | None) -> list[types.TextContent]:
        result = await router.call(name, arguments)
        if result.is_error:
            raise ToolCallFailed(result.first_text)
        return [types.TextContent(type="text", text=block.text) for block in result.content]

    return server


async def run_stdio(settings: Settings) -> None:
    """Serve tools over stdin/stdout until the client disconnects."""
    router = ToolRouter.from_settings(settings)
    server = create_server(settings, router)
    logger.info(
        "Starting %s %s on stdio (timeout=%dms)",
        settings.server.name,
        settings.server.version,
        settings.timeout_ms,
    )
    try:
        async with stdio_server() as (read_stream, write_stream):
            await server.run(read_stream, write_stream, server.create_initialization_options())
    finally:
        await router.close()
        logger.info("%s shut down", settings.server.name)
