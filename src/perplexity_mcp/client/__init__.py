"""Perplexity API client — time-bounded HTTP calls and SSE stream assembly.

Quick start::

    from perplexity_mcp.client import CHAT_COMPLETIONS, PerplexityClient

    async with PerplexityClient(api_key="pplx-...") as client:
        data = await client.request_json(CHAT_COMPLETIONS, {"model": "sonar", "messages": [...]})
"""

from perplexity_mcp.client.client import (
    AGENT_RESPONSES,
    ASYNC_CHAT_COMPLETIONS,
    CHAT_COMPLETIONS,
    EMBEDDINGS,
    SEARCH,
    Endpoint,
    PerplexityClient,
)
from perplexity_mcp.client.streaming import StreamAssembler, StreamedAnswer

__all__ = [
    "AGENT_RESPONSES",
    "ASYNC_CHAT_COMPLETIONS",
    "CHAT_COMPLETIONS",
    "EMBEDDINGS",
    "SEARCH",
    "Endpoint",
    "PerplexityClient",
    "StreamAssembler",
    "StreamedAnswer",
]
