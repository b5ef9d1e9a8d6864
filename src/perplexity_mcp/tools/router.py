"""Tool dispatch — route a tool call to its handler and never let it raise.

Usage::

    router = ToolRouter.from_settings(settings)
    result = await router.call("perplexity_search", {"query": "python 3.13"})
    await router.close()

Every handler validates its raw arguments, runs one service operation and
wraps the text in a ``ToolResult``. Any exception becomes an error result
with ``"Error: <message>"``; an unknown tool name yields
``"Unknown tool: <name>"``.
"""

from __future__ import annotations

import logging
from collections.abc import Awaitable, Callable, Mapping
from typing import TYPE_CHECKING, Any

from perplexity_mcp.client.client import DEFAULT_BASE_URL, DEFAULT_TIMEOUT_MS, PerplexityClient
from perplexity_mcp.client.exceptions import PerplexityError, ValidationError
from perplexity_mcp.core.formatting import format_async_started, format_async_status
from perplexity_mcp.core.options import (
    build_common_options,
    build_date_filters,
    optional_integer,
    optional_mapping,
    optional_string,
    optional_string_list,
    validate_messages,
)
from perplexity_mcp.core.request_builder import DEEP_RESEARCH_MODEL, MAX_BATCH_QUERIES
from perplexity_mcp.core.service import PerplexityService
from perplexity_mcp.models.response import ToolResult
from perplexity_mcp.tools import definitions as tools

if TYPE_CHECKING:
    from perplexity_mcp.config.settings import Settings

logger = logging.getLogger(__name__)

Handler = Callable[[dict[str, Any]], Awaitable[str]]


def _require_messages(tool: str, args: Mapping[str, Any]) -> list[dict[str, Any]]:
    messages = args.get("messages")
    if not isinstance(messages, list):
        raise ValidationError(f"Invalid arguments for {tool}: 'messages' must be an array")
    if not validate_messages(messages):
        raise ValidationError("Invalid message format: each message must have string 'role' and 'content' properties")
    return messages


class ToolRouter:
    """Maps tool names onto ``PerplexityService`` operations.

    Attributes:
        service: Operations layer the handlers call into.
    """

    def __init__(self, service: PerplexityService) -> None:
        self.service = service
        self._handlers: dict[str, Handler] = {
            tools.ASK: self._ask,
            tools.RESEARCH: self._research,
            tools.REASON: self._reason,
            tools.SEARCH: self._search,
            tools.RESEARCH_ASYNC: self._research_async,
            tools.RESEARCH_STATUS: self._research_status,
            tools.AGENT: self._agent,
            tools.EMBED: self._embed,
        }

    @classmethod
    def from_settings(cls, settings: Settings, **httpx_kwargs: Any) -> ToolRouter:
        """Build a router with its own client from application settings.

        Raises:
            ConfigurationError: If no API key is configured.
        """
        client = PerplexityClient(
            settings.require_api_key(),
            timeout_ms=settings.timeout_ms,
            base_url=settings.base_url,
            **httpx_kwargs,
        )
        return cls(PerplexityService(client))

    async def close(self) -> None:
        await self.service.client.close()

    async def call(self, name: str, arguments: Mapping[str, Any] | None) -> ToolResult:
        """Run one tool call and return its result; this never raises."""
        handler = self._handlers.get(name)
        if handler is None:
            logger.warning("Unknown tool requested: %s", name)
            return ToolResult.text(f"Unknown tool: {name}", is_error=True)

        try:
            if arguments is None:
                raise ValidationError("No arguments provided")
            text = await handler(dict(arguments))
        except PerplexityError as e:
            logger.warning("Tool %s failed: %s: %s", name, type(e).__name__, e)
            return ToolResult.text(f"Error: {e}", is_error=True)
        except Exception as e:
            logger.exception("Tool %s raised unexpectedly", name)
            return ToolResult.text(f"Error: {e}", is_error=True)

        logger.info("Tool %s completed (%d chars)", name, len(text))
        return ToolResult.text(text)

    # ── Chat-style tools ──

    async def _ask(self, args: dict[str, Any]) -> str:
        messages = _require_messages(tools.ASK, args)
        model = args.get("model")
        if model not in tools.ASK_MODELS:
            model = tools.DEFAULT_ASK_MODEL
        return await self._chat(messages, model, args, stream=args.get("stream") is True)

    async def _research(self, args: dict[str, Any]) -> str:
        messages = _require_messages(tools.RESEARCH, args)
        return await self._chat(messages, DEEP_RESEARCH_MODEL, args, stream=False)

    async def _reason(self, args: dict[str, Any]) -> str:
        messages = _require_messages(tools.REASON, args)
        return await self._chat(messages, tools.REASONING_MODEL, args, stream=args.get("stream") is True)

    async def _chat(self, messages: list[dict[str, Any]], model: str, args: dict[str, Any], *, stream: bool) -> str:
        options = build_common_options(args)
        opts = None if options.is_empty() else options
        if stream:
            return await self.service.streaming_chat_completion(messages, model, opts)
        return await self.service.chat_completion(messages, model, opts)

    # ── Search ──

    async def _search(self, args: dict[str, Any]) -> str:
        query = args.get("query")
        valid = isinstance(query, str) or (isinstance(query, list) and all(isinstance(q, str) for q in query))
        if not valid:
            raise ValidationError(
                f"Invalid arguments for {tools.SEARCH}: 'query' must be a string or array of strings"
            )
        if isinstance(query, list) and len(query) > MAX_BATCH_QUERIES:
            raise ValidationError(
                f"Invalid arguments for {tools.SEARCH}: maximum {MAX_BATCH_QUERIES} queries allowed"
            )

        date_filters = build_date_filters(args)
        return await self.service.search(
            query,
            max_results=optional_integer(args, "max_results"),
            max_tokens_per_page=optional_integer(args, "max_tokens_per_page"),
            country=optional_string(args, "country"),
            search_domain_filter=optional_string_list(args, "search_domain_filter"),
            date_filters=date_filters if date_filters.model_dump(exclude_none=True) else None,
            search_language_filter=optional_string_list(args, "search_language_filter"),
            user_location=optional_mapping(args, "user_location"),
        )

    # ── Async research ──

    async def _research_async(self, args: dict[str, Any]) -> str:
        messages = _require_messages(tools.RESEARCH_ASYNC, args)
        options = build_common_options(args)
        started = await self.service.start_async_research(
            messages,
            reasoning_effort=options.reasoning_effort,
            search_domain_filter=options.search_domain_filter,
        )
        return format_async_started(started)

    async def _research_status(self, args: dict[str, Any]) -> str:
        request_id = args.get("request_id")
        if not isinstance(request_id, str):
            raise ValidationError(f"Invalid arguments for {tools.RESEARCH_STATUS}: 'request_id' must be a string")
        status = await self.service.get_async_research_status(request_id)
        return format_async_status(status)

    # ── Agent & embeddings ──

    async def _agent(self, args: dict[str, Any]) -> str:
        return await self.service.agent(args)

    async def _embed(self, args: dict[str, Any]) -> str:
        return await self.service.embed(args)


async def dispatch(
    name: str,
    arguments: Mapping[str, Any] | None,
    *,
    api_key: str,
    timeout_ms: int = DEFAULT_TIMEOUT_MS,
    base_url: str = DEFAULT_BASE_URL,
    **httpx_kwargs: Any,
) -> ToolResult:
    """One-shot tool call with a client that lives only for this call."""
    client = PerplexityClient(api_key, timeout_ms=timeout_ms, base_url=base_url, **httpx_kwargs)
    try:
        return await ToolRouter(PerplexityService(client)).call(name, arguments)
    finally:
        await client.close()
