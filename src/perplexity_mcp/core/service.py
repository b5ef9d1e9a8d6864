"""Perplexity service — one coroutine per upstream operation.

Each operation follows the same lifecycle:
  1. Build the request body (validation errors surface here, before any I/O)
  2. Call the upstream endpoint through ``PerplexityClient``
  3. Render the response into tool text

Batched search fans out with ``asyncio.gather`` and isolates per-query
failures; everything else propagates errors to the caller.
"""

from __future__ import annotations

import asyncio
import logging
from collections.abc import Mapping, Sequence
from typing import Any

from perplexity_mcp.client.client import (
    AGENT_RESPONSES,
    ASYNC_CHAT_COMPLETIONS,
    CHAT_COMPLETIONS,
    EMBEDDINGS,
    SEARCH,
    PerplexityClient,
)
from perplexity_mcp.core.formatting import (
    append_extras,
    chat_content,
    format_agent_response,
    format_chat_completion,
    format_embeddings,
    format_multi_query_results,
    format_search_results,
)
from perplexity_mcp.core.request_builder import (
    build_agent_body,
    build_async_research_body,
    build_chat_body,
    build_embeddings_body,
    build_search_body,
    validate_query_batch,
)
from perplexity_mcp.models.options import CommonOptions, DateFilters
from perplexity_mcp.models.response import AsyncResearchResult, AsyncResearchStarted, QueryOutcome

logger = logging.getLogger(__name__)

Messages = Sequence[Mapping[str, Any]]


class PerplexityService:
    """Operations layer on top of a shared ``PerplexityClient``.

    Attributes:
        client: The HTTP client every operation goes through.
    """

    def __init__(self, client: PerplexityClient) -> None:
        self.client = client

    # ──────────────────────────────────────────────────────────────────────
    # Chat completions
    # ──────────────────────────────────────────────────────────────────────

    async def chat_completion(
        self,
        messages: Messages,
        model: str,
        options: CommonOptions | None = None,
    ) -> str:
        """Run a non-streaming chat completion and render it with its extras."""
        body = build_chat_body(messages, model, options)
        logger.info("Chat completion: model=%s, messages=%d", model, len(body["messages"]))
        data = await self.client.request_json(CHAT_COMPLETIONS, body)
        return format_chat_completion(data)

    async def streaming_chat_completion(
        self,
        messages: Messages,
        model: str,
        options: CommonOptions | None = None,
    ) -> str:
        """Run a streaming chat completion and render the assembled answer.

        The inactivity window restarts on every received chunk, so a long but
        steady answer is never cut off.
        """
        body = build_chat_body(messages, model, options, stream=True)
        logger.info("Streaming chat completion: model=%s, messages=%d", model, len(body["messages"]))
        answer = await self.client.stream_chat(CHAT_COMPLETIONS, body)
        return append_extras(answer.content, answer.extras())

    # ──────────────────────────────────────────────────────────────────────
    # Search
    # ──────────────────────────────────────────────────────────────────────

    async def search(
        self,
        query: str | Sequence[str],
        *,
        max_results: int | None = None,
        max_tokens_per_page: int | None = None,
        country: str | None = None,
        search_domain_filter: Sequence[str] | None = None,
        date_filters: DateFilters | None = None,
        search_language_filter: Sequence[str] | None = None,
        user_location: Mapping[str, Any] | None = None,
    ) -> str:
        """Search one query, or fan a batch of up to five out in parallel.

        A lone query, bare or in a one-element list, propagates its error.
        In a batch, each failing query becomes an ``**Error:**`` section and
        the others still render.
        """
        params: dict[str, Any] = {
            "max_results": max_results,
            "max_tokens_per_page": max_tokens_per_page,
            "country": country,
            "search_domain_filter": search_domain_filter,
            "date_filters": date_filters,
            "search_language_filter": search_language_filter,
            "user_location": user_location,
        }

        queries = validate_query_batch([query] if isinstance(query, str) else query)

        if len(queries) == 1:
            body = build_search_body(queries[0], **params)
            logger.info("Search: query=%r", queries[0])
            data = await self.client.request_json(SEARCH, body)
            return format_search_results(data)

        # Build every body first so a validation error fails the whole batch.
        bodies = [build_search_body(q, **params) for q in queries]
        logger.info("Batch search: %d queries", len(queries))

        responses = await asyncio.gather(
            *(self.client.request_json(SEARCH, body) for body in bodies),
            return_exceptions=True,
        )

        outcomes: list[QueryOutcome] = []
        for q, response in zip(queries, responses, strict=True):
            if isinstance(response, BaseException):
                logger.warning("Batch search query %r failed: %s", q, response)
                outcomes.append(QueryOutcome(query=q, error=str(response)))
            else:
                outcomes.append(QueryOutcome(query=q, data=response))

        failed = sum(1 for o in outcomes if o.error)
        logger.info("Batch search complete: %d succeeded, %d failed", len(outcomes) - failed, failed)
        return format_multi_query_results(outcomes)

    # ──────────────────────────────────────────────────────────────────────
    # Async research
    # ──────────────────────────────────────────────────────────────────────

    async def start_async_research(
        self,
        messages: Messages,
        *,
        reasoning_effort: str | None = None,
        search_domain_filter: Sequence[str] | None = None,
    ) -> AsyncResearchStarted:
        """Submit a deep-research job; the API answers with a request id."""
        body = build_async_research_body(
            messages,
            reasoning_effort=reasoning_effort,
            search_domain_filter=search_domain_filter,
        )
        data = await self.client.request_json(ASYNC_CHAT_COMPLETIONS, body)
        started = AsyncResearchStarted(
            request_id=str(data.get("request_id") or data.get("id") or ""),
            status=data.get("status") or "pending",
        )
        logger.info("Async research started: request_id=%s, status=%s", started.request_id, started.status)
        return started

    async def get_async_research_status(self, request_id: str) -> AsyncResearchResult:
        """Poll a research job. Completed jobs carry the rendered answer."""
        data = await self.client.request_json(ASYNC_CHAT_COMPLETIONS.with_suffix(request_id), method="GET")

        status = str(data.get("status") or "")
        result: str | None = None
        if status == "completed" and data.get("choices"):
            result = append_extras(chat_content(data), {"citations": data.get("citations")})

        error = data.get("error")
        if isinstance(error, Mapping):
            error = error.get("message")

        logger.info("Async research status: request_id=%s, status=%s", request_id, status)
        return AsyncResearchResult(
            request_id=str(data.get("request_id") or data.get("id") or request_id),
            status=status,
            created_at=_as_text(data.get("created_at")),
            completed_at=_as_text(data.get("completed_at")),
            result=result,
            error=_as_text(error),
        )

    # ──────────────────────────────────────────────────────────────────────
    # Agent & embeddings
    # ──────────────────────────────────────────────────────────────────────

    async def agent(self, args: Mapping[str, Any]) -> str:
        body = build_agent_body(args)
        logger.info("Agent request: model=%s, preset=%s", body.get("model"), body.get("preset"))
        data = await self.client.request_json(AGENT_RESPONSES, body)
        return format_agent_response(data)

    async def embed(self, args: Mapping[str, Any]) -> str:
        body = build_embeddings_body(args)
        count = 1 if isinstance(body["input"], str) else len(body["input"])
        logger.info("Embeddings request: model=%s, inputs=%d", body["model"], count)
        data = await self.client.request_json(EMBEDDINGS, body)
        return format_embeddings(data)


def _as_text(value: Any) -> str | None:
    if value is None or value == "":
        return None
    return str(value)
