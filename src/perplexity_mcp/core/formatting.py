"""Text rendering of API responses into tool output."""

from __future__ import annotations

import json
from collections.abc import Mapping, Sequence
from typing import Any

from perplexity_mcp.models.response import AsyncResearchResult, AsyncResearchStarted, QueryOutcome

NO_RESULTS = "No search results found."


def _has_items(value: Any) -> bool:
    return isinstance(value, list) and len(value) > 0


def append_extras(content: str, data: Mapping[str, Any], *, snippets: bool = True) -> str:
    """Append citations, images, related questions and search results to *content*.

    Sections appear in that fixed order; absent or empty collections are
    skipped, so ``append_extras("x", {})`` is ``"x"``. With ``snippets=False``
    search results are listed as ``title — url (date)`` only.
    """
    parts = [content]

    citations = data.get("citations")
    if _has_items(citations):
        parts.append("\n\nCitations:\n")
        parts.extend(f"[{i}] {citation}\n" for i, citation in enumerate(citations, start=1))

    images = data.get("images")
    if _has_items(images):
        parts.append("\n\nImages:\n")
        for i, img in enumerate(images, start=1):
            img = img if isinstance(img, Mapping) else {"url": img}
            parts.append(
                f"[{i}] {img.get('url')} ({img.get('width')}x{img.get('height')}) - Source: {img.get('origin_url')}\n"
            )

    related = data.get("related_questions")
    if _has_items(related):
        parts.append("\n\nRelated Questions:\n")
        parts.extend(f"{i}. {question}\n" for i, question in enumerate(related, start=1))

    search_results = data.get("search_results")
    if _has_items(search_results):
        parts.append("\n\nSearch Results:\n")
        for i, result in enumerate(search_results, start=1):
            result = result if isinstance(result, Mapping) else {}
            line = f"[{i}] {result.get('title')} — {result.get('url')}"
            if result.get("date"):
                line += f" ({result['date']})"
            if snippets and result.get("snippet"):
                line += f"\n    {result['snippet']}"
            parts.append(line + "\n")

    return "".join(parts)


def _render_result_list(results: Sequence[Any]) -> str:
    lines: list[str] = []
    for i, result in enumerate(results, start=1):
        result = result if isinstance(result, Mapping) else {}
        lines.append(f"{i}. **{result.get('title')}**\n")
        lines.append(f"   URL: {result.get('url')}\n")
        if result.get("snippet"):
            lines.append(f"   {result['snippet']}\n")
        if result.get("date"):
            lines.append(f"   Date: {result['date']}\n")
        lines.append("\n")
    return "".join(lines)


def format_search_results(data: Mapping[str, Any]) -> str:
    """Render one ``/search`` response.

    A response without a ``results`` list renders as ``NO_RESULTS``; an empty
    list still renders the ``Found 0 search results:`` header.
    """
    results = data.get("results")
    if not isinstance(results, list):
        return NO_RESULTS
    return f"Found {len(results)} search results:\n\n" + _render_result_list(results)


def format_multi_query_results(outcomes: Sequence[QueryOutcome]) -> str:
    """Render a batch of per-query outcomes, one ``## Query i`` section each."""
    sections: list[str] = []
    for i, outcome in enumerate(outcomes, start=1):
        header = f'## Query {i}: "{outcome.query}"\n'
        if outcome.error:
            sections.append(header + f"\n**Error:** {outcome.error}\n")
            continue
        results = (outcome.data or {}).get("results")
        if not isinstance(results, list):
            sections.append(header + f"\n{NO_RESULTS}\n")
            continue
        sections.append(header + f"\nFound {len(results)} results:\n\n" + _render_result_list(results))
    return "\n---\n\n".join(sections)


def chat_content(data: Mapping[str, Any]) -> str:
    """Pull ``choices[0].message.content`` out of a chat completion."""
    try:
        content = data["choices"][0]["message"]["content"]
    except (KeyError, IndexError, TypeError):
        return ""
    return content if isinstance(content, str) else ""


def format_chat_completion(data: Mapping[str, Any]) -> str:
    return append_extras(chat_content(data), data)


def format_async_started(started: AsyncResearchStarted) -> str:
    return (
        "Async research job started.\n\n"
        f"Request ID: {started.request_id}\n"
        f"Status: {started.status}\n\n"
        "Use perplexity_research_status with this request_id to check progress and retrieve results."
    )


def format_async_status(status: AsyncResearchResult) -> str:
    text = f"Request ID: {status.request_id}\nStatus: {status.status}"
    if status.created_at:
        text += f"\nCreated: {status.created_at}"
    if status.completed_at:
        text += f"\nCompleted: {status.completed_at}"
    if status.status == "failed" and status.error:
        text += f"\nError: {status.error}"
    if status.status == "completed" and status.result:
        text += f"\n\n--- Research Results ---\n\n{status.result}"
    if status.in_progress:
        text += "\n\nThe research is still in progress. Please poll again in a few seconds."
    return text


def format_agent_response(data: Mapping[str, Any]) -> str:
    """Render a ``/v1/responses`` payload.

    Tries, in order: ``output[]`` items (``content`` or ``text``), a top-level
    ``content`` string, ``choices[0].message.content``; otherwise dumps the
    JSON. Citations and search results are appended either way.
    """
    output = data.get("output")
    if isinstance(output, list):
        pieces = []
        for item in output:
            if isinstance(item, Mapping):
                piece = item.get("content") or item.get("text") or ""
                if isinstance(piece, str) and piece:
                    pieces.append(piece)
        content = "\n\n".join(pieces)
    elif isinstance(data.get("content"), str) and data["content"]:
        content = data["content"]
    elif _has_items(data.get("choices")):
        content = chat_content(data)
    else:
        content = json.dumps(data, indent=2)

    return append_extras(
        content,
        {"citations": data.get("citations"), "search_results": data.get("search_results")},
        snippets=False,
    )


def format_embeddings(data: Mapping[str, Any]) -> str:
    """Summarize an embeddings response and attach the raw JSON."""
    usage = data.get("usage") or {}
    items = data.get("data") or []

    lines = [
        f"Model: {data.get('model')}",
        f"Usage: {usage.get('prompt_tokens')} prompt tokens, {usage.get('total_tokens')} total tokens",
        f"Embeddings: {len(items)}",
        "",
    ]
    for item in items:
        embedding = item.get("embedding")
        if isinstance(embedding, list):
            preview = ", ".join(f"{float(n):.6f}" for n in embedding[:5])
            lines.append(f"[{item.get('index')}] {len(embedding)} dimensions: [{preview}, ...]")
        elif isinstance(embedding, str):
            lines.append(f"[{item.get('index')}] base64 encoded")
        else:
            lines.append(f"[{item.get('index')}] encoded")

    return "\n".join(lines) + f"\n\n---\nRaw JSON:\n{json.dumps(data, indent=2)}"
