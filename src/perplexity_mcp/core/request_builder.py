"""Request body construction for every upstream endpoint.

Builders are pure: they copy caller lists instead of storing them, never touch
the network, and raise ``ValidationError`` before a request could be sent.
"""

from __future__ import annotations

from collections.abc import Mapping, Sequence
from typing import Any

from perplexity_mcp.client.exceptions import ValidationError
from perplexity_mcp.core.options import (
    extract,
    one_of,
    optional_integer,
    optional_mapping,
    optional_string,
    optional_string_list,
)
from perplexity_mcp.models.options import CommonOptions, DateFilters

MAX_DOMAIN_FILTERS = 20
MAX_BATCH_QUERIES = 5
MAX_AGENT_MODELS = 5
MAX_AGENT_STEPS = 10
MAX_EMBEDDING_INPUTS = 512

DEEP_RESEARCH_MODEL = "sonar-deep-research"
DEFAULT_EMBEDDING_MODEL = "pplx-embed-v1-4b"
DEFAULT_MAX_RESULTS = 10
DEFAULT_MAX_TOKENS_PER_PAGE = 1024

AGENT_PRESETS = ("fast-search", "pro-search", "deep-research", "advanced-deep-research")
EMBEDDING_MODELS = (
    "pplx-embed-v1-0.6b",
    "pplx-embed-v1-4b",
    "pplx-embed-context-v1-0.6b",
    "pplx-embed-context-v1-4b",
)
ENCODING_FORMATS = ("float", "base64_int8", "base64_binary")


# ── Shared checks ──


def _check_domain_filter(domains: Sequence[str] | None) -> list[str] | None:
    if not domains:
        return None
    if len(domains) > MAX_DOMAIN_FILTERS:
        raise ValidationError(f"search_domain_filter cannot exceed {MAX_DOMAIN_FILTERS} domains")
    return list(domains)


def _check_sampling(options: CommonOptions) -> None:
    if options.temperature is not None and not 0 <= options.temperature <= 2:
        raise ValidationError("temperature must be between 0 and 2")
    if options.max_tokens is not None and options.max_tokens < 1:
        raise ValidationError("max_tokens must be at least 1")
    if options.top_p is not None and not 0 <= options.top_p <= 1:
        raise ValidationError("top_p must be between 0 and 1")
    if options.top_k is not None and options.top_k < 0:
        raise ValidationError("top_k must be non-negative")


def _apply_date_filters(body: dict[str, Any], filters: CommonOptions | DateFilters) -> None:
    # Only the two publication-date filters are renamed upstream.
    if filters.search_recency_filter:
        body["search_recency_filter"] = filters.search_recency_filter
    if filters.search_after_date:
        body["search_after_date_filter"] = filters.search_after_date
    if filters.search_before_date:
        body["search_before_date_filter"] = filters.search_before_date
    if filters.last_updated_after:
        body["last_updated_after"] = filters.last_updated_after
    if filters.last_updated_before:
        body["last_updated_before"] = filters.last_updated_before


def _copy_messages(messages: Sequence[Mapping[str, Any]]) -> list[dict[str, Any]]:
    return [dict(msg) for msg in messages]


# ── Chat completions ──


def build_chat_body(
    messages: Sequence[Mapping[str, Any]],
    model: str,
    options: CommonOptions | None = None,
    *,
    stream: bool = False,
) -> dict[str, Any]:
    """Build the ``/chat/completions`` request body.

    Args:
        messages: Conversation messages (``role`` / ``content``).
        model: Upstream model name.
        options: Normalized options; ``None`` sends the bare request.
        stream: Ask for an SSE response.

    Returns:
        The JSON body to POST.

    Raises:
        ValidationError: If an option is out of range.
    """
    body: dict[str, Any] = {"model": model, "messages": _copy_messages(messages)}
    if stream:
        body["stream"] = True
    if options is None:
        return body

    domains = _check_domain_filter(options.search_domain_filter)
    _check_sampling(options)

    if options.reasoning_effort:
        body["reasoning_effort"] = options.reasoning_effort
    if domains:
        body["search_domain_filter"] = domains
    if options.temperature is not None:
        body["temperature"] = options.temperature
    if options.max_tokens is not None:
        body["max_tokens"] = options.max_tokens
    if options.top_p is not None:
        body["top_p"] = options.top_p
    if options.top_k is not None:
        body["top_k"] = options.top_k
    if options.search_mode:
        body["search_mode"] = options.search_mode
    _apply_date_filters(body, options)
    if options.return_images:
        body["return_images"] = True
    if options.return_related_questions:
        body["return_related_questions"] = True
    if options.search_context_size:
        body["search_context_size"] = options.search_context_size
    if options.output_level:
        body["output_level"] = options.output_level
    if options.search_language_filter:
        body["search_language_filter"] = list(options.search_language_filter)
    if options.enable_search_classifier is not None:
        body["enable_search_classifier"] = options.enable_search_classifier
    if options.disable_search:
        body["disable_search"] = True
    if options.search_type:
        body["search_type"] = options.search_type
    if options.response_format:
        body["response_format"] = dict(options.response_format)

    return body


# ── Search ──


def validate_query_batch(queries: Sequence[str]) -> list[str]:
    """Enforce the batch size limits of ``/search`` fan-out."""
    if len(queries) == 0:
        raise ValidationError("At least one query is required")
    if len(queries) > MAX_BATCH_QUERIES:
        raise ValidationError(f"Maximum {MAX_BATCH_QUERIES} queries per request")
    return list(queries)


def build_search_body(
    query: str,
    *,
    max_results: int | None = None,
    max_tokens_per_page: int | None = None,
    country: str | None = None,
    search_domain_filter: Sequence[str] | None = None,
    date_filters: DateFilters | None = None,
    search_language_filter: Sequence[str] | None = None,
    user_location: Mapping[str, Any] | None = None,
) -> dict[str, Any]:
    """Build the ``/search`` request body for a single query."""
    body: dict[str, Any] = {
        "query": query,
        "max_results": max_results if max_results is not None else DEFAULT_MAX_RESULTS,
        "max_tokens_per_page": (
            max_tokens_per_page if max_tokens_per_page is not None else DEFAULT_MAX_TOKENS_PER_PAGE
        ),
    }
    if country:
        body["country"] = country

    domains = _check_domain_filter(search_domain_filter)
    if domains:
        body["search_domain_filter"] = domains
    if date_filters is not None:
        _apply_date_filters(body, date_filters)
    if search_language_filter:
        body["search_language_filter"] = list(search_language_filter)
    if user_location:
        body["user_location"] = dict(user_location)
    return body


# ── Async research ──


def build_async_research_body(
    messages: Sequence[Mapping[str, Any]],
    *,
    reasoning_effort: str | None = None,
    search_domain_filter: Sequence[str] | None = None,
) -> dict[str, Any]:
    """Build the ``/async/chat/completions`` body (always deep research)."""
    body: dict[str, Any] = {"model": DEEP_RESEARCH_MODEL, "messages": _copy_messages(messages)}
    if reasoning_effort:
        body["reasoning_effort"] = reasoning_effort
    domains = _check_domain_filter(search_domain_filter)
    if domains:
        body["search_domain_filter"] = domains
    return body


# ── Agent ──


def build_agent_body(args: Mapping[str, Any]) -> dict[str, Any]:
    """Build the ``/v1/responses`` body from raw agent tool arguments.

    ``query`` is required. Optional fields of the wrong type are dropped;
    ``models`` and ``max_steps`` are range-checked.
    """
    query = args.get("query")
    if not isinstance(query, str) or not query.strip():
        raise ValidationError("Invalid arguments for perplexity_agent: 'query' must be a non-empty string")

    body: dict[str, Any] = {"query": query}

    for key in ("model", "system", "instructions", "language"):
        value = optional_string(args, key)
        if value is not None:
            body[key] = value

    preset = extract(args, "preset", one_of(AGENT_PRESETS))
    if isinstance(preset, str):
        body["preset"] = preset

    models = optional_string_list(args, "models")
    if models is not None:
        if len(models) > MAX_AGENT_MODELS:
            raise ValidationError(f"models cannot contain more than {MAX_AGENT_MODELS} entries")
        body["models"] = models

    max_steps = optional_integer(args, "max_steps")
    if max_steps is not None:
        if not 1 <= max_steps <= MAX_AGENT_STEPS:
            raise ValidationError(f"max_steps must be between 1 and {MAX_AGENT_STEPS}")
        body["max_steps"] = max_steps

    reasoning = optional_mapping(args, "reasoning")
    if reasoning is not None:
        body["reasoning"] = reasoning
    tools = args.get("tools")
    if isinstance(tools, list):
        body["tools"] = [dict(t) if isinstance(t, Mapping) else t for t in tools]
    response_format = optional_mapping(args, "response_format")
    if response_format is not None:
        body["response_format"] = response_format
    if args.get("stream") is True:
        body["stream"] = True
    return body


# ── Embeddings ──


def build_embeddings_body(args: Mapping[str, Any]) -> dict[str, Any]:
    """Build the ``/v1/embeddings`` body from raw embed tool arguments."""
    raw_input = args.get("input")
    if isinstance(raw_input, str):
        texts: str | list[str] = raw_input
    elif isinstance(raw_input, list) and all(isinstance(item, str) for item in raw_input):
        if len(raw_input) > MAX_EMBEDDING_INPUTS:
            raise ValidationError(
                f"Invalid arguments for perplexity_embed: maximum {MAX_EMBEDDING_INPUTS} inputs allowed"
            )
        texts = list(raw_input)
    else:
        raise ValidationError("Invalid arguments for perplexity_embed: 'input' must be a string or array of strings")

    model = optional_string(args, "model") or DEFAULT_EMBEDDING_MODEL
    body: dict[str, Any] = {"input": texts, "model": model}

    dimensions = optional_integer(args, "dimensions")
    if dimensions is not None:
        if dimensions < 1:
            raise ValidationError("dimensions must be at least 1")
        body["dimensions"] = dimensions
    encoding_format = extract(args, "encoding_format", one_of(ENCODING_FORMATS))
    if isinstance(encoding_format, str):
        body["encoding_format"] = encoding_format
    return body
