"""Tool declarations: names, descriptions and JSON input schemas."""

from __future__ import annotations

from typing import Any

from pydantic import BaseModel, ConfigDict, Field

from perplexity_mcp.core.options import (
    OUTPUT_LEVELS,
    REASONING_EFFORTS,
    RECENCY_FILTERS,
    SEARCH_CONTEXT_SIZES,
    SEARCH_MODES,
    SEARCH_TYPES,
)
from perplexity_mcp.core.request_builder import (
    AGENT_PRESETS,
    EMBEDDING_MODELS,
    ENCODING_FORMATS,
    MAX_AGENT_MODELS,
    MAX_AGENT_STEPS,
    MAX_BATCH_QUERIES,
    MAX_DOMAIN_FILTERS,
    MAX_EMBEDDING_INPUTS,
)

ASK = "perplexity_ask"
RESEARCH = "perplexity_research"
REASON = "perplexity_reason"
SEARCH = "perplexity_search"
RESEARCH_ASYNC = "perplexity_research_async"
RESEARCH_STATUS = "perplexity_research_status"
AGENT = "perplexity_agent"
EMBED = "perplexity_embed"

ASK_MODELS = ("sonar", "sonar-pro")
DEFAULT_ASK_MODEL = "sonar-pro"
REASONING_MODEL = "sonar-reasoning-pro"

MAX_LANGUAGE_FILTERS = 10
DATE_PATTERN = r"^\d{2}/\d{2}/\d{4}$"


class ToolDefinition(BaseModel):
    """A tool as announced to clients in ``tools/list``."""

    model_config = ConfigDict(populate_by_name=True)

    name: str
    description: str
    input_schema: dict[str, Any] = Field(alias="inputSchema")


# ── Schema fragments ──


def _enum(values: tuple[str, ...], description: str) -> dict[str, Any]:
    return {"type": "string", "enum": list(values), "description": description}


def _date(description: str) -> dict[str, Any]:
    return {"type": "string", "pattern": DATE_PATTERN, "description": f"{description} Format: MM/DD/YYYY"}


_MESSAGES = {
    "type": "array",
    "items": {
        "type": "object",
        "properties": {
            "role": {"type": "string", "description": "Role of the message (e.g., system, user, assistant)"},
            "content": {"type": "string", "description": "The content of the message"},
        },
        "required": ["role", "content"],
    },
    "description": "Array of conversation messages",
}

_DOMAIN_FILTER = {
    "type": "array",
    "items": {"type": "string"},
    "maxItems": MAX_DOMAIN_FILTERS,
    "description": (
        "Domain filter list. Prefix with '-' to exclude (denylist), otherwise include (allowlist). "
        f"Maximum {MAX_DOMAIN_FILTERS} domains."
    ),
}

_DATE_FILTERS = {
    "search_recency_filter": _enum(
        RECENCY_FILTERS,
        "Filter results by recency. 'day' = last 24 hours, 'week' = last 7 days, "
        "'month' = last 30 days, 'year' = last 365 days.",
    ),
    "search_after_date": _date("Only include results published after this date."),
    "search_before_date": _date("Only include results published before this date."),
    "last_updated_after": _date("Only include results last updated after this date."),
    "last_updated_before": _date("Only include results last updated before this date."),
}

_SAMPLING = {
    "temperature": {
        "type": "number",
        "minimum": 0,
        "maximum": 2,
        "description": "Controls randomness. 0 = deterministic, 2 = maximum creativity. Default: 0.2",
    },
    "max_tokens": {"type": "integer", "minimum": 1, "description": "Maximum tokens in the response."},
    "top_p": {"type": "number", "minimum": 0, "maximum": 1, "description": "Nucleus sampling threshold. Default: 0.9"},
    "top_k": {"type": "integer", "minimum": 0, "description": "Top-k sampling. 0 = disabled. Default: 0"},
}

_SEARCH_TUNING = {
    "search_context_size": _enum(SEARCH_CONTEXT_SIZES, "Amount of search context to include"),
    "output_level": _enum(OUTPUT_LEVELS, "Response detail level"),
    "search_language_filter": {
        "type": "array",
        "items": {"type": "string"},
        "maxItems": MAX_LANGUAGE_FILTERS,
        "description": f"ISO 639-1 language codes to filter search results (max {MAX_LANGUAGE_FILTERS})",
    },
    "enable_search_classifier": {"type": "boolean", "description": "Enable/disable search classifier"},
    "disable_search": {"type": "boolean", "description": "Disable web search entirely"},
    "search_type": _enum(SEARCH_TYPES, "Search type. 'pro' enables multi-step Pro Search reasoning"),
    "response_format": {
        "type": "object",
        "description": "Structured output format (e.g., {type: 'json_schema', json_schema: {...}})",
    },
}

_EXTRAS = {
    "return_images": {"type": "boolean", "description": "Include relevant images. Default: false"},
    "return_related_questions": {"type": "boolean", "description": "Include related questions. Default: false"},
}

_STREAM = {"stream": {"type": "boolean", "description": "Enable streaming responses. Default: false"}}

_SEARCH_MODE = {
    "search_mode": _enum(
        SEARCH_MODES,
        "Source type filter: 'web' for general internet (default), 'academic' for scholarly "
        "articles, 'sec' for SEC filings",
    ),
}


def _chat_schema(**properties: Any) -> dict[str, Any]:
    return {
        "type": "object",
        "properties": {"messages": _MESSAGES, **properties},
        "required": ["messages"],
    }


# ── Declarations ──

TOOLS: tuple[ToolDefinition, ...] = (
    ToolDefinition(
        name=ASK,
        description=(
            "Real-time AI-powered answers with web search. "
            "Supports sonar (fast/cheap) and sonar-pro (high quality) models. "
            "Accepts an array of messages and returns a completion response with citations."
        ),
        input_schema=_chat_schema(
            model=_enum(
                ASK_MODELS,
                "Model to use: 'sonar' for fast/cost-effective queries, 'sonar-pro' for higher quality (default)",
            ),
            search_domain_filter=_DOMAIN_FILTER,
            **_SAMPLING,
            **_SEARCH_MODE,
            **_DATE_FILTERS,
            **_STREAM,
            **_EXTRAS,
            **_SEARCH_TUNING,
        ),
    ),
    ToolDefinition(
        name=RESEARCH,
        description=(
            "Performs deep, multi-source research using the sonar-deep-research model. "
            "Accepts an array of messages and returns a comprehensive report with citations. "
            "May take several minutes; consider perplexity_research_async for long jobs."
        ),
        input_schema=_chat_schema(
            reasoning_effort=_enum(
                REASONING_EFFORTS,
                "Controls research depth: 'low' for quick overviews, 'medium' for balanced research, "
                "'high' for comprehensive deep research",
            ),
            search_domain_filter=_DOMAIN_FILTER,
            **_SAMPLING,
            **_SEARCH_MODE,
            **_DATE_FILTERS,
            **_EXTRAS,
        ),
    ),
    ToolDefinition(
        name=REASON,
        description=(
            "Performs reasoning tasks using the Perplexity API. "
            "Accepts an array of messages and returns a well-reasoned response using the sonar-reasoning-pro model."
        ),
        input_schema=_chat_schema(
            search_domain_filter=_DOMAIN_FILTER,
            **_SAMPLING,
            **_SEARCH_MODE,
            **_DATE_FILTERS,
            **_STREAM,
            **_SEARCH_TUNING,
        ),
    ),
    ToolDefinition(
        name=SEARCH,
        description=(
            "Performs web search using the Perplexity Search API. "
            f"Supports single query or batch of up to {MAX_BATCH_QUERIES} queries. "
            "Returns ranked search results with titles, URLs, snippets, and metadata."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "query": {
                    "oneOf": [
                        {"type": "string", "description": "Single search query"},
                        {
                            "type": "array",
                            "items": {"type": "string"},
                            "minItems": 1,
                            "maxItems": MAX_BATCH_QUERIES,
                            "description": f"Array of up to {MAX_BATCH_QUERIES} search queries",
                        },
                    ],
                    "description": f"Search query or array of queries (max {MAX_BATCH_QUERIES})",
                },
                "max_results": {
                    "type": "number",
                    "minimum": 1,
                    "maximum": 20,
                    "description": "Maximum results to return (1-20, default: 10)",
                },
                "max_tokens_per_page": {
                    "type": "number",
                    "minimum": 256,
                    "maximum": 2048,
                    "description": "Maximum tokens per webpage (default: 1024)",
                },
                "country": {"type": "string", "description": "ISO 3166-1 alpha-2 country code for regional results"},
                "search_domain_filter": _DOMAIN_FILTER,
                **_DATE_FILTERS,
                "search_language_filter": _SEARCH_TUNING["search_language_filter"],
                "user_location": {
                    "type": "object",
                    "description": "Approximate user location (e.g., {country: 'US', city: 'Austin'})",
                },
            },
            "required": ["query"],
        },
    ),
    ToolDefinition(
        name=RESEARCH_ASYNC,
        description=(
            "Start an async deep research job. Returns a request_id to poll for results. "
            "Use for complex research that may take several minutes."
        ),
        input_schema=_chat_schema(
            reasoning_effort=_enum(REASONING_EFFORTS, "Controls research depth."),
            search_domain_filter=_DOMAIN_FILTER,
        ),
    ),
    ToolDefinition(
        name=RESEARCH_STATUS,
        description=(
            "Check status of an async research job and retrieve results when complete. "
            "Use the request_id returned from perplexity_research_async."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "request_id": {
                    "type": "string",
                    "description": "The request_id returned from perplexity_research_async",
                },
            },
            "required": ["request_id"],
        },
    ),
    ToolDefinition(
        name=AGENT,
        description=(
            "Access the Perplexity Agent API (POST /v1/responses). "
            "Supports multi-provider models, presets, built-in tools (web_search, fetch_url), "
            "multi-step reasoning, fallback model chains and structured JSON output."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "query": {"type": "string", "description": "The user query/prompt to send to the agent"},
                "model": {"type": "string", "description": "Model to use (provider/model identifier)"},
                "models": {
                    "type": "array",
                    "items": {"type": "string"},
                    "maxItems": MAX_AGENT_MODELS,
                    "description": f"Fallback model chain (up to {MAX_AGENT_MODELS} models). First available is used.",
                },
                "preset": _enum(AGENT_PRESETS, "Search preset to use"),
                "system": {"type": "string", "description": "System prompt for the agent"},
                "instructions": {"type": "string", "description": "Additional instructions for the agent"},
                "language": {"type": "string", "description": "Preferred response language (ISO 639-1 code)"},
                "max_steps": {
                    "type": "integer",
                    "minimum": 1,
                    "maximum": MAX_AGENT_STEPS,
                    "description": f"Maximum reasoning steps (1-{MAX_AGENT_STEPS}) for multi-step agent reasoning",
                },
                "reasoning": {
                    "type": "object",
                    "properties": {"effort": _enum(REASONING_EFFORTS, "Reasoning effort level")},
                    "description": "Reasoning configuration",
                },
                "tools": {
                    "type": "array",
                    "description": "Built-in tools configuration (web_search with filters, fetch_url, custom functions)",
                },
                "response_format": {
                    "type": "object",
                    "description": "Structured output format. Use type 'json_schema' with a schema property.",
                },
                "stream": {"type": "boolean", "description": "Enable streaming via SSE. Default: false"},
            },
            "required": ["query"],
        },
    ),
    ToolDefinition(
        name=EMBED,
        description=(
            "Generate text embeddings using the Perplexity Embeddings API. "
            f"Supports batch input (up to {MAX_EMBEDDING_INPUTS} texts), "
            "Matryoshka dimensionality reduction, and multiple encoding formats."
        ),
        input_schema={
            "type": "object",
            "properties": {
                "input": {
                    "oneOf": [
                        {"type": "string", "description": "Single text to embed"},
                        {
                            "type": "array",
                            "items": {"type": "string"},
                            "minItems": 1,
                            "maxItems": MAX_EMBEDDING_INPUTS,
                            "description": f"Array of texts to embed (max {MAX_EMBEDDING_INPUTS})",
                        },
                    ],
                    "description": "Text or array of texts to generate embeddings for",
                },
                "model": _enum(EMBEDDING_MODELS, "Embedding model. Default: pplx-embed-v1-4b"),
                "dimensions": {
                    "type": "integer",
                    "minimum": 1,
                    "description": "Output dimensions (Matryoshka dimensionality reduction). Omit for full dimensions.",
                },
                "encoding_format": _enum(ENCODING_FORMATS, "Encoding format for embeddings. Default: float"),
            },
            "required": ["input"],
        },
    ),
)

TOOL_NAMES = frozenset(tool.name for tool in TOOLS)


def get_tool(name: str) -> ToolDefinition | None:
    return next((tool for tool in TOOLS if tool.name == name), None)
