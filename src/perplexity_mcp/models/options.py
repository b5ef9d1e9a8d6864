"""Normalized request options and chat message models."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, Field

ReasoningEffort = Literal["low", "medium", "high"]
SearchMode = Literal["web", "academic", "sec"]
RecencyFilter = Literal["day", "week", "month", "year"]
SearchContextSize = Literal["minimal", "low", "medium", "high"]
OutputLevel = Literal["full", "concise"]
SearchType = Literal["fast", "pro"]


class Message(BaseModel):
    """One chat message as sent to ``/chat/completions``."""

    role: str
    content: str


class CommonOptions(BaseModel):
    """Options shared by the chat-style tools.

    ``None`` means "no opinion": the field is left out of the request body.
    Numeric ranges are not enforced here; the request builder checks them so
    that an out-of-range value becomes a caller-facing error rather than a
    silently dropped option.
    """

    reasoning_effort: ReasoningEffort | None = None
    search_domain_filter: list[str] | None = Field(
        default=None,
        description="Domains to include; a '-' prefix excludes the domain",
    )
    temperature: float | None = None
    max_tokens: int | None = None
    top_p: float | None = None
    top_k: int | None = None
    search_mode: SearchMode | None = None
    search_recency_filter: RecencyFilter | None = None
    search_after_date: str | None = Field(default=None, description="MM/DD/YYYY")
    search_before_date: str | None = Field(default=None, description="MM/DD/YYYY")
    last_updated_after: str | None = Field(default=None, description="MM/DD/YYYY")
    last_updated_before: str | None = Field(default=None, description="MM/DD/YYYY")
    return_images: Literal[True] | None = None
    return_related_questions: Literal[True] | None = None
    search_context_size: SearchContextSize | None = None
    output_level: OutputLevel | None = None
    search_language_filter: list[str] | None = Field(default=None, description="ISO 639-1 codes")
    enable_search_classifier: bool | None = None
    disable_search: Literal[True] | None = None
    search_type: SearchType | None = None
    response_format: dict[str, Any] | None = None

    def present(self) -> dict[str, Any]:
        """Return only the fields that carry a value."""
        return self.model_dump(exclude_none=True)

    def is_empty(self) -> bool:
        return not self.present()


class DateFilters(BaseModel):
    """Date-related filters accepted by ``/search``."""

    search_recency_filter: RecencyFilter | None = None
    search_after_date: str | None = None
    search_before_date: str | None = None
    last_updated_after: str | None = None
    last_updated_before: str | None = None
