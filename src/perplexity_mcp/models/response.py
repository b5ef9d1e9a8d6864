"""Result models produced by the service and tool layers."""

from __future__ import annotations

from typing import Any, Literal

from pydantic import BaseModel, ConfigDict, Field


class AsyncResearchStarted(BaseModel):
    """Acknowledgement returned when an async research job is created."""

    request_id: str
    status: str = "pending"


class AsyncResearchResult(BaseModel):
    """Snapshot of an async research job, as reported by the API.

    Nothing is stored locally; each poll asks the API again.
    """

    request_id: str
    status: str = Field(description="pending | processing | completed | failed")
    created_at: str | None = None
    completed_at: str | None = None
    result: str | None = Field(default=None, description="Rendered answer, set once completed")
    error: str | None = None

    @property
    def in_progress(self) -> bool:
        return self.status in ("pending", "processing")


class QueryOutcome(BaseModel):
    """One query of a batched search: either upstream data or an error message."""

    query: str
    data: dict[str, Any] | None = None
    error: str | None = None


class TextContent(BaseModel):
    type: Literal["text"] = "text"
    text: str


class ToolResult(BaseModel):
    """What a tool call hands back to the protocol layer."""

    model_config = ConfigDict(populate_by_name=True)

    content: list[TextContent]
    is_error: bool = Field(default=False, alias="isError")

    @classmethod
    def text(cls, text: str, *, is_error: bool = False) -> ToolResult:
        return cls(content=[TextContent(text=text)], is_error=is_error)

    @property
    def first_text(self) -> str:
        return self.content[0].text if self.content else ""
