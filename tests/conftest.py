"""Shared test fixtures and configuration."""

from __future__ import annotations

from collections.abc import Callable
from typing import Any

import httpx
import pytest

from perplexity_mcp.client.client import PerplexityClient
from perplexity_mcp.config.settings import Settings
from perplexity_mcp.core.service import PerplexityService
from perplexity_mcp.tools.router import ToolRouter

TEST_API_KEY = "pplx-test-key-0000"
TEST_BASE_URL = "https://api.test.perplexity.ai"

Route = Callable[[httpx.Request], Any]


@pytest.fixture
def settings() -> Settings:
    """Create a test Settings instance with defaults."""
    return Settings(
        _env_file=None,  # type: ignore[call-arg]
        api_key=TEST_API_KEY,
        base_url=TEST_BASE_URL,
    )


@pytest.fixture
def make_client() -> Callable[..., PerplexityClient]:
    """Factory for clients whose HTTP traffic is answered by a handler function."""

    def _make(handler: Route, *, timeout_ms: int = 5000) -> PerplexityClient:
        return PerplexityClient(
            TEST_API_KEY,
            timeout_ms=timeout_ms,
            base_url=TEST_BASE_URL,
            transport=httpx.MockTransport(handler),
        )

    return _make


@pytest.fixture
def make_router(make_client: Callable[..., PerplexityClient]) -> Callable[..., ToolRouter]:
    """Factory for routers wired to a fake API."""

    def _make(handler: Route, *, timeout_ms: int = 5000) -> ToolRouter:
        return ToolRouter(PerplexityService(make_client(handler, timeout_ms=timeout_ms)))

    return _make


@pytest.fixture
def chat_response() -> dict[str, Any]:
    """A non-streaming ``/chat/completions`` payload."""
    return {
        "id": "cmpl-1",
        "model": "sonar-pro",
        "choices": [{"message": {"role": "assistant", "content": "Paris is the capital of France."}}],
        "citations": ["https://en.wikipedia.org/wiki/Paris"],
    }


@pytest.fixture
def search_response() -> dict[str, Any]:
    """A ``/search`` payload with two results, one without snippet or date."""
    return {
        "results": [
            {
                "title": "Python 3.13 release notes",
                "url": "https://docs.python.org/3.13/whatsnew/3.13.html",
                "snippet": "What's new in Python 3.13",
                "date": "2024-10-07",
            },
            {"title": "PEP 719", "url": "https://peps.python.org/pep-0719/"},
        ]
    }
