"""Tests for the timed Perplexity HTTP client."""

from __future__ import annotations

import asyncio
import json
from collections.abc import AsyncIterator, Callable
from typing import Any

import httpx
import pytest

from perplexity_mcp.client.client import CHAT_COMPLETIONS, SEARCH, PerplexityClient
from perplexity_mcp.client.exceptions import (
    MalformedResponseError,
    NetworkError,
    RequestTimeoutError,
    StreamTimeoutError,
    UpstreamError,
)

MakeClient = Callable[..., PerplexityClient]


class SlowStream(httpx.AsyncByteStream):
    """Response body that sleeps before each chunk."""

    def __init__(self, chunks: list[bytes], delays: list[float]) -> None:
        self._chunks = chunks
        self._delays = delays

    async def __aiter__(self) -> AsyncIterator[bytes]:
        for chunk, delay in zip(self._chunks, self._delays, strict=True):
            await asyncio.sleep(delay)
            yield chunk


def _delta_line(content: str) -> bytes:
    return f"data: {json.dumps({'choices': [{'delta': {'content': content}}]})}\n".encode()


# ── JSON calls ──


class TestRequestJson:
    async def test_sends_auth_and_body(self) -> None:
        seen: dict[str, Any] = {}

        def handler(request: httpx.Request) -> httpx.Response:
            seen["auth"] = request.headers["Authorization"]
            seen["path"] = request.url.path
            seen["body"] = json.loads(request.content)
            return httpx.Response(200, json={"ok": True})

        async with PerplexityClient(
            "pplx-secret", base_url="https://api.example.test/", transport=httpx.MockTransport(handler)
        ) as client:
            data = await client.request_json(SEARCH, {"query": "q"})

        assert data == {"ok": True}
        assert seen == {"auth": "Bearer pplx-secret", "path": "/search", "body": {"query": "q"}}

    async def test_upstream_error(self, make_client: MakeClient) -> None:
        client = make_client(lambda request: httpx.Response(429, text='{"error": "rate limited"}'))
        with pytest.raises(UpstreamError) as exc_info:
            await client.request_json(CHAT_COMPLETIONS, {})
        await client.close()

        err = exc_info.value
        assert str(err) == 'Perplexity API error: 429 Too Many Requests\n{"error": "rate limited"}'
        assert err.status_code == 429
        assert err.body == '{"error": "rate limited"}'

    async def test_upstream_error_label_follows_endpoint(self, make_client: MakeClient) -> None:
        client = make_client(lambda request: httpx.Response(500, text="boom"))
        with pytest.raises(UpstreamError, match=r"^Perplexity Search API error: 500 Internal Server Error\nboom$"):
            await client.request_json(SEARCH, {})
        await client.close()

    async def test_malformed_json(self, make_client: MakeClient) -> None:
        client = make_client(lambda request: httpx.Response(200, text="<html>not json</html>"))
        with pytest.raises(MalformedResponseError, match="^Failed to parse JSON response from Perplexity API"):
            await client.request_json(CHAT_COMPLETIONS, {})
        await client.close()

    async def test_non_object_json_is_malformed(self, make_client: MakeClient) -> None:
        client = make_client(lambda request: httpx.Response(200, json=[1, 2]))
        with pytest.raises(MalformedResponseError):
            await client.request_json(CHAT_COMPLETIONS, {})
        await client.close()

    async def test_network_error(self, make_client: MakeClient) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("connection refused", request=request)

        client = make_client(handler)
        with pytest.raises(NetworkError, match="^Network error while calling Perplexity API: ") as exc_info:
            await client.request_json(CHAT_COMPLETIONS, {})
        await client.close()
        assert "connection refused" in str(exc_info.value)

    async def test_timeout(self, make_client: MakeClient) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, json={})

        client = make_client(handler, timeout_ms=100)
        with pytest.raises(RequestTimeoutError) as exc_info:
            await client.request_json(CHAT_COMPLETIONS, {})
        await client.close()

        assert not isinstance(exc_info.value, StreamTimeoutError)
        assert str(exc_info.value) == (
            "Request timeout: Perplexity API did not respond within 100ms. "
            "Consider increasing PERPLEXITY_TIMEOUT_MS."
        )

    async def test_get_without_body(self, make_client: MakeClient) -> None:
        def handler(request: httpx.Request) -> httpx.Response:
            assert request.method == "GET"
            assert request.content == b""
            return httpx.Response(200, json={"status": "pending"})

        client = make_client(handler)
        assert await client.request_json(SEARCH, method="GET") == {"status": "pending"}
        await client.close()


# ── Streaming calls ──


class TestStreamChat:
    async def test_assembles_stream(self, make_client: MakeClient) -> None:
        body = (
            _delta_line("Hel")
            + _delta_line("lo")
            + b'data: {"citations": ["https://a"]}\n'
            + b"data: [DONE]\n"
        )
        client = make_client(lambda request: httpx.Response(200, content=body))
        answer = await client.stream_chat(CHAT_COMPLETIONS, {"stream": True})
        await client.close()

        assert answer.content == "Hello"
        assert answer.citations == ["https://a"]

    async def test_steady_stream_outlives_timeout(self, make_client: MakeClient) -> None:
        # Five chunks, 50ms apart: 250ms in total against a 200ms inactivity window.
        chunks = [_delta_line(str(i)) for i in range(5)]
        client = make_client(
            lambda request: httpx.Response(200, stream=SlowStream(chunks, [0.05] * 5)),
            timeout_ms=200,
        )
        answer = await client.stream_chat(CHAT_COMPLETIONS, {"stream": True})
        await client.close()

        assert answer.content == "01234"

    async def test_stalled_stream_times_out(self, make_client: MakeClient) -> None:
        chunks = [_delta_line("a"), _delta_line("b")]
        client = make_client(
            lambda request: httpx.Response(200, stream=SlowStream(chunks, [0.0, 1.0])),
            timeout_ms=200,
        )
        with pytest.raises(StreamTimeoutError) as exc_info:
            await client.stream_chat(CHAT_COMPLETIONS, {"stream": True})
        await client.close()

        assert str(exc_info.value) == (
            "Stream timeout: No data received within 200ms. Consider increasing PERPLEXITY_TIMEOUT_MS."
        )

    async def test_upstream_error_before_stream(self, make_client: MakeClient) -> None:
        client = make_client(lambda request: httpx.Response(401, text="invalid api key"))
        with pytest.raises(UpstreamError, match=r"^Perplexity API error: 401 Unauthorized\ninvalid api key$"):
            await client.stream_chat(CHAT_COMPLETIONS, {"stream": True})
        await client.close()

    async def test_headers_timeout_is_request_timeout(self, make_client: MakeClient) -> None:
        async def handler(request: httpx.Request) -> httpx.Response:
            await asyncio.sleep(1)
            return httpx.Response(200, content=b"")

        client = make_client(handler, timeout_ms=100)
        with pytest.raises(RequestTimeoutError) as exc_info:
            await client.stream_chat(CHAT_COMPLETIONS, {"stream": True})
        await client.close()

        assert not isinstance(exc_info.value, StreamTimeoutError)
