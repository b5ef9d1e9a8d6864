"""Perplexity HTTP client — authenticated, time-bounded calls to the Perplexity API.

Usage::

    async with PerplexityClient(api_key="pplx-...", timeout_ms=300_000) as client:
        data = await client.request_json(CHAT_COMPLETIONS, body)
        answer = await client.stream_chat(CHAT_COMPLETIONS, {**body, "stream": True})

Every failure is translated into the taxonomy in
``perplexity_mcp.client.exceptions`` with the endpoint label in the message.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, NamedTuple, cast
from urllib.parse import quote

import httpx

from perplexity_mcp.client.exceptions import (
    MalformedResponseError,
    NetworkError,
    RequestTimeoutError,
    StreamTimeoutError,
    UpstreamError,
)
from perplexity_mcp.client.streaming import StreamAssembler, StreamedAnswer

logger = logging.getLogger(__name__)

DEFAULT_BASE_URL = "https://api.perplexity.ai"
DEFAULT_TIMEOUT_MS = 300000
TIMEOUT_HINT = "Consider increasing PERPLEXITY_TIMEOUT_MS."


class Endpoint(NamedTuple):
    """An upstream route plus the human-readable label used in error messages."""

    path: str
    label: str

    def with_suffix(self, suffix: str) -> Endpoint:
        return Endpoint(f"{self.path}/{quote(suffix, safe='')}", self.label)


CHAT_COMPLETIONS = Endpoint("/chat/completions", "Perplexity API")
SEARCH = Endpoint("/search", "Perplexity Search API")
ASYNC_CHAT_COMPLETIONS = Endpoint("/async/chat/completions", "Perplexity Async API")
AGENT_RESPONSES = Endpoint("/v1/responses", "Perplexity Agent API")
EMBEDDINGS = Endpoint("/v1/embeddings", "Perplexity Embeddings API")


def _mask(api_key: str) -> str:
    return api_key[:8] + "..." + api_key[-4:] if len(api_key) > 12 else "***"


class PerplexityClient:
    """Async client wrapping one ``httpx.AsyncClient`` connection pool.

    The client holds no per-call state, so concurrent calls (batched search)
    can share it.

    Args:
        api_key: Bearer token sent on every request.
        timeout_ms: Overall bound for a JSON call; for a stream, the longest
            allowed gap between two received chunks.
        base_url: API root, e.g. ``"https://api.perplexity.ai"``.
        **httpx_kwargs: Extra keyword arguments for ``httpx.AsyncClient``
            (``transport=`` is how tests fake the API).
    """

    def __init__(
        self,
        api_key: str,
        *,
        timeout_ms: int = DEFAULT_TIMEOUT_MS,
        base_url: str = DEFAULT_BASE_URL,
        **httpx_kwargs: Any,
    ) -> None:
        self.base_url = base_url.rstrip("/")
        self.timeout_ms = timeout_ms
        # asyncio.timeout below is the real bound; httpx only gets a backstop
        self._client = httpx.AsyncClient(
            base_url=self.base_url,
            headers={
                "Authorization": f"Bearer {api_key}",
                "Content-Type": "application/json",
                "Accept": "application/json",
            },
            timeout=httpx.Timeout(None),
            **httpx_kwargs,
        )
        logger.info("Perplexity client created: base_url=%s, api_key=%s", self.base_url, _mask(api_key))

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    async def __aenter__(self) -> PerplexityClient:
        return self

    async def __aexit__(self, *exc: object) -> None:
        await self.close()

    async def close(self) -> None:
        """Close the underlying HTTP client."""
        await self._client.aclose()

    # ── JSON calls ──

    async def request_json(
        self,
        endpoint: Endpoint,
        body: dict[str, Any] | None = None,
        *,
        method: str = "POST",
    ) -> dict[str, Any]:
        """Perform one request and return the decoded JSON body.

        Args:
            endpoint: Route and label of the call.
            body: JSON payload (omitted for GET).
            method: HTTP method.

        Returns:
            The decoded JSON object.

        Raises:
            RequestTimeoutError: No complete response within ``timeout_ms``.
            NetworkError: Transport failure.
            UpstreamError: Non-2xx status.
            MalformedResponseError: 2xx status but the body is not JSON.
        """
        logger.info("Perplexity request: %s %s", method, endpoint.path)
        try:
            async with asyncio.timeout(self.timeout_seconds):
                response = await self._client.request(method, endpoint.path, json=body)
        except (TimeoutError, httpx.TimeoutException) as e:
            raise self._timeout_error(endpoint) from e
        except httpx.RequestError as e:
            raise self._network_error(endpoint, e) from e

        if response.is_error:
            raise self._upstream_error(endpoint, response, self._error_text(response))
        return self._decode(endpoint, response)

    # ── Streaming calls ──

    async def stream_chat(self, endpoint: Endpoint, body: dict[str, Any]) -> StreamedAnswer:
        """POST *body* and assemble the SSE answer.

        The deadline first bounds the wait for response headers, then is
        pushed forward after every chunk: a slow but steady stream completes,
        a stalled one raises ``StreamTimeoutError``.
        """
        logger.info("Perplexity streaming request: POST %s", endpoint.path)
        loop = asyncio.get_running_loop()
        assembler = StreamAssembler()
        streaming = False

        try:
            async with asyncio.timeout(self.timeout_seconds) as deadline:
                request = self._client.build_request("POST", endpoint.path, json=body)
                response = await self._client.send(request, stream=True)
                try:
                    if response.is_error:
                        text = await self._read_error_text(response)
                        raise self._upstream_error(endpoint, response, text)
                    streaming = True
                    async for chunk in response.aiter_bytes():
                        deadline.reschedule(loop.time() + self.timeout_seconds)
                        assembler.feed(chunk)
                finally:
                    await response.aclose()
        except (TimeoutError, httpx.TimeoutException) as e:
            if streaming:
                logger.warning(
                    "Stream stalled on %s after %d frames (%d chars)",
                    endpoint.path,
                    assembler.frames,
                    len(assembler.content),
                )
                raise StreamTimeoutError(
                    f"Stream timeout: No data received within {self.timeout_ms}ms. {TIMEOUT_HINT}",
                    endpoint=endpoint.label,
                    timeout_ms=self.timeout_ms,
                ) from e
            raise self._timeout_error(endpoint) from e
        except httpx.RequestError as e:
            raise self._network_error(endpoint, e) from e

        answer = assembler.finish()
        logger.info(
            "Stream complete: %s frames=%d skipped=%d content_len=%d",
            endpoint.path,
            assembler.frames,
            assembler.skipped,
            len(answer.content),
        )
        return answer

    # ── Error translation ──

    def _timeout_error(self, endpoint: Endpoint) -> RequestTimeoutError:
        logger.warning("Timeout after %dms calling %s", self.timeout_ms, endpoint.path)
        return RequestTimeoutError(
            f"Request timeout: {endpoint.label} did not respond within {self.timeout_ms}ms. {TIMEOUT_HINT}",
            endpoint=endpoint.label,
            timeout_ms=self.timeout_ms,
        )

    @staticmethod
    def _network_error(endpoint: Endpoint, exc: Exception) -> NetworkError:
        logger.error("Network error calling %s: %s: %s", endpoint.path, type(exc).__name__, exc)
        return NetworkError(
            f"Network error while calling {endpoint.label}: {type(exc).__name__}: {exc}",
            endpoint=endpoint.label,
        )

    @staticmethod
    def _upstream_error(endpoint: Endpoint, response: httpx.Response, text: str) -> UpstreamError:
        logger.error(
            "%s returned HTTP %d %s: %s",
            endpoint.label,
            response.status_code,
            response.reason_phrase,
            text[:200],
        )
        return UpstreamError(
            f"{endpoint.label} error: {response.status_code} {response.reason_phrase}\n{text}",
            endpoint=endpoint.label,
            status_code=response.status_code,
            reason=response.reason_phrase,
            body=text,
        )

    @staticmethod
    def _error_text(response: httpx.Response) -> str:
        try:
            return response.text
        except (UnicodeDecodeError, LookupError):
            return "Unable to parse error response"

    async def _read_error_text(self, response: httpx.Response) -> str:
        try:
            await response.aread()
        except httpx.HTTPError:
            return "Unable to parse error response"
        return self._error_text(response)

    @staticmethod
    def _decode(endpoint: Endpoint, response: httpx.Response) -> dict[str, Any]:
        try:
            data = response.json()
        except ValueError as e:
            raise MalformedResponseError(
                f"Failed to parse JSON response from {endpoint.label}: {e}",
                endpoint=endpoint.label,
                status_code=response.status_code,
                reason=response.reason_phrase,
                body=response.text[:500],
            ) from e
        if not isinstance(data, dict):
            raise MalformedResponseError(
                f"Failed to parse JSON response from {endpoint.label}: expected an object, got {type(data).__name__}",
                endpoint=endpoint.label,
                status_code=response.status_code,
                reason=response.reason_phrase,
            )
        return cast(dict[str, Any], data)
