"""Error taxonomy for Perplexity API calls.

Every failure a tool call can hit maps onto one of these; the tool router
renders them as error results instead of letting them escape.
"""

from __future__ import annotations


class PerplexityError(Exception):
    """Base exception for all Perplexity tool errors."""


class ValidationError(PerplexityError):
    """Raised when an argument is missing, mistyped or out of range (before any network call)."""


class RequestTimeoutError(PerplexityError):
    """Raised when the upstream API does not answer within the configured window."""

    def __init__(self, message: str, *, endpoint: str = "", timeout_ms: int = 0) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.timeout_ms = timeout_ms


class StreamTimeoutError(RequestTimeoutError):
    """Raised when a streaming response stalls for longer than the configured window."""


class NetworkError(PerplexityError):
    """Raised on transport-level failures (DNS, connection refused, reset...)."""

    def __init__(self, message: str, *, endpoint: str = "") -> None:
        super().__init__(message)
        self.endpoint = endpoint


class UpstreamError(PerplexityError):
    """Raised when the API answers with a non-2xx status."""

    def __init__(
        self,
        message: str,
        *,
        endpoint: str = "",
        status_code: int | None = None,
        reason: str = "",
        body: str = "",
    ) -> None:
        super().__init__(message)
        self.endpoint = endpoint
        self.status_code = status_code
        self.reason = reason
        self.body = body


class MalformedResponseError(UpstreamError):
    """Raised when a 2xx response body is not valid JSON."""
