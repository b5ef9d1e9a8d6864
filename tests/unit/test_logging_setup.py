"""Tests for logging configuration."""

from __future__ import annotations

import logging
import sys
from collections.abc import Iterator

import pytest
import structlog

from perplexity_mcp.config.settings import ObservabilitySettings
from perplexity_mcp.observability.logging import setup_logging


@pytest.fixture(autouse=True)
def _restore_logging() -> Iterator[None]:
    root = logging.getLogger()
    handlers, level = root.handlers[:], root.level
    httpx_level = logging.getLogger("httpx").level
    yield
    root.handlers[:] = handlers
    root.setLevel(level)
    logging.getLogger("httpx").setLevel(httpx_level)
    structlog.reset_defaults()


class TestSetupLogging:
    def test_writes_to_stderr(self) -> None:
        setup_logging(ObservabilitySettings(log_level="debug", log_format="console"))

        root = logging.getLogger()
        assert root.level == logging.DEBUG
        assert [h.stream for h in root.handlers if isinstance(h, logging.StreamHandler)] == [sys.stderr]

    def test_httpx_quieted(self) -> None:
        setup_logging(ObservabilitySettings(log_level="debug"))
        assert logging.getLogger("httpx").level == logging.WARNING

    def test_defaults(self) -> None:
        setup_logging()
        assert logging.getLogger().level == logging.INFO
