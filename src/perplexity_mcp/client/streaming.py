"""Incremental assembly of a streamed chat completion.

The API streams ``data: <json>`` lines. ``StreamAssembler`` is fed raw byte
chunks as they arrive and rebuilds the complete answer:

  - ``choices[0].delta.content`` deltas are concatenated,
  - ``citations``, ``images``, ``related_questions`` and ``search_results``
    are replaced by each frame that carries them (the last one wins),
  - ``data: [DONE]`` is skipped; the stream ending is what terminates,
  - a line that is not valid JSON is skipped without aborting.

The assembler does no I/O and knows nothing about timeouts; the client drives
it and owns the inactivity deadline.
"""

from __future__ import annotations

import codecs
import json
import logging
from dataclasses import dataclass, field
from typing import Any

logger = logging.getLogger(__name__)

DATA_PREFIX = "data: "
DONE_SENTINEL = "[DONE]"

_COLLECTIONS = ("citations", "images", "related_questions", "search_results")


@dataclass
class StreamedAnswer:
    """The full answer reconstructed from a stream."""

    content: str = ""
    citations: list[Any] = field(default_factory=list)
    images: list[Any] = field(default_factory=list)
    related_questions: list[Any] = field(default_factory=list)
    search_results: list[Any] = field(default_factory=list)

    def extras(self) -> dict[str, list[Any]]:
        """Side-channel collections keyed the way the formatter expects."""
        return {name: getattr(self, name) for name in _COLLECTIONS}


class StreamAssembler:
    """Stateful SSE line parser for one streaming call.

    Example::

        assembler = StreamAssembler()
        async for chunk in response.aiter_bytes():
            assembler.feed(chunk)
        answer = assembler.finish()
    """

    def __init__(self) -> None:
        self._decoder = codecs.getincrementaldecoder("utf-8")(errors="replace")
        self._buffer = ""
        self._parts: list[str] = []
        self._answer = StreamedAnswer()
        self.frames = 0
        self.skipped = 0

    def feed(self, chunk: bytes) -> None:
        """Consume one chunk; complete lines are processed, the tail is kept."""
        self._buffer += self._decoder.decode(chunk)
        lines = self._buffer.split("\n")
        self._buffer = lines.pop()
        for line in lines:
            self._handle_line(line)

    def finish(self) -> StreamedAnswer:
        """Flush pending bytes and the last unterminated line, then return the answer."""
        self._buffer += self._decoder.decode(b"", final=True)
        if self._buffer:
            tail, self._buffer = self._buffer, ""
            for line in tail.split("\n"):
                self._handle_line(line)
        self._answer.content = "".join(self._parts)
        return self._answer

    @property
    def content(self) -> str:
        """Content accumulated so far."""
        return "".join(self._parts)

    def _handle_line(self, line: str) -> None:
        if not line.startswith(DATA_PREFIX):
            return
        payload = line[len(DATA_PREFIX) :].strip()
        if payload == DONE_SENTINEL:
            return

        try:
            frame = json.loads(payload)
        except json.JSONDecodeError:
            self.skipped += 1
            logger.debug("Skipping malformed SSE payload: %s", payload[:200])
            return
        if not isinstance(frame, dict):
            self.skipped += 1
            return

        self.frames += 1
        delta = self._delta_content(frame)
        if delta:
            self._parts.append(delta)
        for name in _COLLECTIONS:
            value = frame.get(name)
            if isinstance(value, list):
                setattr(self._answer, name, value)

    @staticmethod
    def _delta_content(frame: dict[str, Any]) -> str | None:
        choices = frame.get("choices")
        if not isinstance(choices, list) or not choices or not isinstance(choices[0], dict):
            return None
        delta = choices[0].get("delta")
        if not isinstance(delta, dict):
            return None
        content = delta.get("content")
        return content if isinstance(content, str) else None
