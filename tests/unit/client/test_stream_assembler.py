"""Tests for SSE stream assembly."""

from __future__ import annotations

import json
from typing import Any

from perplexity_mcp.client.streaming import StreamAssembler


def _frame(payload: dict[str, Any]) -> bytes:
    return f"data: {json.dumps(payload, ensure_ascii=False)}\n".encode()


def _delta(content: str) -> dict[str, Any]:
    return {"choices": [{"delta": {"content": content}}]}


class TestStreamAssembler:
    def test_concatenates_deltas(self) -> None:
        assembler = StreamAssembler()
        assembler.feed(_frame(_delta("Hel")))
        assembler.feed(_frame(_delta("lo")))
        assembler.feed(b"data: [DONE]\n")
        answer = assembler.finish()

        assert answer.content == "Hello"
        assert assembler.frames == 2

    def test_collections_replace(self) -> None:
        assembler = StreamAssembler()
        assembler.feed(_frame({**_delta("a"), "citations": ["u1"]}))
        assembler.feed(_frame({**_delta("b"), "citations": ["u1", "u2"], "related_questions": ["q?"]}))
        answer = assembler.finish()

        assert answer.citations == ["u1", "u2"]
        assert answer.related_questions == ["q?"]
        assert answer.images == []

    def test_malformed_line_is_skipped(self) -> None:
        assembler = StreamAssembler()
        assembler.feed(_frame(_delta("A")) + b"data: {not json\n" + _frame(_delta("B")))
        answer = assembler.finish()

        assert answer.content == "AB"
        assert assembler.skipped == 1

    def test_line_split_across_chunks(self) -> None:
        raw = _frame(_delta("split line"))
        assembler = StreamAssembler()
        assembler.feed(raw[:10])
        assert assembler.content == ""
        assembler.feed(raw[10:])
        assert assembler.content == "split line"

    def test_multibyte_character_split_across_chunks(self) -> None:
        raw = _frame(_delta("café ☕"))
        cut = raw.index("☕".encode()) + 1
        assembler = StreamAssembler()
        assembler.feed(raw[:cut])
        assembler.feed(raw[cut:])

        assert assembler.finish().content == "café ☕"

    def test_non_data_lines_ignored(self) -> None:
        assembler = StreamAssembler()
        assembler.feed(b": keep-alive\nevent: message\n\n" + _frame(_delta("x")))
        assert assembler.finish().content == "x"

    def test_unterminated_final_line_is_processed(self) -> None:
        assembler = StreamAssembler()
        assembler.feed(_frame(_delta("one")) + b'data: {"choices": [{"delta": {"content": "two"}}]}')
        assert assembler.finish().content == "onetwo"

    def test_frames_without_content(self) -> None:
        assembler = StreamAssembler()
        assembler.feed(_frame({"choices": []}) + _frame({"search_results": [{"title": "t", "url": "u"}]}))
        answer = assembler.finish()

        assert answer.content == ""
        assert answer.search_results == [{"title": "t", "url": "u"}]
        assert answer.extras()["search_results"] == [{"title": "t", "url": "u"}]
