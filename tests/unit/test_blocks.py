"""Unit tests for assembling streamed messages from block deltas."""

import pytest

from agenthub_server.llm import BlockState, ContentBlock, MessageAccumulator
from agenthub_server.llm.blocks import BlockStateError


def message_events(*blocks_events):
    return [
        {
            "type": "message_start",
            "message": {
                "id": "msg_1",
                "role": "assistant",
                "model": "claude-sonnet-4-20250514",
                "usage": {"input_tokens": 10, "output_tokens": 1},
            },
        },
        *blocks_events,
        {
            "type": "message_delta",
            "delta": {"stop_reason": "tool_use", "stop_sequence": None},
            "usage": {"output_tokens": 42},
        },
        {"type": "message_stop"},
    ]


def feed_all(events):
    accumulator = MessageAccumulator()
    result = None
    for event in events:
        result = accumulator.feed(event) or result
    return accumulator, result


def test_text_deltas_concatenate():
    _, message = feed_all(
        message_events(
            {"type": "content_block_start", "index": 0, "content_block": {"type": "text", "text": ""}},
            {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "I'll "}},
            {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "plan"}},
            {"type": "content_block_stop", "index": 0},
        )
    )

    assert message["content"] == [{"type": "text", "text": "I'll plan"}]
    assert message["id"] == "msg_1"
    assert message["stop_reason"] == "tool_use"
    assert message["usage"] == {"input_tokens": 10, "output_tokens": 42}


def test_tool_arguments_are_parsed_once_on_close():
    """Argument fragments are not valid JSON on their own; only the whole is parsed."""
    accumulator = MessageAccumulator()
    accumulator.feed(
        {
            "type": "content_block_start",
            "index": 0,
            "content_block": {"type": "tool_use", "id": "tu_1", "name": "orchestrate_execution"},
        }
    )
    for fragment in ('{"steps": [{"id": ', '"s1", "agent": "web"', "}]}"):
        accumulator.feed(
            {"type": "content_block_delta", "index": 0, "delta": {"type": "input_json_delta", "partial_json": fragment}}
        )
        assert accumulator.blocks[0].state is BlockState.ACCUMULATING

    accumulator.feed({"type": "content_block_stop", "index": 0})

    block = accumulator.blocks[0]
    assert block.state is BlockState.PARSED
    assert block.input == {"steps": [{"id": "s1", "agent": "web"}]}


def test_parse_failure_keeps_raw_string():
    block = ContentBlock(index=0, type="tool_use", name="Bash")
    block.append_json('{"command": "ls"')

    block.close()

    assert block.state is BlockState.PARSE_FAILED
    assert block.input == '{"command": "ls"'
    assert block.to_content()["input"] == '{"command": "ls"'


def test_empty_arguments_parse_to_empty_object():
    block = ContentBlock(index=0, type="tool_use", name="Noop")

    block.close()

    assert block.state is BlockState.PARSED
    assert block.input == {}


def test_text_block_closes_without_parsing():
    block = ContentBlock(index=0, type="text")
    block.append_text("hi")

    block.close()

    assert block.state is BlockState.CLOSED


def test_delta_after_close_is_rejected():
    block = ContentBlock(index=0, type="text")
    block.close()

    with pytest.raises(BlockStateError):
        block.append_text("late")


def test_blocks_assemble_in_index_order():
    _, message = feed_all(
        message_events(
            {"type": "content_block_start", "index": 1, "content_block": {"type": "tool_use", "id": "tu_1", "name": "t"}},
            {"type": "content_block_start", "index": 0, "content_block": {"type": "text"}},
            {"type": "content_block_delta", "index": 1, "delta": {"type": "input_json_delta", "partial_json": "{}"}},
            {"type": "content_block_delta", "index": 0, "delta": {"type": "text_delta", "text": "plan:"}},
            {"type": "content_block_stop", "index": 0},
            {"type": "content_block_stop", "index": 1},
        )
    )

    assert [block["type"] for block in message["content"]] == ["text", "tool_use"]
    assert message["content"][1] == {"type": "tool_use", "id": "tu_1", "name": "t", "input": {}}


def test_unknown_events_and_orphan_deltas_are_ignored():
    accumulator, message = feed_all(
        message_events(
            {"type": "ping"},
            {"type": "content_block_delta", "index": 5, "delta": {"type": "text_delta", "text": "x"}},
        )
    )

    assert accumulator.finished
    assert message["content"] == []
