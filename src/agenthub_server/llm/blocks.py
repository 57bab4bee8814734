"""Assembly of a streamed completion message from its block deltas.

Completion providers stream a message as a sequence of low-level events::

    message_start
    content_block_start   (index, content_block: text | tool_use)
    content_block_delta   (index, delta: text_delta | input_json_delta)
    content_block_stop    (index)
    message_delta         (stop_reason, usage)
    message_stop

Text deltas are concatenated. Tool-call arguments arrive as fragments of a
JSON document; they are accumulated as a string and parsed exactly once, when
the block closes. Each block moves through an explicit state machine::

    accumulating -> closed -> parsed | parse_failed
"""

import json
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any

logger = logging.getLogger(__name__)


class BlockState(str, Enum):
    ACCUMULATING = "accumulating"
    CLOSED = "closed"
    PARSED = "parsed"
    PARSE_FAILED = "parse_failed"


class BlockStateError(RuntimeError):
    """Raised when a delta arrives for a block that is no longer accumulating."""


@dataclass
class ContentBlock:
    """One content block of a streamed message."""

    index: int
    type: str
    id: str | None = None
    name: str | None = None
    text: str = ""
    partial_json: str = ""
    input: Any = None
    state: BlockState = BlockState.ACCUMULATING

    def append_text(self, fragment: str) -> None:
        self._require_accumulating()
        self.text += fragment

    def append_json(self, fragment: str) -> None:
        self._require_accumulating()
        self.partial_json += fragment

    def close(self) -> None:
        """Stop accepting deltas and parse accumulated tool arguments."""
        self._require_accumulating()
        self.state = BlockState.CLOSED
        if self.type != "tool_use":
            return

        raw = self.partial_json.strip()
        if not raw:
            self.input = {}
            self.state = BlockState.PARSED
            return
        try:
            self.input = json.loads(raw)
            self.state = BlockState.PARSED
        except json.JSONDecodeError as e:
            logger.warning(
                f"Failed to parse arguments of tool block {self.index} ({self.name}): {e}"
            )
            logger.debug(f"Raw tool arguments: {raw}")
            self.input = self.partial_json
            self.state = BlockState.PARSE_FAILED

    def to_content(self) -> dict[str, Any]:
        """Render the block in the provider's content format."""
        if self.type == "text":
            return {"type": "text", "text": self.text}
        if self.type == "tool_use":
            arguments = self.input
            if self.state is BlockState.ACCUMULATING:
                arguments = self.partial_json
            return {
                "type": "tool_use",
                "id": self.id,
                "name": self.name,
                "input": arguments,
            }
        return {"type": self.type}

    def _require_accumulating(self) -> None:
        if self.state is not BlockState.ACCUMULATING:
            raise BlockStateError(
                f"Content block {self.index} is {self.state.value}, not accumulating"
            )


@dataclass
class MessageAccumulator:
    """Feeds provider stream events into a single assembled message."""

    message: dict[str, Any] = field(default_factory=dict)
    blocks: dict[int, ContentBlock] = field(default_factory=dict)
    finished: bool = False

    def feed(self, event: dict[str, Any]) -> dict[str, Any] | None:
        """Apply one provider event.

        Returns:
            The assembled message when ``event`` is ``message_stop``, else None.
        """
        event_type = event.get("type")

        if event_type == "message_start":
            start = event.get("message") or {}
            self.message = {
                "id": start.get("id"),
                "type": "message",
                "role": start.get("role", "assistant"),
                "model": start.get("model"),
                "content": [],
                "stop_reason": None,
                "stop_sequence": None,
                "usage": start.get("usage"),
            }
        elif event_type == "content_block_start":
            index = int(event.get("index", len(self.blocks)))
            start_block = event.get("content_block") or {}
            self.blocks[index] = ContentBlock(
                index=index,
                type=start_block.get("type", "text"),
                id=start_block.get("id"),
                name=start_block.get("name"),
                text=start_block.get("text") or "",
            )
        elif event_type == "content_block_delta":
            self._apply_delta(event)
        elif event_type == "content_block_stop":
            block = self.blocks.get(int(event.get("index", -1)))
            if block is not None:
                block.close()
        elif event_type == "message_delta":
            delta = event.get("delta") or {}
            self.message["stop_reason"] = delta.get("stop_reason")
            self.message["stop_sequence"] = delta.get("stop_sequence")
            usage = event.get("usage")
            if usage:
                self.message["usage"] = {**(self.message.get("usage") or {}), **usage}
        elif event_type == "message_stop":
            self.finished = True
            return self.assemble()
        else:
            logger.debug(f"Ignoring provider event: {event_type}")
        return None

    def assemble(self) -> dict[str, Any]:
        """Return the message with its blocks in index order."""
        message = dict(self.message)
        message.setdefault("type", "message")
        message.setdefault("role", "assistant")
        message["content"] = [
            self.blocks[index].to_content() for index in sorted(self.blocks)
        ]
        return message

    def _apply_delta(self, event: dict[str, Any]) -> None:
        index = int(event.get("index", -1))
        block = self.blocks.get(index)
        if block is None:
            logger.warning(f"Delta for unknown content block {index} ignored")
            return

        delta = event.get("delta") or {}
        delta_type = delta.get("type")
        if delta_type == "text_delta" and block.type == "text":
            block.append_text(delta.get("text", ""))
        elif delta_type == "input_json_delta" and block.type == "tool_use":
            block.append_json(delta.get("partial_json", ""))
        else:
            logger.debug(f"Ignoring {delta_type} delta for {block.type} block {index}")
