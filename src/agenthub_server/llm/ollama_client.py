"""Async Ollama client wrapper.

This module provides an async wrapper around the ollama.AsyncClient so that a
local Ollama model can back the orchestrator. Ollama streams chat chunks
whose tool calls arrive already parsed; ``stream_events`` translates them into
the block-delta event vocabulary the orchestrator consumes, so every provider
is assembled by the same ``MessageAccumulator``.
"""

import json
import logging
import uuid
from typing import Any, AsyncIterator

import ollama

logger = logging.getLogger(__name__)


def _to_ollama_tool(tool: dict[str, Any]) -> dict[str, Any]:
    """Convert a tool definition with ``input_schema`` to Ollama's function format."""
    return {
        "type": "function",
        "function": {
            "name": tool["name"],
            "description": tool.get("description", ""),
            "parameters": tool.get("input_schema", {"type": "object"}),
        },
    }


class OllamaClient:
    """Async client for streaming orchestrator completions from Ollama.

    Attributes:
        host: The Ollama server URL (e.g., "http://localhost:11434")
        _client: The underlying ollama.AsyncClient instance
    """

    name = "ollama"

    def __init__(self, host: str) -> None:
        """Initialize the Ollama client.

        Args:
            host: The Ollama server URL
        """
        self.host = host
        self._client = ollama.AsyncClient(host=host)
        logger.info(f"OllamaClient initialized with host: {host}")

    async def check_connection(self) -> bool:
        """Check if the Ollama server is reachable.

        Returns:
            bool: True if connection is successful, False otherwise
        """
        try:
            await self._client.list()
            logger.debug("Ollama connection check: successful")
            return True
        except Exception as e:
            logger.warning(f"Ollama connection check failed: {e}")
            return False

    async def chat_stream(
        self,
        model: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]] | None = None,
        options: dict[str, Any] | None = None,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream chat responses from Ollama.

        Args:
            model: The model name to use for the chat
            messages: List of message dicts in Ollama format:
                      [{"role": "user", "content": "..."}, ...]
            tools: Optional tool definitions in Ollama's function format
            options: Optional model parameters (num_predict, temperature, ...)

        Yields:
            dict: Response chunks from Ollama. Each chunk contains a ``message``
                  with ``content`` and optional ``tool_calls``, and ``done``
                  which is True on the final chunk.

        Raises:
            Exception: If the Ollama API request fails
        """
        logger.debug(f"Starting chat stream with model: {model}")

        async for chunk in await self._client.chat(
            model=model,
            messages=messages,
            tools=tools,
            stream=True,
            options=options,
        ):
            if hasattr(chunk, "model_dump"):
                chunk_dict = chunk.model_dump()
            elif isinstance(chunk, dict):
                chunk_dict = chunk
            else:
                chunk_dict = vars(chunk)

            logger.debug(f"Received chunk: done={chunk_dict.get('done')}")
            yield chunk_dict

        logger.debug("Chat stream completed")

    async def stream_events(
        self,
        *,
        model: str,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream a completion as block-delta events.

        Each text run becomes a text block and each tool call becomes a
        tool_use block whose arguments are delivered as one JSON fragment.
        """
        yield {
            "type": "message_start",
            "message": {
                "id": f"ollama-{uuid.uuid4().hex[:10]}",
                "role": "assistant",
                "model": model,
                "usage": None,
            },
        }

        index = -1
        text_open = False
        used_tools = False
        final_chunk: dict[str, Any] | None = None

        async for chunk in self.chat_stream(
            model=model,
            messages=[{"role": "system", "content": system}, *messages],
            tools=[_to_ollama_tool(tool) for tool in tools],
            options={"num_predict": max_tokens},
        ):
            message = chunk.get("message") or {}

            content = message.get("content") or ""
            if content:
                if not text_open:
                    index += 1
                    text_open = True
                    yield {
                        "type": "content_block_start",
                        "index": index,
                        "content_block": {"type": "text", "text": ""},
                    }
                yield {
                    "type": "content_block_delta",
                    "index": index,
                    "delta": {"type": "text_delta", "text": content},
                }

            for call in message.get("tool_calls") or []:
                if text_open:
                    yield {"type": "content_block_stop", "index": index}
                    text_open = False
                index += 1
                used_tools = True
                function = call.get("function") or {}
                arguments = function.get("arguments") or {}
                if not isinstance(arguments, str):
                    arguments = json.dumps(arguments)
                yield {
                    "type": "content_block_start",
                    "index": index,
                    "content_block": {
                        "type": "tool_use",
                        "id": f"call_{index}",
                        "name": function.get("name"),
                    },
                }
                yield {
                    "type": "content_block_delta",
                    "index": index,
                    "delta": {"type": "input_json_delta", "partial_json": arguments},
                }
                yield {"type": "content_block_stop", "index": index}

            if chunk.get("done"):
                final_chunk = chunk
                break

        if text_open:
            yield {"type": "content_block_stop", "index": index}

        final_chunk = final_chunk or {}
        yield {
            "type": "message_delta",
            "delta": {
                "stop_reason": "tool_use" if used_tools else final_chunk.get("done_reason"),
                "stop_sequence": None,
            },
            "usage": {
                "input_tokens": final_chunk.get("prompt_eval_count"),
                "output_tokens": final_chunk.get("eval_count"),
            },
        }
        yield {"type": "message_stop"}

    async def close(self) -> None:
        """Close the client and clean up resources.

        ollama.AsyncClient uses httpx internally which handles cleanup.
        """
        logger.debug("OllamaClient closed")
