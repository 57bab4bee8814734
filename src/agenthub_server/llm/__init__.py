"""Completion providers backing the orchestrator.

Both providers expose ``stream_events(...)`` yielding the same block-delta
event vocabulary, consumed by ``MessageAccumulator``.
"""

from typing import Any, AsyncIterator, Protocol

from agenthub_server.llm.anthropic_client import AnthropicClient
from agenthub_server.llm.blocks import BlockState, ContentBlock, MessageAccumulator
from agenthub_server.llm.ollama_client import OllamaClient


class CompletionProvider(Protocol):
    """A streaming completion backend for the orchestrator."""

    name: str

    def stream_events(
        self,
        *,
        model: str,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
    ) -> AsyncIterator[dict[str, Any]]: ...

    async def close(self) -> None: ...


def create_provider(
    provider: str, *, anthropic_api_key: str | None = None, ollama_host: str = ""
) -> CompletionProvider:
    """Create the configured completion provider."""
    if provider == "ollama":
        return OllamaClient(host=ollama_host)
    if provider == "anthropic":
        return AnthropicClient(api_key=anthropic_api_key)
    raise ValueError(f"Unknown orchestrator provider: {provider}")


__all__ = [
    "AnthropicClient",
    "BlockState",
    "CompletionProvider",
    "ContentBlock",
    "MessageAccumulator",
    "OllamaClient",
    "create_provider",
]
