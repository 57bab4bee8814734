"""Unit tests for the AnthropicClient wrapper."""

from unittest.mock import AsyncMock, MagicMock, patch

import pytest

from agenthub_server.llm import AnthropicClient, OllamaClient, create_provider


class FakeStream:
    def __init__(self, events):
        self._events = events
        self.closed = False

    def __aiter__(self):
        return self._iterate()

    async def _iterate(self):
        for event in self._events:
            yield event

    async def close(self):
        self.closed = True


def sdk_event(payload):
    event = MagicMock()
    event.model_dump.return_value = payload
    return event


@pytest.mark.asyncio
async def test_client_is_created_lazily():
    with patch("agenthub_server.llm.anthropic_client.anthropic.AsyncAnthropic") as mock_class:
        client = AnthropicClient(api_key="test-key")
        mock_class.assert_not_called()

        client._get_client()
        client._get_client()

    mock_class.assert_called_once_with(api_key="test-key")


@pytest.mark.asyncio
async def test_stream_events_yields_dicts_and_closes_stream():
    stream = FakeStream([sdk_event({"type": "message_start"}), sdk_event({"type": "message_stop"})])
    with patch("agenthub_server.llm.anthropic_client.anthropic.AsyncAnthropic") as mock_class:
        sdk = MagicMock()
        sdk.messages.create = AsyncMock(return_value=stream)
        sdk.close = AsyncMock()
        mock_class.return_value = sdk

        client = AnthropicClient(api_key="test-key")
        events = [
            event
            async for event in client.stream_events(
                model="claude-sonnet-4-20250514",
                system="sys",
                messages=[{"role": "user", "content": "hi"}],
                tools=[{"name": "t"}],
                max_tokens=4000,
            )
        ]
        await client.close()

    assert events == [{"type": "message_start"}, {"type": "message_stop"}]
    assert stream.closed
    kwargs = sdk.messages.create.call_args.kwargs
    assert kwargs["stream"] is True
    assert kwargs["max_tokens"] == 4000
    assert kwargs["system"] == "sys"
    sdk.close.assert_awaited_once()


def test_create_provider():
    assert isinstance(create_provider("anthropic"), AnthropicClient)
    with patch("agenthub_server.llm.ollama_client.ollama.AsyncClient"):
        assert isinstance(create_provider("ollama", ollama_host="http://o:11434"), OllamaClient)
    with pytest.raises(ValueError):
        create_provider("openai")
