"""Async Anthropic Messages API client wrapper.

The orchestrator plans through one streamed Messages API call. This wrapper
issues the call and yields the raw stream events as plain dicts; assembling
them into a message is ``MessageAccumulator``'s job.
"""

import logging
from typing import Any, AsyncIterator

import anthropic

logger = logging.getLogger(__name__)


class AnthropicClient:
    """Async client for streaming orchestrator completions from Anthropic.

    The underlying ``anthropic.AsyncAnthropic`` is created on first use so the
    server can start without credentials when the orchestrator is unused.
    """

    name = "anthropic"

    def __init__(self, api_key: str | None = None) -> None:
        self._api_key = api_key
        self._client: anthropic.AsyncAnthropic | None = None

    def _get_client(self) -> anthropic.AsyncAnthropic:
        if self._client is None:
            # With api_key=None the SDK falls back to ANTHROPIC_API_KEY.
            self._client = anthropic.AsyncAnthropic(api_key=self._api_key)
            logger.info("Anthropic client initialized")
        return self._client

    async def stream_events(
        self,
        *,
        model: str,
        system: str,
        messages: list[dict[str, Any]],
        tools: list[dict[str, Any]],
        max_tokens: int,
    ) -> AsyncIterator[dict[str, Any]]:
        """Stream a completion as raw Messages API events.

        Yields:
            dict: ``message_start``, ``content_block_*``, ``message_delta`` and
                  ``message_stop`` events.

        Raises:
            anthropic.APIError: If the API request fails
        """
        logger.debug(f"Starting Anthropic stream with model: {model}")
        stream = await self._get_client().messages.create(
            model=model,
            max_tokens=max_tokens,
            system=system,
            messages=messages,
            tools=tools,
            stream=True,
        )
        try:
            async for event in stream:
                yield event.model_dump()
        finally:
            await stream.close()
        logger.debug("Anthropic stream completed")

    async def close(self) -> None:
        if self._client is not None:
            await self._client.close()
            logger.debug("Anthropic client closed")
