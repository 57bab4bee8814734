"""Remote relay adapter.

Forwards a request to the server hosting the target agent and re-streams that
server's NDJSON response. The forwarded request is re-addressed to the
target's working directory and carries neither roster nor tool list, so the
remote server runs it locally.
"""

import asyncio
import logging
from typing import AsyncIterator

import httpx

from agenthub_server.adapters.base import ExecutionAdapter
from agenthub_server.execution import CancellationHandle, CancellationRegistry
from agenthub_server.models.chat import AgentDescriptor, ChatRequest
from agenthub_server.models.events import StreamEvent
from agenthub_server.streaming.ndjson import decode_line

logger = logging.getLogger(__name__)

RELAY_HEADERS = {
    "Content-Type": "application/json",
    "Connection": "keep-alive",
    "Cache-Control": "no-cache",
}


class RelayTransportError(Exception):
    """Network failure, non-2xx response or stalled upstream."""


class RemoteRelayAdapter(ExecutionAdapter):
    """Relays requests to another agent server's /api/chat endpoint."""

    name = "relay"

    def __init__(
        self,
        registry: CancellationRegistry,
        client: httpx.AsyncClient,
        read_timeout: float = 30.0,
    ) -> None:
        super().__init__(registry)
        self.client = client
        self.read_timeout = read_timeout

    def build_payload(self, request: ChatRequest, target: AgentDescriptor) -> dict:
        relayed = request.model_copy(
            update={
                "working_directory": target.working_directory,
                "available_agents": None,
                "allowed_tools": None,
            }
        )
        return relayed.to_wire()

    async def _run(
        self,
        request: ChatRequest,
        target: AgentDescriptor,
        handle: CancellationHandle,
    ) -> AsyncIterator[StreamEvent]:
        if not target.api_endpoint:
            raise RelayTransportError(f"Agent {target.id} has no API endpoint")

        url = f"{target.api_endpoint.rstrip('/')}/api/chat"
        logger.debug(f"Relaying request {request.request_id} to {url}")
        upstream = self.client.build_request(
            "POST",
            url,
            json=self.build_payload(request, target),
            headers=RELAY_HEADERS,
        )

        try:
            response = await handle.guard(
                self.client.send(upstream, stream=True), timeout=self.read_timeout
            )
        except asyncio.TimeoutError:
            raise RelayTransportError(
                f"Relay request timed out after {self.read_timeout:g} seconds"
            )
        except httpx.HTTPError as e:
            raise RelayTransportError(f"Relay request to {url} failed: {e}") from e

        try:
            if not response.is_success:
                raise RelayTransportError(
                    f"HTTP error! status: {response.status_code} - {response.reason_phrase}"
                )

            dropped = 0
            try:
                async for line in handle.iterate(
                    response.aiter_lines(), timeout=self.read_timeout
                ):
                    if not line.strip():
                        continue
                    try:
                        event = decode_line(line)
                    except ValueError as e:
                        dropped += 1
                        logger.warning(f"Dropping malformed relay line: {e}")
                        continue

                    if event.subtype == "system" and (event.data or {}).get(
                        "subtype"
                    ) == "connection_ack":
                        continue
                    yield event
                    if event.is_terminal:
                        return
            except asyncio.TimeoutError:
                raise RelayTransportError(
                    f"Stream read timeout after {self.read_timeout:g} seconds"
                )
            except httpx.HTTPError as e:
                raise RelayTransportError(f"Relay stream from {url} failed: {e}") from e

            if dropped:
                logger.info(f"Relay of request {request.request_id} dropped {dropped} lines")
        finally:
            await response.aclose()
