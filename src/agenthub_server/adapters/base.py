"""Base class for execution adapters.

An adapter turns one routed chat request into a stream of canonical events.
Subclasses implement ``_run``; ``execute`` wraps it with the request
lifecycle every adapter shares:

- the request's cancellation entry is held for exactly the life of the stream;
- the stream ends with exactly one terminal event (done, aborted or error).
"""

import logging
from abc import ABC, abstractmethod
from contextlib import aclosing
from typing import AsyncIterator

from agenthub_server.execution import CancellationHandle, CancellationRegistry, RequestAborted
from agenthub_server.models.chat import AgentDescriptor, ChatRequest
from agenthub_server.models.events import StreamEvent

logger = logging.getLogger(__name__)


class ExecutionAdapter(ABC):
    """Executes a chat request against one kind of agent backend."""

    name: str = "adapter"

    def __init__(self, registry: CancellationRegistry) -> None:
        self.registry = registry

    async def execute(
        self, request: ChatRequest, target: AgentDescriptor
    ) -> AsyncIterator[StreamEvent]:
        """Stream the canonical events of ``request`` executed on ``target``.

        Raises:
            DuplicateRequestError: If the request id is already in flight. This
                is raised on the first iteration, before any event.
        """
        with self.registry.acquire(request.request_id) as handle:
            logger.info(f"{self.name} adapter started request {request.request_id}")
            try:
                async with aclosing(self._run(request, target, handle)) as events:
                    async for event in events:
                        yield event
                        if event.is_terminal:
                            logger.info(
                                f"{self.name} adapter finished request "
                                f"{request.request_id}: {event.type}"
                            )
                            return
            except RequestAborted:
                logger.info(f"{self.name} adapter aborted request {request.request_id}")
                yield StreamEvent.aborted()
                return
            except Exception as e:
                logger.exception(
                    f"{self.name} adapter failed on request {request.request_id}"
                )
                yield StreamEvent.failure(str(e) or type(e).__name__)
                return

            logger.info(f"{self.name} adapter finished request {request.request_id}: done")
            yield StreamEvent.done()

    @abstractmethod
    def _run(
        self,
        request: ChatRequest,
        target: AgentDescriptor,
        handle: CancellationHandle,
    ) -> AsyncIterator[StreamEvent]:
        """Yield the request's data events.

        Implementations guard every blocking read with ``handle`` and may
        yield a terminal event themselves to end the stream early.
        """
