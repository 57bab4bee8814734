"""Dispatch of routed requests to adapter instances."""

import logging
from typing import AsyncIterator

from agenthub_server.adapters.base import ExecutionAdapter
from agenthub_server.models.chat import ChatRequest
from agenthub_server.models.events import StreamEvent
from agenthub_server.routing.router import AdapterKind, RequestRouter, RouteDecision

logger = logging.getLogger(__name__)


class ChatDispatcher:
    """Routes requests and opens the chosen adapter's event stream.

    Routing is a separate step so callers can reject an unroutable request
    before committing to a streamed response.
    """

    def __init__(
        self, router: RequestRouter, adapters: dict[AdapterKind, ExecutionAdapter]
    ) -> None:
        missing = set(AdapterKind) - set(adapters)
        if missing:
            names = ", ".join(sorted(kind.value for kind in missing))
            raise ValueError(f"No adapter configured for: {names}")
        self.router = router
        self.adapters = adapters

    def route(self, request: ChatRequest) -> RouteDecision:
        return self.router.route(request)

    def open_stream(self, decision: RouteDecision) -> AsyncIterator[StreamEvent]:
        adapter = self.adapters[decision.kind]
        return adapter.execute(decision.request, decision.target)

    def dispatch(self, request: ChatRequest) -> AsyncIterator[StreamEvent]:
        """Route ``request`` and open its stream.

        Raises:
            RoutingError: If the request cannot be routed.
        """
        return self.open_stream(self.route(request))
