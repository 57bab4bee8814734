"""Request routing: pick exactly one adapter invocation per chat request.

The target agent is resolved from the request's working directory. A request
aimed at the orchestrator is relayed straight to a worker when it mentions
exactly one of them (``@agent-id``); otherwise the orchestrator plans the
work. Any other target runs locally. Routing never touches the cancellation
registry, so a request that cannot be routed leaves nothing behind.
"""

import logging
import re
from dataclasses import dataclass
from enum import Enum

from agenthub_server.models.chat import AgentDescriptor, ChatRequest
from agenthub_server.sessions.types import GROUP_SESSION_KEY

logger = logging.getLogger(__name__)

MENTION_PATTERN = re.compile(r"@(\w+(?:-\w+)*)")


class AdapterKind(str, Enum):
    LOCAL = "local"
    RELAY = "relay"
    ORCHESTRATOR = "orchestrator"


class RoutingError(Exception):
    """Raised when a request has no valid target agent."""


@dataclass(frozen=True)
class RouteDecision:
    """The adapter to run, the agent it targets and the request to send it.

    ``request`` may differ from the inbound request (a relayed message has
    its mention removed; an orchestrator request carries only worker agents).
    ``session_key`` names the conversation session the stream belongs to.
    """

    kind: AdapterKind
    target: AgentDescriptor
    request: ChatRequest
    session_key: str


def parse_mentions(message: str) -> list[str]:
    """Return every mention token of ``message`` in order of appearance.

    Repeated mentions are kept; a message addressing one agent twice is not a
    single-mention message.
    """
    return MENTION_PATTERN.findall(message)


def strip_mention(message: str, agent_id: str) -> str:
    """Remove the first ``@agent_id`` token (and following whitespace) from ``message``."""
    return re.sub(rf"@{re.escape(agent_id)}\b\s*", "", message, count=1).strip()


class RequestRouter:
    """Resolves chat requests to adapter invocations."""

    def __init__(
        self,
        orchestrator_working_directory: str,
        default_working_directory: str | None = None,
    ) -> None:
        self.orchestrator_working_directory = orchestrator_working_directory
        self.default_working_directory = default_working_directory

    def route(self, request: ChatRequest) -> RouteDecision:
        """Decide how ``request`` is executed.

        Raises:
            RoutingError: If no target agent can be resolved, the roster names
                more than one enabled orchestrator, or the orchestrator has no
                worker agents.
        """
        roster = [agent for agent in request.available_agents or [] if agent.is_enabled]
        orchestrators = [agent for agent in roster if agent.is_orchestrator]
        if len(orchestrators) > 1:
            ids = ", ".join(agent.id for agent in orchestrators)
            raise RoutingError(f"More than one enabled orchestrator in roster: {ids}")
        orchestrator = orchestrators[0] if orchestrators else None
        workers = [agent for agent in roster if not agent.is_orchestrator]

        target = self._resolve_target(request, roster, orchestrator)

        if not target.is_orchestrator:
            logger.info(
                f"Routing request {request.request_id} to local agent {target.id} "
                f"in {target.working_directory}"
            )
            return RouteDecision(
                kind=AdapterKind.LOCAL,
                target=target,
                request=request,
                session_key=target.id,
            )

        mentions = parse_mentions(request.message)
        worker = None
        if len(mentions) == 1:
            worker = next((agent for agent in workers if agent.id == mentions[0]), None)
        if worker is not None:
            relayed = request.model_copy(
                update={"message": strip_mention(request.message, worker.id)}
            )
            # A worker without an endpoint is hosted by this server.
            kind = AdapterKind.RELAY if worker.api_endpoint else AdapterKind.LOCAL
            logger.info(
                f"Forwarding request {request.request_id} to agent {worker.id} ({kind.value})"
            )
            return RouteDecision(
                kind=kind,
                target=worker,
                request=relayed,
                session_key=GROUP_SESSION_KEY,
            )

        if not workers:
            raise RoutingError("No valid agent: the orchestrator has no worker agents")

        planned = request.model_copy(update={"available_agents": workers})
        logger.info(
            f"Routing request {request.request_id} to orchestrator "
            f"with {len(workers)} worker agents"
        )
        return RouteDecision(
            kind=AdapterKind.ORCHESTRATOR,
            target=target,
            request=planned,
            session_key=GROUP_SESSION_KEY,
        )

    def _resolve_target(
        self,
        request: ChatRequest,
        roster: list[AgentDescriptor],
        orchestrator: AgentDescriptor | None,
    ) -> AgentDescriptor:
        working_directory = request.working_directory

        if working_directory:
            for agent in roster:
                if agent.working_directory == working_directory:
                    return agent
            if working_directory == self.orchestrator_working_directory:
                if orchestrator is not None:
                    return orchestrator
                raise RoutingError(
                    "No valid agent: no enabled orchestrator for "
                    f"{self.orchestrator_working_directory}"
                )
            # Relayed requests carry no roster; the directory itself names the agent.
            return AgentDescriptor(id=working_directory, working_directory=working_directory)

        if self.default_working_directory:
            return AgentDescriptor(
                id=self.default_working_directory,
                working_directory=self.default_working_directory,
            )

        raise RoutingError("No valid agent: request has no working directory")
