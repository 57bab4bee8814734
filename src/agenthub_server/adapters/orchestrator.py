"""Orchestrator workflow adapter.

Asks a completion model to break the user's request into an execution plan.
The model is offered a single ``orchestrate_execution`` tool whose ``agent``
argument is restricted to the worker agents of the request's roster; the plan
comes back as that tool call's arguments.
"""

import logging
import time
from typing import Any, AsyncIterator

from agenthub_server.adapters.base import ExecutionAdapter
from agenthub_server.execution import CancellationHandle, CancellationRegistry
from agenthub_server.llm import CompletionProvider, MessageAccumulator
from agenthub_server.models.chat import AgentDescriptor, ChatRequest
from agenthub_server.models.events import StreamEvent
from agenthub_server.streaming.classifier import ORCHESTRATE_TOOL_NAME

logger = logging.getLogger(__name__)

SYSTEM_PROMPT_TEMPLATE = """You are the Orchestrator agent. Break user requests into steps where each agent saves results to a plain text file, and the next agent reads from that file.

Rules:
1. Each agent saves results to the specified output_file path
2. Tell subsequent agents exactly which file to read from
3. Use simple paths like "/tmp/step1_results.txt", "/tmp/step2_results.txt"

Available Agents:
{agent_descriptions}

Always use {tool_name} tool to create step-by-step plans."""


def build_plan_tool(agent_ids: list[str]) -> dict[str, Any]:
    """Build the ``orchestrate_execution`` tool definition for the given workers."""
    return {
        "name": ORCHESTRATE_TOOL_NAME,
        "description": (
            "Create a structured execution plan for multi-agent workflows with simple "
            "file-based communication. Message to each step must include the full path "
            "to files to read from and write to."
        ),
        "input_schema": {
            "type": "object",
            "properties": {
                "steps": {
                    "type": "array",
                    "description": "Array of execution steps to be performed by different agents",
                    "items": {
                        "type": "object",
                        "properties": {
                            "id": {
                                "type": "string",
                                "description": "Unique identifier for this step",
                            },
                            "agent": {
                                "type": "string",
                                "description": "ID of the worker agent that should execute this step",
                                "enum": agent_ids,
                            },
                            "message": {
                                "type": "string",
                                "description": (
                                    "Clear instruction for the agent. Include file paths to "
                                    "read from previous steps. Include the full path to files "
                                    "to write results to."
                                ),
                            },
                            "output_file": {
                                "type": "string",
                                "description": "Path where this agent should save its results (plain text)",
                            },
                            "dependencies": {
                                "type": "array",
                                "description": "Step IDs that must complete before this step can begin",
                                "items": {"type": "string"},
                            },
                        },
                        "required": ["id", "agent", "message", "output_file"],
                    },
                }
            },
            "required": ["steps"],
        },
    }


def build_system_prompt(workers: list[AgentDescriptor]) -> str:
    descriptions = "\n".join(f"- {agent.id}: {agent.description}" for agent in workers)
    return SYSTEM_PROMPT_TEMPLATE.format(
        agent_descriptions=descriptions, tool_name=ORCHESTRATE_TOOL_NAME
    )


class OrchestratorAdapter(ExecutionAdapter):
    """Plans multi-agent work through a streamed completion call."""

    name = "orchestrator"

    def __init__(
        self,
        registry: CancellationRegistry,
        provider: CompletionProvider,
        model: str,
        max_tokens: int = 4000,
    ) -> None:
        super().__init__(registry)
        self.provider = provider
        self.model = model
        self.max_tokens = max_tokens

    async def _run(
        self,
        request: ChatRequest,
        target: AgentDescriptor,
        handle: CancellationHandle,
    ) -> AsyncIterator[StreamEvent]:
        workers = [
            agent
            for agent in request.available_agents or []
            if agent.is_enabled and not agent.is_orchestrator
        ]
        session_id = request.session_id or f"{self.provider.name}-{int(time.time() * 1000)}"

        # Completion calls can be slow to produce a first token.
        yield StreamEvent.of(
            {
                "type": "system",
                "subtype": "init",
                "session_id": session_id,
                "model": self.model,
                "tools": [ORCHESTRATE_TOOL_NAME],
            }
        )

        accumulator = MessageAccumulator()
        provider_events = self.provider.stream_events(
            model=self.model,
            system=build_system_prompt(workers),
            messages=[{"role": "user", "content": request.message}],
            tools=[build_plan_tool([agent.id for agent in workers])],
            max_tokens=self.max_tokens,
        )
        async for provider_event in handle.iterate(provider_events):
            message = accumulator.feed(provider_event)
            if message is not None:
                logger.debug(
                    f"Orchestrator message assembled with {len(message['content'])} blocks"
                )
                yield StreamEvent.of(
                    {"type": "assistant", "message": message, "session_id": session_id}
                )
                return

        logger.warning(f"Provider stream for request {request.request_id} ended without message_stop")
