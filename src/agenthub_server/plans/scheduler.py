"""Wave-based execution of dependency-ordered plans.

A plan runs as a sequence of waves. Each wave is the set of pending steps
whose dependencies have all completed; its steps run concurrently and the
next wave is computed once every one of them has finished. A step whose
dependency failed never becomes ready. When nothing is ready but steps are
still pending, the plan has stalled and the run stops.
"""

import asyncio
import logging
import uuid
from contextlib import aclosing
from typing import Awaitable, Callable

from agenthub_server.execution import DuplicateRequestError
from agenthub_server.models.chat import AgentDescriptor, ChatRequest
from agenthub_server.models.events import StreamEvent
from agenthub_server.models.plans import ExecutionStep, PlanOutcome, PlanReport, StepStatus
from agenthub_server.routing import ChatDispatcher, RoutingError
from agenthub_server.sessions.recorder import StreamRecorder
from agenthub_server.sessions.store import ConversationStore
from agenthub_server.sessions.types import GROUP_SESSION_KEY

logger = logging.getLogger(__name__)

StepCallback = Callable[[ExecutionStep], Awaitable[None]]


class PlanValidationError(ValueError):
    """Raised for a plan that cannot be run at all (e.g. duplicate step ids)."""


def validate_plan(steps: list[ExecutionStep]) -> None:
    seen: set[str] = set()
    duplicates: list[str] = []
    for step in steps:
        if step.id in seen and step.id not in duplicates:
            duplicates.append(step.id)
        seen.add(step.id)
    if duplicates:
        raise PlanValidationError(f"Duplicate step ids: {', '.join(duplicates)}")


def ready_steps(steps: list[ExecutionStep]) -> list[ExecutionStep]:
    """Pending steps whose every dependency names a completed step."""
    status = {step.id: step.status for step in steps}
    return [
        step
        for step in steps
        if step.status is StepStatus.PENDING
        and all(status.get(dep) is StepStatus.COMPLETED for dep in step.dependencies)
    ]


class PlanScheduler:
    """Runs execution plans through the chat dispatcher.

    Args:
        dispatcher: Routes and executes each step as a chat request.
        store: Conversation store the steps are recorded into.
        max_parallel_steps: Upper bound on concurrently running steps,
            or None for no bound.
    """

    def __init__(
        self,
        dispatcher: ChatDispatcher,
        store: ConversationStore,
        max_parallel_steps: int | None = None,
    ) -> None:
        self.dispatcher = dispatcher
        self.store = store
        self.max_parallel_steps = max_parallel_steps

    async def run(
        self,
        steps: list[ExecutionStep],
        roster: list[AgentDescriptor],
        on_update: StepCallback | None = None,
        plan_id: str | None = None,
    ) -> PlanReport:
        """Execute ``steps`` wave by wave until all are done or the plan stalls.

        The steps are copied; the caller's list is not modified. Each step runs
        under request id ``{plan_id}-{step.id}``, so it can be aborted like any
        chat request while it runs. An aborted step is failed.

        Raises:
            PlanValidationError: If step ids are not unique.
        """
        validate_plan(steps)
        plan_id = plan_id or uuid.uuid4().hex[:10]
        steps = [
            step.model_copy(
                update={"status": StepStatus.PENDING, "request_id": f"{plan_id}-{step.id}"}
            )
            for step in steps
        ]
        agents = {agent.id: agent for agent in roster if agent.is_enabled}
        limit = (
            asyncio.Semaphore(self.max_parallel_steps) if self.max_parallel_steps else None
        )
        waves: list[list[str]] = []

        while True:
            wave = ready_steps(steps)
            if not wave:
                break

            waves.append([step.id for step in wave])
            logger.info(
                f"Plan {plan_id}: starting wave {len(waves)} "
                f"with {len(wave)} steps: {', '.join(waves[-1])}"
            )
            await asyncio.gather(
                *(self._run_step(step, agents, roster, limit, on_update) for step in wave)
            )

        pending = [step.id for step in steps if step.status is StepStatus.PENDING]
        if pending:
            outcome = PlanOutcome.STALLED
            logger.warning(f"Plan {plan_id} stalled with unrunnable steps: {', '.join(pending)}")
        elif all(step.status is StepStatus.COMPLETED for step in steps):
            outcome = PlanOutcome.COMPLETED
        else:
            outcome = PlanOutcome.FAILED

        logger.info(f"Plan {plan_id} finished: {outcome.value} after {len(waves)} waves")
        return PlanReport(
            plan_id=plan_id,
            outcome=outcome,
            steps=steps,
            waves=waves,
            stalled_steps=pending,
        )

    async def _run_step(
        self,
        step: ExecutionStep,
        agents: dict[str, AgentDescriptor],
        roster: list[AgentDescriptor],
        limit: asyncio.Semaphore | None,
        on_update: StepCallback | None,
    ) -> None:
        if limit is None:
            await self._execute_step(step, agents, roster, on_update)
            return
        async with limit:
            await self._execute_step(step, agents, roster, on_update)

    async def _execute_step(
        self,
        step: ExecutionStep,
        agents: dict[str, AgentDescriptor],
        roster: list[AgentDescriptor],
        on_update: StepCallback | None,
    ) -> None:
        step.status = StepStatus.RUNNING
        await self._notify(step, on_update)

        terminal = await self._stream_step(step, agents, roster)

        step.status = (
            StepStatus.COMPLETED
            if terminal is not None and terminal.type == "done"
            else StepStatus.FAILED
        )
        logger.info(f"Step {step.id} on {step.agent}: {step.status.value}")
        await self._notify(step, on_update)

    async def _stream_step(
        self,
        step: ExecutionStep,
        agents: dict[str, AgentDescriptor],
        roster: list[AgentDescriptor],
    ) -> StreamEvent | None:
        agent = agents.get(step.agent)
        if agent is None:
            logger.error(f"Step {step.id} names unknown agent {step.agent}")
            return None

        request = ChatRequest(
            message=step.message,
            request_id=step.request_id or uuid.uuid4().hex,
            session_id=self.store.session_token(agent.id),
            working_directory=agent.working_directory,
            available_agents=roster,
        )
        try:
            decision = self.dispatcher.route(request)
        except RoutingError as e:
            logger.error(f"Step {step.id} could not be routed: {e}")
            return None

        agent_log = StreamRecorder(self.store, agent.id, request.request_id)
        group_log = StreamRecorder(
            self.store, GROUP_SESSION_KEY, request.request_id, track_session_token=False
        )
        await agent_log.begin(step.message)
        await group_log.begin(f"@{agent.id} {step.message}")

        terminal = None
        try:
            async with aclosing(self.dispatcher.open_stream(decision)) as events:
                async for event in events:
                    await agent_log.record(event)
                    await group_log.record(event)
                    if event.is_terminal:
                        terminal = event
                        break
        except DuplicateRequestError as e:
            logger.error(f"Step {step.id} could not start: {e}")
            terminal = StreamEvent.failure(str(e))
            await agent_log.record(terminal)
            await group_log.record(terminal)
        return terminal

    @staticmethod
    async def _notify(step: ExecutionStep, on_update: StepCallback | None) -> None:
        if on_update is None:
            return
        try:
            await on_update(step)
        except Exception:
            logger.exception(f"Step update callback failed for step {step.id}")
