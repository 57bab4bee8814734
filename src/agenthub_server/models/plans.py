"""Pydantic models for execution plans.

An execution plan is a dependency graph of steps, each bound to one worker
agent. Plans come out of the orchestrator's ``orchestrate_execution`` tool
call and are executed by the plan scheduler in waves.
"""

from enum import Enum

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel

from agenthub_server.models.chat import AgentDescriptor


class StepStatus(str, Enum):
    """Lifecycle of a single execution step."""

    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"


class PlanOutcome(str, Enum):
    """How a plan run ended."""

    COMPLETED = "completed"
    FAILED = "failed"
    STALLED = "stalled"


class ExecutionStep(BaseModel):
    """One node of a plan: an instruction for one agent."""

    id: str = Field(min_length=1, description="Unique identifier within the plan")
    agent: str = Field(description="ID of the worker agent executing this step")
    message: str = Field(description="Instruction sent to the agent")
    output_file: str | None = Field(
        default=None, description="Where the agent should save its results"
    )
    dependencies: list[str] = Field(
        default_factory=list,
        description="Step IDs that must complete before this step can begin",
    )
    status: StepStatus = Field(default=StepStatus.PENDING)
    request_id: str | None = Field(
        default=None,
        description="Request id the step runs under, usable with the abort endpoint",
    )

    model_config = ConfigDict(populate_by_name=True)

    @property
    def is_terminal(self) -> bool:
        return self.status in (StepStatus.COMPLETED, StepStatus.FAILED)


class ExecutePlanRequest(BaseModel):
    """Request body for POST /api/plans/execute."""

    steps: list[ExecutionStep] = Field(min_length=1)
    available_agents: list[AgentDescriptor] = Field(default_factory=list)
    plan_id: str | None = Field(
        default=None,
        description="Prefix of the step request ids; generated when omitted",
    )

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class PlanReport(BaseModel):
    """Result of running a plan to exhaustion or stall."""

    plan_id: str
    outcome: PlanOutcome
    steps: list[ExecutionStep]
    waves: list[list[str]] = Field(
        default_factory=list, description="Step IDs executed in each wave"
    )
    stalled_steps: list[str] = Field(
        default_factory=list,
        description="Pending steps that could never become ready",
    )

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
