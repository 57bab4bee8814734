"""Execution plan scheduling."""

from agenthub_server.plans.scheduler import (
    PlanScheduler,
    PlanValidationError,
    ready_steps,
    validate_plan,
)

__all__ = ["PlanScheduler", "PlanValidationError", "ready_steps", "validate_plan"]
