"""Execution plan endpoints."""

import logging
from typing import Annotated

from fastapi import APIRouter, Depends, HTTPException

from agenthub_server.dependencies import get_plan_scheduler
from agenthub_server.models.plans import ExecutePlanRequest, PlanReport
from agenthub_server.plans import PlanScheduler, PlanValidationError

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api/plans", tags=["plans"])


@router.post("/execute", response_model=PlanReport)
async def execute_plan(
    request_body: ExecutePlanRequest,
    scheduler: Annotated[PlanScheduler, Depends(get_plan_scheduler)],
) -> PlanReport:
    """Run an execution plan to completion, failure or stall.

    The response is sent once the plan has finished. A stalled plan is a
    normal response whose outcome is ``stalled``. While it runs, each step can
    be aborted through POST /api/abort/{planId}-{stepId}.

    Raises:
        HTTPException: 422 if the plan is invalid (e.g. duplicate step ids).
    """
    logger.info(f"Executing plan with {len(request_body.steps)} steps")
    try:
        return await scheduler.run(
            request_body.steps,
            request_body.available_agents,
            plan_id=request_body.plan_id,
        )
    except PlanValidationError as e:
        raise HTTPException(
            status_code=422,
            detail={
                "error": {
                    "code": "invalid_plan",
                    "message": str(e),
                    "details": {},
                }
            },
        )
