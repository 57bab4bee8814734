"""Chat API endpoints.

This module provides the streaming chat endpoint and the abort endpoint.
Chat responses are newline-delimited JSON: one canonical stream event per
line, ending with exactly one of ``done``, ``aborted`` or ``error``.
"""

import logging
from contextlib import aclosing
from typing import Annotated, AsyncIterator

from fastapi import APIRouter, Depends, HTTPException
from fastapi.responses import StreamingResponse
from starlette.background import BackgroundTask

from agenthub_server.config import AgentHubSettings
from agenthub_server.dependencies import (
    get_app_settings,
    get_conversation_store,
    get_dispatcher,
    get_plan_scheduler,
    get_registry,
)
from agenthub_server.execution import CancellationRegistry, DuplicateRequestError
from agenthub_server.models.chat import AbortResponse, AgentDescriptor, ChatRequest
from agenthub_server.models.events import StreamEvent
from agenthub_server.plans import PlanScheduler
from agenthub_server.routing import AdapterKind, ChatDispatcher, RoutingError
from agenthub_server.sessions import ConversationStore
from agenthub_server.sessions.recorder import StreamRecorder
from agenthub_server.streaming import NDJSON_MEDIA_TYPE, ndjson_stream

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["chat"])

STREAM_HEADERS = {
    "Cache-Control": "no-cache",
    "Connection": "keep-alive",
    "X-Accel-Buffering": "no",
}


async def _recorded(
    events: AsyncIterator[StreamEvent], recorder: StreamRecorder
) -> AsyncIterator[StreamEvent]:
    """Pass events through while mirroring them into the conversation session.

    A stream that fails before its terminal event (e.g. a request id that was
    registered by a concurrent request after the in-flight check) ends with an
    error event, recorded like any other.
    """
    async with aclosing(events) as stream:
        try:
            async for event in stream:
                await recorder.record(event)
                yield event
                if event.is_terminal:
                    return
        except DuplicateRequestError as e:
            logger.warning(f"Request {recorder.request_id} rejected: {e}")
            terminal = StreamEvent.failure(str(e))
        except Exception as e:
            logger.exception(f"Event stream of request {recorder.request_id} failed")
            terminal = StreamEvent.failure(str(e) or type(e).__name__)
        else:
            terminal = StreamEvent.done()
    await recorder.record(terminal)
    yield terminal


async def _execute_recorded_plan(
    scheduler: PlanScheduler,
    recorder: StreamRecorder,
    roster: list[AgentDescriptor],
) -> None:
    """Run the plan the orchestrator produced, if any, after the response is sent."""
    if not recorder.last_plan:
        logger.debug(f"No plan produced by request {recorder.request_id}")
        return
    logger.info(
        f"Executing plan from request {recorder.request_id} "
        f"({len(recorder.last_plan)} steps)"
    )
    try:
        report = await scheduler.run(
            recorder.last_plan, roster, plan_id=recorder.request_id
        )
    except Exception:
        logger.exception(f"Plan from request {recorder.request_id} could not be executed")
        return
    logger.info(f"Plan from request {recorder.request_id} finished: {report.outcome.value}")


@router.post("/chat")
async def chat(
    request_body: ChatRequest,
    dispatcher: Annotated[ChatDispatcher, Depends(get_dispatcher)],
    registry: Annotated[CancellationRegistry, Depends(get_registry)],
    store: Annotated[ConversationStore, Depends(get_conversation_store)],
    scheduler: Annotated[PlanScheduler, Depends(get_plan_scheduler)],
    settings: Annotated[AgentHubSettings, Depends(get_app_settings)],
) -> StreamingResponse:
    """Execute a chat request and stream its events as NDJSON.

    The request is routed before the response starts, so an unroutable
    request is rejected with a plain HTTP error instead of a stream.

    Raises:
        HTTPException: 409 if the request id is already in flight,
            400 if no valid agent can be resolved.
    """
    request_id = request_body.request_id
    if request_id in registry:
        raise HTTPException(
            status_code=409,
            detail={
                "error": {
                    "code": "duplicate_request",
                    "message": f"Request {request_id} is already in flight",
                    "details": {"request_id": request_id},
                }
            },
        )

    try:
        decision = dispatcher.route(request_body)
    except RoutingError as e:
        logger.warning(f"Request {request_id} could not be routed: {e}")
        raise HTTPException(
            status_code=400,
            detail={
                "error": {
                    "code": "no_valid_agent",
                    "message": str(e),
                    "details": {"working_directory": request_body.working_directory},
                }
            },
        )

    recorder = StreamRecorder(store, decision.session_key, request_id)
    await recorder.begin(request_body.message)

    background = None
    if settings.auto_execute_plans and decision.kind is AdapterKind.ORCHESTRATOR:
        background = BackgroundTask(
            _execute_recorded_plan,
            scheduler,
            recorder,
            request_body.available_agents or [],
        )

    events = _recorded(dispatcher.open_stream(decision), recorder)
    return StreamingResponse(
        ndjson_stream(events, ack=settings.send_connection_ack),
        media_type=NDJSON_MEDIA_TYPE,
        headers=STREAM_HEADERS,
        background=background,
    )


@router.post("/abort/{request_id}", response_model=AbortResponse)
async def abort(
    request_id: str,
    registry: Annotated[CancellationRegistry, Depends(get_registry)],
) -> AbortResponse:
    """Cancel an in-flight request.

    Raises:
        HTTPException: 404 if no request with this id is in flight.
    """
    if not registry.cancel(request_id):
        raise HTTPException(
            status_code=404,
            detail={
                "error": {
                    "code": "request_not_found",
                    "message": f"Request {request_id} is not in flight",
                    "details": {"request_id": request_id},
                }
            },
        )
    return AbortResponse(request_id=request_id, aborted=True)
