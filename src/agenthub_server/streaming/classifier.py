"""Classification of canonical events into rendered transcript messages.

Consumers see every event; only some of them become messages. The mapping:

- ``data/system``     -> SystemMessage (connection acks are transport noise)
- ``data/assistant``  -> PlanMessage for an ``orchestrate_execution`` call,
                         ToolMessage for any other tool call,
                         AssistantMessage for plain text
- ``data/result``     -> ResultMessage
- ``error``           -> ErrorMessage
- ``aborted``         -> ErrorMessage flagged as aborted
- ``done``            -> nothing
"""

import logging
import uuid
from datetime import datetime, timezone
from typing import Any

from pydantic import ValidationError

from agenthub_server.models.events import StreamEvent
from agenthub_server.models.plans import ExecutionStep
from agenthub_server.sessions.types import (
    AssistantMessage,
    ErrorMessage,
    Message,
    PlanMessage,
    ResultMessage,
    SystemMessage,
    ToolCall,
    ToolMessage,
)

logger = logging.getLogger(__name__)

ORCHESTRATE_TOOL_NAME = "orchestrate_execution"


def _timestamp() -> str:
    return datetime.now(timezone.utc).isoformat().replace("+00:00", "Z")


def _message_id() -> str:
    return uuid.uuid4().hex[:10]


def extract_session_token(event: StreamEvent) -> str | None:
    """Return the resumable session token carried by a data event, if any."""
    if event.type != "data" or not event.data:
        return None
    token = event.data.get("session_id")
    return token if isinstance(token, str) and token else None


def extract_plan(tool_input: Any) -> list[ExecutionStep]:
    """Parse the ``steps`` argument of an ``orchestrate_execution`` call.

    Raises:
        ValueError: If the input has no step list or a step is invalid.
    """
    if not isinstance(tool_input, dict):
        raise ValueError("Tool input is not an object")
    raw_steps = tool_input.get("steps")
    if not isinstance(raw_steps, list):
        raise ValueError("Tool input has no 'steps' list")
    try:
        return [ExecutionStep.model_validate(step) for step in raw_steps]
    except ValidationError as e:
        raise ValueError(f"Invalid execution step: {e}") from e


def _content_blocks(payload: dict[str, Any]) -> list[dict[str, Any]]:
    message = payload.get("message")
    if not isinstance(message, dict):
        return []
    content = message.get("content")
    if isinstance(content, str):
        return [{"type": "text", "text": content}]
    if isinstance(content, list):
        return [block for block in content if isinstance(block, dict)]
    return []


def _classify_assistant(payload: dict[str, Any], **meta: str) -> Message | None:
    blocks = _content_blocks(payload)
    text = "".join(
        block.get("text") or "" for block in blocks if block.get("type") == "text"
    )
    tool_calls = []
    for block in blocks:
        if block.get("type") != "tool_use":
            continue
        arguments = block.get("input")
        if not isinstance(arguments, dict):
            arguments = {"raw": arguments}
        tool_calls.append(
            ToolCall(name=block.get("name") or "", arguments=arguments, call_id=block.get("id"))
        )

    if not tool_calls:
        if not text:
            return None
        return AssistantMessage(content=text, **meta)

    for call in tool_calls:
        if call.name != ORCHESTRATE_TOOL_NAME:
            continue
        try:
            steps = extract_plan(call.arguments)
        except ValueError as e:
            logger.warning(f"Unusable execution plan in tool call: {e}")
            break
        return PlanMessage(content=text, steps=steps, **meta)

    return ToolMessage(content=text, tool_calls=tool_calls, **meta)


def classify(event: StreamEvent, request_id: str = "") -> Message | None:
    """Map one canonical event to a rendered message, or None if it renders nothing."""
    meta = {
        "request_id": request_id,
        "message_id": _message_id(),
        "timestamp": _timestamp(),
    }

    if event.type == "done":
        return None
    if event.type == "aborted":
        return ErrorMessage(content="Request aborted", aborted=True, **meta)
    if event.type == "error":
        return ErrorMessage(content=event.error or "Unknown error", **meta)

    payload = event.data or {}
    subtype = event.subtype

    if subtype == "system":
        system_subtype = payload.get("subtype")
        if system_subtype == "connection_ack":
            return None
        cwd = payload.get("cwd")
        content = "System initialized"
        if cwd:
            content = f"System initialized - Working directory: {cwd}"
        return SystemMessage(content=content, subtype=system_subtype, **meta)

    if subtype == "assistant":
        return _classify_assistant(payload, **meta)

    if subtype == "result":
        result_text = payload.get("result")
        return ResultMessage(
            content=result_text if isinstance(result_text, str) and result_text else "Task completed",
            is_error=bool(payload.get("is_error", False)),
            total_cost_usd=payload.get("total_cost_usd"),
            duration_ms=payload.get("duration_ms"),
            num_turns=payload.get("num_turns"),
            **meta,
        )

    logger.debug(f"Unclassified event payload type: {subtype}")
    return None
