"""Pydantic models for API request and response schemas.

This package contains the wire models of the chat, plan, session and health
endpoints and the canonical stream event envelope.
"""

from agenthub_server.models.chat import AbortResponse, AgentDescriptor, ChatRequest
from agenthub_server.models.events import TERMINAL_EVENT_TYPES, StreamEvent
from agenthub_server.models.health import HealthResponse
from agenthub_server.models.plans import (
    ExecutePlanRequest,
    ExecutionStep,
    PlanOutcome,
    PlanReport,
    StepStatus,
)
from agenthub_server.models.sessions import (
    SessionListResponse,
    SessionResponse,
    TranscriptMessage,
)

__all__ = [
    "TERMINAL_EVENT_TYPES",
    "AbortResponse",
    "AgentDescriptor",
    "ChatRequest",
    "ExecutePlanRequest",
    "ExecutionStep",
    "HealthResponse",
    "PlanOutcome",
    "PlanReport",
    "SessionListResponse",
    "SessionResponse",
    "StepStatus",
    "StreamEvent",
    "TranscriptMessage",
]
