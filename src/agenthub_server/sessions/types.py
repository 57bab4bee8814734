"""Data types for conversation sessions.

This module defines the rendered messages a consumer builds from the
canonical event stream, and the per-agent conversation session that holds
them together with the resumable session token.
"""

from dataclasses import dataclass, field
from typing import Any

from agenthub_server.models.plans import ExecutionStep

GROUP_SESSION_KEY = "__group__"


@dataclass
class UserMessage:
    """A message from the user (or a plan step's instruction)."""

    role: str = "user"
    content: str = ""
    request_id: str = ""
    message_id: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        """Validate role is always 'user'."""
        self.role = "user"


@dataclass
class SystemMessage:
    """A system/status message, e.g. session initialization."""

    role: str = "system"
    content: str = ""
    subtype: str | None = None
    request_id: str = ""
    message_id: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        """Validate role is always 'system'."""
        self.role = "system"


@dataclass
class AssistantMessage:
    """Assistant text, possibly assembled from several streamed fragments."""

    role: str = "assistant"
    content: str = ""
    request_id: str = ""
    message_id: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        """Validate role is always 'assistant'."""
        self.role = "assistant"


@dataclass
class ToolCall:
    """A single tool invocation: name and JSON argument object."""

    name: str
    arguments: dict[str, Any] = field(default_factory=dict)
    call_id: str | None = None


@dataclass
class ToolMessage:
    """An assistant turn that invoked one or more tools."""

    role: str = "tool"
    content: str = ""
    tool_calls: list[ToolCall] = field(default_factory=list)
    request_id: str = ""
    message_id: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        """Validate role is always 'tool'."""
        self.role = "tool"

    @property
    def tool_name(self) -> str | None:
        return self.tool_calls[0].name if self.tool_calls else None


@dataclass
class PlanMessage:
    """An execution plan produced by the orchestrator."""

    role: str = "plan"
    content: str = ""
    steps: list[ExecutionStep] = field(default_factory=list)
    request_id: str = ""
    message_id: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        """Validate role is always 'plan'."""
        self.role = "plan"


@dataclass
class ResultMessage:
    """Terminal status and cost summary reported by the coding agent."""

    role: str = "result"
    content: str = ""
    is_error: bool = False
    total_cost_usd: float | None = None
    duration_ms: int | None = None
    num_turns: int | None = None
    request_id: str = ""
    message_id: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        """Validate role is always 'result'."""
        self.role = "result"


@dataclass
class ErrorMessage:
    """A stream that ended in error or was aborted."""

    role: str = "error"
    content: str = ""
    aborted: bool = False
    request_id: str = ""
    message_id: str = ""
    timestamp: str = ""

    def __post_init__(self) -> None:
        """Validate role is always 'error'."""
        self.role = "error"


# Union type for all rendered message types
Message = (
    UserMessage
    | SystemMessage
    | AssistantMessage
    | ToolMessage
    | PlanMessage
    | ResultMessage
    | ErrorMessage
)


@dataclass
class ConversationSession:
    """Ordered transcript and resumable session token for one agent.

    The key is an agent id or GROUP_SESSION_KEY for the shared group chat.
    """

    key: str
    session_token: str | None = None
    messages: list[Message] = field(default_factory=list)
    created_at: str = ""
    updated_at: str = ""
