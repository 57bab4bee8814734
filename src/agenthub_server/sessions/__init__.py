"""Conversation sessions: rendered message types and the in-memory store.

The stream recorder lives in ``agenthub_server.sessions.recorder``.
"""

from agenthub_server.sessions.store import ConversationStore
from agenthub_server.sessions.types import (
    GROUP_SESSION_KEY,
    AssistantMessage,
    ConversationSession,
    ErrorMessage,
    Message,
    PlanMessage,
    ResultMessage,
    SystemMessage,
    ToolCall,
    ToolMessage,
    UserMessage,
)

__all__ = [
    "GROUP_SESSION_KEY",
    "AssistantMessage",
    "ConversationSession",
    "ConversationStore",
    "ErrorMessage",
    "Message",
    "PlanMessage",
    "ResultMessage",
    "SystemMessage",
    "ToolCall",
    "ToolMessage",
    "UserMessage",
]
