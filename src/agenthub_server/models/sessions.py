"""Pydantic models for the session transcript endpoints."""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class TranscriptMessage(BaseModel):
    """One rendered message of a conversation transcript.

    Role-specific fields (``tool_calls``, ``steps``, ``total_cost_usd``, ...)
    are carried as extra fields.
    """

    role: str
    content: str
    request_id: str = ""
    message_id: str = ""
    timestamp: str = ""

    model_config = ConfigDict(extra="allow")


class SessionResponse(BaseModel):
    """Response body for GET /api/sessions/{key}."""

    key: str = Field(description="Agent id, or the group session key")
    session_id: str | None = Field(
        default=None, description="Resumable session token of the agent"
    )
    created_at: str
    updated_at: str
    message_count: int
    messages: list[TranscriptMessage]

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class SessionListResponse(BaseModel):
    """Response body for GET /api/sessions."""

    keys: list[str]

