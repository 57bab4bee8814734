"""Pydantic models for chat API requests and responses.

This module defines the agent roster entries that clients embed in each
request, the chat request itself and the abort endpoint's response. Field
names are exchanged in camelCase on the wire (``requestId``,
``workingDirectory``, ...) and exposed as snake_case attributes.
"""

from pydantic import BaseModel, ConfigDict, Field
from pydantic.alias_generators import to_camel


class AgentDescriptor(BaseModel):
    """An agent known to the caller: an isolated execution context."""

    id: str = Field(description="Unique agent identifier, used for @mentions")
    name: str = Field(default="", description="Display name")
    description: str = Field(default="", description="What the agent works on")
    working_directory: str = Field(description="Directory the agent executes in")
    api_endpoint: str = Field(
        default="", description="Base URL of the server hosting this agent"
    )
    is_orchestrator: bool = Field(
        default=False, description="Whether this agent decomposes tasks for others"
    )
    is_enabled: bool = Field(default=True, description="Whether the agent is usable")

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)


class ChatRequest(BaseModel):
    """Request body for POST /api/chat."""

    message: str = Field(description="The user message or command")
    session_id: str | None = Field(
        default=None, description="Resumable session token from a previous stream"
    )
    request_id: str = Field(
        min_length=1,
        description="Unique id for this request, used to abort it",
    )
    working_directory: str | None = Field(
        default=None, description="Working directory selecting the target agent"
    )
    available_agents: list[AgentDescriptor] | None = Field(
        default=None, description="Caller's agent roster"
    )
    allowed_tools: list[str] | None = Field(
        default=None, description="Tool names the local agent may use"
    )

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        json_schema_extra={
            "examples": [
                {
                    "message": "@readymojo-web build the login page",
                    "requestId": "4f9c2a1e7b",
                    "workingDirectory": "/tmp/orchestrator",
                    "availableAgents": [
                        {
                            "id": "group-chat",
                            "name": "Chat with Agents",
                            "workingDirectory": "/tmp/orchestrator",
                            "apiEndpoint": "http://localhost:8080",
                            "isOrchestrator": True,
                        },
                        {
                            "id": "readymojo-web",
                            "name": "ReadyMojo Web",
                            "description": "Frontend web application",
                            "workingDirectory": "/srv/readymojo-web",
                            "apiEndpoint": "http://localhost:8081",
                        },
                    ],
                }
            ]
        },
    )

    def to_wire(self) -> dict:
        """Serialize with camelCase keys, omitting unset optional fields."""
        return self.model_dump(by_alias=True, exclude_none=True)


class AbortResponse(BaseModel):
    """Response body for POST /api/abort/{request_id}."""

    request_id: str
    aborted: bool

    model_config = ConfigDict(alias_generator=to_camel, populate_by_name=True)
