"""Health check response model."""

from pydantic import BaseModel, Field


class HealthResponse(BaseModel):
    """Response model for the health check endpoint.

    Attributes:
        status: Health status indicator ("ok" or "error").
        version: The version of agenthub-server.
        orchestrator_provider: Completion provider used by the orchestrator.
        agent_cli_available: Whether the local coding-agent executable is on PATH.
        active_requests: Number of requests currently holding a cancellation handle.
    """

    status: str = Field(..., description="Health status of the service")
    version: str = Field(..., description="Version of agenthub-server")
    orchestrator_provider: str | None = Field(
        default=None,
        description="Completion provider backing the orchestrator",
    )
    agent_cli_available: bool | None = Field(
        default=None,
        description="Whether the coding-agent CLI executable was found",
    )
    active_requests: int = Field(
        default=0,
        description="Requests currently in flight",
    )
