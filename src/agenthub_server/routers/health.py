"""Health check endpoint router."""

import logging
import shutil

from fastapi import APIRouter, Request

from agenthub_server import __version__
from agenthub_server.models.health import HealthResponse

logger = logging.getLogger(__name__)

router = APIRouter(prefix="/api", tags=["health"])


@router.get("/health", response_model=HealthResponse)
async def health_check(request: Request) -> HealthResponse:
    """Health check endpoint.

    Returns the status and version of agenthub-server, the orchestrator's
    completion provider, whether the coding-agent CLI is installed and how
    many requests are in flight.
    """
    settings = request.app.state.settings
    agent_cli_available = shutil.which(settings.claude_executable) is not None
    if not agent_cli_available:
        logger.debug(f"Agent executable {settings.claude_executable} not found on PATH")

    active_requests = 0
    if hasattr(request.app.state, "registry"):
        active_requests = len(request.app.state.registry)

    return HealthResponse(
        status="ok",
        version=__version__,
        orchestrator_provider=settings.orchestrator_provider,
        agent_cli_available=agent_cli_available,
        active_requests=active_requests,
    )
