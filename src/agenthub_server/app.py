"""FastAPI application factory and lifespan management.

This module contains the create_app() factory function that creates and configures
the FastAPI application instance, including lifespan management for startup/shutdown
and router registration.
"""

import logging
from contextlib import asynccontextmanager
from typing import AsyncIterator

import httpx
from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from agenthub_server import __version__
from agenthub_server.adapters import (
    LocalSubprocessAdapter,
    OrchestratorAdapter,
    RemoteRelayAdapter,
)
from agenthub_server.config import AgentHubSettings
from agenthub_server.execution import CancellationRegistry
from agenthub_server.llm import OllamaClient, create_provider
from agenthub_server.plans import PlanScheduler
from agenthub_server.routers import chat, health, plans, sessions
from agenthub_server.routing import AdapterKind, ChatDispatcher, RequestRouter
from agenthub_server.sessions import ConversationStore

logger = logging.getLogger(__name__)


@asynccontextmanager
async def lifespan(app: FastAPI) -> AsyncIterator[None]:
    """Lifespan context manager for FastAPI application.

    Long-lived services (the cancellation registry, the conversation store,
    the relay's HTTP client, the orchestrator's completion provider and the
    adapters built on them) are created once at startup and stored in
    app.state for reuse across all requests.

    Args:
        app: The FastAPI application instance.

    Yields:
        None: Control is yielded while the app is running.
    """
    settings: AgentHubSettings = app.state.settings

    registry = CancellationRegistry()
    store = ConversationStore()
    http_client = httpx.AsyncClient(
        timeout=httpx.Timeout(None, connect=settings.relay_connect_timeout)
    )
    provider = create_provider(
        settings.orchestrator_provider,
        anthropic_api_key=settings.anthropic_api_key,
        ollama_host=settings.ollama_host,
    )
    logger.info(
        f"Orchestrator uses {settings.orchestrator_provider} model {settings.orchestrator_model}"
    )

    # Check initial connectivity of a local model server
    if isinstance(provider, OllamaClient):
        if await provider.check_connection():
            logger.info(f"Connected to Ollama at {provider.host}")
        else:
            logger.warning("Could not connect to Ollama - check if server is running")

    adapters = {
        AdapterKind.LOCAL: LocalSubprocessAdapter(
            registry,
            executable=settings.claude_executable,
            permission_mode=settings.claude_permission_mode,
            command_prefix=settings.command_prefix,
            terminate_timeout=settings.process_terminate_timeout,
        ),
        AdapterKind.RELAY: RemoteRelayAdapter(
            registry, http_client, read_timeout=settings.relay_read_timeout
        ),
        AdapterKind.ORCHESTRATOR: OrchestratorAdapter(
            registry,
            provider,
            model=settings.orchestrator_model,
            max_tokens=settings.orchestrator_max_tokens,
        ),
    }
    router = RequestRouter(
        orchestrator_working_directory=settings.orchestrator_working_directory,
        default_working_directory=settings.default_working_directory,
    )
    dispatcher = ChatDispatcher(router, adapters)

    app.state.registry = registry
    app.state.conversation_store = store
    app.state.http_client = http_client
    app.state.completion_provider = provider
    app.state.dispatcher = dispatcher
    app.state.plan_scheduler = PlanScheduler(
        dispatcher, store, max_parallel_steps=settings.max_parallel_steps
    )

    yield

    # Shutdown: Clean up resources
    if len(registry):
        logger.warning(f"Shutting down with {len(registry)} requests in flight")
    await provider.close()
    await http_client.aclose()
    logger.info("HTTP client and completion provider closed")


def create_app(settings: AgentHubSettings | None = None) -> FastAPI:
    """Create and configure the FastAPI application.

    Args:
        settings: Optional AgentHubSettings instance. If not provided,
                  settings will be loaded from environment variables.

    Returns:
        FastAPI: Configured FastAPI application instance.
    """
    if settings is None:
        from agenthub_server.dependencies import get_settings

        settings = get_settings()

    app = FastAPI(
        title="agenthub-server",
        description="Headless FastAPI server dispatching chat requests to coding agents",
        version=__version__,
        lifespan=lifespan,
    )

    # Store settings in app.state for lifespan access
    app.state.settings = settings

    # Note: FastAPI's type hints for add_middleware are overly strict
    app.add_middleware(
        CORSMiddleware,  # type: ignore[arg-type]
        allow_origins=settings.cors_origins,
        allow_credentials=True,
        allow_methods=["*"],
        allow_headers=["*"],
    )

    app.include_router(health.router)
    app.include_router(chat.router)
    app.include_router(plans.router)
    app.include_router(sessions.router)

    return app
