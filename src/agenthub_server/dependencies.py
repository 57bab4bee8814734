"""Dependency injection providers for FastAPI endpoints.

This module provides FastAPI dependency functions that hand the long-lived
services created at startup (and stored in app.state) to the routers.
"""

from functools import lru_cache

from fastapi import HTTPException, Request

from agenthub_server.config import AgentHubSettings
from agenthub_server.execution import CancellationRegistry
from agenthub_server.plans import PlanScheduler
from agenthub_server.routing import ChatDispatcher
from agenthub_server.sessions import ConversationStore


@lru_cache
def get_settings() -> AgentHubSettings:
    """Get the application settings instance.

    This function is cached so that the same settings instance is reused
    across all requests. Settings are loaded from environment variables
    with the AGENTHUB_ prefix.

    Returns:
        AgentHubSettings: The application configuration settings.
    """
    return AgentHubSettings()


def _app_state(request: Request, name: str, label: str):
    if not hasattr(request.app.state, name):
        raise HTTPException(
            status_code=503,
            detail=f"{label} not initialized",
        )
    return getattr(request.app.state, name)


def get_app_settings(request: Request) -> AgentHubSettings:
    """Get the settings the app was created with (not the cached global ones)."""
    return request.app.state.settings


def get_registry(request: Request) -> CancellationRegistry:
    """Get the cancellation registry from app state.

    Raises:
        HTTPException: If the registry is not initialized (503 Service Unavailable).
    """
    return _app_state(request, "registry", "Cancellation registry")


def get_dispatcher(request: Request) -> ChatDispatcher:
    """Get the chat dispatcher from app state.

    Raises:
        HTTPException: If the dispatcher is not initialized (503 Service Unavailable).
    """
    return _app_state(request, "dispatcher", "Chat dispatcher")


def get_conversation_store(request: Request) -> ConversationStore:
    return _app_state(request, "conversation_store", "Conversation store")


def get_plan_scheduler(request: Request) -> PlanScheduler:
    return _app_state(request, "plan_scheduler", "Plan scheduler")
