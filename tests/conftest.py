"""Pytest configuration and shared fixtures for agenthub-server tests.

This module provides common fixtures used across all test modules: test app
creation and async client setup, an agent roster, and scripted stand-ins for
the execution adapters and the orchestrator's completion provider.
"""

from types import SimpleNamespace
from unittest.mock import patch

import pytest
import pytest_asyncio
from httpx import ASGITransport, AsyncClient

from agenthub_server import create_app
from agenthub_server.config import AgentHubSettings
from agenthub_server.execution import CancellationRegistry
from agenthub_server.models.chat import AgentDescriptor
from agenthub_server.routing import AdapterKind, ChatDispatcher, RequestRouter
from agenthub_server.sessions import ConversationStore
from fakes import FakeProvider, ScriptedAdapter


@pytest.fixture
def test_settings(tmp_path):
    """Create test settings for an isolated server.

    Returns:
        AgentHubSettings: Settings instance configured for testing.
    """
    return AgentHubSettings(
        host="127.0.0.1",
        port=8080,
        orchestrator_working_directory="/tmp/orchestrator",
        default_working_directory=None,
        claude_executable="claude",
        orchestrator_provider="anthropic",
        anthropic_api_key="test-key",
        relay_read_timeout=30.0,
        max_parallel_steps=8,
        auto_execute_plans=False,
        log_level="DEBUG",
        cors_origins=["*"],
    )


@pytest.fixture
def test_app(test_settings):
    """Create a FastAPI test application instance."""
    return create_app(settings=test_settings)


@pytest_asyncio.fixture
async def async_client(test_app):
    """Create an async HTTP client for testing FastAPI endpoints.

    Yields:
        AsyncClient: Async HTTP client for making test requests.
    """
    # Trigger the lifespan startup manually for tests
    async with test_app.router.lifespan_context(test_app):
        transport = ASGITransport(app=test_app)
        async with AsyncClient(transport=transport, base_url="http://test") as client:
            yield client


@pytest.fixture
def roster() -> list[AgentDescriptor]:
    """An orchestrator and two worker agents hosted on remote servers."""
    return [
        AgentDescriptor(
            id="group-chat",
            name="Chat with Agents",
            working_directory="/tmp/orchestrator",
            api_endpoint="http://localhost:8080",
            is_orchestrator=True,
        ),
        AgentDescriptor(
            id="readymojo-web",
            name="ReadyMojo Web",
            description="Frontend web application",
            working_directory="/srv/readymojo-web",
            api_endpoint="http://web.test",
        ),
        AgentDescriptor(
            id="readymojo-api",
            name="ReadyMojo API",
            description="Backend API and server logic",
            working_directory="/srv/readymojo-api",
            api_endpoint="http://api.test",
        ),
    ]


@pytest.fixture
def registry() -> CancellationRegistry:
    return CancellationRegistry()


@pytest.fixture
def store() -> ConversationStore:
    return ConversationStore()


@pytest.fixture
def scripted_adapter(registry) -> ScriptedAdapter:
    return ScriptedAdapter(registry)


@pytest.fixture
def scripted_dispatcher(scripted_adapter) -> ChatDispatcher:
    """Dispatcher whose every adapter kind is the scripted adapter."""
    router = RequestRouter(orchestrator_working_directory="/tmp/orchestrator")
    return ChatDispatcher(router, {kind: scripted_adapter for kind in AdapterKind})


@pytest.fixture
def stub_backends():
    """Replace the app's local adapter and completion provider with fakes.

    The patches must be active when the lifespan runs. The local adapter is
    reachable afterwards as ``app.state.dispatcher.adapters[AdapterKind.LOCAL]``.
    """
    provider = FakeProvider()
    backends = SimpleNamespace(provider=provider, local=None)

    def build_local(registry, **kwargs):
        backends.local = ScriptedAdapter(registry)
        return backends.local

    with (
        patch("agenthub_server.app.create_provider", return_value=provider),
        patch("agenthub_server.app.LocalSubprocessAdapter", side_effect=build_local),
    ):
        yield backends
