"""agenthub-server: Headless FastAPI server dispatching chat requests to coding agents.

This package routes chat requests to a local coding-agent CLI, to a remote
agent server or to an orchestrator model, streams the results as
newline-delimited JSON and executes the orchestrator's multi-agent plans.
"""

__version__ = "0.1.0"

from agenthub_server.app import create_app  # noqa: E402

__all__ = ["create_app", "__version__"]
