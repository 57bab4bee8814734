"""CLI entry point for agenthub-server.

This module provides the command-line interface for starting the agenthub-server.
It can be invoked as `agenthub-server` (via the script entry point) or
`python -m agenthub_server`.
"""

import argparse
import logging
import sys

import uvicorn

from agenthub_server import __version__, create_app
from agenthub_server.config import AgentHubSettings


def main() -> None:
    """Parse command-line arguments and start uvicorn with the FastAPI application."""
    parser = argparse.ArgumentParser(
        prog="agenthub-server",
        description="Headless FastAPI server dispatching chat requests to coding agents",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"agenthub-server {__version__}",
    )
    parser.add_argument(
        "--host",
        type=str,
        default=None,
        help="Host to bind the server to (default: 127.0.0.1, can be set via AGENTHUB_HOST)",
    )
    parser.add_argument(
        "--port",
        type=int,
        default=None,
        help="Port to bind the server to (default: 8080, can be set via AGENTHUB_PORT)",
    )
    parser.add_argument(
        "--claude-executable",
        type=str,
        default=None,
        help="Coding-agent CLI to run for local requests (can be set via AGENTHUB_CLAUDE_EXECUTABLE)",
    )
    parser.add_argument(
        "--orchestrator-provider",
        type=str,
        default=None,
        choices=["anthropic", "ollama"],
        help="Completion provider for the orchestrator (can be set via AGENTHUB_ORCHESTRATOR_PROVIDER)",
    )
    parser.add_argument(
        "--orchestrator-model",
        type=str,
        default=None,
        help="Model used by the orchestrator (can be set via AGENTHUB_ORCHESTRATOR_MODEL)",
    )
    parser.add_argument(
        "--ollama-host",
        type=str,
        default=None,
        help="Ollama server URL (default: http://localhost:11434, can be set via AGENTHUB_OLLAMA_HOST)",
    )
    parser.add_argument(
        "--auto-execute-plans",
        action="store_true",
        default=None,
        help="Execute orchestrator plans as soon as they are produced",
    )
    parser.add_argument(
        "--log-level",
        type=str,
        default=None,
        choices=["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"],
        help="Logging level (default: INFO, can be set via AGENTHUB_LOG_LEVEL)",
    )
    parser.add_argument(
        "--reload",
        action="store_true",
        help="Enable auto-reload for development (uvicorn --reload)",
    )

    args = parser.parse_args()

    # CLI args override environment variables
    settings_kwargs = {}
    for name in (
        "host",
        "port",
        "claude_executable",
        "orchestrator_provider",
        "orchestrator_model",
        "ollama_host",
        "auto_execute_plans",
        "log_level",
    ):
        value = getattr(args, name)
        if value is not None:
            settings_kwargs[name] = value

    settings = AgentHubSettings(**settings_kwargs)

    logging.basicConfig(
        level=settings.log_level.upper(),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )

    app = create_app(settings=settings)

    uvicorn.run(
        app,
        host=settings.host,
        port=settings.port,
        log_level=settings.log_level.lower(),
        reload=args.reload,
    )


if __name__ == "__main__":
    sys.exit(main())
