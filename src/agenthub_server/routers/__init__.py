"""API routers for agenthub-server."""

from agenthub_server.routers import chat, health, plans, sessions

__all__ = ["chat", "health", "plans", "sessions"]
