"""Execution adapters: local subprocess, remote relay and orchestrator."""

from agenthub_server.adapters.base import ExecutionAdapter
from agenthub_server.adapters.local import LocalExecutionError, LocalSubprocessAdapter
from agenthub_server.adapters.orchestrator import (
    OrchestratorAdapter,
    build_plan_tool,
    build_system_prompt,
)
from agenthub_server.adapters.relay import RelayTransportError, RemoteRelayAdapter

__all__ = [
    "ExecutionAdapter",
    "LocalExecutionError",
    "LocalSubprocessAdapter",
    "OrchestratorAdapter",
    "RelayTransportError",
    "RemoteRelayAdapter",
    "build_plan_tool",
    "build_system_prompt",
]
